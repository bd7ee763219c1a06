"""Timezone helpers: the office calendar runs on ``settings.TIMEZONE``."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from hrms.config import settings


def office_tz() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_now() -> datetime:
    return datetime.now(office_tz())


def local_today() -> date:
    return local_now().date()


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (SQLite round-trips) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_local(value: datetime) -> datetime:
    return as_utc(value).astimezone(office_tz())


def parse_clock(value: str) -> time:
    """Parse ``HH:MM`` (as used by OFFICE_START_TIME) into a time."""
    hours, minutes = value.split(":", 1)
    return time(int(hours), int(minutes))
