"""Helpers for combining record lists fetched from several endpoints."""

from __future__ import annotations

import itertools
from typing import Any, Callable, Hashable, Iterable, Optional


def _default_key(record: Any) -> Optional[Hashable]:
    if isinstance(record, dict):
        return record.get("id")
    return getattr(record, "id", None)


def merge_by_id(
    *groups: Iterable[Any],
    key: Callable[[Any], Optional[Hashable]] = _default_key,
) -> list[Any]:
    """Concatenate *groups* and collapse records sharing the same id.

    A record keeps the position where its id was first seen and the value
    from its last occurrence. Records without an id are kept untouched.
    """
    anonymous = itertools.count()
    merged: dict[tuple[str, Any], Any] = {}
    for group in groups:
        for record in group:
            record_id = key(record)
            slot = ("id", record_id) if record_id is not None else ("anon", next(anonymous))
            merged[slot] = record
    return list(merged.values())


def sort_by_field(records: Iterable[Any], field: str, *, descending: bool = True) -> list[Any]:
    """Sort dicts or objects on *field*; records missing it go last."""

    def _value(record: Any) -> Any:
        if isinstance(record, dict):
            return record.get(field)
        return getattr(record, field, None)

    records = list(records)
    present = [r for r in records if _value(r) is not None]
    missing = [r for r in records if _value(r) is None]
    return sorted(present, key=_value, reverse=descending) + missing
