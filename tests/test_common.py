"""Tests for common utilities — filters, sorting, search, pagination,
record merging and office-time helpers.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms.common.constants import UserRole
from hrms.common.filters import _get_column, apply_filters, apply_search, apply_sorting
from hrms.common.merge import merge_by_id, sort_by_field
from hrms.common.pagination import PaginationMeta, PaginationParams, paginate
from hrms.common.timeutils import as_utc, parse_clock
from hrms.users.models import User
from tests.conftest import _make_user


# ── Helpers ─────────────────────────────────────────────────────────


async def _seed_users(db: AsyncSession) -> list[User]:
    users = [
        User(**_make_user(email="alice@example.com", full_name="Alice Archer", role=UserRole.hr)),
        User(**_make_user(email="bob@example.com", full_name="Bob Baker")),
        User(**_make_user(email="carol@example.com", full_name="Carol Cooper", role=UserRole.manager)),
    ]
    db.add_all(users)
    await db.commit()
    return users


def _params(page: int = 1, page_size: int = 50, sort=None) -> PaginationParams:
    return PaginationParams(page=page, page_size=page_size, sort=sort)


async def _names(db, query) -> list[str]:
    return [u.full_name for u in (await db.execute(query)).scalars().all()]


# ═════════════════════════════════════════════════════════════════════
# 1. Filters and sorting
# ═════════════════════════════════════════════════════════════════════


async def test_apply_filters_equality_and_skip_none(db):
    await _seed_users(db)
    query = apply_filters(select(User), User, {"role": UserRole.hr, "status": None})
    assert await _names(db, query) == ["Alice Archer"]


async def test_apply_filters_ilike_and_in(db):
    await _seed_users(db)
    query = apply_filters(select(User), User, {"full_name__ilike": "BAKER"})
    assert await _names(db, query) == ["Bob Baker"]

    query = apply_filters(
        select(User).order_by(User.full_name),
        User,
        {"role__in": [UserRole.hr, UserRole.manager]},
    )
    assert await _names(db, query) == ["Alice Archer", "Carol Cooper"]


async def test_apply_filters_ignores_unknown_columns(db):
    await _seed_users(db)
    query = apply_filters(select(User), User, {"nonexistent": "x", "_sa_instance_state": 1})
    assert len(await _names(db, query)) == 3


async def test_apply_sorting_desc_and_unknown(db):
    await _seed_users(db)
    query = apply_sorting(select(User).order_by(User.email), User, "-full_name")
    assert await _names(db, query) == ["Carol Cooper", "Bob Baker", "Alice Archer"]

    unchanged = select(User).order_by(User.email)
    assert apply_sorting(unchanged, User, "password_hash; DROP TABLE users") is unchanged


async def test_apply_search_any_column(db):
    await _seed_users(db)
    query = apply_search(select(User), User, "  carol@ ", ["full_name", "email"])
    assert await _names(db, query) == ["Carol Cooper"]

    blank = select(User)
    assert apply_search(blank, User, "   ", ["full_name"]) is blank


def test_get_column_rejects_private_names():
    assert _get_column(User, "_sa_class_manager") is None
    assert _get_column(User, "email") is not None
    # properties are not columns
    assert _get_column(User, "is_active") is None


# ═════════════════════════════════════════════════════════════════════
# 2. Pagination
# ═════════════════════════════════════════════════════════════════════


def test_pagination_meta_build():
    meta = PaginationMeta.build(_params(page=2, page_size=10), 25)
    assert meta.total_pages == 3
    assert meta.has_next is True
    assert meta.has_prev is True

    empty = PaginationMeta.build(_params(), 0)
    assert empty.total_pages == 0
    assert empty.has_next is False


async def test_paginate_sorts_and_slices(db):
    await _seed_users(db)
    page = await paginate(db, select(User), _params(page=2, page_size=2, sort="full_name"), model=User)
    assert page.meta.total == 3
    assert [u.full_name for u in page.data] == ["Carol Cooper"]


# ═════════════════════════════════════════════════════════════════════
# 3. Merge helpers
# ═════════════════════════════════════════════════════════════════════


def test_merge_by_id_keeps_first_position_last_value():
    merged = merge_by_id(
        [{"id": 1, "v": "a"}, {"id": 2, "v": "b"}],
        [{"id": 1, "v": "c"}, {"id": 3, "v": "d"}],
    )
    assert merged == [{"id": 1, "v": "c"}, {"id": 2, "v": "b"}, {"id": 3, "v": "d"}]


def test_merge_by_id_keeps_records_without_id():
    merged = merge_by_id([{"v": 1}, {"id": 7}], [{"v": 2}, {"id": 7}])
    assert merged == [{"v": 1}, {"id": 7}, {"v": 2}]


def test_merge_by_id_custom_key():
    merged = merge_by_id(["a", "B"], ["A"], key=str.lower)
    assert merged == ["A", "B"]


def test_sort_by_field_missing_values_last():
    records = [{"d": "2026-01-02"}, {"d": None}, {"d": "2026-03-01"}, {}]
    assert sort_by_field(records, "d") == [{"d": "2026-03-01"}, {"d": "2026-01-02"}, {"d": None}, {}]
    assert sort_by_field(records, "d", descending=False)[0] == {"d": "2026-01-02"}


def test_sort_by_field_on_objects():
    users = [User(full_name="Zed"), User(full_name="Amy")]
    assert [u.full_name for u in sort_by_field(users, "full_name", descending=False)] == ["Amy", "Zed"]


# ═════════════════════════════════════════════════════════════════════
# 4. Time helpers
# ═════════════════════════════════════════════════════════════════════


def test_as_utc_treats_naive_as_utc():
    naive = datetime(2026, 3, 2, 4, 0)
    assert as_utc(naive) == datetime(2026, 3, 2, 4, 0, tzinfo=timezone.utc)
    assert as_utc(None) is None


@pytest.mark.parametrize("raw, expected", [("09:30", (9, 30)), ("18:05", (18, 5))])
def test_parse_clock(raw, expected):
    parsed = parse_clock(raw)
    assert (parsed.hour, parsed.minute) == expected
