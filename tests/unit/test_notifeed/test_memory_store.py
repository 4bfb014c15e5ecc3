"""Tests for the in-process feed store."""

from __future__ import annotations

import math

import pytest

from notifeed.errors import StoreConflictError
from notifeed.store.base import AddMember, ExpectRange, RemoveMember
from notifeed.store.memory import MemoryFeedStore


@pytest.mark.asyncio
async def test_range_is_descending_and_inclusive(store: MemoryFeedStore) -> None:
    for score, payload in [(1.0, "a"), (2.0, "b"), (3.0, "c"), (4.0, "d")]:
        await store.add("k", score, payload)
    assert await store.range_by_score("k", 2.0, 3.0) == ["c", "b"]
    assert await store.range_by_score("k", 0, 10) == ["d", "c", "b", "a"]


@pytest.mark.asyncio
async def test_range_with_min_above_max_is_empty(store: MemoryFeedStore) -> None:
    await store.add("k", 1.0, "a")
    assert await store.range_by_score("k", 5.0, 1.0) == []


@pytest.mark.asyncio
async def test_add_same_member_is_idempotent(store: MemoryFeedStore) -> None:
    await store.add("k", 1.0, "a")
    await store.add("k", 1.0, "a")
    assert store.members("k") == {"a": 1.0}


@pytest.mark.asyncio
async def test_remove(store: MemoryFeedStore) -> None:
    await store.add("k", 1.0, "a")
    await store.remove("k", "a")
    await store.remove("k", "missing")
    assert await store.range_by_score("k", 0, 10) == []


@pytest.mark.asyncio
async def test_scalars(store: MemoryFeedStore) -> None:
    assert await store.get_scalar("c") is None
    assert await store.get_and_set_scalar("c", 5.0) is None
    assert await store.get_and_set_scalar("c", 6.0) == 5.0
    await store.set_scalar("c", 7.0)
    assert await store.get_scalar("c") == 7.0


@pytest.mark.asyncio
async def test_transaction_applies_all(store: MemoryFeedStore) -> None:
    await store.add("k", 1.0, "old")
    await store.transaction(
        [ExpectRange("k", 1.0, math.inf, frozenset({"old"})), AddMember("k", 2.0, "new"), RemoveMember("k", "old")]
    )
    assert store.members("k") == {"new": 2.0}


@pytest.mark.asyncio
async def test_transaction_with_failed_expectation_applies_nothing(store: MemoryFeedStore) -> None:
    await store.add("k", 1.0, "other")
    with pytest.raises(StoreConflictError):
        await store.transaction([ExpectRange("k", 0.0, math.inf, frozenset({"gone"})), AddMember("k", 2.0, "new")])
    assert store.members("k") == {"other": 1.0}


@pytest.mark.asyncio
async def test_expected_empty_range_fails_once_something_lands_in_it(store: MemoryFeedStore) -> None:
    await store.transaction([ExpectRange("k", 1.0, math.inf, frozenset()), AddMember("k", 2.0, "first")])
    with pytest.raises(StoreConflictError):
        await store.transaction([ExpectRange("k", 1.0, math.inf, frozenset()), AddMember("k", 3.0, "second")])
    assert store.members("k") == {"first": 2.0}


@pytest.mark.asyncio
async def test_expectation_ignores_members_outside_the_range(store: MemoryFeedStore) -> None:
    await store.add("k", 0.5, "older")
    await store.transaction([ExpectRange("k", 1.0, math.inf, frozenset()), AddMember("k", 2.0, "new")])
    assert store.members("k") == {"older": 0.5, "new": 2.0}
