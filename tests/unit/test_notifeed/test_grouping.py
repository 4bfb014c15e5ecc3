"""Tests for the grouping engine's merge planning."""

from __future__ import annotations

from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from notifeed.feed import Feed
from notifeed.grouping import GroupingEngine, is_mergeable
from notifeed.notification import Notification
from notifeed.receiver import ReceiverRef
from notifeed.schema import NotificationType
from notifeed.store.memory import MemoryFeedStore
from notifeed.utils import to_score


async def _stored(store: MemoryFeedStore, n: Notification) -> Notification:
    await store.add("feed:User:1", to_score(n.created_at), n.to_entry())
    return n


def _like(t: NotificationType, post_id: int, liker_id: int, at: datetime) -> Notification:
    return t.build({"user_id": 1, "post_id": post_id, "liker_id": liker_id}, created_at=at)


@pytest.mark.asyncio
async def test_ungrouped_type_never_reads_the_feed(user: ReceiverRef, clock) -> None:
    store = AsyncMock()
    engine = GroupingEngine(Feed(store, clock=clock), clock=clock)
    t = NotificationType(name="system.notice", required_attributes=("text",))
    plan = await engine.plan(t.build({"text": "hi"}), t, user)
    assert not plan.merged
    store.range_by_score.assert_not_awaited()
    store.get_scalar.assert_not_awaited()


@pytest.mark.asyncio
async def test_merges_matching_entries_newest_first(
    store: MemoryFeedStore, user: ReceiverRef, make_type, clock
) -> None:
    t = make_type()
    engine = GroupingEngine(Feed(store, clock=clock), clock=clock)
    first = t.build(
        {"user_id": 1, "post_id": 5, "liker_id": 1},
        {"user_id": 1, "post_id": 5, "liker_id": 2},
        created_at=clock.now,
    )
    await _stored(store, first)
    clock.advance(10)
    await _stored(store, _like(t, 5, 3, clock.now))
    clock.advance(10)
    other_post = await _stored(store, _like(t, 6, 4, clock.now))
    clock.advance(10)

    incoming = _like(t, 5, 9, clock.now)
    plan = await engine.plan(incoming, t, user)

    assert plan.notification.values("liker_id") == [9, 3, 1, 2]
    assert len(plan.superseded) == 2
    assert all(e.notification.data == {"user_id": 1, "post_id": 5} for e in plan.superseded)
    assert other_post.to_entry() not in [e.payload for e in plan.superseded]
    assert incoming.groups == [{"liker_id": 9}]


@pytest.mark.asyncio
async def test_other_types_with_same_data_do_not_merge(
    store: MemoryFeedStore, user: ReceiverRef, make_type, clock
) -> None:
    likes, shares = make_type(), make_type(name="post.shared")
    engine = GroupingEngine(Feed(store, clock=clock), clock=clock)
    await _stored(store, _like(shares, 5, 1, clock.now))
    clock.advance(1)
    plan = await engine.plan(_like(likes, 5, 2, clock.now), likes, user)
    assert not plan.merged


@pytest.mark.asyncio
async def test_default_window_starts_at_last_read(store: MemoryFeedStore, user: ReceiverRef, make_type, clock) -> None:
    t = make_type()
    feed = Feed(store, clock=clock)
    engine = GroupingEngine(feed, clock=clock)
    await _stored(store, _like(t, 5, 1, clock.now))
    clock.advance(5)
    await feed.mark_read(user)
    clock.advance(5)

    plan = await engine.plan(_like(t, 5, 2, clock.now), t, user)
    assert not plan.merged
    assert plan.window_start == clock.now - timedelta(seconds=5)


@pytest.mark.asyncio
async def test_window_lower_bound_is_inclusive(store: MemoryFeedStore, user: ReceiverRef, make_type, clock) -> None:
    boundary = clock.now
    t = make_type(group_within=lambda receiver: boundary)
    engine = GroupingEngine(Feed(store, clock=clock), clock=clock)
    await _stored(store, _like(t, 5, 1, clock.now))
    clock.advance(60)
    plan = await engine.plan(_like(t, 5, 2, clock.now), t, user)
    assert plan.merged


@pytest.mark.asyncio
async def test_async_group_within(store: MemoryFeedStore, user: ReceiverRef, make_type, clock) -> None:
    seen: list[ReceiverRef] = []

    async def last_hour(receiver: ReceiverRef):
        seen.append(receiver)
        return clock.now - timedelta(hours=1)

    t = make_type(group_within=last_hour)
    engine = GroupingEngine(Feed(store, clock=clock), clock=clock)
    await _stored(store, _like(t, 5, 1, clock.now - timedelta(hours=2)))
    await _stored(store, _like(t, 5, 2, clock.now - timedelta(minutes=30)))

    plan = await engine.plan(_like(t, 5, 3, clock.now), t, user)
    assert seen == [user]
    assert plan.notification.values("liker_id") == [3, 2]


@pytest.mark.asyncio
async def test_future_window_merges_nothing(store: MemoryFeedStore, user: ReceiverRef, make_type, clock) -> None:
    t = make_type(group_within=lambda receiver: clock.now + timedelta(days=1))
    engine = GroupingEngine(Feed(store, clock=clock), clock=clock)
    await _stored(store, _like(t, 5, 1, clock.now))
    plan = await engine.plan(_like(t, 5, 2, clock.now), t, user)
    assert not plan.merged


def test_is_mergeable_requires_exact_data(make_type, clock) -> None:
    t = make_type()
    a = _like(t, 5, 1, clock.now)
    b = _like(t, 5, 2, clock.now)
    c = _like(t, 6, 1, clock.now)
    assert is_mergeable(a, b)
    assert not is_mergeable(a, c)


@pytest.mark.asyncio
async def test_future_dated_entries_are_observed_but_not_merged(
    store: MemoryFeedStore, user: ReceiverRef, make_type, clock
) -> None:
    t = make_type()
    engine = GroupingEngine(Feed(store, clock=clock), clock=clock)
    current = await _stored(store, _like(t, 5, 1, clock.now))
    scheduled = await _stored(store, _like(t, 5, 2, clock.now + timedelta(minutes=5)))

    plan = await engine.plan(_like(t, 5, 3, clock.now), t, user)
    assert [e.payload for e in plan.superseded] == [current.to_entry()]
    assert plan.observed is not None
    assert plan.observed.payloads == {current.to_entry(), scheduled.to_entry()}


@pytest.mark.asyncio
async def test_plan_without_candidates_still_records_observed_window(
    store: MemoryFeedStore, user: ReceiverRef, make_type, clock
) -> None:
    t = make_type()
    engine = GroupingEngine(Feed(store, clock=clock), clock=clock)
    plan = await engine.plan(_like(t, 5, 1, clock.now), t, user)
    assert not plan.merged
    assert plan.observed is not None
    assert plan.observed.payloads == frozenset()
