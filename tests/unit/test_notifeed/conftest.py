"""Shared fixtures for notifeed unit tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from notifeed.receiver import ReceiverRef
from notifeed.schema import NotificationCatalog, NotificationType
from notifeed.store.memory import MemoryFeedStore

START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


def like_type(**overrides: object) -> NotificationType:
    fields: dict[str, object] = {
        "name": "post.liked",
        "required_attributes": ("user_id", "post_id", "liker_id"),
        "group_by": ("user_id", "post_id"),
    }
    fields.update(overrides)
    return NotificationType(**fields)  # type: ignore[arg-type]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryFeedStore:
    return MemoryFeedStore()


@pytest.fixture
def catalog() -> NotificationCatalog:
    return NotificationCatalog([like_type()])


@pytest.fixture
def user() -> ReceiverRef:
    return ReceiverRef("User", 1)


@pytest.fixture
def make_type():
    return like_type
