"""Read path over a receiver's feed."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from structlog import get_logger

from notifeed.cursor import ReadCursor
from notifeed.errors import MalformedEntryError
from notifeed.notification import Notification
from notifeed.receiver import Receiver, feed_key
from notifeed.store.base import FeedStore
from notifeed.utils import EPOCH, Clock, to_score, utc_now

logger = get_logger(__name__)


@dataclass(frozen=True)
class FeedEntry:
    """A decoded notification together with the exact payload it was stored as."""

    payload: str
    notification: Notification


@dataclass(frozen=True)
class FeedWindow:
    """Everything stored in one feed from ``min_score`` upwards, as read in a single range call.

    ``payloads`` includes entries that failed to decode, so it can be used as
    a precondition on the exact range contents.
    """

    key: str
    min_score: float
    payloads: frozenset[str]
    entries: tuple[FeedEntry, ...]


class Feed:
    """Range reads over receiver feeds, newest first.

    Entries that cannot be decoded are logged and skipped; one bad payload
    never hides the rest of the feed.
    """

    def __init__(
        self,
        store: FeedStore,
        cursor: ReadCursor | None = None,
        *,
        key_prefix: str = "",
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._key_prefix = key_prefix
        self._clock = clock
        self.cursor = cursor or ReadCursor(store, key_prefix=key_prefix, clock=clock)

    def key(self, receiver: Receiver) -> str:
        return feed_key(receiver, self._key_prefix)

    async def entries(self, receiver: Receiver, since: datetime, until: datetime | None = None) -> list[FeedEntry]:
        """Entries with ``since <= created_at <= until`` (default now), both bounds inclusive."""
        key = self.key(receiver)
        upper = until or self._clock()
        payloads = await self._store.range_by_score(key, to_score(since), to_score(upper))
        return _decode_entries(key, payloads)

    async def window(self, receiver: Receiver, since: datetime) -> FeedWindow:
        """Every entry with ``created_at >= since``, including ones dated after now."""
        key = self.key(receiver)
        min_score = to_score(since)
        payloads = await self._store.range_by_score(key, min_score, math.inf)
        return FeedWindow(key, min_score, frozenset(payloads), tuple(_decode_entries(key, payloads)))

    async def _notifications(
        self, receiver: Receiver, since: datetime, until: datetime | None = None
    ) -> list[Notification]:
        return [entry.notification for entry in await self.entries(receiver, since, until)]

    async def notifications(self, receiver: Receiver) -> list[Notification]:
        return await self._notifications(receiver, EPOCH)

    async def notifications_since(self, receiver: Receiver, since: datetime) -> list[Notification]:
        return await self._notifications(receiver, since)

    async def unread_notifications(self, receiver: Receiver) -> list[Notification]:
        return await self._notifications(receiver, await self.cursor.last_read_at(receiver))

    async def unread_notifications_and_mark_read(self, receiver: Receiver) -> list[Notification]:
        """Return what was unread and mark it read in one atomic cursor swap."""
        now = self._clock()
        previous = await self.cursor.mark_read_and_return_previous(receiver, now)
        return await self._notifications(receiver, previous, now)

    async def read_notifications(self, receiver: Receiver) -> list[Notification]:
        return await self._notifications(receiver, EPOCH, await self.cursor.last_read_at(receiver))

    async def last_read_at(self, receiver: Receiver) -> datetime:
        return await self.cursor.last_read_at(receiver)

    async def mark_read(self, receiver: Receiver) -> datetime:
        return await self.cursor.mark_read(receiver)


def _decode_entries(key: str, payloads: list[str]) -> list[FeedEntry]:
    entries: list[FeedEntry] = []
    for payload in payloads:
        try:
            entries.append(FeedEntry(payload=payload, notification=Notification.from_entry(payload)))
        except MalformedEntryError as exc:
            logger.warning("skipping malformed feed entry", key=key, reason=exc.reason)
    return entries
