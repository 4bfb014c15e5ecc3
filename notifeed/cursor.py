"""Per-receiver read cursor."""

from __future__ import annotations

from datetime import datetime

from structlog import get_logger

from notifeed.receiver import Receiver, cursor_key
from notifeed.store.base import FeedStore
from notifeed.utils import EPOCH, Clock, from_score, to_score, utc_now

logger = get_logger(__name__)


class ReadCursor:
    def __init__(self, store: FeedStore, *, key_prefix: str = "", clock: Clock = utc_now) -> None:
        self._store = store
        self._key_prefix = key_prefix
        self._clock = clock

    def key(self, receiver: Receiver) -> str:
        return cursor_key(receiver, self._key_prefix)

    async def last_read_at(self, receiver: Receiver) -> datetime:
        """Return the receiver's cursor, or the epoch when it was never set."""
        value = await self._store.get_scalar(self.key(receiver))
        return EPOCH if value is None else from_score(value)

    async def mark_read(self, receiver: Receiver, at: datetime | None = None) -> datetime:
        """Move the cursor to ``at`` (default now). Last writer wins."""
        moment = at or self._clock()
        await self._store.set_scalar(self.key(receiver), to_score(moment))
        logger.debug("cursor moved", key=self.key(receiver), at=moment.isoformat())
        return moment

    async def mark_read_and_return_previous(self, receiver: Receiver, at: datetime | None = None) -> datetime:
        """Atomically move the cursor to ``at`` (default now) and return its prior value.

        Uses the store's get-and-set so concurrent callers never observe the
        same previous cursor.
        """
        moment = at or self._clock()
        previous = await self._store.get_and_set_scalar(self.key(receiver), to_score(moment))
        return EPOCH if previous is None else from_score(previous)
