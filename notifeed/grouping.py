"""Grouping engine: folds earlier notifications with the same group-by data into a new one."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from structlog import get_logger

from notifeed.feed import Feed, FeedEntry, FeedWindow
from notifeed.notification import Notification
from notifeed.receiver import Receiver
from notifeed.schema import NotificationType
from notifeed.utils import Clock, maybe_await, utc_now

logger = get_logger(__name__)


@dataclass
class MergePlan:
    """What to write for one receiver: the merged entry and the entries it replaces."""

    notification: Notification
    superseded: list[FeedEntry] = field(default_factory=list)
    window_start: datetime | None = None
    # Range the plan was computed from; the commit is only valid while it is unchanged.
    observed: FeedWindow | None = None

    @property
    def merged(self) -> bool:
        return bool(self.superseded)


def is_mergeable(candidate: Notification, stored: Notification) -> bool:
    return candidate.merge_key() == stored.merge_key()


class GroupingEngine:
    def __init__(self, feed: Feed, *, clock: Clock = utc_now) -> None:
        self._feed = feed
        self._clock = clock

    async def window_start(self, notification_type: NotificationType, receiver: Receiver) -> datetime:
        if notification_type.group_within is None:
            return await self._feed.cursor.last_read_at(receiver)
        return await maybe_await(notification_type.group_within(receiver))

    async def plan(
        self,
        notification: Notification,
        notification_type: NotificationType,
        receiver: Receiver,
    ) -> MergePlan:
        """Work out the merged notification for ``receiver``.

        Stored entries of the same type with identical ``data`` and a
        ``created_at`` inside ``[window_start, now]`` are superseded; their
        instances are appended after the new ones, newest entry first.
        ``notification`` itself is never modified.
        """
        if not notification_type.grouped:
            return MergePlan(notification=notification)

        start = await self.window_start(notification_type, receiver)
        observed = await self._feed.window(receiver, start)
        now = self._clock()
        superseded = [
            entry
            for entry in observed.entries
            if entry.notification.created_at <= now and is_mergeable(notification, entry.notification)
        ]
        if not superseded:
            return MergePlan(notification=notification, window_start=start, observed=observed)

        groups = [dict(instance) for instance in notification.groups]
        for entry in superseded:
            groups.extend(dict(instance) for instance in entry.notification.groups)
        merged = notification.model_copy(update={"groups": groups, "data": dict(notification.data)})
        logger.debug(
            "grouping notification",
            type=notification.type_name,
            superseded=len(superseded),
            instances=len(groups),
        )
        return MergePlan(notification=merged, superseded=superseded, window_start=start, observed=observed)
