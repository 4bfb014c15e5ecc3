"""Feed writer: saves notifications to receiver feeds with grouping and hooks."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Sequence

from structlog import get_logger

from notifeed.errors import DeliveryError, HookError, StoreConflictError
from notifeed.feed import Feed
from notifeed.grouping import GroupingEngine, MergePlan
from notifeed.notification import Notification
from notifeed.receiver import Receiver, receiver_key
from notifeed.schema import Hook, NotificationCatalog, NotificationType
from notifeed.store.base import AddMember, ExpectRange, FeedStore, RemoveMember, StoreOperation
from notifeed.utils import Clock, maybe_await, to_score, utc_now

if TYPE_CHECKING:
    from notifeed.config import FeedConfig

logger = get_logger(__name__)


@dataclass
class DeliveryResult:
    receiver: Receiver
    receiver_key: str
    notification: Notification | None = None
    superseded: int = 0
    attempts: int = 0
    committed: bool = False
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class FeedWriter:
    def __init__(
        self,
        store: FeedStore,
        catalog: NotificationCatalog,
        *,
        key_prefix: str = "",
        touch_receivers: bool = True,
        max_merge_attempts: int = 3,
        clock: Clock = utc_now,
    ) -> None:
        if max_merge_attempts < 1:
            raise ValueError("max_merge_attempts must be at least 1")
        self._store = store
        self._catalog = catalog
        self._touch_receivers = touch_receivers
        self._max_merge_attempts = max_merge_attempts
        self.feed = Feed(store, key_prefix=key_prefix, clock=clock)
        self.grouping = GroupingEngine(self.feed, clock=clock)

    @classmethod
    def from_config(cls, store: FeedStore, catalog: NotificationCatalog, config: "FeedConfig") -> "FeedWriter":
        return cls(
            store,
            catalog,
            key_prefix=config.key_prefix,
            touch_receivers=config.touch_receivers,
            max_merge_attempts=config.max_merge_attempts,
        )

    @property
    def catalog(self) -> NotificationCatalog:
        return self._catalog

    async def save(
        self,
        notification: Notification,
        receivers: Iterable[Receiver],
        *,
        raise_errors: bool = True,
    ) -> list[DeliveryResult]:
        """Save ``notification`` to every receiver's feed, in the order given.

        The notification is validated before any store access. Receivers are
        processed independently: a store or hook failure for one receiver
        does not stop or roll back the others.

        For grouped types the commit is guarded by the feed range the merge
        was planned from; if another writer changes it first, the merge is
        re-planned up to ``max_merge_attempts`` times. ``before_notify`` hooks
        run once, with the first plan, so on a re-plan they may have seen fewer
        merged instances than were committed. ``after_notify`` hooks always
        receive the committed notification.

        Raises:
            ValidationError: the notification does not fit its type.
            DeliveryError: after all receivers were attempted, if any failed
                and ``raise_errors`` is set.
        """
        notification_type = self._catalog.require(notification.type_name)
        notification_type.validate_notification(notification)

        results = [await self._deliver(notification, notification_type, r) for r in receivers]
        failures = [r for r in results if r.error is not None]
        if failures and raise_errors:
            raise DeliveryError(results) from failures[0].error
        return results

    async def create(
        self,
        notification_type: NotificationType | str,
        *sources: Any,
        receivers: Iterable[Receiver] | None = None,
        raise_errors: bool = True,
    ) -> list[DeliveryResult]:
        """Build a notification from ``sources`` and save it.

        Without explicit ``receivers`` the type's ``receivers`` resolver is asked.
        """
        if isinstance(notification_type, str):
            notification_type = self._catalog.require(notification_type)
        notification = notification_type.build(*sources)
        if receivers is None:
            if notification_type.receivers is None:
                receivers = []
            else:
                receivers = await maybe_await(notification_type.receivers(notification))
        return await self.save(notification, receivers, raise_errors=raise_errors)

    async def _deliver(
        self,
        notification: Notification,
        notification_type: NotificationType,
        receiver: Receiver,
    ) -> DeliveryResult:
        result = DeliveryResult(receiver=receiver, receiver_key=receiver_key(receiver))
        try:
            plan = await self._plan_and_commit(notification, notification_type, receiver, result)
            result.notification = plan.notification
            result.superseded = len(plan.superseded)
            await self._touch(receiver, result.receiver_key)
            await _run_hooks(
                "after_notify", notification_type.after_notify, plan.notification, receiver, result.receiver_key
            )
        except Exception as exc:  # pylint: disable=broad-exception-caught
            result.error = exc
            logger.warning(
                "notification delivery failed",
                type=notification.type_name,
                receiver=result.receiver_key,
                committed=result.committed,
                error=str(exc),
            )
        return result

    async def _plan_and_commit(
        self,
        notification: Notification,
        notification_type: NotificationType,
        receiver: Receiver,
        result: DeliveryResult,
    ) -> MergePlan:
        attempt = 0
        while True:
            attempt += 1
            result.attempts = attempt
            plan = await self.grouping.plan(notification, notification_type, receiver)
            if attempt == 1:
                await _run_hooks(
                    "before_notify", notification_type.before_notify, plan.notification, receiver, result.receiver_key
                )
            try:
                await self._store.transaction(self._operations(plan, receiver))
            except StoreConflictError:
                if attempt >= self._max_merge_attempts:
                    raise
                logger.debug("merge conflict, re-planning", receiver=result.receiver_key, attempt=attempt)
                continue
            result.committed = True
            logger.info(
                "notification saved",
                type=notification.type_name,
                receiver=result.receiver_key,
                superseded=len(plan.superseded),
                instances=plan.notification.count,
            )
            return plan

    def _operations(self, plan: MergePlan, receiver: Receiver) -> list[StoreOperation]:
        key = self.feed.key(receiver)
        operations: list[StoreOperation] = []
        if plan.observed is not None:
            observed = plan.observed
            operations.append(ExpectRange(observed.key, observed.min_score, math.inf, observed.payloads))
        operations.append(AddMember(key, to_score(plan.notification.created_at), plan.notification.to_entry()))
        operations.extend(RemoveMember(key, entry.payload) for entry in plan.superseded)
        return operations

    async def _touch(self, receiver: Receiver, key: str) -> None:
        if not self._touch_receivers:
            return
        on_touch = getattr(receiver, "on_touch", None)
        if not callable(on_touch):
            return
        try:
            await maybe_await(on_touch())
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("receiver touch failed", receiver=key)


async def _run_hooks(
    stage: str,
    hooks: Sequence[Hook],
    notification: Notification,
    receiver: Receiver,
    key: str,
) -> None:
    for hook in hooks:
        try:
            await maybe_await(hook(notification, receiver))
        except Exception as exc:
            raise HookError(stage, getattr(hook, "__name__", repr(hook)), key) from exc
