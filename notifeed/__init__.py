"""notifeed: per-receiver notification feeds with read cursors and grouping."""

from notifeed.config import FeedConfig, create_redis, load_config
from notifeed.cursor import ReadCursor
from notifeed.errors import (
    DeliveryError,
    GroupMismatchError,
    HookError,
    MalformedEntryError,
    MissingAttributeError,
    NotifeedError,
    SchemaError,
    StoreConflictError,
    StoreError,
    UnknownAttributeError,
    ValidationError,
)
from notifeed.feed import Feed, FeedEntry
from notifeed.grouping import GroupingEngine, MergePlan
from notifeed.notification import Notification
from notifeed.notifier import configure_notifier, notify
from notifeed.receiver import Receiver, ReceiverRef, cursor_key, feed_key
from notifeed.rendering import Rendered, Renderer, apply_rendering
from notifeed.schema import NotificationCatalog, NotificationType
from notifeed.store import FeedStore, MemoryFeedStore, RedisFeedStore
from notifeed.writer import DeliveryResult, FeedWriter

__all__ = [
    "Notification",
    "NotificationType",
    "NotificationCatalog",
    "Receiver",
    "ReceiverRef",
    "feed_key",
    "cursor_key",
    "FeedStore",
    "MemoryFeedStore",
    "RedisFeedStore",
    "ReadCursor",
    "Feed",
    "FeedEntry",
    "GroupingEngine",
    "MergePlan",
    "FeedWriter",
    "DeliveryResult",
    "configure_notifier",
    "notify",
    "Rendered",
    "Renderer",
    "apply_rendering",
    "FeedConfig",
    "load_config",
    "create_redis",
    "NotifeedError",
    "ValidationError",
    "SchemaError",
    "MissingAttributeError",
    "GroupMismatchError",
    "UnknownAttributeError",
    "StoreError",
    "StoreConflictError",
    "MalformedEntryError",
    "HookError",
    "DeliveryError",
]
