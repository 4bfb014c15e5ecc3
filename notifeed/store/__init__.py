"""Feed store adapters."""

from notifeed.store.base import AddMember, ExpectRange, FeedStore, RemoveMember, StoreOperation
from notifeed.store.memory import MemoryFeedStore
from notifeed.store.redis_store import RedisFeedStore

__all__ = [
    "AddMember",
    "ExpectRange",
    "FeedStore",
    "MemoryFeedStore",
    "RedisFeedStore",
    "RemoveMember",
    "StoreOperation",
]
