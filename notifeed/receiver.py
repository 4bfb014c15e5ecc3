"""Receiver contract and store key derivation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

FEED_PREFIX = "feed"
CURSOR_PREFIX = "cursor"


@runtime_checkable
class Receiver(Protocol):
    """Anything that owns a feed. ``on_touch()`` is looked up optionally."""

    def identity(self) -> tuple[str, str | int]: ...


@dataclass(frozen=True)
class ReceiverRef:
    receiver_type: str
    receiver_id: str | int

    def identity(self) -> tuple[str, str | int]:
        return self.receiver_type, self.receiver_id


def receiver_key(receiver: Receiver) -> str:
    receiver_type, receiver_id = receiver.identity()
    return f"{receiver_type}:{receiver_id}"


def _namespaced(kind: str, receiver: Receiver, key_prefix: str) -> str:
    key = f"{kind}:{receiver_key(receiver)}"
    return f"{key_prefix}:{key}" if key_prefix else key


def feed_key(receiver: Receiver, key_prefix: str = "") -> str:
    """Build the sorted-set key holding a receiver's feed (``feed:{type}:{id}``)."""
    return _namespaced(FEED_PREFIX, receiver, key_prefix)


def cursor_key(receiver: Receiver, key_prefix: str = "") -> str:
    """Build the scalar key holding a receiver's read cursor (``cursor:{type}:{id}``)."""
    return _namespaced(CURSOR_PREFIX, receiver, key_prefix)
