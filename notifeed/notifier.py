"""Module-level notifier: a configured writer behind a single ``notify()`` call."""

from __future__ import annotations

from typing import Any, Iterable

from notifeed.receiver import Receiver
from notifeed.writer import DeliveryResult, FeedWriter

# Module-level singleton writer configured by the host application on startup
_writer: "FeedWriter | None" = None


def configure_notifier(writer: FeedWriter | None) -> None:
    global _writer
    _writer = writer


def get_writer() -> FeedWriter:
    if _writer is None:
        raise RuntimeError("Notifier not configured. Call configure_notifier() first.")
    return _writer


async def notify(
    type_name: str,
    *sources: Any,
    receivers: Iterable[Receiver] | None = None,
    raise_errors: bool = True,
) -> list[DeliveryResult]:
    return await get_writer().create(type_name, *sources, receivers=receivers, raise_errors=raise_errors)
