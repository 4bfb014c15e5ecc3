"""Rendering collaborator contract.

Rendering runs outside the writer: callers render before ``save`` and the
resulting ``message``/``html`` are stored as opaque fields.
"""

from __future__ import annotations

from typing import Any, NamedTuple, Protocol

from notifeed.notification import Notification
from notifeed.utils import maybe_await


class Rendered(NamedTuple):
    message: str
    html: str


class Renderer(Protocol):
    def render(self, notification: Notification) -> Any:
        """Return ``Rendered``/``(message, html)``, or an awaitable of one."""
        ...


async def apply_rendering(notification: Notification, renderer: Renderer) -> Notification:
    """Return a copy of ``notification`` with the renderer's ``message`` and ``html``, stored as given."""
    message, markup = await maybe_await(renderer.render(notification))
    return notification.model_copy(update={"message": message or "", "html": markup or ""})
