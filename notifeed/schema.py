"""Notification types and the catalog they are registered in."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Callable, Iterable

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic import ValidationError as PydanticValidationError

from notifeed.errors import GroupMismatchError, MissingAttributeError, SchemaError, ValidationError
from notifeed.notification import Notification

Hook = Callable[..., Any]


class NotificationType(BaseModel):
    """Immutable descriptor for one kind of notification.

    Built once at registration and shared by every notification of that kind.
    ``group_within`` maps a receiver to the lower bound of the merge window;
    when unset the receiver's last-read timestamp is used. Hooks are called
    with ``(notification, receiver)`` and may be coroutine functions.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    required_attributes: tuple[str, ...]
    group_by: tuple[str, ...] = ()
    description: str = ""
    group_within: Callable[..., Any] | None = None
    before_notify: tuple[Hook, ...] = ()
    after_notify: tuple[Hook, ...] = ()
    receivers: Callable[..., Any] | None = None

    @model_validator(mode="after")
    def check_attributes(self) -> "NotificationType":
        if not self.name:
            raise SchemaError("Notification type name must not be empty")
        if len(set(self.required_attributes)) != len(self.required_attributes):
            raise SchemaError(f"{self.name}: duplicate required attributes {list(self.required_attributes)}")
        unknown = [k for k in self.group_by if k not in self.required_attributes]
        if unknown:
            raise SchemaError(f"{self.name}: group_by attributes {unknown} are not required attributes")
        return self

    @property
    def grouped(self) -> bool:
        return bool(self.group_by)

    @property
    def instance_attributes(self) -> tuple[str, ...]:
        return tuple(k for k in self.required_attributes if k not in self.group_by)

    def _extract(self, source: Any, index: int) -> dict[str, Any]:
        if isinstance(source, Mapping):
            missing = [k for k in self.required_attributes if k not in source]
            if missing:
                raise MissingAttributeError(self.name, missing, index)
            return {k: source[k] for k in self.required_attributes}
        missing = [k for k in self.required_attributes if not hasattr(source, k)]
        if missing:
            raise MissingAttributeError(self.name, missing, index)
        return {k: getattr(source, k) for k in self.required_attributes}

    def build(self, *sources: Any, created_at: datetime | None = None) -> Notification:
        """Build a notification from one or more attribute sources.

        Each source is a mapping or an object exposing the required attributes.
        All sources must agree on the group-by values; each contributes one
        instance to ``groups`` in input order.

        Raises:
            MissingAttributeError: a source lacks a required attribute.
            GroupMismatchError: sources disagree on group-by values.
            ValidationError: an attribute value cannot be stored as JSON.
        """
        if not sources:
            raise ValidationError(f"{self.name}: at least one attribute source is required")

        data: dict[str, Any] | None = None
        groups: list[dict[str, Any]] = []
        for index, source in enumerate(sources):
            values = self._extract(source, index)
            key = {k: values[k] for k in self.group_by}
            if data is None:
                data = key
            elif key != data:
                raise GroupMismatchError(self.name, data, key, index)
            groups.append({k: values[k] for k in self.instance_attributes})

        fields: dict[str, Any] = {"type_name": self.name, "data": data or {}, "groups": groups}
        if created_at is not None:
            fields["created_at"] = created_at
        try:
            return Notification(**fields)
        except PydanticValidationError as exc:
            raise ValidationError(f"{self.name}: {exc.errors()[0]['msg']}") from exc

    def validate_notification(self, notification: Notification) -> None:
        """Check that a notification (possibly edited since build) still fits this type."""
        if notification.type_name != self.name:
            raise ValidationError(f"Notification of type {notification.type_name!r} does not belong to {self.name!r}")
        if set(notification.data) != set(self.group_by):
            raise ValidationError(
                f"{self.name}: data keys {sorted(notification.data)} do not match group_by {sorted(self.group_by)}"
            )
        if not notification.groups:
            raise ValidationError(f"{self.name}: notification has no instances")
        expected = set(self.instance_attributes)
        for index, instance in enumerate(notification.groups):
            missing = [k for k in self.instance_attributes if k not in instance]
            if missing:
                raise MissingAttributeError(self.name, missing, index)
            if set(instance) - expected:
                raise ValidationError(f"{self.name}: instance #{index} has undeclared attributes")


class NotificationCatalog:
    def __init__(self, types: Iterable[NotificationType] = ()) -> None:
        self._registry: dict[str, NotificationType] = {}
        for notification_type in types:
            self.register(notification_type)

    def register(self, notification_type: NotificationType) -> NotificationType:
        if notification_type.name in self._registry:
            raise SchemaError(f"Notification type already registered: {notification_type.name}")
        self._registry[notification_type.name] = notification_type
        return notification_type

    def get(self, name: str) -> NotificationType | None:
        return self._registry.get(name)

    def require(self, name: str) -> NotificationType:
        notification_type = self._registry.get(name)
        if notification_type is None:
            raise SchemaError(f"Unknown notification type: {name}")
        return notification_type

    def list_all(self) -> list[NotificationType]:
        return sorted(self._registry.values(), key=lambda t: t.name)

    def __contains__(self, name: object) -> bool:
        return name in self._registry
