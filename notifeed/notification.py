"""Notification value and its serialized feed-entry form."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from notifeed.errors import MalformedEntryError, UnknownAttributeError, ValidationError
from notifeed.utils import utc_now

_JSON_VALUE = TypeAdapter(Any)


def to_json_value(value: Any) -> Any:
    """Reduce ``value`` to plain JSON types, the form it takes after a round trip through the feed.

    UUIDs, datetimes and decimals become strings, tuples and sets become lists.

    Raises:
        ValueError: ``value`` holds something JSON cannot represent.
    """
    return _JSON_VALUE.dump_python(value, mode="json")


class Notification(BaseModel):
    """One feed entry: the shared group-by ``data`` plus one instance per merged event.

    ``data`` holds only the group-by slice of the required attributes. Every
    record in ``groups`` holds the remaining required attributes of one event,
    newest first once merged.
    """

    type_name: str
    data: dict[str, Any] = Field(default_factory=dict)
    groups: list[dict[str, Any]] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    # Filled by a rendering collaborator; stored and returned untouched.
    message: str = ""
    html: str = ""

    @field_validator("data", "groups")
    @classmethod
    def _json_form(cls, value: Any) -> Any:
        # Stored and freshly built notifications must compare equal when grouping.
        try:
            return to_json_value(value)
        except ValueError as exc:
            raise ValueError(f"attribute values must be JSON-serializable: {exc}") from exc

    def __getitem__(self, name: str) -> Any:
        if name not in self.data:
            raise UnknownAttributeError(self.type_name, name)
        return self.data[name]

    def __setitem__(self, name: str, value: Any) -> None:
        if name not in self.data:
            raise UnknownAttributeError(self.type_name, name)
        try:
            self.data[name] = to_json_value(value)
        except ValueError as exc:
            raise ValidationError(f"{self.type_name}: value for {name!r} is not JSON-serializable") from exc

    def get(self, name: str, default: Any = None) -> Any:
        return self.data.get(name, default)

    def values(self, name: str) -> list[Any]:
        """Per-instance values of a non-group-by attribute, in ``groups`` order."""
        if self.groups and not all(name in instance for instance in self.groups):
            raise UnknownAttributeError(self.type_name, name)
        return [instance[name] for instance in self.groups]

    @property
    def count(self) -> int:
        return len(self.groups)

    def merge_key(self) -> tuple[str, dict[str, Any]]:
        return self.type_name, self.data

    def to_entry(self) -> str:
        """Serialize to the JSON payload stored in a receiver's feed."""
        body = {
            "type": self.type_name,
            "created_at": self.created_at.isoformat(),
            "data": self.data,
            "groups": self.groups,
            "message": self.message,
            "html": self.html,
        }
        return json.dumps(body, separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_entry(cls, payload: bytes | str) -> "Notification":
        """Deserialize a stored feed payload.

        Raises:
            MalformedEntryError: payload is not valid JSON or lacks required fields.
        """
        try:
            body = json.loads(payload.decode() if isinstance(payload, bytes) else payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise MalformedEntryError(payload, f"invalid JSON: {exc}") from exc
        if not isinstance(body, dict):
            raise MalformedEntryError(payload, "entry is not an object")
        try:
            return cls(
                type_name=body["type"],
                created_at=body["created_at"],
                data=body.get("data") or {},
                groups=body.get("groups") or [],
                message=body.get("message") or "",
                html=body.get("html") or "",
            )
        except KeyError as exc:
            raise MalformedEntryError(payload, f"missing field {exc.args[0]!r}") from exc
        except PydanticValidationError as exc:
            raise MalformedEntryError(payload, str(exc)) from exc
