"""Exception hierarchy for notification feeds."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from notifeed.writer import DeliveryResult


class NotifeedError(Exception):
    """Base class for every error raised by notifeed."""


class ValidationError(NotifeedError):
    """A notification could not be constructed from its attribute sources."""


class SchemaError(ValidationError):
    """A notification type declaration is inconsistent."""


class MissingAttributeError(ValidationError):
    def __init__(self, type_name: str, missing: Sequence[str], source_index: int = 0) -> None:
        self.type_name = type_name
        self.missing = list(missing)
        self.source_index = source_index
        super().__init__(
            f"{type_name}: attribute source #{source_index} is missing required attributes: {', '.join(self.missing)}"
        )


class GroupMismatchError(ValidationError):
    def __init__(
        self, type_name: str, expected: dict[str, object], actual: dict[str, object], source_index: int
    ) -> None:
        self.type_name = type_name
        self.expected = expected
        self.actual = actual
        self.source_index = source_index
        super().__init__(
            f"{type_name}: attribute source #{source_index} has group_by values {actual!r}, expected {expected!r}"
        )


class UnknownAttributeError(ValidationError, LookupError):
    def __init__(self, type_name: str, name: str) -> None:
        super().__init__(f"{type_name} has no data attribute {name!r}")
        self.type_name = type_name
        self.name = name


class StoreError(NotifeedError):
    """The backing store failed (connectivity, aborted transaction, ...)."""


class StoreConflictError(StoreError):
    """A guarded transaction lost a race against a concurrent writer."""


class MalformedEntryError(StoreError):
    def __init__(self, payload: bytes | str, reason: str) -> None:
        self.payload = payload
        self.reason = reason
        super().__init__(f"Malformed feed entry: {reason}")


class HookError(NotifeedError):
    def __init__(self, stage: str, hook_name: str, receiver_key: str) -> None:
        self.stage = stage
        self.hook_name = hook_name
        self.receiver_key = receiver_key
        super().__init__(f"{stage} hook {hook_name} failed for {receiver_key}")


class DeliveryError(NotifeedError):
    """Raised by ``FeedWriter.save`` once every receiver was attempted and some failed."""

    def __init__(self, results: Sequence["DeliveryResult"]) -> None:
        self.results = list(results)
        self.failures = [r for r in self.results if r.error is not None]
        summary = ", ".join(f"{r.receiver_key}: {r.error}" for r in self.failures)
        super().__init__(f"{len(self.failures)} of {len(self.results)} receivers failed: {summary}")
