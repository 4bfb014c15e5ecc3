"""Capability contract every feed store must provide."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence, Union


@dataclass(frozen=True)
class AddMember:
    key: str
    score: float
    payload: str


@dataclass(frozen=True)
class RemoveMember:
    key: str
    payload: str


@dataclass(frozen=True)
class ExpectRange:
    """Precondition: the members of ``key`` scored in ``[min_score, max_score]`` are still exactly ``payloads``."""

    key: str
    min_score: float
    max_score: float
    payloads: frozenset[str]


StoreOperation = Union[AddMember, RemoveMember, ExpectRange]


class FeedStore(Protocol):
    """Ordered key-value store used by feeds and read cursors.

    Failures surface as ``StoreError``; a transaction whose preconditions no
    longer hold raises ``StoreConflictError`` and applies nothing.
    """

    async def add(self, key: str, score: float, payload: str) -> None: ...

    async def range_by_score(self, key: str, min_score: float, max_score: float) -> list[str]:
        """Return payloads with ``min_score <= score <= max_score``, highest score first."""
        ...

    async def remove(self, key: str, payload: str) -> None: ...

    async def get_scalar(self, key: str) -> float | None: ...

    async def set_scalar(self, key: str, value: float) -> None: ...

    async def get_and_set_scalar(self, key: str, value: float) -> float | None: ...

    async def transaction(self, operations: Sequence[StoreOperation]) -> None: ...
