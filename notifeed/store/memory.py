"""In-process feed store for single-process deployments and tests."""

from __future__ import annotations

import asyncio
from typing import Sequence

from notifeed.errors import StoreConflictError
from notifeed.store.base import AddMember, ExpectRange, RemoveMember, StoreOperation


class MemoryFeedStore:
    """Keeps sorted sets and scalars in dicts; every call is atomic under one lock."""

    def __init__(self) -> None:
        self._sets: dict[str, dict[str, float]] = {}
        self._scalars: dict[str, float] = {}
        self._lock = asyncio.Lock()

    async def add(self, key: str, score: float, payload: str) -> None:
        async with self._lock:
            self._sets.setdefault(key, {})[payload] = score

    async def range_by_score(self, key: str, min_score: float, max_score: float) -> list[str]:
        async with self._lock:
            members = self._sets.get(key, {})
            selected = [(score, payload) for payload, score in members.items() if min_score <= score <= max_score]
        # Same order as ZREVRANGEBYSCORE: score descending, ties by member descending.
        selected.sort(reverse=True)
        return [payload for _score, payload in selected]

    async def remove(self, key: str, payload: str) -> None:
        async with self._lock:
            self._remove(key, payload)

    async def get_scalar(self, key: str) -> float | None:
        async with self._lock:
            return self._scalars.get(key)

    async def set_scalar(self, key: str, value: float) -> None:
        async with self._lock:
            self._scalars[key] = value

    async def get_and_set_scalar(self, key: str, value: float) -> float | None:
        async with self._lock:
            previous = self._scalars.get(key)
            self._scalars[key] = value
            return previous

    async def transaction(self, operations: Sequence[StoreOperation]) -> None:
        async with self._lock:
            for op in operations:
                if isinstance(op, ExpectRange) and self._in_range(op.key, op.min_score, op.max_score) != op.payloads:
                    raise StoreConflictError(f"Entries changed in {op.key}")
            for op in operations:
                if isinstance(op, AddMember):
                    self._sets.setdefault(op.key, {})[op.payload] = op.score
                elif isinstance(op, RemoveMember):
                    self._remove(op.key, op.payload)

    def _in_range(self, key: str, min_score: float, max_score: float) -> frozenset[str]:
        members = self._sets.get(key, {})
        return frozenset(payload for payload, score in members.items() if min_score <= score <= max_score)

    def _remove(self, key: str, payload: str) -> None:
        members = self._sets.get(key)
        if members is None:
            return
        members.pop(payload, None)
        if not members:
            del self._sets[key]

    def members(self, key: str) -> dict[str, float]:
        """Snapshot of one sorted set (payload -> score)."""
        return dict(self._sets.get(key, {}))
