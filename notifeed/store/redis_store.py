"""Redis-backed feed store (sorted sets for feeds, strings for cursors)."""

from __future__ import annotations

import math
from typing import Sequence

from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError
from structlog import get_logger

from notifeed.errors import StoreConflictError, StoreError
from notifeed.store.base import AddMember, ExpectRange, RemoveMember, StoreOperation

logger = get_logger(__name__)


def _decode(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value


def _score_bound(score: float) -> float | str:
    if math.isinf(score):
        return "+inf" if score > 0 else "-inf"
    return score


def _parse_scalar(value: bytes | str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(_decode(value))
    except ValueError as exc:
        raise StoreError(f"Scalar value {value!r} is not a timestamp") from exc


class RedisFeedStore:
    def __init__(self, redis: Redis) -> None:
        self._redis = redis

    async def add(self, key: str, score: float, payload: str) -> None:
        try:
            await self._redis.zadd(key, {payload: score})
        except RedisError as exc:
            raise StoreError(f"ZADD {key} failed: {exc}") from exc

    async def range_by_score(self, key: str, min_score: float, max_score: float) -> list[str]:
        try:
            members = await self._redis.zrevrangebyscore(key, _score_bound(max_score), _score_bound(min_score))
        except RedisError as exc:
            raise StoreError(f"ZREVRANGEBYSCORE {key} failed: {exc}") from exc
        return [_decode(m) for m in members]

    async def remove(self, key: str, payload: str) -> None:
        try:
            await self._redis.zrem(key, payload)
        except RedisError as exc:
            raise StoreError(f"ZREM {key} failed: {exc}") from exc

    async def get_scalar(self, key: str) -> float | None:
        try:
            value = await self._redis.get(key)
        except RedisError as exc:
            raise StoreError(f"GET {key} failed: {exc}") from exc
        return _parse_scalar(value)

    async def set_scalar(self, key: str, value: float) -> None:
        try:
            await self._redis.set(key, repr(value))
        except RedisError as exc:
            raise StoreError(f"SET {key} failed: {exc}") from exc

    async def get_and_set_scalar(self, key: str, value: float) -> float | None:
        try:
            previous = await self._redis.getset(key, repr(value))
        except RedisError as exc:
            raise StoreError(f"GETSET {key} failed: {exc}") from exc
        return _parse_scalar(previous)

    async def transaction(self, operations: Sequence[StoreOperation]) -> None:
        """Apply ``operations`` in one MULTI/EXEC.

        ``ExpectRange`` operations WATCH their keys and re-read the range
        before MULTI, so a concurrent change between the check and EXEC
        aborts the whole transaction.
        """
        expectations = [op for op in operations if isinstance(op, ExpectRange)]
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                if expectations:
                    await pipe.watch(*sorted({op.key for op in expectations}))
                    for op in expectations:
                        current = await pipe.zrevrangebyscore(
                            op.key, _score_bound(op.max_score), _score_bound(op.min_score)
                        )
                        if frozenset(_decode(m) for m in current) != op.payloads:
                            raise StoreConflictError(f"Entries changed in {op.key}")
                    pipe.multi()
                for op in operations:
                    if isinstance(op, AddMember):
                        pipe.zadd(op.key, {op.payload: op.score})
                    elif isinstance(op, RemoveMember):
                        pipe.zrem(op.key, op.payload)
                await pipe.execute()
        except WatchError as exc:
            logger.debug("transaction aborted by concurrent write", operations=len(operations))
            raise StoreConflictError("Feed changed while the transaction was prepared") from exc
        except RedisError as exc:
            raise StoreError(f"Transaction failed: {exc}") from exc
