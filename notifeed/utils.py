"""Shared helpers: clock, score conversion, env var expansion."""

from __future__ import annotations

import inspect
import os
import re
from datetime import datetime, timezone
from typing import Any, Callable

Clock = Callable[[], datetime]

EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_score(moment: datetime) -> float:
    """Convert a timestamp to a sorted-set score (seconds since epoch)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.timestamp()


def from_score(score: float | int | str | bytes) -> datetime:
    if isinstance(score, bytes):
        score = score.decode()
    return datetime.fromtimestamp(float(score), tz=timezone.utc)


async def maybe_await(value: Any) -> Any:
    """Await ``value`` if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


def expand_env_vars(config: object) -> object:
    """Recursively expand environment variables in config.

    Replaces ${VAR} patterns with environment variable values.

    Args:
        config: Configuration object (dict, list, str, or primitive)

    Returns:
        Configuration with all ${VAR} patterns replaced
    """
    if isinstance(config, dict):
        return {k: expand_env_vars(v) for k, v in config.items()}  # type: ignore[misc]
    if isinstance(config, list):
        return [expand_env_vars(item) for item in config]
    if isinstance(config, str):

        def replace_env_var(match: re.Match[str]) -> str:
            env_var = match.group(1)
            return os.getenv(env_var, match.group(0))

        return re.sub(r"\$\{([^}]+)\}", replace_env_var, config)
    return config
