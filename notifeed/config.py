"""Feed configuration.

Loaded from a YAML file (default ``notifeed.yml``, overridable through
``NOTIFEED_CONFIG``) after ``.env`` is applied, with ``${VAR}`` references
expanded from the environment.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field
from redis.asyncio import Redis
from structlog import get_logger

from notifeed.utils import expand_env_vars

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = "notifeed.yml"


class RedisSettings(BaseModel):
    model_config = ConfigDict(extra="allow")
    url: str = "redis://localhost:6379/0"
    password: Optional[str] = None
    max_connections: int = 10
    socket_timeout: float = 5.0


class FeedConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    redis: RedisSettings = Field(default_factory=RedisSettings)
    key_prefix: str = ""
    touch_receivers: bool = True
    max_merge_attempts: int = Field(default=3, ge=1)
    log_level: Optional[str] = None


def _warn_unknown_keys(model: BaseModel, path: str, config_path: Path) -> None:
    if model.model_extra:
        logger.warning("Unknown keys in %s at %s: %s", path, config_path, list(model.model_extra.keys()))
    for field_name, field_value in model.__dict__.items():
        if isinstance(field_value, BaseModel):
            _warn_unknown_keys(field_value, f"{path}.{field_name}", config_path)


def load_config(path: str | Path | None = None, env_path: str | Path | None = None) -> FeedConfig:
    """Load and validate feed configuration.

    Args:
        path: YAML file; falls back to ``NOTIFEED_CONFIG`` then ``notifeed.yml``.
        env_path: ``.env`` file to load first; python-dotenv's lookup when omitted.

    Returns:
        The validated configuration, or defaults when the file is missing or unreadable.
    """
    load_dotenv(env_path)
    config_path = Path(path or os.getenv("NOTIFEED_CONFIG") or DEFAULT_CONFIG_PATH).expanduser()
    if not config_path.exists():
        return FeedConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to read config file %s: %s", config_path, e)
        return FeedConfig()

    config = FeedConfig.model_validate(expand_env_vars(raw))
    _warn_unknown_keys(config, "root", config_path)
    return config


def create_redis(config: FeedConfig) -> Redis:
    """Build the async Redis client the feed store talks to."""
    return Redis.from_url(
        config.redis.url,
        password=config.redis.password,
        max_connections=config.redis.max_connections,
        socket_timeout=config.redis.socket_timeout,
        decode_responses=False,
    )
