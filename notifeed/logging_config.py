"""Logging configuration.

Modules log through ``structlog.get_logger(__name__)`` with an event message
plus keyword context; this routes those records through stdlib logging.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

import structlog


def setup_logging(level: Optional[str] = None) -> None:
    """Configure notifeed logging.

    Args:
        level: Optional override for `NOTIFEED_LOG_LEVEL` (default INFO).
    """
    if level:
        os.environ["NOTIFEED_LOG_LEVEL"] = level
    level_name = os.getenv("NOTIFEED_LOG_LEVEL", "INFO").upper()

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level_name)
    logging.getLogger("notifeed").setLevel(level_name)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )
