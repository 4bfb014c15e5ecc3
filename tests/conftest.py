"""Pytest configuration for notifeed tests."""

import logging

import pytest
import structlog


@pytest.fixture(autouse=True)
def _reset_logging():
    structlog.reset_defaults()
    logging.getLogger("notifeed").handlers.clear()
    yield
    structlog.reset_defaults()


def pytest_collection_modifyitems(config, items):
    """Set per-marker timeouts: unit=1s, integration=5s."""
    for item in items:
        if "unit" in item.keywords:
            item.add_marker(pytest.mark.timeout(1))
        elif "integration" in item.keywords:
            item.add_marker(pytest.mark.timeout(5))
