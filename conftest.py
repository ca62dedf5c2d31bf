"""Global pytest configuration for logging setup.

Keeps keystone loggers propagating to the root logger so caplog sees them,
even after a test has run ``setup_logging``.
"""

import logging

import pytest


@pytest.fixture(autouse=True)
def setup_logging() -> None:
    """Ensure consistent logging configuration across all tests."""
    for logger_name in ("keystone", "keystone.startup", "keystone.auth"):
        logger = logging.getLogger(logger_name)
        logger.setLevel(logging.DEBUG)
        logger.propagate = True

    logging.getLogger().setLevel(logging.DEBUG)


@pytest.fixture(autouse=True)
def configure_caplog(caplog: pytest.LogCaptureFixture) -> None:
    """Capture DEBUG and above for every test."""
    caplog.set_level(logging.DEBUG)
