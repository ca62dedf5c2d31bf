"""Shared test fixtures for the keystone test suite."""

from __future__ import annotations

from collections.abc import Generator
import io
import os
from unittest.mock import patch

import pytest

from keystone.startup.config_schema import KeystoneConfig
from keystone.startup.lifecycle import LifecycleContext
from keystone.startup.progress_reporter import StartupProgressReporter
from tests.fakes.server import FakeServer

pytest_plugins = ["pytest_asyncio"]

KEYSTONE_ENV_VARS = (
    "ENFORCE_AUDIT",
    "AUDIT_COMMAND",
    "AUDIT_TIMEOUT",
    "STARTUP_TIMEOUT_MS",
    "DEBUG",
    "CRASH_ON_UNHANDLED_REJECTION",
    "CRASH_ON_UNCAUGHT_EXCEPTION",
    "LOG_LEVEL",
    "HOST",
    "PORT",
    "REQUIRED_PACKAGES",
    "VALIDATOR_TARGET",
    "SERVER_TARGET",
    "TWO_FACTOR_API_BASE",
    "API_BASE_URL",
    "TOTP_SECRET",
)


@pytest.fixture(autouse=True)
def clean_keystone_env() -> Generator[None, None, None]:
    """Remove keystone variables from the environment for each test."""
    with patch.dict(os.environ):
        for name in KEYSTONE_ENV_VARS:
            os.environ.pop(name, None)
        yield


@pytest.fixture
def config() -> KeystoneConfig:
    return KeystoneConfig()


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def reporter(output: io.StringIO) -> StartupProgressReporter:
    return StartupProgressReporter(output=output, enable_colors=False)


@pytest.fixture
def context() -> LifecycleContext:
    return LifecycleContext()


@pytest.fixture
def fake_server() -> FakeServer:
    return FakeServer(start_delay=0.01)


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "e2e: End-to-end tests")
    config.addinivalue_line("markers", "auth: Authentication related tests")
