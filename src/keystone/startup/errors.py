"""Startup error hierarchy.

Every bootstrap failure is a ``StartupError`` tagged with the phase that
produced it. Bootstrap-phase errors are fatal; ``ShutdownError`` is logged and
swallowed.
"""

from __future__ import annotations

from typing import Any


class StartupError(Exception):
    """Startup-specific error with detailed context."""

    phase = "startup"

    def __init__(
        self,
        message: str,
        phase: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.phase = phase or type(self).phase
        self.details = details or {}


class AuditBlockedError(StartupError):
    """The vulnerability audit failed to run or reported vulnerabilities."""

    phase = "audit"


class DependencyValidationError(StartupError):
    """The dependency validator could not be loaded or its check failed."""

    phase = "dependencies"


class ServerLoadError(StartupError):
    """The server could not be loaded."""

    phase = "server_load"


class ServerStartError(StartupError):
    """The server failed to start."""

    phase = "server_start"


class StartupTimeoutError(ServerStartError):
    """The server did not start before the deadline."""

    def __init__(self, timeout_ms: int) -> None:
        super().__init__(
            f"Server start timed out after {timeout_ms}ms",
            details={"timeout_ms": timeout_ms},
        )
        self.timeout_ms = timeout_ms


class ShutdownError(StartupError):
    """The server failed to stop during graceful shutdown."""

    phase = "shutdown"
