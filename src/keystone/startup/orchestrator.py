"""Keystone Startup Orchestrator.

Runs the bootstrap pipeline: optional vulnerability audit, dependency
validation, server load and a deadline-bound server start. Every step is
fail-fast; the first failure surfaces as a ``StartupError`` subclass and no
completed step is rolled back.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import inspect
import logging
from typing import TYPE_CHECKING, Any

from keystone.startup.audit import AuditResult, run_audit
from keystone.startup.config_schema import DEFAULT_STARTUP_TIMEOUT_MS, KeystoneConfig
from keystone.startup.errors import (
    AuditBlockedError,
    DependencyValidationError,
    ServerLoadError,
    ServerStartError,
    StartupError,
    StartupTimeoutError,
)
from keystone.startup.lifecycle import LifecycleContext
from keystone.startup.progress_reporter import ProgressPhase, StartupProgressReporter

if TYPE_CHECKING:
    from keystone.server import ServerHandle

logger = logging.getLogger(__name__)

Validator = Callable[[], Awaitable[None] | None]


def _on_abandoned_start_done(task: asyncio.Future[Any]) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug("Abandoned server start failed after the deadline: %s", error)
    else:
        # TODO: stop servers whose start completes after the deadline
        logger.warning(
            "Server start completed after the startup deadline; it was not stopped"
        )


async def start_with_timeout(
    server: ServerHandle,
    timeout_ms: int = DEFAULT_STARTUP_TIMEOUT_MS,
    context: LifecycleContext | None = None,
) -> None:
    """Race ``server.start()`` against a deadline.

    The start's own outcome wins if it settles first. If the deadline fires
    first, ``StartupTimeoutError`` is raised and the start is abandoned, not
    cancelled. The abandoned start is held on ``context`` until it settles.
    """
    start = asyncio.ensure_future(server.start())
    done, _ = await asyncio.wait({start}, timeout=timeout_ms / 1000)

    if start in done:
        start.result()
        return

    (context or LifecycleContext()).abandon(start)
    start.add_done_callback(_on_abandoned_start_done)
    raise StartupTimeoutError(timeout_ms)


class StartupOrchestrator:
    """Orchestrates the fail-fast bootstrap sequence.

    The dependency validator and the server are injected as loader callables
    so the caller decides where they come from; load failures and run
    failures are still reported separately.
    """

    def __init__(
        self,
        *,
        load_validator: Callable[[], Validator],
        load_server: Callable[[], ServerHandle],
        config: KeystoneConfig | None = None,
        context: LifecycleContext | None = None,
        reporter: StartupProgressReporter | None = None,
        audit: Callable[[KeystoneConfig], AuditResult] = run_audit,
    ) -> None:
        """Initialize startup orchestrator.

        Args:
            load_validator: Returns the dependency validator (async, no arguments)
            load_server: Returns the server handle to start
            config: Bootstrap configuration (loaded from the environment if omitted)
            context: Lifecycle context that receives the live server handle
            reporter: Progress reporter (creates default if not provided)
            audit: Audit check, run in a worker thread
        """
        self.load_validator = load_validator
        self.load_server = load_server
        self.config = config or KeystoneConfig()
        self.context = context or LifecycleContext()
        self.reporter = reporter or StartupProgressReporter()
        self.audit = audit

    async def bootstrap(self, app_name: str = "Keystone") -> ServerHandle:
        """Run the bootstrap pipeline.

        Returns:
            The started server handle, also recorded on the context.

        Raises:
            StartupError: The first step that failed, as its specific subclass.
        """
        self.reporter.start_startup(app_name)

        try:
            await self._run_audit()
            validator = self._load_validator()
            await self._validate_dependencies(validator)
            server = self._load_server()
            await self._start_server(server)
        except StartupError as e:
            self.reporter.report_startup_complete(success=False, message=str(e))
            raise

        self.context.server = server
        logger.info("[SERVER] started")
        self.reporter.report_startup_complete(success=True, message="Server started")
        return server

    async def _run_audit(self) -> None:
        self.reporter.start_phase(ProgressPhase.AUDITING)
        step = self.reporter.start_step("Dependency audit")

        result = await asyncio.to_thread(self.audit, self.config)
        if not result.ok:
            self.reporter.fail_step(step, result.message)
            details = {"details": result.details} if result.details else None
            msg = f"Startup blocked: {result.message}"
            raise AuditBlockedError(msg, details=details)

        if result.skipped:
            self.reporter.skip_step(step, "ENFORCE_AUDIT is not enabled")
        else:
            self.reporter.complete_step(step, result.message)

    def _load_validator(self) -> Validator:
        self.reporter.start_phase(ProgressPhase.VALIDATING_DEPENDENCIES)
        step = self.reporter.start_step("Loading dependency validator")

        try:
            validator = self.load_validator()
        except Exception as e:  # noqa: BLE001 - any load failure blocks startup
            self.reporter.fail_step(step, "Validator could not be loaded", e)
            msg = "Failed to load dependency validator"
            raise DependencyValidationError(msg) from e

        self.reporter.complete_step(step)
        return validator

    async def _validate_dependencies(self, validator: Validator) -> None:
        step = self.reporter.start_step("Validating dependencies")

        try:
            result = validator()
            if inspect.isawaitable(result):
                await result
        except DependencyValidationError as e:
            self.reporter.fail_step(step, str(e), e)
            raise
        except Exception as e:  # noqa: BLE001 - validator failures block startup
            self.reporter.fail_step(step, str(e), e)
            msg = f"Dependency validation failed: {e}"
            raise DependencyValidationError(msg) from e

        self.reporter.complete_step(step, "Dependencies valid")

    def _load_server(self) -> ServerHandle:
        self.reporter.start_phase(ProgressPhase.LOADING_SERVER)
        step = self.reporter.start_step("Loading server")

        try:
            server = self.load_server()
        except Exception as e:  # noqa: BLE001 - any load failure blocks startup
            self.reporter.fail_step(step, "Server could not be loaded", e)
            msg = "Failed to load server module"
            raise ServerLoadError(msg) from e

        self.reporter.complete_step(step)
        return server

    async def _start_server(self, server: ServerHandle) -> None:
        self.reporter.start_phase(ProgressPhase.STARTING_SERVER)
        timeout_ms = self.config.startup_timeout_ms
        step = self.reporter.start_step(f"Starting server (deadline {timeout_ms}ms)")

        try:
            await start_with_timeout(server, timeout_ms, self.context)
        except ServerStartError as e:
            self.reporter.fail_step(step, str(e), e)
            raise
        except Exception as e:  # noqa: BLE001 - start failures block startup
            self.reporter.fail_step(step, str(e), e)
            msg = f"Server failed to start: {e}"
            raise ServerStartError(msg) from e

        self.reporter.complete_step(step)
