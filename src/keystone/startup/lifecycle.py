"""Process lifecycle: graceful shutdown, signal handlers and fault handlers.

All mutable process state lives on a ``LifecycleContext`` that is handed to
the handlers, so several bootstrap cycles can run side by side in tests.
Handlers never exit the interpreter themselves; they request an exit code on
the context and the entry point returns it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import logging
import signal
import sys
import threading
from types import TracebackType
from typing import TYPE_CHECKING, Any

from keystone.startup.errors import ShutdownError

if TYPE_CHECKING:
    from keystone.server import ServerHandle
    from keystone.startup.config_schema import KeystoneConfig

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class LifecycleContext:
    """Holds the live server handle and the shutdown state for one process."""

    def __init__(self) -> None:
        self.server: ServerHandle | None = None
        self.shutting_down = False
        self.exit_code: int | None = None
        self.exited = asyncio.Event()
        self.loop: asyncio.AbstractEventLoop | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self.abandoned_starts: set[asyncio.Future[Any]] = set()

    def request_exit(self, code: int) -> None:
        """Request process exit. The first requested code wins."""
        if self.exit_code is None:
            self.exit_code = code
        self.exited.set()

    def request_exit_threadsafe(self, code: int) -> None:
        """Request process exit from any thread."""
        if self.loop is None or self.loop.is_closed():
            self.request_exit(code)
            return
        self.loop.call_soon_threadsafe(self.request_exit, code)

    async def wait_for_exit(self) -> int:
        """Wait until an exit has been requested and return its code."""
        await self.exited.wait()
        return self.exit_code if self.exit_code is not None else 0

    def spawn(self, coro: Any) -> asyncio.Task[Any]:
        """Run a handler coroutine, keeping a reference until it finishes."""
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def abandon(self, start: asyncio.Future[Any]) -> None:
        """Keep a server start that lost the deadline race until it settles."""
        self.abandoned_starts.add(start)
        start.add_done_callback(self.abandoned_starts.discard)


async def graceful_shutdown(context: LifecycleContext, signal_name: str) -> None:
    """Stop the live server and request exit code 0.

    Re-entrant calls while a shutdown is in progress are no-ops. Errors from
    ``stop()`` are logged, never raised.
    """
    if context.shutting_down:
        return
    context.shutting_down = True
    logger.info("[SHUTDOWN] Received %s, shutting down gracefully...", signal_name)

    try:
        server = context.server
        stop = getattr(server, "stop", None)
        if server is not None and callable(stop):
            await stop()
            logger.info("[SHUTDOWN] server.stop() completed")
    except Exception as e:  # noqa: BLE001 - shutdown must still exit cleanly
        error = ShutdownError(f"server.stop() failed: {e}")
        logger.error("[SHUTDOWN ERROR] %s", error)  # noqa: TRY400
    finally:
        context.server = None
        context.request_exit(0)


def install_signal_handlers(
    context: LifecycleContext, loop: asyncio.AbstractEventLoop | None = None
) -> None:
    """Trigger graceful shutdown on SIGINT and SIGTERM."""
    loop = loop or asyncio.get_running_loop()
    context.loop = loop

    def handle_signal(sig: signal.Signals) -> None:
        context.spawn(graceful_shutdown(context, sig.name))

    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(sig, handle_signal, sig)
        except NotImplementedError:
            # Windows: signal.signal runs in the main thread only
            signal.signal(
                sig,
                lambda signum, _frame: loop.call_soon_threadsafe(
                    handle_signal, signal.Signals(signum)
                ),
            )


def remove_signal_handlers(loop: asyncio.AbstractEventLoop) -> None:
    """Restore default handling for the shutdown signals."""
    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.remove_signal_handler(sig)
        except NotImplementedError:
            signal.signal(sig, signal.SIG_DFL)


def _describe(error: object) -> str:
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    return str(error)


class FaultHandlers:
    """Last-resort logging for errors nothing else handled.

    Unhandled asynchronous errors (task exceptions never retrieved) and
    uncaught synchronous exceptions (event loop callbacks, threads, the main
    thread) are always logged. They only end the process when the operator
    opted in with the matching ``CRASH_ON_*`` flag.
    """

    def __init__(self, context: LifecycleContext, config: KeystoneConfig) -> None:
        self.context = context
        self.config = config
        self._loop: asyncio.AbstractEventLoop | None = None
        self._previous_excepthook: Callable[..., Any] | None = None
        self._previous_threading_excepthook: Callable[..., Any] | None = None

    def on_unhandled_rejection(self, reason: object) -> None:
        logger.error("[UNHANDLED REJECTION] %s", _describe(reason))
        if self.config.crash_on_unhandled_rejection:
            self.context.request_exit_threadsafe(1)

    def on_uncaught_exception(self, error: object) -> None:
        logger.error("[UNCAUGHT EXCEPTION] %s", _describe(error))
        if self.config.crash_on_uncaught_exception:
            self.context.request_exit_threadsafe(1)

    def loop_exception_handler(
        self, _loop: asyncio.AbstractEventLoop, ctx: dict[str, Any]
    ) -> None:
        """Route asyncio errors by origin: futures/tasks vs plain callbacks."""
        error = ctx.get("exception") or ctx.get("message", "unknown error")
        if "future" in ctx or "task" in ctx:
            self.on_unhandled_rejection(error)
        else:
            self.on_uncaught_exception(error)

    def _excepthook(
        self,
        exc_type: type[BaseException],
        exc: BaseException,
        tb: TracebackType | None,
    ) -> None:
        self.on_uncaught_exception(exc)

    def _threading_excepthook(self, args: threading.ExceptHookArgs) -> None:
        self.on_uncaught_exception(args.exc_value or args.exc_type)

    def install(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Install the handlers on the loop and the interpreter hooks."""
        self._loop = loop or asyncio.get_running_loop()
        self.context.loop = self._loop
        self._loop.set_exception_handler(self.loop_exception_handler)

        self._previous_excepthook = sys.excepthook
        self._previous_threading_excepthook = threading.excepthook
        sys.excepthook = self._excepthook
        threading.excepthook = self._threading_excepthook

    def uninstall(self) -> None:
        """Restore the handlers that were active before ``install``."""
        if self._loop is not None and not self._loop.is_closed():
            self._loop.set_exception_handler(None)
        if self._previous_excepthook is not None:
            sys.excepthook = self._previous_excepthook
        if self._previous_threading_excepthook is not None:
            threading.excepthook = self._previous_threading_excepthook
        self._loop = None
