"""Server contract and the default ASGI server.

The orchestrator only needs an object with async ``start()`` and ``stop()``.
``UvicornServerHandle`` adapts a FastAPI application to that contract.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
import contextlib
import logging
from typing import Protocol, runtime_checkable

from fastapi import FastAPI
import uvicorn

from keystone.startup.config_schema import KeystoneConfig
from keystone.startup.errors import ServerStartError
from keystone.version import get_version

logger = logging.getLogger(__name__)

STARTED_POLL_INTERVAL = 0.05


@runtime_checkable
class ServerHandle(Protocol):
    """A server the orchestrator can start and stop."""

    async def start(self) -> None: ...

    async def stop(self) -> None: ...


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the lifecycle module."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class UvicornServerHandle:
    """Run a FastAPI application with uvicorn inside the current event loop."""

    def __init__(self, app: FastAPI, host: str = "127.0.0.1", port: int = 8000) -> None:
        self.app = app
        self.host = host
        self.port = port
        self._server = _EmbeddedServer(
            uvicorn.Config(app, host=host, port=port, log_config=None)
        )
        self._task: asyncio.Task[None] | None = None

    @property
    def started(self) -> bool:
        return self._task is not None and bool(self._server.started)

    async def _serve(self) -> None:
        try:
            await self._server.serve()
        except SystemExit as e:
            # uvicorn exits the process when it cannot bind
            msg = f"Server exited during startup (code {e.code})"
            raise ServerStartError(msg) from e

    async def start(self) -> None:
        """Start serving and return once uvicorn reports it is started."""
        if self._task is not None:
            msg = "Server already started"
            raise ServerStartError(msg)

        self._task = asyncio.create_task(self._serve())
        while not self._server.started:
            if self._task.done():
                exc = self._task.exception()
                if isinstance(exc, ServerStartError):
                    raise exc
                msg = "Server stopped before it finished starting"
                raise ServerStartError(msg) from exc
            await asyncio.sleep(STARTED_POLL_INTERVAL)

        logger.info("Serving on http://%s:%s", self.host, self.port)

    async def stop(self) -> None:
        """Ask uvicorn to exit and wait for it to finish."""
        if self._task is None:
            return
        self._server.should_exit = True
        await self._task
        self._task = None


def create_app() -> FastAPI:
    """Create the default FastAPI application."""
    app = FastAPI(
        title="Keystone",
        description="Keystone bootstrap default server",
        version=get_version(),
    )

    @app.get("/", tags=["Root"])
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "Keystone API",
            "version": get_version(),
            "status": "operational",
        }

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, str]:
        """Basic health check endpoint."""
        return {"status": "healthy", "version": get_version()}

    return app


def create_server(config: KeystoneConfig | None = None) -> UvicornServerHandle:
    """Build the default server handle from configuration."""
    config = config or KeystoneConfig()
    return UvicornServerHandle(create_app(), host=config.host, port=config.port)
