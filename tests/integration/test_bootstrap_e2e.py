"""Boot the default FastAPI server through the full pipeline and shut it down."""

from __future__ import annotations

import asyncio
import io
import os
import signal
import socket
import sys

import httpx
import pytest

from keystone.main import run
from keystone.startup.config_schema import KeystoneConfig
from keystone.startup.lifecycle import LifecycleContext
from keystone.startup.progress_reporter import StartupProgressReporter


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.mark.integration
@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals only")
@pytest.mark.asyncio
async def test_default_server_serves_until_sigterm(
    caplog: pytest.LogCaptureFixture,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    port = _free_port()
    # The default server factory reads HOST and PORT itself
    monkeypatch.setenv("HOST", "127.0.0.1")
    monkeypatch.setenv("PORT", str(port))
    config = KeystoneConfig()
    context = LifecycleContext()
    output = io.StringIO()

    task = asyncio.create_task(
        run(
            config,
            context=context,
            reporter=StartupProgressReporter(output=output, enable_colors=False),
        )
    )
    while context.server is None:
        assert not task.done(), output.getvalue()
        await asyncio.sleep(0.05)

    async with httpx.AsyncClient() as client:
        response = await client.get(f"http://127.0.0.1:{port}/health")
    assert response.json()["status"] == "healthy"

    os.kill(os.getpid(), signal.SIGTERM)
    code = await asyncio.wait_for(task, timeout=5)

    assert code == 0
    assert "[SERVER] started" in caplog.text
    assert "[SHUTDOWN] server.stop() completed" in caplog.text
    assert "Startup Complete" in output.getvalue()
