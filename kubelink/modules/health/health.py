"""
Health endpoint.

Serves GET /health for kubelet liveness/readiness probes from inside the
supervisor's event loop.
"""

import asyncio
import contextlib
import logging
from typing import Any, Callable, Dict, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from kubelink import __version__

HealthSource = Callable[[], Dict[str, Any]]

logger = logging.getLogger(__name__)


def create_health_app(health_source: HealthSource) -> FastAPI:
    """
    Build the health app.

    Args:
        health_source: Returns a status dict with a "status" key of
            "ok" or "degraded"
    """
    app = FastAPI(
        title="Kubelink",
        description="Kubelink health endpoint",
        version=__version__,
    )

    @app.get("/health")
    async def health() -> JSONResponse:
        status = health_source()
        code = 200 if status.get("status") == "ok" else 503
        return JSONResponse(status, status_code=code)

    return app


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the supervisor."""

    @contextlib.contextmanager
    def capture_signals(self):
        yield

    def install_signal_handlers(self) -> None:
        pass


class HealthServer:
    """Runs the health app as a task on the current event loop."""

    def __init__(self, app: FastAPI, host: str, port: int):
        config = uvicorn.Config(app, host=host, port=port, log_config=None, lifespan="off")
        self._server = _EmbeddedServer(config)
        self._task: Optional[asyncio.Task] = None
        self.host = host
        self.port = port

    def start(self) -> asyncio.Task:
        self._task = asyncio.create_task(self._server.serve(), name="health-server")
        logger.info(f"Health endpoint listening on {self.host}:{self.port}")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._server.should_exit = True
        await self._task
        self._task = None
