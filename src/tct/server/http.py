from __future__ import annotations

import asyncio
import contextlib

from fastapi import FastAPI
import uvicorn

from tct.utils.log import get_logger

log = get_logger(__name__)

# bounded drain for open connections (hung /inbox requests included)
SHUTDOWN_GRACE_S = 5.0


class ServerError(RuntimeError):
    """The HTTP listener failed to start or stopped on its own."""


class _EmbeddedServer(uvicorn.Server):
    # signals belong to the CLI, which owns the process-wide stop event
    @contextlib.contextmanager
    def capture_signals(self):
        yield

    def install_signal_handlers(self) -> None:
        pass


class HttpServer:
    def __init__(self, app: FastAPI, port: int, host: str = "0.0.0.0", log_level: str = "info"):
        self.port = port
        config = uvicorn.Config(
            app,
            host=host,
            port=port,
            log_config=None,
            log_level="warning" if log_level == "warn" else log_level,
            access_log=False,
            timeout_graceful_shutdown=SHUTDOWN_GRACE_S,
        )
        self._server = _EmbeddedServer(config)

    @property
    def started(self) -> bool:
        return self._server.started

    async def _serve(self) -> None:
        try:
            await self._server.serve()
        except SystemExit as e:
            # uvicorn exits the process when it cannot bind
            raise ServerError(f"server on port {self.port} failed to start (exit {e.code})") from None

    async def run(self, stop: asyncio.Event) -> None:
        """Serve until `stop` is set, then shut down gracefully."""
        log.info("starting server", port=self.port)
        serve = asyncio.create_task(self._serve(), name=f"http-{self.port}")
        stopper = asyncio.create_task(stop.wait())
        try:
            await asyncio.wait({serve, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopper.cancel()

        if serve.done():
            # ended without being asked to: bind failure or listener crash
            exc = serve.exception()
            if isinstance(exc, ServerError):
                raise exc
            if exc is not None:
                raise ServerError(f"server error: {exc}") from exc
            if not self.started:
                raise ServerError(f"server on port {self.port} failed to start")
            if not stop.is_set():
                raise ServerError(f"server on port {self.port} stopped unexpectedly")
            return

        log.info("shutting down server")
        self._server.should_exit = True
        await serve
