from __future__ import annotations

from contextlib import asynccontextmanager
import random

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response

from tct.config.settings import FaultConfig
from tct.metrics.receiver import ReceiverMetrics
from tct.receiver.core.faults import FaultInjector
from tct.receiver.core.outage import OutageController
from tct.receiver.core.state import OutageState
from tct.server.common import register_common_routes
from tct.version import VERSION


async def _wait_disconnect(request: Request) -> None:
    # the ASGI receive channel yields http.disconnect once the transport closes
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            return


def create_app(
    faults: FaultConfig,
    metrics: ReceiverMetrics | None = None,
    controller: OutageController | None = None,
    rng: random.Random | None = None,
) -> FastAPI:
    metrics = metrics or ReceiverMetrics()
    controller = controller or OutageController(faults, OutageState(), metrics)
    injector = FaultInjector(faults, controller.state, metrics, rng=rng)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        controller.start()
        try:
            yield
        finally:
            await controller.stop()

    app = FastAPI(title="tct receiver", version=VERSION, lifespan=lifespan)
    app.state.metrics = metrics
    app.state.outage = controller
    app.state.injector = injector

    register_common_routes(app, metrics.registry)

    @app.post("/inbox")
    async def inbox(request: Request):
        result = await injector.handle(lambda: _wait_disconnect(request))
        if not result.responded:
            # peer is gone; nothing will be written
            return Response(status_code=204)
        return PlainTextResponse(result.body, status_code=result.status_code)

    return app
