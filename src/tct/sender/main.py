from __future__ import annotations

from fastapi import FastAPI

from tct.metrics.sender import SenderMetrics
from tct.server.common import register_common_routes
from tct.version import VERSION


def create_app(metrics: SenderMetrics | None = None) -> FastAPI:
    """Observability surface for sender mode; traffic itself comes from the Generator."""
    metrics = metrics or SenderMetrics()
    app = FastAPI(title="tct sender", version=VERSION)
    app.state.metrics = metrics
    register_common_routes(app, metrics.registry)
    return app
