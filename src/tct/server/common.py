from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse, Response
from prometheus_client import CollectorRegistry

from tct.metrics.exposition import render


def register_common_routes(app: FastAPI, registry: CollectorRegistry) -> None:
    """Attach /healthz, /readyz and /metrics, shared by both modes."""

    @app.get("/healthz", response_class=PlainTextResponse)
    def healthz():
        return "ok"

    # unaffected by simulated outages, hangs or delays
    @app.get("/readyz", response_class=PlainTextResponse)
    def readyz():
        return "ready"

    @app.get("/metrics")
    def metrics():
        body, content_type = render(registry)
        return Response(content=body, media_type=content_type)
