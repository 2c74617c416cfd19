from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

from tct.metrics.outcome import Outcome


class SenderMetrics:
    """Request outcomes, latency and in-flight count for sender mode."""

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or CollectorRegistry()

        self.requests_ok = Counter(
            "tct_sender_requests_ok",
            "Total number of successful requests (HTTP 200)",
            registry=self.registry,
        )
        self.requests_err = Counter(
            "tct_sender_requests_err",
            "Total number of failed requests by error class",
            ["class"],
            registry=self.registry,
        )
        self.response_time = Histogram(
            "tct_sender_response_time_seconds",
            "HTTP request latency distribution",
            registry=self.registry,
        )
        self.inflight = Gauge(
            "tct_sender_inflight",
            "Number of currently in-flight requests",
            registry=self.registry,
        )

    def record(self, outcome: Outcome) -> None:
        if outcome is Outcome.SUCCESS:
            self.requests_ok.inc()
        else:
            self.requests_err.labels(outcome.value).inc()

    def observe_response_time(self, seconds: float) -> None:
        self.response_time.observe(seconds)

    # call inflight_inc before a request starts and inflight_dec once it has
    # been classified, whatever the result
    def inflight_inc(self) -> None:
        self.inflight.inc()

    def inflight_dec(self) -> None:
        self.inflight.dec()
