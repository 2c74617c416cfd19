from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

from tct.metrics.outcome import Outcome


class ReceiverMetrics:
    """Per-outcome request counts, handler time and outage state for receiver mode."""

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or CollectorRegistry()

        self.requests = Counter(
            "tct_receiver_requests",
            "Total number of received requests by outcome",
            ["outcome"],
            registry=self.registry,
        )
        self.handler_time = Histogram(
            "tct_receiver_handler_time_seconds",
            "Handler execution time distribution",
            registry=self.registry,
        )
        self.outage_state = Gauge(
            "tct_receiver_outage_state",
            "Current outage state (0=normal, 1=outage)",
            registry=self.registry,
        )

    def record_request(self, outcome: Outcome) -> None:
        self.requests.labels(outcome.value).inc()

    def observe_handler_time(self, seconds: float) -> None:
        self.handler_time.observe(seconds)

    def set_outage_state(self, active: bool) -> None:
        self.outage_state.set(1 if active else 0)
