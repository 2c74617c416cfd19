from tct.metrics.receiver import ReceiverMetrics


def outcome_count(metrics, outcome: str) -> float:
    """Counter value for one outcome on either side, 0 when never recorded."""
    if isinstance(metrics, ReceiverMetrics):
        value = metrics.registry.get_sample_value("tct_receiver_requests_total", {"outcome": outcome})
    elif outcome == "success":
        value = metrics.registry.get_sample_value("tct_sender_requests_ok_total")
    else:
        value = metrics.registry.get_sample_value("tct_sender_requests_err_total", {"class": outcome})
    return value or 0.0


def handler_time_count(metrics: ReceiverMetrics) -> float:
    return metrics.registry.get_sample_value("tct_receiver_handler_time_seconds_count") or 0.0


def scrape(text: str, name: str, labels: str = "") -> float:
    """Read one sample out of a Prometheus text exposition."""
    key = f"{name}{{{labels}}}" if labels else name
    for line in text.splitlines():
        if line.startswith(key + " "):
            return float(line.split()[-1])
    return 0.0
