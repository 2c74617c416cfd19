"""
Structured JSON logging for tct.

structlog renders every record, including stdlib records from uvicorn and
httpx, as one JSON object per line on stdout.
"""
from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

# per-connection chatter from the HTTP client stack
_NOISY_LOGGERS = ("httpx", "httpcore")


def _drop_internal_fields(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.pop("_record", None)
    event_dict.pop("_from_structlog", None)
    return event_dict


def configure_logging(level: str = "info") -> None:
    """Route structlog and stdlib logging through one JSON renderer at `level`."""
    try:
        log_level = _LEVELS[level.lower()]
    except KeyError:
        raise ValueError(
            f"invalid log level {level!r} (must be debug, info, warn, or error)"
        ) from None

    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[*shared, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ProcessorFormatter(
            processors=[
                _drop_internal_fields,
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            foreign_pre_chain=shared,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str | None = None, **context: Any) -> structlog.stdlib.BoundLogger:
    log = structlog.get_logger(name)
    return log.bind(**context) if context else log
