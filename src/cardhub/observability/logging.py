"""
cardhub.observability.logging

Structured logging for the service and the client session layer.

Responsibilities:
- Configure `structlog` JSON output on top of stdlib logging.
- Route one-way operational alerts (audit-write failures) to a dedicated channel
  that stays enabled whatever the configured level.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

ALERTS_LOGGER = "cardhub.alerts"

# Chatty dependencies are held at WARNING unless the service itself runs at DEBUG.
_QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite", "sqlalchemy.engine")


def configure_logging(*, service_name: str, level: str) -> None:
    root_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=root_level)

    if root_level > logging.DEBUG:
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
    # Alerts must never be filtered out by a quiet root level.
    logging.getLogger(ALERTS_LOGGER).setLevel(min(root_level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_static_fields(service=service_name),
            _tag_alerts,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _add_static_fields(**fields: Any):
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        for key, value in fields.items():
            event_dict.setdefault(key, value)
        return event_dict

    return processor


def _tag_alerts(logger: Any, _: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    # Lets log shippers page on alerts without matching event names.
    if getattr(logger, "name", None) == ALERTS_LOGGER:
        event_dict["channel"] = "alert"
    return event_dict


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def get_alert_logger() -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(ALERTS_LOGGER)


# --- Module Notes -----------------------------------------------------------
# Request-scoped metadata is bound via contextvars in `observability.middleware`; audit
# tasks inherit the context of the request that spawned them.
