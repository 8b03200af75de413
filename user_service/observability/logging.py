from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.typing import EventDict, Processor

SERVICE_NAME = "user-service"

_CONFIGURED = False

_SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def parse_log_level(level: str | int) -> int:
    """Map a LOG_LEVEL value such as "debug" or "WARN" to a logging level; unknown names mean INFO."""

    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def add_service(service: str) -> Processor:
    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service)
        return event_dict

    return processor


def _set_level(level: int) -> None:
    logging.getLogger().setLevel(level)
    for name in _SERVER_LOGGERS:
        logging.getLogger(name).setLevel(level)


def configure_logging(level: str | int = "info", service: str = SERVICE_NAME) -> None:
    """Emit one JSON line per event on stdout, tagged with the service name.

    Request-scoped keys (request_id, method, path) come from structlog contextvars
    bound by the middleware. Later calls only adjust the level.
    """

    global _CONFIGURED
    numeric = parse_log_level(level)
    if _CONFIGURED:
        _set_level(numeric)
        return

    shared: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_service(service),
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=shared,
        )
    )
    logging.getLogger().handlers = [handler]

    # uvicorn installs its own handlers; route them through ours instead.
    for name in _SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers = [handler]
        server_logger.propagate = False

    _set_level(numeric)
    _CONFIGURED = True
