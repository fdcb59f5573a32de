"""Event logging for the updater.

Every component reports through :func:`log_event`, which keeps the
``(level, message, service_name=..., image=...)`` shape and hands the event to
structlog. :func:`configure_logging` is called once by the CLI; until then
structlog's defaults print to stdout.
"""
from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def configure_logging(debug: bool = False, log_format: str = "console") -> None:
    level = logging.DEBUG if debug else logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    root.addHandler(handler)

    renderer: Any
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def log_event(
    level: str,
    message: str,
    service_name: str | None = None,
    image: str | None = None,
    **fields: Any,
) -> None:
    if service_name is not None:
        fields["service_name"] = service_name
    if image is not None:
        fields["image"] = image
    logger = structlog.get_logger("bcu")
    logger.log(_LEVELS.get(level.upper(), logging.INFO), message, **fields)
