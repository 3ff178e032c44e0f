"""Structured logging for applications built on fluent_http.

The package itself emits through structlog only, while httpx and httpcore
log through the standard library. configure_logging() renders both through
one processor chain, so a process gets a single log format on one stream.
"""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any, TextIO

import structlog

from fluent_http.constants import COMPONENT_HTTP
from fluent_http.redact import redact_url_credentials


# Standard library loggers of the transport stack
TRANSPORT_LOGGERS = ("httpx", "httpcore")


class TransportLogHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """Stream handler installed on the transport loggers."""


def level_number(level: int | str) -> int:
    """Convert a level name such as "debug" to its number."""
    if isinstance(level, str):
        return logging.getLevelNamesMapping()[level.upper()]
    return level


def tag_transport_event(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mark an httpx or httpcore record as HTTP output and mask URL credentials."""
    event_dict.setdefault("component", COMPONENT_HTTP)
    event_dict["event"] = redact_url_credentials(str(event_dict.get("event", "")))
    return event_dict


def configure_logging(
    level: int | str = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = True,
    transport_level: int | str = logging.WARNING,
) -> None:
    """Configure structlog and the transport loggers.

    Calling this is optional and meant for applications and scripts. It can
    be called again to change the configuration; earlier transport handlers
    are replaced, not stacked.

    Args:
        level: Threshold for fluent_http and application events.
        output: Output stream (default: stderr).
        json_format: Render JSON lines instead of the colored console format.
        transport_level: Threshold for httpx and httpcore records. INFO shows
            one line per request sent; DEBUG adds connection details.
    """
    shared: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer(sort_keys=True)
        if json_format
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_number(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )

    handler = TransportLogHandler(output)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[
                *shared,
                structlog.stdlib.add_logger_name,
                tag_transport_event,
            ],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                renderer,
            ],
        )
    )
    for name in TRANSPORT_LOGGERS:
        transport_logger = logging.getLogger(name)
        for old in list(transport_logger.handlers):
            if isinstance(old, TransportLogHandler):
                transport_logger.removeHandler(old)
        transport_logger.addHandler(handler)
        transport_logger.setLevel(level_number(transport_level))
        transport_logger.propagate = False


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a bound logger instance.

    Args:
        name: Optional logger name.

    Returns:
        Bound logger instance.
    """
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
