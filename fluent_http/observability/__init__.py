"""Observability module for logging."""

from fluent_http.observability.logging import configure_logging, get_logger


__all__ = [
    "configure_logging",
    "get_logger",
]
