"""Interceptor pipeline stages."""

import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from fluent_http.constants import COMPONENT_HTTP, MAX_LOGGED_BODY_BYTES
from fluent_http.errors import NetworkError
from fluent_http.models import LogLevel
from fluent_http.redact import redact_headers, redact_url_credentials


if TYPE_CHECKING:
    from fluent_http.call import Chain


logger = structlog.get_logger()


class Interceptor(ABC):
    """A named stage of the call pipeline.

    Receives the chain, may inspect or replace chain.request, and either
    returns a response of its own or forwards with chain.proceed(). A stage
    may proceed more than once (retries) or not at all (short-circuit).
    """

    name: str = "interceptor"

    @abstractmethod
    def intercept(self, chain: "Chain") -> httpx.Response:
        """Run this stage.

        Args:
            chain: The remaining pipeline.

        Returns:
            Response for the request.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class FunctionInterceptor(Interceptor):
    """Adapts a plain callable into an Interceptor."""

    def __init__(
        self,
        func: Callable[["Chain"], httpx.Response],
        name: str | None = None,
    ) -> None:
        self._func = func
        self.name = name or getattr(func, "__name__", "function")

    def intercept(self, chain: "Chain") -> httpx.Response:
        return self._func(chain)


def as_interceptor(
    interceptor: Interceptor | Callable[["Chain"], httpx.Response],
) -> Interceptor:
    """Normalize an interceptor or callable into an Interceptor.

    Args:
        interceptor: Interceptor instance or chain callable.

    Returns:
        Interceptor instance.
    """
    if isinstance(interceptor, Interceptor):
        return interceptor
    return FunctionInterceptor(interceptor)


def _body_preview(content: bytes) -> dict[str, Any]:
    """Build log fields for a body, truncated to MAX_LOGGED_BODY_BYTES."""
    return {
        "body": content[:MAX_LOGGED_BODY_BYTES].decode("utf-8", errors="replace"),
        "body_bytes": len(content),
        "body_truncated": len(content) > MAX_LOGGED_BODY_BYTES,
    }


class HttpLoggingInterceptor(Interceptor):
    """Logs requests and responses through structlog.

    Sensitive headers and URL credentials are redacted. Failures are logged
    and re-raised unchanged.
    """

    name = "logging"

    def __init__(
        self,
        level: LogLevel = LogLevel.BODY,
        log: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        """Initialize the logging interceptor.

        Args:
            level: Verbosity.
            log: Logger to write to; defaults to the module logger.
        """
        self._level = level
        self._log = (log or logger).bind(component=COMPONENT_HTTP)

    @property
    def level(self) -> LogLevel:
        """Get the verbosity."""
        return self._level

    def intercept(self, chain: "Chain") -> httpx.Response:
        request = chain.request
        if self._level is LogLevel.NONE:
            return chain.proceed(request)

        url = redact_url_credentials(str(request.url))
        request_fields: dict[str, Any] = {"method": request.method, "url": url}
        if self._level.logs_headers:
            request_fields["headers"] = redact_headers(request.headers.multi_items())
        if self._level.logs_body:
            request_fields.update(_body_preview(request.read()))
        self._log.info("http_request", **request_fields)

        start_time_ns = time.perf_counter_ns()
        try:
            response = chain.proceed(request)
        except (httpx.RequestError, NetworkError, OSError) as e:
            self._log.warning(
                "http_failed",
                method=request.method,
                url=url,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round((time.perf_counter_ns() - start_time_ns) / 1e6, 2),
            )
            raise

        response_fields: dict[str, Any] = {
            "method": request.method,
            "url": url,
            "status_code": response.status_code,
            "reason": response.reason_phrase,
            "duration_ms": round((time.perf_counter_ns() - start_time_ns) / 1e6, 2),
        }
        if self._level.logs_headers:
            response_fields["headers"] = redact_headers(response.headers.multi_items())
        if self._level.logs_body:
            response_fields.update(_body_preview(response.read()))
        self._log.info("http_response", **response_fields)
        return response
