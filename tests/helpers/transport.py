"""Recording mock transport and context factories for request tests."""

from collections.abc import Callable
from dataclasses import replace
from typing import Any

import httpx

from fluent_http.client import Dispatcher, HttpClient, TransportConfig
from fluent_http.context import HttpContext
from fluent_http.models import LogLevel
from fluent_http.settings import HttpSettings


Handler = Callable[[httpx.Request], httpx.Response]


def ok_handler(request: httpx.Request) -> httpx.Response:
    """Answer every request with 200 and an empty JSON object."""
    return httpx.Response(200, json={})


class RecordingTransport(httpx.MockTransport):
    """MockTransport that records every request it receives.

    Bodies are read before the handler runs so tests can inspect
    request.content afterwards.
    """

    def __init__(self, handler: Handler = ok_handler) -> None:
        self.requests: list[httpx.Request] = []
        self._respond = handler
        super().__init__(self._record)

    @property
    def attempts(self) -> int:
        """Get the number of requests received."""
        return len(self.requests)

    @property
    def last_request(self) -> httpx.Request:
        """Get the most recent request."""
        return self.requests[-1]

    def _record(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        return self._respond(request)


def failing_handler(
    exc_type: type[httpx.TransportError] = httpx.ConnectError,
) -> Handler:
    """Build a handler that fails every request with a transport error."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise exc_type("Connection refused", request=request)

    return handler


def flaky_handler(failures: int, status_code: int = 200) -> Handler:
    """Build a handler that fails the first N requests, then answers.

    Args:
        failures: Number of leading requests that raise ConnectError.
        status_code: Status returned once the failures are used up.
    """
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] <= failures:
            raise httpx.ConnectError("Connection refused", request=request)
        return httpx.Response(status_code, text=f"attempt {calls['count']}")

    return handler


def make_client(transport: httpx.BaseTransport, **config: Any) -> HttpClient:
    """Create an HttpClient that sends through a transport."""
    return HttpClient(
        replace(TransportConfig(), transport=transport, **config),
        Dispatcher(max_workers=4),
    )


def make_context(
    transport: httpx.BaseTransport,
    global_log_level: LogLevel = LogLevel.NONE,
    **config: Any,
) -> HttpContext:
    """Create an isolated context whose default client uses a transport."""
    settings = HttpSettings(global_log_level=global_log_level)
    return HttpContext(settings=settings, http_client=make_client(transport, **config))
