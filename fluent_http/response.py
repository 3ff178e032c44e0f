"""Response wrapper returned by request execution."""

from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter

from fluent_http.constants import (
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
)
from fluent_http.errors import ApplicationError, NetworkError


T = TypeVar("T")


class HttpResponse:
    """Outcome of a call: a received response or a network failure.

    Execution never raises for network failures; it returns an HttpResponse
    with error set. The attempted request is kept either way. Reading the
    body of a failed response raises its NetworkError.
    """

    def __init__(
        self,
        request: httpx.Request,
        response: httpx.Response | None = None,
        error: NetworkError | None = None,
    ) -> None:
        """Initialize the wrapper.

        Args:
            request: The request that was executed.
            response: Received response.
            error: Network failure, when no response was received.

        Raises:
            ValueError: Unless exactly one of response and error is given.
        """
        if (response is None) == (error is None):
            msg = "HttpResponse needs exactly one of response or error"
            raise ValueError(msg)
        self._request = request
        self._response = response
        self._error = error

    @classmethod
    def failed(cls, request: httpx.Request, error: NetworkError) -> "HttpResponse":
        """Create a failure-carrying response."""
        return cls(request, error=error)

    @property
    def request(self) -> httpx.Request:
        """Get the request that was executed."""
        return self._request

    @property
    def raw_response(self) -> httpx.Response | None:
        """Get the underlying httpx response, if one was received."""
        return self._response

    @property
    def error(self) -> NetworkError | None:
        """Get the network failure, if the call failed."""
        return self._error

    @property
    def is_failed(self) -> bool:
        """Check if the call ended in a network failure."""
        return self._error is not None

    @property
    def status_code(self) -> int:
        """Get the HTTP status code (0 when no response was received)."""
        if self._response is None:
            return 0
        return self._response.status_code

    @property
    def reason_phrase(self) -> str:
        """Get the reason phrase, or the error message for failures."""
        if self._response is None:
            return self._error.message if self._error else ""
        return self._response.reason_phrase

    @property
    def is_ok(self) -> bool:
        """Check if a 2xx response was received."""
        return HTTP_STATUS_OK_MIN <= self.status_code < HTTP_STATUS_OK_MAX

    @property
    def headers(self) -> httpx.Headers:
        """Get response headers (empty for failures)."""
        if self._response is None:
            return httpx.Headers()
        return self._response.headers

    @property
    def cookies(self) -> httpx.Cookies:
        """Get cookies set by the response (empty for failures)."""
        if self._response is None:
            return httpx.Cookies()
        return self._response.cookies

    @property
    def content_type(self) -> str | None:
        """Get the Content-Type header value."""
        return self.headers.get("content-type")

    def as_bytes(self) -> bytes:
        """Get the body as bytes."""
        return self._require_response().content

    def as_string(self) -> str:
        """Get the body decoded with the response charset."""
        return self._require_response().text

    def as_json(self) -> Any:
        """Parse the body as JSON."""
        return self._require_response().json()

    def as_value(self, type_: type[T]) -> T:
        """Validate the JSON body into a type.

        Args:
            type_: Pydantic model, dataclass or any type pydantic can validate.

        Returns:
            Validated value.
        """
        return TypeAdapter(type_).validate_json(self.as_bytes())

    def as_list(self, type_: type[T]) -> list[T]:
        """Validate a JSON array body into a list of a type."""
        item_list = list[type_]  # type: ignore[valid-type]
        adapter: TypeAdapter[list[T]] = TypeAdapter(item_list)
        return adapter.validate_json(self.as_bytes())

    def to_file(self, path: str | Path) -> Path:
        """Write the body to a file, creating parent directories.

        Args:
            path: Destination file.

        Returns:
            Path written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(self.as_bytes())
        return target

    def raise_for_error(self) -> "HttpResponse":
        """Raise the network failure, if any.

        Raises:
            NetworkError: If the call failed.
        """
        self._require_response()
        return self

    def raise_for_status(self) -> "HttpResponse":
        """Raise for network failures and 4xx/5xx statuses.

        Raises:
            NetworkError: If the call failed.
            ApplicationError: If the status is 400 or above.
        """
        response = self._require_response()
        if response.status_code >= HTTP_STATUS_BAD_REQUEST:
            raise ApplicationError(response.status_code, self)
        return self

    def on_failed(
        self, consumer: Callable[[httpx.Request, NetworkError], None]
    ) -> "HttpResponse":
        """Run a consumer if the call failed.

        Args:
            consumer: Receives the request and the error.

        Returns:
            This response, for chaining.
        """
        if self._error is not None:
            consumer(self._request, self._error)
        return self

    def on_success(self, func: Callable[["HttpResponse"], T]) -> T | None:
        """Apply a function if a response was received, whatever its status."""
        if self.is_failed:
            return None
        return func(self)

    def on_successful(self, func: Callable[["HttpResponse"], T]) -> T | None:
        """Apply a function if a 2xx response was received."""
        if not self.is_ok:
            return None
        return func(self)

    def _require_response(self) -> httpx.Response:
        if self._response is None:
            raise self._error  # type: ignore[misc]
        return self._response

    def __repr__(self) -> str:
        if self._error is not None:
            return (
                f"HttpResponse({self._request.method} {self._request.url} "
                f"failed: {self._error.error_class.value})"
            )
        return (
            f"HttpResponse({self._request.method} {self._request.url} "
            f"{self.status_code})"
        )
