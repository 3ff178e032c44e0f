"""Error types for the request layer."""

import ssl
from enum import Enum
from typing import TYPE_CHECKING

import httpx

from fluent_http.constants import HTTP_STATUS_SERVER_ERROR_MIN


if TYPE_CHECKING:
    from fluent_http.response import HttpResponse


class HttpErrorClass(str, Enum):
    """Classification of request errors.

    - INVALID_URL: URL could not be parsed at construction
    - NETWORK_TIMEOUT: Connect, read, write or pool timeout
    - CONNECTION_ERROR: Could not establish or keep a connection
    - SSL_ERROR: TLS handshake or certificate verification failure
    - PROXY_ERROR: Proxy refused or failed the request
    - PROTOCOL_ERROR: Malformed HTTP exchange
    - TOO_MANY_REDIRECTS: Redirect limit exceeded
    - CANCELED: Call canceled by the caller
    - IO_ERROR: Local I/O failure, e.g. an upload file that cannot be read
    - HTTP_4XX: Client error status received
    - HTTP_5XX: Server error status received
    - UNKNOWN: Unclassified error
    """

    INVALID_URL = "INVALID_URL"
    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    SSL_ERROR = "SSL_ERROR"
    PROXY_ERROR = "PROXY_ERROR"
    PROTOCOL_ERROR = "PROTOCOL_ERROR"
    TOO_MANY_REDIRECTS = "TOO_MANY_REDIRECTS"
    CANCELED = "CANCELED"
    IO_ERROR = "IO_ERROR"
    HTTP_4XX = "HTTP_4XX"
    HTTP_5XX = "HTTP_5XX"
    UNKNOWN = "UNKNOWN"


class HttpError(Exception):
    """Base exception for request errors.

    Provides structured error information for logging and inspection.
    """

    def __init__(
        self,
        error_class: HttpErrorClass,
        message: str,
        details: dict[str, str | int | bool | None] | None = None,
    ) -> None:
        """Initialize the error.

        Args:
            error_class: Classification of the error.
            message: Human-readable error message.
            details: Additional structured error details.
        """
        super().__init__(message)
        self.error_class = error_class
        self.message = message
        self.details = details or {}

    def to_dict(
        self,
    ) -> dict[str, str | dict[str, str | int | bool | None]]:
        """Convert error to dictionary for logging/serialization.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "error_class": self.error_class.value,
            "message": self.message,
            "details": self.details,
        }


class InvalidUrlError(HttpError, ValueError):
    """Raised when a request is constructed with an unparseable URL."""

    def __init__(self, method: str, url: str) -> None:
        """Initialize the error.

        Args:
            method: HTTP method of the rejected request.
            url: The offending URL.
        """
        self.method = method
        self.url = url
        super().__init__(
            error_class=HttpErrorClass.INVALID_URL,
            message=f"Url cannot be parsed: {method.lower()}: [{url}]",
            details={"method": method, "url": url},
        )


class NetworkError(HttpError):
    """I/O failure while executing a request.

    Wraps the transport exception and keeps the request that was attempted.
    """

    def __init__(
        self,
        error_class: HttpErrorClass,
        message: str,
        request: httpx.Request | None = None,
        cause: BaseException | None = None,
    ) -> None:
        """Initialize the error.

        Args:
            error_class: Classification of the failure.
            message: Human-readable error message.
            request: The request that was being executed.
            cause: Underlying transport exception.
        """
        details: dict[str, str | int | bool | None] = {}
        if request is not None:
            details["method"] = request.method
            details["url"] = str(request.url)
        if cause is not None:
            details["cause"] = type(cause).__name__
        super().__init__(error_class=error_class, message=message, details=details)
        self.request = request
        self.cause = cause

    @classmethod
    def from_exception(
        cls,
        exc: httpx.RequestError | OSError,
        request: httpx.Request | None = None,
    ) -> "NetworkError":
        """Create a NetworkError from an httpx request error or an OSError.

        Args:
            exc: The httpx exception, or the OSError raised while reading
                a request body.
            request: The request being executed, if known.

        Returns:
            Classified NetworkError with the original exception as cause.
        """
        error = cls(
            error_class=(
                HttpErrorClass.IO_ERROR
                if isinstance(exc, OSError)
                else classify_request_error(exc)
            ),
            message=str(exc) or type(exc).__name__,
            request=request,
            cause=exc,
        )
        error.__cause__ = exc
        return error


class CallCanceledError(NetworkError):
    """Raised when a call is canceled before it completes."""

    def __init__(self, request: httpx.Request | None = None) -> None:
        """Initialize the error.

        Args:
            request: The request whose call was canceled.
        """
        super().__init__(
            error_class=HttpErrorClass.CANCELED,
            message="Canceled",
            request=request,
        )


class ApplicationError(HttpError):
    """A received HTTP status of 400 or above.

    Never raised by execution itself; callers opt in via
    HttpResponse.raise_for_status().
    """

    def __init__(self, status_code: int, response: "HttpResponse") -> None:
        """Initialize the error.

        Args:
            status_code: HTTP status code.
            response: The response wrapper carrying the status.
        """
        error_class = (
            HttpErrorClass.HTTP_5XX
            if status_code >= HTTP_STATUS_SERVER_ERROR_MIN
            else HttpErrorClass.HTTP_4XX
        )
        super().__init__(
            error_class=error_class,
            message=f"HTTP {status_code} for {response.request.url}",
            details={"status_code": status_code},
        )
        self.status_code = status_code
        self.response = response


def classify_request_error(exc: httpx.RequestError) -> HttpErrorClass:
    """Map an httpx request error onto an error class.

    Args:
        exc: The httpx exception.

    Returns:
        Matching HttpErrorClass.
    """
    if isinstance(exc, httpx.TimeoutException):
        return HttpErrorClass.NETWORK_TIMEOUT
    if isinstance(exc, httpx.ProxyError):
        return HttpErrorClass.PROXY_ERROR
    if isinstance(exc, httpx.ConnectError):
        if isinstance(exc.__cause__, ssl.SSLError) or "SSL" in str(exc):
            return HttpErrorClass.SSL_ERROR
        return HttpErrorClass.CONNECTION_ERROR
    if isinstance(exc, httpx.NetworkError):
        return HttpErrorClass.CONNECTION_ERROR
    if isinstance(exc, httpx.ProtocolError | httpx.UnsupportedProtocol):
        return HttpErrorClass.PROTOCOL_ERROR
    if isinstance(exc, httpx.TooManyRedirects):
        return HttpErrorClass.TOO_MANY_REDIRECTS
    return HttpErrorClass.UNKNOWN
