"""Data models for the request layer."""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from fluent_http.constants import (
    DEFAULT_RETRY_MAX_ATTEMPTS,
    DEFAULT_RETRY_SLEEP_MILLIS,
)


class HttpMethod(str, Enum):
    """HTTP methods supported by the request builder."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    @property
    def requires_body(self) -> bool:
        """Check if the method must carry a request body."""
        return self in (HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH)


class LogLevel(str, Enum):
    """Verbosity of the logging interceptor.

    - NONE: No logs
    - BASIC: Request line, response status and duration
    - HEADERS: BASIC plus request and response headers
    - BODY: HEADERS plus request and response bodies
    """

    NONE = "NONE"
    BASIC = "BASIC"
    HEADERS = "HEADERS"
    BODY = "BODY"

    @property
    def logs_headers(self) -> bool:
        """Check if headers are logged at this level."""
        return self in (LogLevel.HEADERS, LogLevel.BODY)

    @property
    def logs_body(self) -> bool:
        """Check if bodies are logged at this level."""
        return self is LogLevel.BODY


class RetryPolicy(BaseModel):
    """Configuration for retrying network-level failures.

    A call is attempted at most max_attempts times with a fixed
    sleep_millis pause between attempts.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_attempts: Annotated[int, Field(ge=1)] = DEFAULT_RETRY_MAX_ATTEMPTS
    sleep_millis: Annotated[int, Field(ge=0)] = DEFAULT_RETRY_SLEEP_MILLIS

    @property
    def sleep_seconds(self) -> float:
        """Get the pause between attempts in seconds."""
        return self.sleep_millis / 1000.0

    def can_retry(self, attempt: int) -> bool:
        """Determine if another attempt is allowed after a failure.

        Args:
            attempt: Number of the attempt that just failed (1-indexed).

        Returns:
            True if another attempt may be made.
        """
        return attempt < self.max_attempts
