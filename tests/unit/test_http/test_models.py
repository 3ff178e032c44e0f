"""Unit tests for request layer models."""

import pytest
from pydantic import ValidationError

from fluent_http.models import HttpMethod, LogLevel, RetryPolicy


class TestRetryPolicy:
    """Tests for RetryPolicy model."""

    @pytest.mark.unit
    def test_default_values(self) -> None:
        """Test default retry policy values."""
        policy = RetryPolicy()

        assert policy.max_attempts == 3
        assert policy.sleep_millis == 0
        assert policy.sleep_seconds == 0.0

    @pytest.mark.unit
    def test_custom_values(self) -> None:
        """Test custom retry policy values."""
        policy = RetryPolicy(max_attempts=5, sleep_millis=250)

        assert policy.max_attempts == 5
        assert policy.sleep_millis == 250
        assert policy.sleep_seconds == 0.25

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "kwargs",
        [{"max_attempts": 0}, {"max_attempts": -1}, {"sleep_millis": -5}],
    )
    def test_rejects_out_of_range(self, kwargs: dict[str, int]) -> None:
        """Attempts below 1 and negative sleeps are rejected."""
        with pytest.raises(ValidationError):
            RetryPolicy(**kwargs)

    @pytest.mark.unit
    def test_rejects_unknown_fields(self) -> None:
        """Unknown fields are rejected."""
        with pytest.raises(ValidationError):
            RetryPolicy(max_retries=3)  # type: ignore[call-arg]

    @pytest.mark.unit
    def test_is_frozen(self) -> None:
        """A policy cannot be changed after creation."""
        policy = RetryPolicy()
        with pytest.raises(ValidationError):
            policy.max_attempts = 10  # type: ignore[misc]

    @pytest.mark.unit
    def test_can_retry(self) -> None:
        """Another attempt is allowed until max_attempts is reached."""
        policy = RetryPolicy(max_attempts=3)

        assert policy.can_retry(1) is True
        assert policy.can_retry(2) is True
        assert policy.can_retry(3) is False

    @pytest.mark.unit
    def test_single_attempt_never_retries(self) -> None:
        """max_attempts=1 means no retries at all."""
        assert RetryPolicy(max_attempts=1).can_retry(1) is False


class TestHttpMethod:
    """Tests for HttpMethod enum."""

    @pytest.mark.unit
    def test_methods_requiring_body(self) -> None:
        """POST, PUT and PATCH require a body."""
        assert {m for m in HttpMethod if m.requires_body} == {
            HttpMethod.POST,
            HttpMethod.PUT,
            HttpMethod.PATCH,
        }


class TestLogLevel:
    """Tests for LogLevel enum."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("level", "headers", "body"),
        [
            (LogLevel.NONE, False, False),
            (LogLevel.BASIC, False, False),
            (LogLevel.HEADERS, True, False),
            (LogLevel.BODY, True, True),
        ],
    )
    def test_verbosity(self, level: LogLevel, headers: bool, body: bool) -> None:
        """Each level adds to the previous one."""
        assert level.logs_headers is headers
        assert level.logs_body is body
