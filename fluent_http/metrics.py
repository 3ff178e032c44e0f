"""Metrics collection for HTTP calls."""

from collections import Counter
from dataclasses import dataclass, field
from threading import Lock

from fluent_http.errors import HttpErrorClass


# Module-level singleton state
_metrics_instance: "HttpMetrics | None" = None
_metrics_lock: Lock = Lock()


@dataclass
class HttpMetrics:
    """Thread-safe metrics for HTTP calls.

    Tracks calls, individual attempts, retries, network failures and
    received status codes. Use get_instance() for singleton access.
    """

    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    calls_total: int = 0
    attempts_total: int = 0
    retries_total: int = 0
    responses_by_status: Counter[int] = field(default_factory=Counter)
    failures_by_class: Counter[str] = field(default_factory=Counter)
    duration_ms_total: float = 0.0

    @classmethod
    def get_instance(cls) -> "HttpMetrics":
        """Get the singleton instance (thread-safe).

        Returns:
            The shared HttpMetrics instance.
        """
        global _metrics_instance  # noqa: PLW0603
        if _metrics_instance is None:
            with _metrics_lock:
                # Double-checked locking
                if _metrics_instance is None:
                    _metrics_instance = cls()
        return _metrics_instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton instance (for testing)."""
        global _metrics_instance  # noqa: PLW0603
        with _metrics_lock:
            _metrics_instance = None

    def record_call(self, duration_ms: float) -> None:
        """Record a finished call, successful or not.

        Args:
            duration_ms: Wall time of the call including retries.
        """
        with self._lock:
            self.calls_total += 1
            self.duration_ms_total += duration_ms

    def record_attempt(self) -> None:
        """Record one network attempt."""
        with self._lock:
            self.attempts_total += 1

    def record_retry(self) -> None:
        """Record a retry after a network failure."""
        with self._lock:
            self.retries_total += 1

    def record_response(self, status_code: int) -> None:
        """Record a received response.

        Args:
            status_code: HTTP status code.
        """
        with self._lock:
            self.responses_by_status[status_code] += 1

    def record_failure(self, error_class: HttpErrorClass) -> None:
        """Record a call that ended in a network failure.

        Args:
            error_class: Classification of the failure.
        """
        with self._lock:
            self.failures_by_class[error_class.value] += 1

    @property
    def failures_total(self) -> int:
        """Get the total number of failed calls."""
        with self._lock:
            return sum(self.failures_by_class.values())

    @property
    def avg_duration_ms(self) -> float:
        """Calculate average call duration.

        Returns:
            Average duration in milliseconds.
        """
        with self._lock:
            if self.calls_total == 0:
                return 0.0
            return self.duration_ms_total / self.calls_total

    def to_dict(self) -> dict[str, int | float | dict[str, int] | dict[int, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        with self._lock:
            return {
                "http_calls_total": self.calls_total,
                "http_attempts_total": self.attempts_total,
                "http_retry_total": self.retries_total,
                "http_responses_total": dict(self.responses_by_status),
                "http_failures_total": dict(self.failures_by_class),
                "http_duration_ms_total": self.duration_ms_total,
            }
