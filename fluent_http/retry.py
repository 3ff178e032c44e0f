"""Retry interceptor for network-level failures."""

from typing import TYPE_CHECKING

import httpx
import structlog

from fluent_http.constants import COMPONENT_HTTP
from fluent_http.errors import CallCanceledError
from fluent_http.interceptors import Interceptor
from fluent_http.metrics import HttpMetrics
from fluent_http.models import RetryPolicy
from fluent_http.redact import redact_url_credentials
from fluent_http.state_machine import RetryStateMachine


if TYPE_CHECKING:
    from fluent_http.call import Chain


logger = structlog.get_logger()


class RetryInterceptor(Interceptor):
    """Re-issues a call after network-level failures.

    Any response, whatever its status code, ends the loop. Transport errors
    are retried until the policy's attempts are used up, sleeping
    sleep_millis between attempts; the last error is then re-raised.
    Errors that are not transport errors (too many redirects, decoding
    failures, errors raised by other interceptors) propagate immediately.
    """

    name = "retry"

    def __init__(self, policy: RetryPolicy) -> None:
        """Initialize the retry interceptor.

        Args:
            policy: Attempt limit and sleep between attempts.
        """
        self._policy = policy

    @property
    def policy(self) -> RetryPolicy:
        """Get the retry policy."""
        return self._policy

    def intercept(self, chain: "Chain") -> httpx.Response:
        request = chain.request
        url = redact_url_credentials(str(request.url))
        machine = RetryStateMachine(url, self._policy.max_attempts)
        metrics = HttpMetrics.get_instance()
        log = logger.bind(component=COMPONENT_HTTP, method=request.method, url=url)

        while True:
            try:
                response = chain.proceed(request)
            except httpx.TransportError as e:
                if not self._policy.can_retry(machine.attempt):
                    machine.to_exhausted()
                    log.warning(
                        "retry_exhausted",
                        attempts=machine.attempt,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    raise

                machine.to_waiting()
                metrics.record_retry()
                log.info(
                    "retry_attempt",
                    attempt=machine.attempt,
                    next_attempt=machine.attempt + 1,
                    max_attempts=self._policy.max_attempts,
                    delay_ms=self._policy.sleep_millis,
                    error_type=type(e).__name__,
                )
                if chain.call.wait(self._policy.sleep_seconds):
                    machine.to_canceled()
                    raise CallCanceledError(request) from e
                machine.to_attempting()
                continue

            machine.to_succeeded()
            return response
