"""Execution of one finalized request through the interceptor pipeline."""

import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import Future
from typing import TYPE_CHECKING

import httpx
import structlog

from fluent_http.constants import COMPONENT_HTTP
from fluent_http.errors import CallCanceledError, NetworkError
from fluent_http.interceptors import Interceptor
from fluent_http.metrics import HttpMetrics
from fluent_http.redact import redact_url_credentials
from fluent_http.response import HttpResponse


if TYPE_CHECKING:
    from fluent_http.client import HttpClient


logger = structlog.get_logger()

ResponseCallback = Callable[[httpx.Response], None]
FailureCallback = Callable[[httpx.Request, NetworkError], None]


class Chain:
    """Position in the interceptor pipeline.

    proceed() hands the request to the next interceptor, or to the network
    stage once every interceptor has run.
    """

    def __init__(
        self,
        call: "Call",
        request: httpx.Request,
        interceptors: Sequence[Interceptor],
        index: int = 0,
    ) -> None:
        self._call = call
        self._request = request
        self._interceptors = interceptors
        self._index = index

    @property
    def call(self) -> "Call":
        """Get the call this chain belongs to."""
        return self._call

    @property
    def request(self) -> httpx.Request:
        """Get the request at this position."""
        return self._request

    def proceed(self, request: httpx.Request) -> httpx.Response:
        """Forward a request to the rest of the pipeline.

        Args:
            request: Request to forward; usually chain.request.

        Returns:
            Response from the remaining stages.

        Raises:
            httpx.RequestError: On network-level failure.
            CallCanceledError: If the call was canceled.
        """
        if self._index < len(self._interceptors):
            interceptor = self._interceptors[self._index]
            next_chain = Chain(self._call, request, self._interceptors, self._index + 1)
            return interceptor.intercept(next_chain)
        return self._call.send_over_network(request)


class Call:
    """A single execution of a request against a derived HttpClient.

    A call runs at most once. cancel() stops further network attempts,
    redirects and retry waits; an exchange already on the wire finishes or
    times out and its result is discarded.
    """

    def __init__(self, client: "HttpClient", request: httpx.Request) -> None:
        """Initialize the call.

        Args:
            client: Derived client holding this call's transport settings.
            request: Finalized request.
        """
        self._client = client
        self._request = request
        self._canceled = threading.Event()
        self._executed = False
        self._lock = threading.Lock()
        self._http: httpx.Client | None = None
        self._log = logger.bind(
            component=COMPONENT_HTTP,
            method=request.method,
            url=redact_url_credentials(str(request.url)),
        )

    @property
    def request(self) -> httpx.Request:
        """Get the finalized request."""
        return self._request

    @property
    def client(self) -> "HttpClient":
        """Get the client this call is bound to."""
        return self._client

    @property
    def is_canceled(self) -> bool:
        """Check if cancel() was called."""
        return self._canceled.is_set()

    @property
    def is_executed(self) -> bool:
        """Check if the call has been started."""
        return self._executed

    def cancel(self) -> None:
        """Cancel the call; pending waits wake up immediately."""
        if not self._canceled.is_set():
            self._canceled.set()
            self._log.info("call_canceled")

    def wait(self, seconds: float) -> bool:
        """Block for up to seconds unless the call is canceled.

        Args:
            seconds: Time to wait.

        Returns:
            True if the call was canceled.
        """
        if seconds <= 0:
            return self.is_canceled
        return self._canceled.wait(seconds)

    def execute(self) -> httpx.Response:
        """Run the call on the current thread.

        Returns:
            The final response, whatever its status code.

        Raises:
            NetworkError: On network-level failure (after any retries) or when
                a file part of the body cannot be read.
            RuntimeError: If the call was already executed.
        """
        self._mark_executed()
        listener = self._client.config.event_listener
        metrics = HttpMetrics.get_instance()
        start_time_ns = time.perf_counter_ns()

        if listener is not None:
            listener.call_start(self._request)

        try:
            response = self._run_pipeline()
        except NetworkError as e:
            self._record_failure(e, start_time_ns)
            raise
        except (httpx.RequestError, OSError) as e:
            error = (
                CallCanceledError(self._request)
                if self.is_canceled
                else NetworkError.from_exception(e, self._request)
            )
            self._record_failure(error, start_time_ns)
            raise error from e

        metrics.record_call((time.perf_counter_ns() - start_time_ns) / 1_000_000)
        if listener is not None:
            listener.call_end(self._request, response)
        return response

    def enqueue(
        self,
        on_response: ResponseCallback,
        on_failure: FailureCallback,
    ) -> "Future[None]":
        """Run the call on the dispatcher.

        Exactly one of the callbacks runs, on the worker thread, after every
        interceptor (retries included) has finished.

        Args:
            on_response: Receives the final response.
            on_failure: Receives the request and the network error.

        Returns:
            Future completing once the callback has returned.
        """
        return self._client.dispatcher.submit(
            self._run_async, on_response, on_failure
        )

    def send_over_network(self, request: httpx.Request) -> httpx.Response:
        """Network stage: send a request and follow redirects.

        Args:
            request: Request to send.

        Returns:
            Final response after the redirect policy has been applied.
        """
        http = self._http
        if http is None:
            msg = "Network stage reached outside of Call.execute()"
            raise RuntimeError(msg)
        config = self._client.config
        metrics = HttpMetrics.get_instance()

        self._raise_if_canceled(request)
        metrics.record_attempt()
        # Requests built outside httpx.Client carry no timeout of their own
        request.extensions["timeout"] = http.timeout.as_dict()
        http.cookies.set_cookie_header(request)
        response = http.send(request)

        history: list[httpx.Response] = []
        while config.follow_redirects and response.next_request is not None:
            next_request = response.next_request
            if (
                not config.follow_ssl_redirects
                and next_request.url.scheme != response.request.url.scheme
            ):
                self._log.debug(
                    "ssl_redirect_not_followed",
                    location=redact_url_credentials(str(next_request.url)),
                )
                break
            if len(history) >= config.max_redirects:
                msg = f"Exceeded maximum allowed redirects ({config.max_redirects})"
                raise httpx.TooManyRedirects(msg, request=next_request)
            self._raise_if_canceled(request)
            history.append(response)
            response = http.send(next_request)
            response.history = list(history)

        self._raise_if_canceled(request)
        metrics.record_response(response.status_code)
        return response

    def _run_pipeline(self) -> httpx.Response:
        interceptors = self._client.config.interceptors
        with self._client.open(self._request.url) as http:
            self._http = http
            try:
                return Chain(self, self._request, interceptors).proceed(self._request)
            finally:
                self._http = None

    def _run_async(
        self,
        on_response: ResponseCallback,
        on_failure: FailureCallback,
    ) -> None:
        try:
            response = self.execute()
        except NetworkError as e:
            on_failure(self._request, e)
            return
        on_response(response)

    def _mark_executed(self) -> None:
        with self._lock:
            if self._executed:
                msg = "Already Executed"
                raise RuntimeError(msg)
            self._executed = True

    def _raise_if_canceled(self, request: httpx.Request) -> None:
        if self.is_canceled:
            raise CallCanceledError(request)

    def _record_failure(self, error: NetworkError, start_time_ns: int) -> None:
        metrics = HttpMetrics.get_instance()
        metrics.record_call((time.perf_counter_ns() - start_time_ns) / 1_000_000)
        metrics.record_failure(error.error_class)
        self._log.info(
            "call_failed",
            error_class=error.error_class.value,
            error=error.message,
        )
        listener = self._client.config.event_listener
        if listener is not None:
            listener.call_failed(self._request, error)


class AsyncCall:
    """Callback registration for a call run on the dispatcher.

    Completion delivers on_response, then on_successful for 2xx statuses;
    network failure delivers on_failed. Only one of the two notifications
    happens per call.
    """

    def __init__(self, call: Call) -> None:
        self._call = call
        self._response_consumer: Callable[[HttpResponse], None] | None = None
        self._success_consumer: Callable[[HttpResponse], None] | None = None
        self._failed_consumer: FailureCallback | None = None

    @property
    def call(self) -> Call:
        """Get the underlying call, the cancellation handle."""
        return self._call

    def on_response(self, consumer: Callable[[HttpResponse], None]) -> "AsyncCall":
        """Register a consumer for any completed response."""
        self._response_consumer = consumer
        return self

    def on_successful(self, consumer: Callable[[HttpResponse], None]) -> "AsyncCall":
        """Register a consumer for 2xx responses."""
        self._success_consumer = consumer
        return self

    def on_failed(self, consumer: FailureCallback) -> "AsyncCall":
        """Register a consumer for network failures."""
        self._failed_consumer = consumer
        return self

    def execute(self) -> "Future[None]":
        """Submit the call to the dispatcher.

        Returns:
            Future completing once the notification has been delivered.
        """
        return self._call.enqueue(self._handle_response, self._handle_failure)

    def cancel(self) -> None:
        """Cancel the underlying call."""
        self._call.cancel()

    def _handle_response(self, response: httpx.Response) -> None:
        wrapper = HttpResponse(self._call.request, response=response)
        if self._response_consumer is not None:
            self._response_consumer(wrapper)
        if self._success_consumer is not None and wrapper.is_ok:
            self._success_consumer(wrapper)

    def _handle_failure(self, request: httpx.Request, error: NetworkError) -> None:
        if self._failed_consumer is not None:
            self._failed_consumer(request, error)
            return
        logger.warning(
            "async_call_failed",
            component=COMPONENT_HTTP,
            url=redact_url_credentials(str(request.url)),
            error_class=error.error_class.value,
            error=error.message,
        )
