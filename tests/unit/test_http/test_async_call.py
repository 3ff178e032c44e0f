"""Unit tests for dispatcher-backed asynchronous execution."""

import threading

import httpx
import pytest

from fluent_http.errors import HttpErrorClass, NetworkError
from fluent_http.request import HttpRequest
from fluent_http.response import HttpResponse
from tests.helpers.transport import (
    RecordingTransport,
    failing_handler,
    flaky_handler,
    make_context,
)


URL = "https://example.com/async"


class Recorder:
    """Collects notifications delivered to an AsyncCall."""

    def __init__(self) -> None:
        self.responses: list[HttpResponse] = []
        self.successes: list[HttpResponse] = []
        self.failures: list[tuple[httpx.Request, NetworkError]] = []
        self.threads: set[str] = set()

    def on_response(self, response: HttpResponse) -> None:
        self.threads.add(threading.current_thread().name)
        self.responses.append(response)

    def on_successful(self, response: HttpResponse) -> None:
        self.successes.append(response)

    def on_failed(self, request: httpx.Request, error: NetworkError) -> None:
        self.threads.add(threading.current_thread().name)
        self.failures.append((request, error))

    @property
    def notifications(self) -> int:
        return len(self.responses) + len(self.failures)


def run_async(request: HttpRequest) -> Recorder:
    """Execute a request asynchronously and wait for its notification."""
    recorder = Recorder()
    future = (
        request.async_call()
        .on_response(recorder.on_response)
        .on_successful(recorder.on_successful)
        .on_failed(recorder.on_failed)
        .execute()
    )
    future.result(timeout=5)
    return recorder


class TestAsyncCall:
    """Tests for AsyncCall notifications."""

    @pytest.mark.unit
    def test_success_delivers_response_and_successful(self) -> None:
        """A 2xx delivers on_response then on_successful, once each."""
        context = make_context(RecordingTransport())

        recorder = run_async(HttpRequest.get(URL, context))

        assert len(recorder.responses) == 1
        assert len(recorder.successes) == 1
        assert recorder.failures == []
        assert recorder.responses[0].status_code == 200

    @pytest.mark.unit
    def test_error_status_skips_successful(self) -> None:
        """A non-2xx status delivers only on_response."""
        context = make_context(RecordingTransport(lambda r: httpx.Response(404)))

        recorder = run_async(HttpRequest.get(URL, context))

        assert len(recorder.responses) == 1
        assert recorder.successes == []
        assert recorder.failures == []

    @pytest.mark.unit
    def test_failure_delivers_only_on_failed(self) -> None:
        """A network failure delivers only on_failed, with the request."""
        context = make_context(RecordingTransport(failing_handler()))

        recorder = run_async(HttpRequest.get(URL, context).retry(max_attempts=2))

        assert recorder.responses == []
        assert len(recorder.failures) == 1
        request, error = recorder.failures[0]
        assert request.url == httpx.URL(URL)
        assert error.error_class == HttpErrorClass.CONNECTION_ERROR

    @pytest.mark.unit
    def test_notified_once_after_retries(self) -> None:
        """Retries finish before the single notification is delivered."""
        transport = RecordingTransport(flaky_handler(failures=2))
        context = make_context(transport)

        recorder = run_async(HttpRequest.get(URL, context).retry(max_attempts=3))

        assert recorder.notifications == 1
        assert transport.attempts == 3
        assert recorder.responses[0].as_string() == "attempt 3"

    @pytest.mark.unit
    def test_runs_on_dispatcher_thread(self) -> None:
        """Callbacks run on a dispatcher worker, not the caller."""
        context = make_context(RecordingTransport())

        recorder = run_async(HttpRequest.get(URL, context))

        assert len(recorder.threads) == 1
        assert recorder.threads.pop().startswith("fluent-http-dispatcher")

    @pytest.mark.unit
    def test_derived_clients_share_dispatcher(self) -> None:
        """Per-request clients reuse the shared client's dispatcher."""
        context = make_context(RecordingTransport())

        call = HttpRequest.get(URL, context).read_timeout(1).async_call().call

        assert call.client.dispatcher is context.http_client.dispatcher

    @pytest.mark.unit
    def test_unhandled_failure_is_not_raised(self) -> None:
        """Without on_failed a failure is logged and the future succeeds."""
        context = make_context(RecordingTransport(failing_handler()))

        future = HttpRequest.get(URL, context).async_call().execute()

        assert future.result(timeout=5) is None

    @pytest.mark.unit
    def test_callback_exception_surfaces_in_future(self) -> None:
        """An exception raised by a callback is kept on the future."""
        context = make_context(RecordingTransport())

        def explode(response: HttpResponse) -> None:
            raise RuntimeError("callback failed")

        async_call = HttpRequest.get(URL, context).async_call()
        future = async_call.on_response(explode).execute()

        with pytest.raises(RuntimeError, match="callback failed"):
            future.result(timeout=5)

    @pytest.mark.unit
    def test_call_runs_once(self) -> None:
        """A call cannot be executed twice."""
        context = make_context(RecordingTransport())
        call = HttpRequest.get(URL, context).build_call()

        call.execute()

        assert call.is_executed is True
        with pytest.raises(RuntimeError, match="Already Executed"):
            call.execute()

    @pytest.mark.unit
    def test_canceled_before_start(self) -> None:
        """A call canceled before it runs never reaches the transport."""
        transport = RecordingTransport()
        context = make_context(transport)
        async_call = HttpRequest.get(URL, context).async_call()
        recorder = Recorder()
        async_call.on_failed(recorder.on_failed).on_response(recorder.on_response)

        async_call.cancel()
        async_call.execute().result(timeout=5)

        assert transport.attempts == 0
        assert recorder.responses == []
        assert recorder.failures[0][1].error_class == HttpErrorClass.CANCELED
