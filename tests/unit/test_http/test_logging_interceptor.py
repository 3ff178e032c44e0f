"""Unit tests for the logging interceptor and logging precedence."""

import io
import json
import logging
from collections.abc import Generator

import httpx
import pytest
from structlog.testing import capture_logs

from fluent_http.constants import MAX_LOGGED_BODY_BYTES
from fluent_http.interceptors import HttpLoggingInterceptor
from fluent_http.models import LogLevel
from fluent_http.observability import configure_logging, get_logger
from fluent_http.redact import REDACTED_VALUE
from fluent_http.request import HttpRequest
from tests.helpers.log_config import reset_logging
from tests.helpers.transport import RecordingTransport, failing_handler, make_context


URL = "https://example.com/log"


def echo_handler(request: httpx.Request) -> httpx.Response:
    """Answer with the request body and a session cookie."""
    return httpx.Response(
        200,
        content=request.content,
        headers={"Set-Cookie": "sid=secret", "X-Trace": "t1"},
    )


def events(logs: list[dict], name: str) -> list[dict]:
    """Filter captured log entries by event name."""
    return [log for log in logs if log["event"] == name]


class TestHttpLoggingInterceptor:
    """Tests for what each level logs."""

    @pytest.mark.unit
    def test_basic_logs_request_line_and_status(self) -> None:
        """BASIC logs method, URL, status and duration only."""
        context = make_context(RecordingTransport(echo_handler))

        with capture_logs() as logs:
            HttpRequest.get(URL, context).log(LogLevel.BASIC).execute()

        [request_log] = events(logs, "http_request")
        [response_log] = events(logs, "http_response")
        assert request_log["method"] == "GET"
        assert request_log["url"] == URL
        assert "headers" not in request_log
        assert response_log["status_code"] == 200
        assert response_log["duration_ms"] >= 0
        assert "body" not in response_log

    @pytest.mark.unit
    def test_headers_are_redacted(self) -> None:
        """HEADERS logs headers with credentials redacted."""
        context = make_context(RecordingTransport(echo_handler))

        with capture_logs() as logs:
            (
                HttpRequest.get(URL, context)
                .add_header("Authorization", "Bearer token-123")
                .add_header("X-Plain", "visible")
                .log(LogLevel.HEADERS)
                .execute()
            )

        request_headers = dict(events(logs, "http_request")[0]["headers"])
        response_headers = dict(events(logs, "http_response")[0]["headers"])
        assert request_headers["authorization"] == REDACTED_VALUE
        assert request_headers["x-plain"] == "visible"
        assert response_headers["set-cookie"] == REDACTED_VALUE
        assert response_headers["x-trace"] == "t1"
        assert "body" not in events(logs, "http_request")[0]

    @pytest.mark.unit
    def test_body_level_logs_bodies(self) -> None:
        """BODY logs request and response bodies."""
        context = make_context(RecordingTransport(echo_handler))

        with capture_logs() as logs:
            HttpRequest.post(URL, context).body_string("hello").log().execute()

        assert events(logs, "http_request")[0]["body"] == "hello"
        assert events(logs, "http_response")[0]["body"] == "hello"

    @pytest.mark.unit
    def test_large_body_truncated(self) -> None:
        """Bodies over the cap are truncated in logs."""
        context = make_context(RecordingTransport(echo_handler))
        payload = "x" * (MAX_LOGGED_BODY_BYTES + 10)

        with capture_logs() as logs:
            HttpRequest.post(URL, context).body_string(payload).log().execute()

        request_log = events(logs, "http_request")[0]
        assert len(request_log["body"]) == MAX_LOGGED_BODY_BYTES
        assert request_log["body_bytes"] == MAX_LOGGED_BODY_BYTES + 10
        assert request_log["body_truncated"] is True

    @pytest.mark.unit
    def test_url_credentials_redacted(self) -> None:
        """Credentials in the URL are never logged."""
        context = make_context(RecordingTransport())

        with capture_logs() as logs:
            HttpRequest.get("https://user:pw@example.com/", context).log().execute()

        assert "pw" not in events(logs, "http_request")[0]["url"]

    @pytest.mark.unit
    def test_failure_logged_and_propagated(self) -> None:
        """A network failure is logged as http_failed and still returned."""
        context = make_context(RecordingTransport(failing_handler()))

        with capture_logs() as logs:
            response = HttpRequest.get(URL, context).log(LogLevel.BASIC).execute()

        assert response.is_failed
        [failed] = events(logs, "http_failed")
        assert failed["error_type"] == "ConnectError"
        assert events(logs, "http_response") == []

    @pytest.mark.unit
    def test_none_level_logs_nothing(self) -> None:
        """An interceptor at NONE passes through silently."""
        interceptor = HttpLoggingInterceptor(LogLevel.NONE)
        context = make_context(RecordingTransport(), interceptors=(interceptor,))

        with capture_logs() as logs:
            HttpRequest.get(URL, context).execute()

        assert events(logs, "http_request") == []


class TestLoggingPrecedence:
    """Tests for request-level versus global logging."""

    @staticmethod
    def logging_levels(request: HttpRequest) -> list[LogLevel]:
        stages = request.build_call().client.config.interceptors
        return [s.level for s in stages if isinstance(s, HttpLoggingInterceptor)]

    @pytest.mark.unit
    def test_request_level_wins_over_global(self) -> None:
        """A request-level level other than NONE replaces the global one."""
        context = make_context(RecordingTransport(), global_log_level=LogLevel.HEADERS)

        request = HttpRequest.get(URL, context).log(LogLevel.BASIC)

        assert self.logging_levels(request) == [LogLevel.BASIC]

    @pytest.mark.unit
    def test_request_none_falls_back_to_global(self) -> None:
        """Request-level NONE uses the global interceptor."""
        context = make_context(RecordingTransport(), global_log_level=LogLevel.HEADERS)

        request = HttpRequest.get(URL, context).log(LogLevel.NONE)

        assert self.logging_levels(request) == [LogLevel.HEADERS]

    @pytest.mark.unit
    def test_global_applies_without_request_level(self) -> None:
        """Requests without a level use the global interceptor."""
        context = make_context(RecordingTransport())
        context.set_global_log(LogLevel.BODY)

        assert self.logging_levels(HttpRequest.get(URL, context)) == [LogLevel.BODY]

    @pytest.mark.unit
    def test_no_logging_by_default(self) -> None:
        """Without request or global level nothing is installed."""
        context = make_context(RecordingTransport())

        assert self.logging_levels(HttpRequest.get(URL, context)) == []

    @pytest.mark.unit
    def test_global_none_disables(self) -> None:
        """Setting the global level to NONE removes global logging."""
        context = make_context(RecordingTransport(), global_log_level=LogLevel.BASIC)
        context.set_global_log(LogLevel.NONE)

        assert context.global_logging_interceptor is None
        assert self.logging_levels(HttpRequest.get(URL, context)) == []

    @pytest.mark.unit
    def test_global_logging_emits_events(self) -> None:
        """The global interceptor logs requests that set no level."""
        context = make_context(RecordingTransport())

        with capture_logs() as logs:
            context.set_global_log(LogLevel.BASIC)
            HttpRequest.get(URL, context).execute()

        assert len(events(logs, "http_request")) == 1


class TestConfigureLogging:
    """Tests for structlog and transport logger configuration."""

    @pytest.fixture(autouse=True)
    def restore_logging(self) -> Generator[None]:
        """Restore logging defaults after each test."""
        yield
        reset_logging()

    @pytest.mark.unit
    def test_json_output(self) -> None:
        """JSON format writes one JSON object per event."""
        output = io.StringIO()
        configure_logging(level="INFO", output=output, json_format=True)

        get_logger("test").info("http_request", method="GET")

        line = json.loads(output.getvalue().strip().splitlines()[-1])
        assert line["event"] == "http_request"
        assert line["method"] == "GET"
        assert line["level"] == "info"
        assert "timestamp" in line

    @pytest.mark.unit
    def test_level_filters(self) -> None:
        """Events below the configured level are dropped."""
        output = io.StringIO()
        configure_logging(level="WARNING", output=output)

        get_logger().info("quiet")
        get_logger().warning("loud")

        text = output.getvalue()
        assert "quiet" not in text
        assert "loud" in text

    @pytest.mark.unit
    def test_transport_records_rendered_as_json(self) -> None:
        """httpx records share the JSON format and are tagged as HTTP output."""
        output = io.StringIO()
        configure_logging(output=output, transport_level="INFO")

        logging.getLogger("httpx").info(
            'HTTP Request: %s %s "%s"', "GET", "https://user:pw@example.com/", "200"
        )

        line = json.loads(output.getvalue().strip().splitlines()[-1])
        assert line["logger"] == "httpx"
        assert line["level"] == "info"
        assert line["component"] == "http"
        assert "timestamp" in line
        assert line["event"] == (
            f'HTTP Request: GET https://{REDACTED_VALUE}:{REDACTED_VALUE}'
            '@example.com/ "200"'
        )

    @pytest.mark.unit
    def test_transport_level_filters(self) -> None:
        """Transport records below transport_level are dropped."""
        output = io.StringIO()
        configure_logging(level="DEBUG", output=output)

        logging.getLogger("httpcore").debug("connect_tcp.started")
        logging.getLogger("httpcore").warning("connection reset")

        text = output.getvalue()
        assert "connect_tcp.started" not in text
        assert "connection reset" in text

    @pytest.mark.unit
    def test_reconfigure_replaces_handler(self) -> None:
        """Calling configure_logging twice leaves one handler per logger."""
        first = io.StringIO()
        second = io.StringIO()
        configure_logging(output=first, transport_level="INFO")
        configure_logging(output=second, transport_level="INFO")

        logging.getLogger("httpx").info("once")

        assert first.getvalue() == ""
        assert second.getvalue().count("once") == 1
        assert len(logging.getLogger("httpx").handlers) == 1
