"""Fluent request builder.

An HttpRequest accumulates method, URL, query, headers, body and
per-request transport overrides through chained calls. Nothing touches the
network until execute() or async_call(); each execution derives a fresh
client from the context's shared one and freezes a new httpx.Request.

Example:
    response = (
        HttpRequest.get("https://example.com/api/items")
        .query("page", 2)
        .retry(max_attempts=3, sleep_millis=200)
        .log(LogLevel.BASIC)
        .execute()
    )
"""

import json
import ssl
from collections.abc import Callable, Mapping
from datetime import timedelta
from http.cookiejar import CookieJar
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import BaseModel

from fluent_http.body import (
    Body,
    FormBuilder,
    MultipartFormBuilder,
    RequestBody,
    handle_value,
)
from fluent_http.call import AsyncCall, Call, Chain
from fluent_http.client import HttpClient, ProxySelector, TransportOverrides
from fluent_http.constants import (
    DEFAULT_RETRY_MAX_ATTEMPTS,
    DEFAULT_RETRY_SLEEP_MILLIS,
    HEADER_CACHE_CONTROL,
    HEADER_CONTENT_TYPE,
    HEADER_COOKIE,
    HEADER_USER_AGENT,
    MEDIA_TYPE_JSON,
    VALID_URL_SCHEMES,
)
from fluent_http.context import HttpContext, get_default_context
from fluent_http.errors import InvalidUrlError, NetworkError
from fluent_http.events import EventListener
from fluent_http.interceptors import HttpLoggingInterceptor, Interceptor, as_interceptor
from fluent_http.models import HttpMethod, LogLevel, RetryPolicy
from fluent_http.redact import redact_url_credentials
from fluent_http.response import HttpResponse
from fluent_http.retry import RetryInterceptor
from fluent_http.tls import TrustManager


# Characters left as-is when encoding a whole query string
_QUERY_SAFE = "=&/?:@!$'()*+,;~"

TimeoutValue = float | timedelta


def _to_seconds(timeout: TimeoutValue) -> float:
    if isinstance(timeout, timedelta):
        return timeout.total_seconds()
    return float(timeout)


def _parse_url(method: HttpMethod, url: str | httpx.URL) -> httpx.URL:
    """Parse and validate a request URL.

    Raises:
        InvalidUrlError: If the URL cannot be parsed or is not absolute http(s).
    """
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as e:
        raise InvalidUrlError(method.value, str(url)) from e
    if parsed.scheme not in VALID_URL_SCHEMES or not parsed.host:
        raise InvalidUrlError(method.value, str(url))
    return parsed


def _proxy_url(address: str | tuple[str, int]) -> str:
    if isinstance(address, tuple):
        host, port = address
        return f"http://{host}:{port}"
    if "://" in address:
        return address
    return f"http://{address}"


class HttpRequest:
    """Mutable builder for one HTTP request.

    Every configuration method returns the same instance. Configuration is
    copied into an immutable httpx.Request and TransportConfig when a call
    is built, so the builder may be executed more than once.
    """

    def __init__(
        self,
        method: HttpMethod | str,
        url: str | httpx.URL,
        context: HttpContext | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            method: HTTP method.
            url: Absolute http or https URL.
            context: Holder of the default client and global logging;
                the module default context when omitted.

        Raises:
            InvalidUrlError: If the URL cannot be parsed.
            ValueError: If the method is not supported.
        """
        self._method = HttpMethod(method.upper() if isinstance(method, str) else method)
        parsed = _parse_url(self._method, url)
        self._context = context or get_default_context()
        self._base_url = parsed.copy_with(raw_path=parsed.raw_path.split(b"?", 1)[0])
        self._query_parts: list[str] = [
            part for part in parsed.query.decode("ascii").split("&") if part
        ]
        self._headers: list[tuple[str, str]] = []
        self._body: Body | None = None
        self._user_agent: str | None = None
        self._log_level: LogLevel | None = None
        self._retry_policy: RetryPolicy | None = None
        self._interceptors: list[Interceptor] = []

        self._connect_timeout: float | None = None
        self._read_timeout: float | None = None
        self._write_timeout: float | None = None
        self._proxy: str | None = None
        self._proxy_selector: ProxySelector | None = None
        self._proxy_auth: tuple[str, str] | None = None
        self._hostname_verification: bool | None = None
        self._ssl_context: ssl.SSLContext | None = None
        self._trust_manager: TrustManager | None = None
        self._auth: httpx.Auth | None = None
        self._event_listener: EventListener | None = None
        self._cookie_jar: CookieJar | None = None
        self._follow_redirects: bool | None = None
        self._follow_ssl_redirects: bool | None = None

    @classmethod
    def get(
        cls, url: str | httpx.URL, context: HttpContext | None = None
    ) -> "HttpRequest":
        """Create a GET request."""
        return cls(HttpMethod.GET, url, context)

    @classmethod
    def post(
        cls, url: str | httpx.URL, context: HttpContext | None = None
    ) -> "HttpRequest":
        """Create a POST request."""
        return cls(HttpMethod.POST, url, context)

    @classmethod
    def put(
        cls, url: str | httpx.URL, context: HttpContext | None = None
    ) -> "HttpRequest":
        """Create a PUT request."""
        return cls(HttpMethod.PUT, url, context)

    @classmethod
    def patch(
        cls, url: str | httpx.URL, context: HttpContext | None = None
    ) -> "HttpRequest":
        """Create a PATCH request."""
        return cls(HttpMethod.PATCH, url, context)

    @classmethod
    def delete(
        cls, url: str | httpx.URL, context: HttpContext | None = None
    ) -> "HttpRequest":
        """Create a DELETE request."""
        return cls(HttpMethod.DELETE, url, context)

    @property
    def method(self) -> HttpMethod:
        """Get the HTTP method."""
        return self._method

    @property
    def url(self) -> httpx.URL:
        """Get the URL with the current query applied."""
        return self._final_url()

    @property
    def headers(self) -> list[tuple[str, str]]:
        """Get a copy of the header list, in insertion order."""
        return list(self._headers)

    @property
    def context(self) -> HttpContext:
        """Get the context this request executes against."""
        return self._context

    # Query

    def query(self, name: str, value: object | None = None) -> "HttpRequest":
        """Append a query parameter, encoding name and value.

        Args:
            name: Parameter name.
            value: Parameter value; None appends the bare name.
        """
        return self.query_encoded(
            quote(name, safe=""),
            None if value is None else quote(handle_value(value), safe=""),
        )

    def query_encoded(self, name: str, value: object | None = None) -> "HttpRequest":
        """Append an already-encoded query parameter."""
        self._query_parts.append(name if value is None else f"{name}={value}")
        return self

    def query_map(self, params: Mapping[str, object] | None) -> "HttpRequest":
        """Append every parameter of a mapping, in iteration order."""
        if params:
            for name, value in params.items():
                self.query(name, value)
        return self

    def query_string(self, query: str) -> "HttpRequest":
        """Replace the whole query, encoding characters not allowed in it."""
        return self.query_string_encoded(quote(query, safe=_QUERY_SAFE))

    def query_string_encoded(self, query: str) -> "HttpRequest":
        """Replace the whole query with an already-encoded string."""
        self._query_parts = [part for part in query.lstrip("?").split("&") if part]
        return self

    # Headers

    def add_header(self, name: str, value: str) -> "HttpRequest":
        """Append a header, keeping any existing header of the same name."""
        self._headers.append((name, value))
        return self

    def add_headers(self, *headers: Mapping[str, str] | str) -> "HttpRequest":
        """Replace all headers.

        Accepts either a single mapping or alternating names and values:
        add_headers({"Accept": "text/html"}) or add_headers("Accept", "text/html").

        Raises:
            ValueError: If names and values do not pair up.
        """
        if len(headers) == 1 and isinstance(headers[0], Mapping):
            self._headers = list(headers[0].items())
            return self
        if len(headers) % 2 != 0 or not all(isinstance(h, str) for h in headers):
            msg = "Expected alternating header names and values"
            raise ValueError(msg)
        names_and_values: list[str] = list(headers)  # type: ignore[arg-type]
        self._headers = list(
            zip(names_and_values[::2], names_and_values[1::2], strict=True)
        )
        return self

    def set_header(self, name: str, value: str) -> "HttpRequest":
        """Replace every header of a name with a single value."""
        self.remove_header(name)
        self._headers.append((name, value))
        return self

    def remove_header(self, name: str) -> "HttpRequest":
        """Remove every header of a name (case-insensitive)."""
        lowered = name.lower()
        self._headers = [(n, v) for n, v in self._headers if n.lower() != lowered]
        return self

    def add_cookie(self, name: str, value: str) -> "HttpRequest":
        """Append a Cookie header for one cookie."""
        return self.add_header(HEADER_COOKIE, f"{name}={value}")

    def cache_control(self, value: str) -> "HttpRequest":
        """Set the Cache-Control header, e.g. "no-cache"."""
        return self.set_header(HEADER_CACHE_CONTROL, value)

    def user_agent(self, user_agent: str) -> "HttpRequest":
        """Override the User-Agent sent with this request."""
        self._user_agent = user_agent
        return self

    # Body

    def body(self, body: Body) -> "HttpRequest":
        """Attach a body, discarding any body set before."""
        self._body = body
        return self

    def body_string(self, text: str, media_type: str | None = None) -> "HttpRequest":
        """Attach a UTF-8 text body."""
        return self.body(RequestBody.of_text(text, media_type))

    def body_bytes(self, data: bytes, media_type: str | None = None) -> "HttpRequest":
        """Attach a raw bytes body."""
        return self.body(RequestBody(content=data, media_type=media_type))

    def body_json(self, obj: Any) -> "HttpRequest":
        """Attach a JSON body.

        Pydantic models are serialized with model_dump_json(); anything else
        goes through json.dumps.
        """
        if isinstance(obj, BaseModel):
            text = obj.model_dump_json()
        else:
            text = json.dumps(obj, ensure_ascii=False)
        return self.body_string(text, MEDIA_TYPE_JSON)

    def form_builder(self) -> FormBuilder:
        """Start a URL-encoded form body; build() attaches it."""
        return FormBuilder(self)

    def multipart_form_builder(self) -> MultipartFormBuilder:
        """Start a multipart/form-data body; build() attaches it."""
        return MultipartFormBuilder(self)

    # Transport

    def connect_timeout(self, timeout: TimeoutValue) -> "HttpRequest":
        """Set the per-attempt connect timeout (seconds or timedelta, 0 disables)."""
        self._connect_timeout = _to_seconds(timeout)
        return self

    def read_timeout(self, timeout: TimeoutValue) -> "HttpRequest":
        """Set the per-attempt read timeout (seconds or timedelta, 0 disables)."""
        self._read_timeout = _to_seconds(timeout)
        return self

    def write_timeout(self, timeout: TimeoutValue) -> "HttpRequest":
        """Set the per-attempt write timeout (seconds or timedelta, 0 disables)."""
        self._write_timeout = _to_seconds(timeout)
        return self

    def proxy(self, address: str | tuple[str, int]) -> "HttpRequest":
        """Route this request through an HTTP proxy.

        Args:
            address: "host:port", a (host, port) pair or a proxy URL.
        """
        self._proxy = _proxy_url(address)
        return self

    def proxy_selector(self, selector: ProxySelector) -> "HttpRequest":
        """Choose the proxy per URL; the selector returns a proxy URL or None."""
        self._proxy_selector = selector
        return self

    def proxy_authenticator(self, username: str, password: str) -> "HttpRequest":
        """Authenticate against the proxy with basic credentials."""
        self._proxy_auth = (username, password)
        return self

    def hostname_verifier(self, enabled: bool) -> "HttpRequest":
        """Enable or disable TLS hostname verification."""
        self._hostname_verification = enabled
        return self

    def ssl_socket_factory(
        self,
        ssl_context: ssl.SSLContext,
        trust_manager: TrustManager,
    ) -> "HttpRequest":
        """Use a TLS context with the given trust material.

        Both halves are required; the override is ignored unless the context
        and the trust manager are both set.
        """
        self._ssl_context = ssl_context
        self._trust_manager = trust_manager
        return self

    def authenticator(self, auth: httpx.Auth) -> "HttpRequest":
        """Authenticate with an httpx auth flow."""
        self._auth = auth
        return self

    def basic_auth(self, username: str, password: str) -> "HttpRequest":
        """Authenticate with HTTP basic credentials."""
        return self.authenticator(httpx.BasicAuth(username, password))

    def event_listener(self, listener: EventListener) -> "HttpRequest":
        """Receive call lifecycle events."""
        self._event_listener = listener
        return self

    def interceptor(
        self,
        interceptor: Interceptor | Callable[[Chain], httpx.Response],
    ) -> "HttpRequest":
        """Append a pipeline stage, run after the shared client's stages."""
        self._interceptors.append(as_interceptor(interceptor))
        return self

    def cookie_manager(self, cookie_jar: CookieJar) -> "HttpRequest":
        """Read and store cookies in a jar."""
        self._cookie_jar = cookie_jar
        return self

    def follow_redirects(self, follow: bool) -> "HttpRequest":
        """Enable or disable following 3xx responses."""
        self._follow_redirects = follow
        return self

    def follow_ssl_redirects(self, follow: bool) -> "HttpRequest":
        """Enable or disable redirects that switch between http and https."""
        self._follow_ssl_redirects = follow
        return self

    # Policies

    def retry(
        self,
        max_attempts: int = DEFAULT_RETRY_MAX_ATTEMPTS,
        sleep_millis: int = DEFAULT_RETRY_SLEEP_MILLIS,
    ) -> "HttpRequest":
        """Retry network-level failures.

        Args:
            max_attempts: Total attempts, at least 1.
            sleep_millis: Pause between attempts.

        Raises:
            pydantic.ValidationError: If a value is out of range.
        """
        self._retry_policy = RetryPolicy(
            max_attempts=max_attempts, sleep_millis=sleep_millis
        )
        return self

    def log(self, level: LogLevel = LogLevel.BODY) -> "HttpRequest":
        """Log this request.

        Any level but NONE takes precedence over the global logging level;
        NONE falls back to it.
        """
        self._log_level = level
        return self

    # Execution

    def build_call(self) -> Call:
        """Derive the transport and freeze the request into a Call.

        The context's current client is snapshotted here; replacing it
        afterwards does not affect the returned call.

        Returns:
            Call ready to execute or enqueue.
        """
        client = self._context.http_client.derive(self._overrides())

        stages: list[Interceptor] = []
        if self._retry_policy is not None:
            stages.append(RetryInterceptor(self._retry_policy))
        logging_stage = self._logging_interceptor()
        if logging_stage is not None:
            stages.append(logging_stage)
        if stages:
            client = client.with_interceptors(*stages)

        return client.new_call(self._build_request())

    def execute(self) -> HttpResponse:
        """Execute on the current thread.

        Returns:
            Response wrapper; network failures are carried in .error rather
            than raised.
        """
        call = self.build_call()
        try:
            response = call.execute()
        except NetworkError as e:
            return HttpResponse.failed(call.request, e)
        return HttpResponse(call.request, response=response)

    def async_call(self) -> AsyncCall:
        """Prepare execution on the dispatcher.

        Returns:
            AsyncCall to register callbacks on and submit with execute().
        """
        return AsyncCall(self.build_call())

    @staticmethod
    def set_http_client(http_client: HttpClient) -> None:
        """Replace the default client of the module default context."""
        get_default_context().set_http_client(http_client)

    @staticmethod
    def set_global_log(level: LogLevel) -> None:
        """Set the global log level of the module default context."""
        get_default_context().set_global_log(level)

    def _logging_interceptor(self) -> HttpLoggingInterceptor | None:
        if self._log_level is not None and self._log_level is not LogLevel.NONE:
            return HttpLoggingInterceptor(self._log_level)
        return self._context.global_logging_interceptor

    def _overrides(self) -> TransportOverrides:
        return TransportOverrides(
            connect_timeout=self._connect_timeout,
            read_timeout=self._read_timeout,
            write_timeout=self._write_timeout,
            proxy=self._proxy,
            proxy_selector=self._proxy_selector,
            proxy_auth=self._proxy_auth,
            hostname_verification=self._hostname_verification,
            ssl_context=self._ssl_context,
            trust_manager=self._trust_manager,
            auth=self._auth,
            event_listener=self._event_listener,
            interceptors=tuple(self._interceptors),
            cookie_jar=self._cookie_jar,
            follow_redirects=self._follow_redirects,
            follow_ssl_redirects=self._follow_ssl_redirects,
        )

    def _final_url(self) -> httpx.URL:
        if not self._query_parts:
            return self._base_url
        query = "&".join(self._query_parts)
        return self._base_url.copy_with(
            raw_path=self._base_url.raw_path + b"?" + query.encode("ascii")
        )

    def _build_request(self) -> httpx.Request:
        user_agent = self._user_agent or self._context.settings.user_agent
        headers = [
            (name, value)
            for name, value in self._headers
            if name.lower() != HEADER_USER_AGENT.lower()
        ]
        headers.append((HEADER_USER_AGENT, user_agent))

        body = self._body
        if body is None and self._method.requires_body:
            body = RequestBody.empty()

        kwargs: dict[str, Any] = {}
        if body is not None:
            if body.content_type is not None:
                headers = [
                    (name, value)
                    for name, value in headers
                    if name.lower() != HEADER_CONTENT_TYPE.lower()
                ]
                headers.append((HEADER_CONTENT_TYPE, body.content_type))
            kwargs = body.request_kwargs()

        return httpx.Request(
            self._method.value,
            self._final_url(),
            headers=headers,
            **kwargs,
        )

    def __repr__(self) -> str:
        return (
            f"HttpRequest({self._method.value} "
            f"{redact_url_credentials(str(self._final_url()))})"
        )
