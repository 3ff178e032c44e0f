"""Transport configuration wrapping httpx.

An HttpClient is an immutable bundle of transport settings plus a shared
dispatcher. Per-request overrides derive a new HttpClient; the original is
never mutated, so it can be shared freely between threads.
"""

import ssl
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, fields, replace
from http.cookiejar import CookieJar
from threading import Lock
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
import structlog

from fluent_http.call import Call
from fluent_http.constants import (
    COMPONENT_HTTP,
    DEFAULT_CONNECT_TIMEOUT_SECONDS,
    DEFAULT_DISPATCHER_MAX_WORKERS,
    DEFAULT_MAX_REDIRECTS,
    DEFAULT_READ_TIMEOUT_SECONDS,
    DEFAULT_WRITE_TIMEOUT_SECONDS,
)
from fluent_http.events import EventListener
from fluent_http.interceptors import Interceptor
from fluent_http.tls import TrustManager, copy_ssl_context, create_ssl_context


if TYPE_CHECKING:
    from fluent_http.settings import HttpSettings


logger = structlog.get_logger()

T = TypeVar("T")

ProxySelector = Callable[[httpx.URL], str | None]


def _timeout_value(seconds: float | None) -> float | None:
    """Map a configured timeout onto httpx; 0 or None disables it."""
    if not seconds:
        return None
    return seconds


@dataclass(frozen=True)
class TransportConfig:
    """Complete transport settings for one HttpClient.

    Attributes:
        connect_timeout: Per-attempt connect deadline in seconds (0 disables).
        read_timeout: Per-attempt read deadline in seconds (0 disables).
        write_timeout: Per-attempt write deadline in seconds (0 disables).
        proxy: Proxy URL applied to every request.
        proxy_selector: Chooses a proxy URL per request URL.
        proxy_auth: Username/password sent to the proxy.
        hostname_verification: Whether TLS hostnames are checked.
        ssl_context: TLS context, honored only together with trust_manager.
        trust_manager: Trust material loaded into ssl_context.
        auth: httpx authentication flow.
        event_listener: Receives call lifecycle events.
        interceptors: Ordered pipeline stages.
        cookie_jar: Jar read from and written to by calls.
        follow_redirects: Whether 3xx responses are followed.
        follow_ssl_redirects: Whether redirects may switch between http and https.
        max_redirects: Redirect limit per call attempt.
        transport: httpx transport to send with instead of the default pool.
    """

    connect_timeout: float | None = DEFAULT_CONNECT_TIMEOUT_SECONDS
    read_timeout: float | None = DEFAULT_READ_TIMEOUT_SECONDS
    write_timeout: float | None = DEFAULT_WRITE_TIMEOUT_SECONDS
    proxy: str | None = None
    proxy_selector: ProxySelector | None = None
    proxy_auth: tuple[str, str] | None = None
    hostname_verification: bool = True
    ssl_context: ssl.SSLContext | None = None
    trust_manager: TrustManager | None = None
    auth: httpx.Auth | None = None
    event_listener: EventListener | None = None
    interceptors: tuple[Interceptor, ...] = ()
    cookie_jar: CookieJar | None = None
    follow_redirects: bool = True
    follow_ssl_redirects: bool = True
    max_redirects: int = DEFAULT_MAX_REDIRECTS
    transport: httpx.BaseTransport | None = None


@dataclass(frozen=True)
class TransportOverrides:
    """Per-request overrides; None means inherit from the shared client."""

    connect_timeout: float | None = None
    read_timeout: float | None = None
    write_timeout: float | None = None
    proxy: str | None = None
    proxy_selector: ProxySelector | None = None
    proxy_auth: tuple[str, str] | None = None
    hostname_verification: bool | None = None
    ssl_context: ssl.SSLContext | None = None
    trust_manager: TrustManager | None = None
    auth: httpx.Auth | None = None
    event_listener: EventListener | None = None
    interceptors: tuple[Interceptor, ...] = ()
    cookie_jar: CookieJar | None = None
    follow_redirects: bool | None = None
    follow_ssl_redirects: bool | None = None


# Fields that are not copied one-to-one by HttpClient.derive()
_PAIRED_FIELDS = frozenset({"interceptors", "ssl_context", "trust_manager"})


class Dispatcher:
    """Shared worker pool that runs asynchronous calls.

    The executor is created on first use and shared by a client and every
    client derived from it.
    """

    def __init__(self, max_workers: int = DEFAULT_DISPATCHER_MAX_WORKERS) -> None:
        self._max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None
        self._lock = Lock()

    @property
    def max_workers(self) -> int:
        """Get the worker pool size."""
        return self._max_workers

    def submit(self, fn: Callable[..., T], *args: Any) -> "Future[T]":
        """Run a callable on a worker thread.

        Args:
            fn: Callable to run.
            *args: Positional arguments for fn.

        Returns:
            Future tracking the callable.
        """
        return self._get_executor().submit(fn, *args)

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker pool; a later submit starts a new one."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            with self._lock:
                if self._executor is None:
                    self._executor = ThreadPoolExecutor(
                        max_workers=self._max_workers,
                        thread_name_prefix="fluent-http-dispatcher",
                    )
        return self._executor


class HttpClient:
    """Immutable transport settings plus the dispatcher for async calls."""

    def __init__(
        self,
        config: TransportConfig | None = None,
        dispatcher: Dispatcher | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Transport settings; defaults apply when omitted.
            dispatcher: Worker pool for async calls; a new one when omitted.
        """
        self._config = config or TransportConfig()
        self._dispatcher = dispatcher or Dispatcher()

    @classmethod
    def from_settings(cls, settings: "HttpSettings") -> "HttpClient":
        """Create a client from application settings.

        Args:
            settings: Loaded settings.

        Returns:
            New HttpClient.
        """
        config = TransportConfig(
            connect_timeout=settings.connect_timeout_seconds,
            read_timeout=settings.read_timeout_seconds,
            write_timeout=settings.write_timeout_seconds,
            follow_redirects=settings.follow_redirects,
            follow_ssl_redirects=settings.follow_ssl_redirects,
            max_redirects=settings.max_redirects,
        )
        return cls(config, Dispatcher(settings.dispatcher_max_workers))

    @property
    def config(self) -> TransportConfig:
        """Get the transport settings."""
        return self._config

    @property
    def dispatcher(self) -> Dispatcher:
        """Get the shared dispatcher."""
        return self._dispatcher

    def derive(self, overrides: TransportOverrides) -> "HttpClient":
        """Create a client with per-request overrides applied.

        Unset overrides inherit from this client. Interceptors are appended
        after this client's own. The TLS context is only taken when a trust
        manager is given with it.

        Args:
            overrides: Values to override.

        Returns:
            New HttpClient sharing this client's dispatcher.
        """
        changes: dict[str, Any] = {}
        for override in fields(TransportOverrides):
            if override.name in _PAIRED_FIELDS:
                continue
            value = getattr(overrides, override.name)
            if value is not None:
                changes[override.name] = value

        if overrides.ssl_context is not None and overrides.trust_manager is not None:
            changes["ssl_context"] = overrides.ssl_context
            changes["trust_manager"] = overrides.trust_manager
        elif overrides.ssl_context is not None or overrides.trust_manager is not None:
            logger.warning(
                "tls_override_ignored",
                component=COMPONENT_HTTP,
                has_ssl_context=overrides.ssl_context is not None,
                has_trust_manager=overrides.trust_manager is not None,
            )

        if overrides.interceptors:
            changes["interceptors"] = self._config.interceptors + overrides.interceptors

        return HttpClient(replace(self._config, **changes), self._dispatcher)

    def with_interceptors(self, *interceptors: Interceptor) -> "HttpClient":
        """Create a client with extra interceptors appended."""
        return HttpClient(
            replace(
                self._config, interceptors=self._config.interceptors + interceptors
            ),
            self._dispatcher,
        )

    def new_call(self, request: httpx.Request) -> Call:
        """Prepare a call for a finalized request.

        Args:
            request: Request to execute.

        Returns:
            Call bound to this client.
        """
        return Call(self, request)

    def select_proxy(self, url: httpx.URL) -> str | None:
        """Choose the proxy for a URL; an explicit proxy wins over the selector."""
        if self._config.proxy:
            return self._config.proxy
        if self._config.proxy_selector is not None:
            return self._config.proxy_selector(url)
        return None

    def ssl_verify(self) -> ssl.SSLContext | bool:
        """Build the httpx verify argument from the TLS settings.

        A TLS pair is used as given when hostnames are verified. Turning
        hostname verification off works on a copy, so the context the
        caller handed in keeps checking hostnames for its other users.
        """
        config = self._config
        if config.ssl_context is not None and config.trust_manager is not None:
            if config.hostname_verification:
                return config.trust_manager.apply(config.ssl_context)
            context = copy_ssl_context(config.ssl_context, check_hostname=False)
            return config.trust_manager.apply(context)
        if not config.hostname_verification:
            return create_ssl_context(check_hostname=False)
        return True

    def timeout(self) -> httpx.Timeout:
        """Build the per-attempt httpx timeout."""
        config = self._config
        return httpx.Timeout(
            connect=_timeout_value(config.connect_timeout),
            read=_timeout_value(config.read_timeout),
            write=_timeout_value(config.write_timeout),
            pool=_timeout_value(config.connect_timeout),
        )

    def open(self, url: httpx.URL) -> httpx.Client:
        """Open an httpx client configured for a request URL.

        Redirects are disabled on the httpx client; the call follows them
        itself so the scheme-change policy can be applied.

        Args:
            url: URL of the request, used for proxy selection.

        Returns:
            New httpx.Client; the caller closes it.
        """
        config = self._config
        kwargs: dict[str, Any] = {
            "timeout": self.timeout(),
            "follow_redirects": False,
            "max_redirects": config.max_redirects,
            "verify": self.ssl_verify(),
        }
        proxy = self.select_proxy(url)
        if proxy:
            kwargs["proxy"] = httpx.Proxy(proxy, auth=config.proxy_auth)
        if config.auth is not None:
            kwargs["auth"] = config.auth
        if config.cookie_jar is not None:
            kwargs["cookies"] = config.cookie_jar
        if config.event_listener is not None:
            kwargs["event_hooks"] = config.event_listener.event_hooks()
        if config.transport is not None:
            kwargs["transport"] = config.transport
        return httpx.Client(**kwargs)
