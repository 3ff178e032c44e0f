"""Process-wide defaults: the shared client and the global logging stage.

Values are published by replacement under a lock and read without locking.
A request snapshots the context's client when its call is built, so a later
replacement never affects a call that already exists.
"""

from threading import Lock

import structlog

from fluent_http.client import HttpClient
from fluent_http.constants import COMPONENT_HTTP
from fluent_http.interceptors import HttpLoggingInterceptor
from fluent_http.models import LogLevel
from fluent_http.settings import HttpSettings, get_settings


logger = structlog.get_logger()


class HttpContext:
    """Holder of the default HttpClient and the global logging interceptor.

    Both are created lazily from settings on first read unless set
    explicitly.
    """

    def __init__(
        self,
        settings: HttpSettings | None = None,
        http_client: HttpClient | None = None,
    ) -> None:
        """Initialize the context.

        Args:
            settings: Settings for the lazy default client and global log
                level; loaded from the environment when omitted.
            http_client: Client to publish immediately.
        """
        self._settings = settings
        self._http_client = http_client
        self._global_logging: HttpLoggingInterceptor | None = None
        self._global_logging_resolved = False
        self._lock = Lock()

    @property
    def settings(self) -> HttpSettings:
        """Get the settings, loading them on first access."""
        if self._settings is None:
            with self._lock:
                if self._settings is None:
                    self._settings = get_settings()
        return self._settings

    @property
    def http_client(self) -> HttpClient:
        """Get the published default client, creating it on first access."""
        client = self._http_client
        if client is not None:
            return client
        settings = self.settings
        with self._lock:
            if self._http_client is None:
                self._http_client = HttpClient.from_settings(settings)
            return self._http_client

    @property
    def global_logging_interceptor(self) -> HttpLoggingInterceptor | None:
        """Get the global logging stage, or None when global logging is off."""
        if self._global_logging_resolved:
            return self._global_logging
        level = self.settings.global_log_level
        with self._lock:
            if not self._global_logging_resolved:
                self._global_logging = _logging_interceptor_for(level)
                self._global_logging_resolved = True
            return self._global_logging

    def set_http_client(self, http_client: HttpClient) -> None:
        """Publish a new default client.

        Args:
            http_client: Client used by requests whose calls are built from
                now on.
        """
        with self._lock:
            self._http_client = http_client
        logger.debug("default_client_replaced", component=COMPONENT_HTTP)

    def set_global_log(self, level: LogLevel) -> None:
        """Publish the global logging level; NONE turns global logging off.

        Args:
            level: Verbosity applied to requests without their own log level.
        """
        interceptor = _logging_interceptor_for(level)
        with self._lock:
            self._global_logging = interceptor
            self._global_logging_resolved = True
        logger.debug(
            "global_log_level_set", component=COMPONENT_HTTP, level=level.value
        )


def _logging_interceptor_for(level: LogLevel) -> HttpLoggingInterceptor | None:
    if level is LogLevel.NONE:
        return None
    return HttpLoggingInterceptor(level)


_default_context = HttpContext()


def get_default_context() -> HttpContext:
    """Get the module default context used when a request has none."""
    return _default_context


def set_http_client(http_client: HttpClient) -> None:
    """Replace the default client of the module default context."""
    _default_context.set_http_client(http_client)


def set_global_log(level: LogLevel) -> None:
    """Set the global log level of the module default context."""
    _default_context.set_global_log(level)
