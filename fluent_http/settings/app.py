"""Request layer settings powered by Pydantic BaseSettings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from fluent_http.constants import (
    DEFAULT_CONNECT_TIMEOUT_SECONDS,
    DEFAULT_DISPATCHER_MAX_WORKERS,
    DEFAULT_MAX_REDIRECTS,
    DEFAULT_READ_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    DEFAULT_WRITE_TIMEOUT_SECONDS,
)
from fluent_http.models import LogLevel


class HttpSettings(BaseSettings):
    """Environment configuration for the default client.

    Every field can be set with a FLUENT_HTTP_ prefixed variable, e.g.
    FLUENT_HTTP_READ_TIMEOUT_SECONDS=30.
    """

    model_config = SettingsConfigDict(
        env_prefix="FLUENT_HTTP_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    user_agent: str = DEFAULT_USER_AGENT
    connect_timeout_seconds: float = Field(
        default=DEFAULT_CONNECT_TIMEOUT_SECONDS, ge=0
    )
    read_timeout_seconds: float = Field(default=DEFAULT_READ_TIMEOUT_SECONDS, ge=0)
    write_timeout_seconds: float = Field(default=DEFAULT_WRITE_TIMEOUT_SECONDS, ge=0)
    follow_redirects: bool = True
    follow_ssl_redirects: bool = True
    max_redirects: int = Field(default=DEFAULT_MAX_REDIRECTS, ge=0)
    dispatcher_max_workers: int = Field(default=DEFAULT_DISPATCHER_MAX_WORKERS, ge=1)
    global_log_level: LogLevel = LogLevel.NONE


def get_settings() -> HttpSettings:
    """Get a settings instance."""
    return HttpSettings()
