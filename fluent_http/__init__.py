"""Fluent HTTP request builder on top of httpx.

This package provides:
- A chainable request builder with per-request transport overrides
- Retry of network-level failures with a fixed pause between attempts
- An ordered interceptor pipeline with structured request logging
- Synchronous and dispatcher-backed asynchronous execution
- A response wrapper that carries network failures instead of raising
"""

from fluent_http.body import (
    FormBody,
    FormBuilder,
    MultipartBody,
    MultipartFormBuilder,
    RequestBody,
)
from fluent_http.call import AsyncCall, Call, Chain
from fluent_http.client import (
    Dispatcher,
    HttpClient,
    TransportConfig,
    TransportOverrides,
)
from fluent_http.constants import DEFAULT_USER_AGENT
from fluent_http.context import (
    HttpContext,
    get_default_context,
    set_global_log,
    set_http_client,
)
from fluent_http.errors import (
    ApplicationError,
    CallCanceledError,
    HttpError,
    HttpErrorClass,
    InvalidUrlError,
    NetworkError,
)
from fluent_http.events import EventListener
from fluent_http.interceptors import (
    FunctionInterceptor,
    HttpLoggingInterceptor,
    Interceptor,
)
from fluent_http.metrics import HttpMetrics
from fluent_http.models import HttpMethod, LogLevel, RetryPolicy
from fluent_http.request import HttpRequest
from fluent_http.response import HttpResponse
from fluent_http.retry import RetryInterceptor
from fluent_http.state_machine import RetryState, RetryStateMachine
from fluent_http.tls import TrustManager, create_ssl_context


__all__ = [
    # Builder
    "HttpRequest",
    "HttpResponse",
    # Bodies
    "RequestBody",
    "FormBody",
    "FormBuilder",
    "MultipartBody",
    "MultipartFormBuilder",
    # Transport
    "HttpClient",
    "TransportConfig",
    "TransportOverrides",
    "Dispatcher",
    "Call",
    "AsyncCall",
    "Chain",
    # Context
    "HttpContext",
    "get_default_context",
    "set_http_client",
    "set_global_log",
    # Interceptors
    "Interceptor",
    "FunctionInterceptor",
    "HttpLoggingInterceptor",
    "RetryInterceptor",
    "EventListener",
    # Models
    "HttpMethod",
    "LogLevel",
    "RetryPolicy",
    "RetryState",
    "RetryStateMachine",
    # Errors
    "HttpError",
    "HttpErrorClass",
    "InvalidUrlError",
    "NetworkError",
    "CallCanceledError",
    "ApplicationError",
    # TLS
    "TrustManager",
    "create_ssl_context",
    # Metrics
    "HttpMetrics",
    # Constants
    "DEFAULT_USER_AGENT",
]
