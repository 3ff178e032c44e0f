"""HTTP constants for the request layer.

Centralizes defaults shared by the builder, the transport and the response wrapper.
"""

# Default User-Agent sent with every request unless overridden
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/74.0.3729.169 Safari/537.36"
)

# HTTP Status Code Ranges
HTTP_STATUS_OK_MIN = 200
HTTP_STATUS_OK_MAX = 300
HTTP_STATUS_BAD_REQUEST = 400
HTTP_STATUS_SERVER_ERROR_MIN = 500
HTTP_STATUS_SERVER_ERROR_MAX = 600

# Transport defaults (seconds)
DEFAULT_CONNECT_TIMEOUT_SECONDS = 10.0
DEFAULT_READ_TIMEOUT_SECONDS = 10.0
DEFAULT_WRITE_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_REDIRECTS = 20

# Dispatcher pool size for asynchronous calls
DEFAULT_DISPATCHER_MAX_WORKERS = 64

# Retry defaults
DEFAULT_RETRY_MAX_ATTEMPTS = 3
DEFAULT_RETRY_SLEEP_MILLIS = 0

# Logging interceptor body preview cap
MAX_LOGGED_BODY_BYTES = 4096

# Header names
HEADER_USER_AGENT = "User-Agent"
HEADER_CONTENT_TYPE = "Content-Type"
HEADER_COOKIE = "Cookie"
HEADER_CACHE_CONTROL = "Cache-Control"

# Media types
MEDIA_TYPE_JSON = "application/json; charset=utf-8"
MEDIA_TYPE_FORM = "application/x-www-form-urlencoded"

# Schemes accepted at construction
VALID_URL_SCHEMES = frozenset({"http", "https"})

COMPONENT_HTTP = "http"
