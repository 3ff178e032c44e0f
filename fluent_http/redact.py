"""Redaction of credentials in logged requests and responses."""

import re
from collections.abc import Iterable


# Header names (lowercase) whose values never reach the logs
SENSITIVE_HEADERS = frozenset(
    {
        "authorization",
        "proxy-authorization",
        "cookie",
        "set-cookie",
        "x-api-key",
        "x-auth-token",
    }
)

REDACTED_VALUE = "[REDACTED]"

# scheme://user:password@ prefix of an absolute URL
_URL_CREDENTIALS_PATTERN = re.compile(r"(https?://)([^:/@]+):([^@/]+)@")


def is_sensitive_header(header_name: str) -> bool:
    """Tell whether a header carries credentials, ignoring case."""
    return header_name.lower() in SENSITIVE_HEADERS


def redact_headers(headers: Iterable[tuple[str, str]]) -> list[tuple[str, str]]:
    """Mask credential-bearing header values.

    Works on name/value pairs so repeated headers (several Cookie or
    Set-Cookie lines) keep their position in the output.

    Args:
        headers: Header pairs as sent or received.

    Returns:
        Pairs in the same order, with sensitive values replaced.
    """
    return [
        (name, REDACTED_VALUE if is_sensitive_header(name) else value)
        for name, value in headers
    ]


def redact_url_credentials(url: str) -> str:
    """Mask the user:password part of a URL, e.g. https://u:p@host/path."""
    return _URL_CREDENTIALS_PATTERN.sub(rf"\1{REDACTED_VALUE}:{REDACTED_VALUE}@", url)
