"""Call lifecycle listener."""

import httpx

from fluent_http.errors import NetworkError


class EventListener:
    """Receives lifecycle events for calls.

    Subclass and override the hooks of interest; every hook is a no-op by
    default. request_sent and response_received fire once per network
    exchange (including redirects and retries) through httpx event hooks,
    the call_* hooks fire once per call.
    """

    def call_start(self, request: httpx.Request) -> None:
        """Called before the interceptor chain runs."""

    def request_sent(self, request: httpx.Request) -> None:
        """Called right before httpx sends a request on the wire."""

    def response_received(self, response: httpx.Response) -> None:
        """Called when httpx receives response headers."""

    def call_end(self, request: httpx.Request, response: httpx.Response) -> None:
        """Called when the call completes with a response."""

    def call_failed(self, request: httpx.Request, error: NetworkError) -> None:
        """Called when the call ends with a network failure."""

    def event_hooks(self) -> dict[str, list]:
        """Build httpx event hooks routing to this listener.

        Returns:
            Mapping suitable for httpx.Client(event_hooks=...).
        """
        return {
            "request": [self.request_sent],
            "response": [self.response_received],
        }
