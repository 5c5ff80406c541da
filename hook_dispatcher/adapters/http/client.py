"""httpx-backed client used to deliver webhook requests."""

from __future__ import annotations

import httpx

from hook_dispatcher.core.config import HttpSettings


class HttpForwardClient:
    """Thin wrapper over ``httpx.Client``.

    Requests are sent exactly as built by the caller: the client adds no
    default headers of its own, and it does not classify status codes.
    Connection pooling, TLS and timeouts live here.
    """

    def __init__(
        self,
        timeout_seconds: float = 10.0,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            timeout_seconds: Timeout applied to connect/read/write/pool.
            transport: Optional transport override (e.g., httpx.MockTransport).
        """
        self.client = httpx.Client(
            timeout=timeout_seconds,
            transport=transport,
            follow_redirects=False,
        )

    def forward_request(self, request: httpx.Request) -> httpx.Response:
        """Send a prepared request.

        Args:
            request: Fully built request.

        Returns:
            httpx.Response with the body already read.

        Raises:
            httpx.HTTPError: If the request could not be delivered.
        """
        return self.client.send(request)

    def close(self) -> None:
        self.client.close()


def create_http_client(settings: HttpSettings) -> HttpForwardClient:
    """Build the HTTP client from settings."""
    return HttpForwardClient(timeout_seconds=settings.timeout_seconds)
