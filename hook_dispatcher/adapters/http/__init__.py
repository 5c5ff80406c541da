"""HTTP adapter layer - owns the outbound client and its timeouts."""

from hook_dispatcher.adapters.http.client import HttpForwardClient, create_http_client

__all__ = [
    "HttpForwardClient",
    "create_http_client",
]
