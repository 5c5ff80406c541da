"""Webhook forwarding.

Turns a validated message into an HTTP POST against the configured endpoint.
Only failures to build or deliver the request are errors; whatever status the
endpoint answers with is the endpoint's business.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Union

import httpx

from hook_dispatcher.adapters.http.client import HttpForwardClient
from hook_dispatcher.core.errors import (
    REQUEST_CONSTRUCTION_ERROR,
    TRANSPORT_ERROR,
    ForwardAppError,
)
from hook_dispatcher.utils.url_validators import is_well_formed_url

logger = logging.getLogger(__name__)

HeaderInput = Union[Mapping[str, str], Iterable[tuple[str, str]]]


def _header_pairs(headers: HeaderInput) -> list[tuple[str, str]]:
    """Flatten headers into ordered pairs, keeping repeated names."""
    if isinstance(headers, Mapping):
        return list(headers.items())
    return list(headers)


class Forwarder:
    """POST message payloads to a fixed endpoint."""

    def __init__(self, client: HttpForwardClient, endpoint: str) -> None:
        self.client = client
        self.endpoint = endpoint

    def build_request(self, payload: bytes, headers: HeaderInput) -> httpx.Request:
        """Build the outbound request.

        Every inbound header is copied as-is; a name given more than once is
        sent once per value.

        Raises:
            ForwardAppError: ``request_construction_error`` if the endpoint is
                not an absolute http(s) URL or a header cannot be encoded.
        """
        if not is_well_formed_url(self.endpoint):
            raise ForwardAppError(
                code=REQUEST_CONSTRUCTION_ERROR,
                message=f"Invalid endpoint URL: {self.endpoint!r}",
                details={"endpoint": self.endpoint},
            )

        try:
            return httpx.Request(
                "POST",
                self.endpoint,
                content=payload,
                headers=httpx.Headers(_header_pairs(headers), encoding="utf-8"),
            )
        except (httpx.InvalidURL, UnicodeEncodeError, TypeError, ValueError) as exc:
            raise ForwardAppError(
                code=REQUEST_CONSTRUCTION_ERROR,
                message=f"Cannot build webhook request: {exc}",
                details={"endpoint": self.endpoint, "error_type": type(exc).__name__},
            ) from exc

    def forward(self, payload: bytes, headers: HeaderInput) -> httpx.Response:
        """Send one message to the endpoint.

        Args:
            payload: Request body.
            headers: Headers to copy onto the request.

        Returns:
            The endpoint's response, whatever its status.

        Raises:
            ForwardAppError: If the request cannot be built or delivered.
        """
        request = self.build_request(payload, headers)

        try:
            response = self.client.forward_request(request)
        except httpx.HTTPError as exc:
            raise ForwardAppError(
                code=TRANSPORT_ERROR,
                message=f"Webhook delivery failed: {exc}",
                details={"endpoint": self.endpoint, "error_type": type(exc).__name__},
            ) from exc

        logger.debug(
            "forward.completed",
            extra={"status_code": response.status_code, "payload_size": len(payload)},
        )
        return response
