"""URL validation helpers shared by configuration and forwarding."""

from __future__ import annotations

import httpx

ALLOWED_SCHEMES = ("http", "https")


def is_well_formed_url(value: str) -> bool:
    """Check that a value is an absolute http(s) URL with a host.

    Args:
        value: Candidate URL string.

    Returns:
        True if the URL can be used as a webhook endpoint.
    """
    if not value or not isinstance(value, str):
        return False
    try:
        url = httpx.URL(value)
    except (httpx.InvalidURL, TypeError, ValueError):
        return False
    return url.scheme in ALLOWED_SCHEMES and bool(url.host)
