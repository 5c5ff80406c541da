"""Inbound message checks run before anything is forwarded."""

from __future__ import annotations

from typing import Mapping

from hook_dispatcher.core.errors import (
    EMPTY_PAYLOAD,
    MISSING_OR_INVALID_HEADER,
    ValidationAppError,
)


def validate_message(
    payload: bytes,
    headers: Mapping[str, str],
    *,
    header_name: str,
    expected_value: str,
) -> None:
    """Check that a message comes from the expected producer and carries data.

    The header lookup is exact: same name, same case, same value.

    Args:
        payload: Raw message body.
        headers: Message headers.
        header_name: Identifying header to check.
        expected_value: Value the identifying header must carry.

    Raises:
        ValidationAppError: ``missing_or_invalid_header`` if the headers are
            empty or the identifying header does not match, ``empty_payload``
            if the body is empty.
    """
    if not headers or headers.get(header_name) != expected_value:
        raise ValidationAppError(
            code=MISSING_OR_INVALID_HEADER,
            message="unexpected message: invalid header",
            details={"header_name": header_name},
        )

    if not payload:
        raise ValidationAppError(
            code=EMPTY_PAYLOAD,
            message="unexpected message: the payload is empty",
            details={"payload_size": 0},
        )
