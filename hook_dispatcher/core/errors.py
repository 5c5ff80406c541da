"""Application-level exception types.

This module defines the domain errors raised across services/adapters, so the
dispatch pipeline can decide consistently what is dropped, logged or fatal.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability.

    Fields are optional; each error only fills what is relevant to it.
    """

    code: str
    message: str
    hint: str
    header_name: str
    payload_size: int
    endpoint: str
    topic: str
    config_file: str
    error_type: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when an inbound message or the startup configuration is invalid."""


class ForwardAppError(AppError):
    """Raised when the outbound webhook request cannot be built or sent."""


class ConfigReadAppError(AppError):
    """Raised when the live configuration cannot be read."""


class SubscriptionSetupAppError(AppError):
    """Raised when the topic subscription cannot be established."""


MISSING_OR_INVALID_HEADER = "missing_or_invalid_header"
EMPTY_PAYLOAD = "empty_payload"
INVALID_CONFIGURATION = "invalid_configuration"
REQUEST_CONSTRUCTION_ERROR = "request_construction_error"
TRANSPORT_ERROR = "transport_error"
CONFIG_READ_ERROR = "config_read_error"
SUBSCRIPTION_SETUP_ERROR = "subscription_setup_error"
