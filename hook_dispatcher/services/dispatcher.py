"""Message dispatch pipeline.

Every delivered message goes through validation, forwarding and rate
accounting. Forwarding failures are logged and swallowed here on purpose:
broker acknowledgment must not depend on the webhook endpoint being up, so
the subscriber only ever hears about messages that failed validation.
"""

from __future__ import annotations

import logging
import threading
from typing import Mapping

from hook_dispatcher.adapters.rate_limit.base import AbstractRateLimiter
from hook_dispatcher.adapters.subscription.base import AbstractSubscriber
from hook_dispatcher.core.errors import ForwardAppError, ValidationAppError
from hook_dispatcher.services.forwarder import Forwarder
from hook_dispatcher.services.message_validator import validate_message

logger = logging.getLogger(__name__)


class Dispatcher:
    """Relay messages from one topic to the webhook endpoint.

    Attributes:
        topic: Topic the dispatcher subscribes to.
        header_name: Identifying header checked on each message.
        expected_value: Value the identifying header must carry.
    """

    def __init__(
        self,
        *,
        topic: str,
        header_name: str,
        expected_value: str,
        forwarder: Forwarder,
        rate_limiter: AbstractRateLimiter,
        subscriber: AbstractSubscriber,
    ) -> None:
        self.topic = topic
        self.header_name = header_name
        self.expected_value = expected_value
        self.forwarder = forwarder
        self.rate_limiter = rate_limiter
        self.subscriber = subscriber

    def handle(self, payload: bytes, headers: Mapping[str, str]) -> None:
        """Process one delivered message.

        Args:
            payload: Raw message body.
            headers: Message headers.

        Raises:
            ValidationAppError: If the message fails validation; nothing is
                forwarded in that case.
        """
        try:
            validate_message(
                payload,
                headers,
                header_name=self.header_name,
                expected_value=self.expected_value,
            )
        except ValidationAppError as exc:
            logger.warning(
                "dispatch.invalid_message",
                extra={"error_code": exc.code, "payload_size": len(payload)},
            )
            raise

        try:
            self.forwarder.forward(payload, headers)
        except ForwardAppError as exc:
            logger.error(
                "dispatch.forward_failed",
                extra={"error_code": exc.code, "error_message": exc.message},
            )
            return

        self.rate_limiter.record_sent()

    def run(self, cancel_event: threading.Event) -> None:
        """Subscribe and block until cancellation.

        Args:
            cancel_event: Set once to request shutdown.

        Raises:
            SubscriptionSetupAppError: If the subscription cannot be set up.
        """
        self.subscriber.subscribe({self.topic: self.handle})
        logger.info("dispatcher.running", extra={"topic": self.topic})

        try:
            cancel_event.wait()
        finally:
            self.subscriber.close()

        logger.info("dispatcher.stopped", extra={"topic": self.topic})
