"""Factory pattern for creating subscriber instances."""

from hook_dispatcher.adapters.subscription.base import AbstractSubscriber
from hook_dispatcher.adapters.subscription.kafka import KafkaSubscriber
from hook_dispatcher.core.config import Settings
from hook_dispatcher.core.errors import INVALID_CONFIGURATION, ValidationAppError


def create_subscriber(settings: Settings) -> AbstractSubscriber:
    """Factory function to instantiate the subscriber for the configured provider.

    Args:
        settings: Loaded application settings.

    Returns:
        AbstractSubscriber: Configured, not yet subscribed, subscriber.

    Raises:
        ValidationAppError: If the provider is unknown.
    """
    provider = settings.kafka.provider.lower()

    if provider == "kafka":
        return KafkaSubscriber(
            settings.kafka.to_consumer_config(settings.log.component),
            workers=settings.kafka.workers,
            poll_timeout_seconds=settings.kafka.poll_timeout_seconds,
            setup_timeout_seconds=settings.kafka.setup_timeout_seconds,
        )

    raise ValidationAppError(
        code=INVALID_CONFIGURATION,
        message=f"Unknown subscription provider: '{provider}'. Supported providers: kafka",
    )
