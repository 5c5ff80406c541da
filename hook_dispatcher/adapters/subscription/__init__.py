"""Subscription adapter layer - abstracts over the message broker."""

from hook_dispatcher.adapters.subscription.base import AbstractSubscriber, MessageHandler
from hook_dispatcher.adapters.subscription.factory import create_subscriber
from hook_dispatcher.adapters.subscription.kafka import KafkaSubscriber

__all__ = [
    "AbstractSubscriber",
    "KafkaSubscriber",
    "MessageHandler",
    "create_subscriber",
]
