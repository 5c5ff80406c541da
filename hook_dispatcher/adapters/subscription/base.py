"""Subscription interfaces.

The dispatcher registers plain callables here and never touches the broker
client directly, so the transport can be swapped without touching the core.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Mapping

# Raising from a handler marks the message as rejected; returning means consumed.
MessageHandler = Callable[[bytes, dict[str, str]], None]


class AbstractSubscriber(ABC):
    """Interface for topic subscribers."""

    @abstractmethod
    def subscribe(self, handlers: Mapping[str, MessageHandler]) -> None:
        """Start delivering messages of each topic to its handler.

        Args:
            handlers: Mapping of topic name to handler.

        Raises:
            SubscriptionSetupAppError: If the subscription cannot be established.
        """
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Stop delivering and release broker resources.

        Handlers already running are allowed to finish.
        """
        raise NotImplementedError
