"""Kafka subscriber built on confluent-kafka.

Each worker thread owns one ``Consumer`` in the same consumer group (a
librdkafka consumer must not be shared between threads), so handlers can run
concurrently up to the number of workers. Offsets are auto-committed; a
handler error is logged and the message counts as consumed.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable, Mapping

from confluent_kafka import Consumer, KafkaError, KafkaException, Message

from hook_dispatcher.adapters.subscription.base import AbstractSubscriber, MessageHandler
from hook_dispatcher.core.errors import (
    SUBSCRIPTION_SETUP_ERROR,
    AppError,
    SubscriptionSetupAppError,
)
from hook_dispatcher.core.logging import clear_message_context, set_message_context

logger = logging.getLogger(__name__)


def decode_headers(raw_headers: Iterable[tuple[str, bytes | None]] | None) -> dict[str, str]:
    """Convert Kafka record headers into a string map.

    Args:
        raw_headers: Header pairs as returned by ``Message.headers()``.

    Returns:
        Dict of header name to UTF-8 decoded value; for repeated names the
        last value wins.
    """
    headers: dict[str, str] = {}
    for name, value in raw_headers or ():
        if value is None:
            headers[name] = ""
        elif isinstance(value, bytes):
            headers[name] = value.decode("utf-8", errors="replace")
        else:
            headers[name] = str(value)
    return headers


class KafkaSubscriber(AbstractSubscriber):
    """Consume topics with a pool of confluent-kafka consumers."""

    def __init__(
        self,
        consumer_config: Mapping[str, Any],
        *,
        workers: int = 1,
        poll_timeout_seconds: float = 1.0,
        setup_timeout_seconds: float = 10.0,
        consumer_factory: Callable[[dict[str, Any]], Consumer] = Consumer,
    ) -> None:
        """Initialize the subscriber.

        Args:
            consumer_config: librdkafka configuration shared by all consumers.
            workers: Number of consumer threads.
            poll_timeout_seconds: How long one poll blocks before re-checking
                for shutdown.
            setup_timeout_seconds: Timeout of the topic metadata lookup.
            consumer_factory: Builds a consumer from a config dict.

        Raises:
            ValueError: If workers is less than 1.
        """
        if workers < 1:
            raise ValueError("workers must be >= 1")

        self._consumer_config = dict(consumer_config)
        self._workers = workers
        self._poll_timeout = poll_timeout_seconds
        self._setup_timeout = setup_timeout_seconds
        self._consumer_factory = consumer_factory
        self._stop = threading.Event()
        self._consumers: list[Consumer] = []
        self._threads: list[threading.Thread] = []

    def subscribe(self, handlers: Mapping[str, MessageHandler]) -> None:
        if not handlers:
            raise SubscriptionSetupAppError(
                code=SUBSCRIPTION_SETUP_ERROR,
                message="No topic handlers to subscribe",
            )
        if self._threads:
            raise SubscriptionSetupAppError(
                code=SUBSCRIPTION_SETUP_ERROR,
                message="Subscriber is already running",
            )

        topics = list(handlers)
        try:
            for _ in range(self._workers):
                self._consumers.append(self._consumer_factory(dict(self._consumer_config)))
            self._ensure_topics_exist(self._consumers[0], topics)
            for consumer in self._consumers:
                consumer.subscribe(topics)
        except SubscriptionSetupAppError:
            self._close_consumers()
            raise
        except KafkaException as exc:
            self._close_consumers()
            raise SubscriptionSetupAppError(
                code=SUBSCRIPTION_SETUP_ERROR,
                message=f"Kafka subscription failed: {exc}",
                details={"topic": ",".join(topics), "error_type": type(exc).__name__},
            ) from exc

        handler_map = dict(handlers)
        for index, consumer in enumerate(self._consumers):
            thread = threading.Thread(
                target=self._consume,
                args=(consumer, handler_map),
                name=f"kafka-consumer-{index}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

        logger.info(
            "subscription.started",
            extra={"topics": topics, "workers": self._workers},
        )

    def close(self) -> None:
        self._stop.set()
        for thread in self._threads:
            thread.join()
        if not self._threads:
            self._close_consumers()
        self._threads.clear()
        self._consumers.clear()
        logger.info("subscription.closed")

    def _ensure_topics_exist(self, consumer: Consumer, topics: list[str]) -> None:
        for topic in topics:
            metadata = consumer.list_topics(topic=topic, timeout=self._setup_timeout)
            topic_metadata = metadata.topics.get(topic)
            if topic_metadata is None or topic_metadata.error is not None:
                reason = topic_metadata.error if topic_metadata is not None else "not found"
                raise SubscriptionSetupAppError(
                    code=SUBSCRIPTION_SETUP_ERROR,
                    message=f"Topic {topic!r} is unavailable: {reason}",
                    details={"topic": topic},
                )

    def _close_consumers(self) -> None:
        for consumer in self._consumers:
            try:
                consumer.close()
            except (KafkaException, RuntimeError) as exc:
                logger.warning("subscription.close_failed", extra={"error_message": str(exc)})
        self._consumers.clear()

    def _consume(self, consumer: Consumer, handlers: dict[str, MessageHandler]) -> None:
        try:
            while not self._stop.is_set():
                try:
                    message = consumer.poll(self._poll_timeout)
                except KafkaException as exc:
                    logger.error("subscription.poll_failed", extra={"error_message": str(exc)})
                    continue

                if message is None:
                    continue

                error = message.error()
                if error is not None:
                    if error.code() != KafkaError._PARTITION_EOF:
                        logger.error(
                            "subscription.consume_error",
                            extra={"error_message": str(error)},
                        )
                    continue

                self._deliver(message, handlers)
        finally:
            try:
                consumer.close()
            except (KafkaException, RuntimeError) as exc:
                logger.warning("subscription.close_failed", extra={"error_message": str(exc)})

    def _deliver(self, message: Message, handlers: dict[str, MessageHandler]) -> None:
        topic = message.topic()
        handler = handlers.get(topic)
        if handler is None:
            logger.warning("subscription.no_handler", extra={"topic": topic})
            return

        set_message_context(topic=topic, partition=message.partition(), offset=message.offset())
        try:
            handler(message.value() or b"", decode_headers(message.headers()))
        except AppError as exc:
            logger.warning(
                "subscription.message_rejected",
                extra={"error_code": exc.code, "error_message": exc.message},
            )
        except Exception:
            # Keep the consumer thread alive; the failure is recorded with its traceback.
            logger.exception("subscription.handler_failed")
        finally:
            clear_message_context()
