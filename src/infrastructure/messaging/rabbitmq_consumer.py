"""
RabbitMQ consumer: background worker that turns sponsorship and listing
change events into feed cache and owner metadata invalidations.

Realtime changes are not pushed into feed state: a change event only drops
cached first pages, and callers pick it up on their next refresh.
"""
import json
import threading
from collections.abc import Callable

import pika
import structlog

from src.config import settings
from src.infrastructure.messaging.rabbitmq_publisher import EXCHANGE_NAME

logger = structlog.get_logger(__name__)

QUEUE_NAME = "feed.invalidations"

# Routing keys that make cached feed pages or owner metadata stale
INVALIDATING_ROUTING_KEYS: tuple[str, ...] = (
    "sponsorship.active",
    "sponsorship.cancelled",
    "sponsorship.expired",
    "listing.#",
    "profile.updated",
)


def declare_topology(channel: pika.channel.Channel) -> None:
    channel.exchange_declare(exchange=EXCHANGE_NAME, exchange_type="topic", durable=True)
    channel.queue_declare(queue=QUEUE_NAME, durable=True)
    for routing_key in INVALIDATING_ROUTING_KEYS:
        channel.queue_bind(exchange=EXCHANGE_NAME, queue=QUEUE_NAME, routing_key=routing_key)


class RabbitMQConsumer:
    """Long-running consumer that dispatches messages to registered handlers."""

    def __init__(
        self,
        rabbitmq_url: str = settings.rabbitmq_url,
        reconnect_delay: float = 5.0,
    ) -> None:
        self._url = rabbitmq_url
        self._reconnect_delay = reconnect_delay
        self._handlers: list[Callable[[str, dict], None]] = []  # type: ignore[type-arg]
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    def register_handler(self, handler: Callable[[str, dict], None]) -> None:  # type: ignore[type-arg]
        self._handlers.append(handler)

    def start(self) -> None:
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()
        logger.info("rabbitmq_consumer_started", queue=QUEUE_NAME)

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5)
        logger.info("rabbitmq_consumer_stopped")

    def _run(self) -> None:
        # Cached pages still expire by TTL while disconnected, so keep retrying
        while not self._stop_event.is_set():
            try:
                self._consume()
            except Exception as exc:
                logger.error("rabbitmq_consumer_error", error=str(exc))
                self._stop_event.wait(self._reconnect_delay)

    def _consume(self) -> None:
        connection = pika.BlockingConnection(pika.URLParameters(self._url))
        try:
            channel = connection.channel()
            declare_topology(channel)
            channel.basic_qos(prefetch_count=10)
            channel.basic_consume(
                queue=QUEUE_NAME, on_message_callback=self._on_message, auto_ack=False
            )
            while not self._stop_event.is_set():
                connection.process_data_events(time_limit=1)
        finally:
            if connection.is_open:
                connection.close()

    def _on_message(
        self,
        channel: pika.channel.Channel,
        method: pika.spec.Basic.Deliver,
        properties: pika.spec.BasicProperties,
        body: bytes,
    ) -> None:
        routing_key = method.routing_key
        try:
            payload = json.loads(body)
            for handler in self._handlers:
                handler(routing_key, payload)
        except Exception as exc:
            logger.error("invalidation_message_failed", routing_key=routing_key, error=str(exc))
            channel.basic_nack(delivery_tag=method.delivery_tag, requeue=False)
            return
        channel.basic_ack(delivery_tag=method.delivery_tag)
        logger.debug("invalidation_message_handled", routing_key=routing_key)
