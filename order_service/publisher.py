import json
import logging
from typing import Any, Callable, Optional

import pika
from pika.exceptions import AMQPError

from . import config
from .errors import PublishError

logger = logging.getLogger(__name__)


def connection_parameters() -> pika.ConnectionParameters:
    """Broker parameters from the environment, with short timeouts and retries."""
    return pika.ConnectionParameters(
        host=config.RABBIT_HOST,
        port=config.RABBIT_PORT,
        virtual_host=config.RABBIT_VHOST,
        credentials=pika.PlainCredentials(config.RABBIT_USER, config.RABBIT_PASS),
        heartbeat=30,
        blocked_connection_timeout=5,
        socket_timeout=5,
        connection_attempts=3,
        retry_delay=2.0,
    )


class QueuePublisher:
    """Publishes JSON messages to a topic exchange, routed by destination name.

    A connection is opened per publish; BlockingConnection is not safe to
    share between the threads serving requests.
    """

    def __init__(
        self,
        params: Optional[pika.ConnectionParameters] = None,
        exchange: str = config.RABBIT_EXCHANGE,
        connection_factory: Callable[[pika.ConnectionParameters], Any] = pika.BlockingConnection,
    ):
        self.params = params or connection_parameters()
        self.exchange = exchange
        self.connection_factory = connection_factory

    def publish(self, payload: Any, destination: str) -> None:
        body = json.dumps(payload).encode("utf-8")
        conn = None
        try:
            conn = self.connection_factory(self.params)
            ch = conn.channel()
            ch.exchange_declare(exchange=self.exchange, exchange_type="topic", durable=True)
            ch.queue_declare(queue=destination, durable=True)
            ch.queue_bind(exchange=self.exchange, queue=destination, routing_key=destination)
            ch.basic_publish(
                exchange=self.exchange,
                routing_key=destination,
                body=body,
                properties=pika.BasicProperties(
                    content_type="application/json",
                    delivery_mode=2,
                ),
            )
        except (AMQPError, OSError) as e:
            logger.error(f"Error publishing to {destination}: {e}")
            raise PublishError(f"publishing to {destination} failed: {e}") from e
        finally:
            if conn is not None and conn.is_open:
                conn.close()

        logger.info(f"Published message to {destination}")
