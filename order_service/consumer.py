"""Queue listeners that feed broker messages into the order service.

Every message body is a JSON string holding an order id. A message is
acked only once its handler succeeded. Transient failures (collaborators,
persistence) are nacked back onto the queue for redelivery; unknown orders,
rejected transitions and undecodable payloads are dropped. Each listener
reconnects after losing the broker.
"""

import json
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

import pika
from pika.exceptions import AMQPError

from . import config
from .errors import OrderNotFound, ValidationError
from .log import configure_logging
from .main import build_order_service
from .publisher import connection_parameters
from .service import OrderService
from .status import OrderStatus

logger = logging.getLogger(__name__)

Handler = Callable[[str], object]

RETRY_DELAY = 5.0


class InvalidMessage(ValueError):
    pass


def decode_order_id(body: bytes) -> str:
    try:
        order_id = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise InvalidMessage(f"undecodable message body: {e}") from e

    if not isinstance(order_id, str) or not order_id:
        raise InvalidMessage(f"message body is not an order id: {order_id!r}")
    return order_id


def build_handlers(service: OrderService) -> Dict[str, Handler]:
    return {
        config.ORDER_QUEUE: service.checkout_order,
        config.PAYMENT_PAYED_QUEUE: lambda order_id: service.update_status(order_id, OrderStatus.PAYED),
        config.PAYMENT_CANCELLED_QUEUE: lambda order_id: service.update_status(order_id, OrderStatus.CANCELLED),
    }


class QueueListener:
    def __init__(
        self,
        queue: str,
        handler: Handler,
        params: Optional[pika.ConnectionParameters] = None,
        connection_factory: Callable[[pika.ConnectionParameters], Any] = pika.BlockingConnection,
        retry_delay: float = RETRY_DELAY,
    ):
        self.queue = queue
        self.handler = handler
        self.params = params
        self.connection_factory = connection_factory
        self.retry_delay = retry_delay
        self._stopped = threading.Event()

    def on_message(self, ch, method, properties, body: bytes) -> None:
        try:
            order_id = decode_order_id(body)
        except InvalidMessage as e:
            logger.error(f"Dropping message from {self.queue}: {e}")
            ch.basic_nack(delivery_tag=method.delivery_tag, requeue=False)
            return

        try:
            self.handler(order_id)
        except (OrderNotFound, ValidationError) as e:
            # Redelivery cannot succeed; duplicate checkouts land here too
            logger.warning(f"Dropping order {order_id} from {self.queue}: {e}")
            ch.basic_nack(delivery_tag=method.delivery_tag, requeue=False)
            return
        except Exception as e:
            logger.error(f"Processing order {order_id} from {self.queue} failed, requeueing: {e}")
            ch.basic_nack(delivery_tag=method.delivery_tag, requeue=True)
            return

        ch.basic_ack(delivery_tag=method.delivery_tag)
        logger.info(f"Processed order {order_id} from {self.queue}")

    def stop(self) -> None:
        self._stopped.set()

    def consume_once(self) -> None:
        conn = self.connection_factory(self.params or connection_parameters())
        try:
            ch = conn.channel()
            ch.queue_declare(queue=self.queue, durable=True)
            ch.basic_qos(prefetch_count=1)
            ch.basic_consume(queue=self.queue, on_message_callback=self.on_message, auto_ack=False)
            ch.start_consuming()
        finally:
            if conn.is_open:
                conn.close()

    def run(self) -> None:
        """Consume until stopped, reconnecting after broker failures."""
        while not self._stopped.is_set():
            logger.info(f"Starting listener on {self.queue}")
            try:
                self.consume_once()
            except AMQPError as e:
                logger.error(f"Listener on {self.queue} lost its broker connection: {e!r}")
                self._stopped.wait(self.retry_delay)


def main():
    configure_logging()
    service = build_order_service()

    listeners = [QueueListener(queue, handler) for queue, handler in build_handlers(service).items()]
    threads: List[threading.Thread] = []
    for listener in listeners:
        thread = threading.Thread(target=listener.run, name=f"listener-{listener.queue}", daemon=True)
        thread.start()
        threads.append(thread)

    try:
        for thread in threads:
            thread.join()
    except KeyboardInterrupt:
        logger.info("Shutting down listeners")
        for listener in listeners:
            listener.stop()


if __name__ == "__main__":
    main()
