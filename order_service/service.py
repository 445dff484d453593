"""Order lifecycle: creation, updates, status changes and checkout."""

import logging
import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Callable, Iterable, List, Optional

from .catalog import ProductCatalog
from .database import OrderDB
from .errors import OrderNotFound, PaymentError, ValidationError
from .models import Order, OrderItem
from .payment import PaymentClient
from .publisher import QueuePublisher
from .status import OrderStatus, validate_transition

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def calculate_total(items: Iterable[OrderItem]) -> Decimal:
    try:
        total = sum((item.price * item.quantity for item in items), Decimal("0"))
        return total.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError("order total is out of range") from None


class OrderService:
    """Coordinates the order repository with the catalog, payment and broker.

    The catalog, payment client and publisher are optional. Without a
    catalog, prices supplied by the caller are used as-is. Checkout goes
    through the payment client when one is given and falls back to
    publishing a payment-pending event otherwise.
    """

    def __init__(
        self,
        repo: OrderDB,
        catalog: Optional[ProductCatalog] = None,
        payments: Optional[PaymentClient] = None,
        publisher: Optional[QueuePublisher] = None,
        order_queue: str = "order",
        payment_pending_queue: str = "payment_pending",
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repo = repo
        self.catalog = catalog
        self.payments = payments
        self.publisher = publisher
        self.order_queue = order_queue
        self.payment_pending_queue = payment_pending_queue
        self.clock = clock

        if payments is None and publisher is None:
            logger.warning("Neither payment client nor publisher configured; checkout will fail")

    def get_all(self) -> List[Order]:
        return self.repo.get_all()

    def get_by_id(self, order_id: str) -> Optional[Order]:
        return self.repo.get_by_id(order_id)

    def get_by_status(self, status: OrderStatus) -> List[Order]:
        return self.repo.get_by_status(status)

    def create(self, customer_id: str, items: List[OrderItem]) -> Order:
        now = self.clock()
        items = self._priced_items(items)

        order = Order(
            id=str(uuid.uuid4()),
            customer_id=customer_id,
            items=items,
            status=OrderStatus.RECEIVED,
            total=calculate_total(items),
            created_at=now,
            updated_at=now,
        )

        order = self.repo.create(order)

        if self.publisher is not None:
            try:
                self.publisher.publish(order.id, self.order_queue)
            except Exception:
                # The order row is already committed at this point
                logger.error(f"Order {order.id} persisted but order-created event was not published")
                raise

        logger.info(f"Order created successfully: {order.id} - Total: {order.total}")
        return order

    def update(self, order_id: str, customer_id: str, items: List[OrderItem]) -> Order:
        existing = self.repo.get_by_id(order_id)
        if existing is None:
            raise OrderNotFound(order_id)

        items = self._priced_items(items)
        order = existing.model_copy(update={
            "customer_id": customer_id,
            "items": items,
            "total": calculate_total(items),
            "updated_at": self.clock(),
        })

        if not self.repo.update(order_id, order):
            raise OrderNotFound(order_id)

        logger.info(f"Order updated: {order_id} - Total: {order.total}")
        return order

    def update_status(self, order_id: str, status: OrderStatus) -> Order:
        order = self.repo.get_by_id(order_id)
        if order is None:
            raise OrderNotFound(order_id)

        validate_transition(order.status, status)
        return self._write_status(order, status)

    def checkout_order(self, order_id: str) -> Order:
        order = self.repo.get_by_id(order_id)
        if order is None:
            raise OrderNotFound(order_id)

        validate_transition(order.status, OrderStatus.PAYMENT_PENDING)

        if self.payments is not None:
            self.payments.create_payment(order.id)
        elif self.publisher is not None:
            self.publisher.publish(order.id, self.payment_pending_queue)
        else:
            raise PaymentError("no payment client or publisher configured")

        try:
            return self._write_status(order, OrderStatus.PAYMENT_PENDING)
        except Exception:
            logger.error(f"Payment initiated for order {order_id} but its status was not updated")
            raise

    def _priced_items(self, items: List[OrderItem]) -> List[OrderItem]:
        """Copy the items, taking prices from the catalog when one is configured."""
        items = [item.model_copy() for item in items]
        if self.catalog is not None:
            self.catalog.get_products({item.product_id: item for item in items})
        return items

    def _write_status(self, order: Order, status: OrderStatus) -> Order:
        updated_at = self.clock()
        if not self.repo.update_status(order.id, status, updated_at):
            raise OrderNotFound(order.id)

        logger.info(f"Order status updated: {order.id} {order.status.name} -> {status.name}")
        return order.model_copy(update={"status": status, "updated_at": updated_at})
