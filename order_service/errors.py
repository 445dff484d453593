class OrderServiceError(Exception):
    """Base class for every error raised by the order service."""
    code = "INTERNAL_ERROR"


class OrderNotFound(OrderServiceError):
    code = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class ValidationError(OrderServiceError):
    code = "INVALID_ORDER"


class InvalidStatus(ValidationError):
    """Raised for a status name outside the known set."""
    code = "INVALID_STATUS"


class InvalidTransition(ValidationError):
    """Raised when an order cannot move from its current status to the target one."""
    code = "INVALID_TRANSITION"


class UpstreamError(OrderServiceError):
    """A collaborator (catalog, payment, broker) failed or is unreachable."""


class CatalogError(UpstreamError):
    code = "CATALOG_ERROR"


class PaymentError(UpstreamError):
    code = "PAYMENT_ERROR"


class PublishError(UpstreamError):
    code = "PUBLISH_ERROR"


class PersistenceError(OrderServiceError):
    code = "PERSISTENCE_ERROR"
