import logging
from typing import Optional

import httpx

from .config import HTTP_TIMEOUT, PAYMENT_URL
from .errors import PaymentError
from .log import outbound_headers

logger = logging.getLogger(__name__)

PAYMENT_ENDPOINT = "/api/payment/"
DEFAULT_PAYMENT_TYPE = 0


class PaymentClient:
    def __init__(self, base_url: str = PAYMENT_URL, client: Optional[httpx.Client] = None):
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(timeout=HTTP_TIMEOUT)

    def create_payment(self, order_id: str, payment_type: int = DEFAULT_PAYMENT_TYPE) -> None:
        # The order id doubles as idempotency key so a retried checkout is not charged twice
        headers = outbound_headers()
        headers["Idempotency-Key"] = order_id

        try:
            response = self.client.post(
                f"{self.base_url}{PAYMENT_ENDPOINT}",
                json={"payment_type": payment_type, "order_id": order_id},
                headers=headers
            )
        except httpx.HTTPError as e:
            logger.error(f"Cannot reach payment service for order {order_id}: {e}")
            raise PaymentError(f"payment service unavailable: {e}") from e

        if not response.is_success:
            logger.error(f"Payment creation failed for order {order_id}: {response.status_code}")
            raise PaymentError(f"payment integration error, code: {response.status_code}")

        logger.info(f"Payment created for order {order_id}")
