import logging
from typing import Dict, Optional

import httpx

from .config import CATALOG_URL, HTTP_TIMEOUT
from .errors import CatalogError
from .log import outbound_headers
from .models import OrderItem, Product

logger = logging.getLogger(__name__)


class ProductCatalog:
    """HTTP client for the product service."""

    def __init__(self, base_url: str = CATALOG_URL, client: Optional[httpx.Client] = None):
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.Client(timeout=HTTP_TIMEOUT)

    def get_products(self, items: Dict[str, OrderItem]) -> None:
        """Fill in name, price and category of ``items`` (keyed by product id) in place."""
        if not items:
            return

        url = f"{self.base_url}/v1/products"
        try:
            response = self.client.get(
                url,
                params={"ids": list(items)},
                headers=outbound_headers()
            )
        except httpx.HTTPError as e:
            logger.error(f"Cannot reach product catalog {url}: {e}")
            raise CatalogError(f"product catalog unavailable: {e}") from e

        if response.status_code != 200:
            logger.error(f"Product catalog returned {response.status_code} for {list(items)}")
            raise CatalogError(f"product catalog error, code: {response.status_code}")

        try:
            resolved = {}
            for product in response.json()["products"]:
                resolved[product["id"]] = Product(
                    product_id=product["id"],
                    product_name=product.get("name", ""),
                    price=str(product["price"]),
                    category=product.get("category", ""),
                )
        except (ValueError, KeyError, TypeError) as e:
            raise CatalogError(f"malformed product catalog response: {e}") from e

        missing = sorted(set(items) - set(resolved))
        if missing:
            raise CatalogError(f"unknown products: {', '.join(missing)}")

        for product_id, item in items.items():
            product = resolved[product_id]
            item.product_name = product.product_name
            item.price = product.price
            item.category = product.category

        logger.info(f"Resolved {len(items)} products from catalog")
