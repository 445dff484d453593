from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from .status import OrderStatus

MAX_QUANTITY = 10_000


class Product(BaseModel):
    product_id: str = Field(..., min_length=1, description="Product ID")
    product_name: str = Field("", description="Product name, filled in from the catalog")
    category: str = Field("", description="Product category")
    price: Decimal = Field(Decimal("0"), ge=0, max_digits=12, description="Unit price")


class OrderItem(Product):
    quantity: int = Field(..., ge=1, le=MAX_QUANTITY, description="Quantity")


class Order(BaseModel):
    id: str
    customer_id: str
    items: List[OrderItem]
    status: OrderStatus = OrderStatus.RECEIVED
    total: Decimal = Decimal("0")
    created_at: datetime
    updated_at: datetime


class OrderCreate(BaseModel):
    items: List[OrderItem] = Field(..., min_length=1, description="Line items")

    @field_validator("items")
    @classmethod
    def unique_products(cls, items: List[OrderItem]) -> List[OrderItem]:
        seen = set()
        for item in items:
            if item.product_id in seen:
                raise ValueError(f"duplicate product_id {item.product_id}")
            seen.add(item.product_id)
        return items


class OrderUpdate(OrderCreate):
    pass


class OrderStatusUpdate(BaseModel):
    status: str = Field(..., description="Status name, e.g. PAYED")


class OrderResponse(BaseModel):
    id: str
    customer_id: str
    items: List[OrderItem]
    status: str
    total: Decimal
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            customer_id=order.customer_id,
            items=order.items,
            status=order.status.name,
            total=order.total,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class StandardResponse(BaseModel):
    success: bool
    data: Optional[dict] = None
    error: Optional[dict] = None
