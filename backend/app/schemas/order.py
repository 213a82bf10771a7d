"""Pydantic schemas for order operations."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from app.models.order import OrderStatus


class OrderItemIn(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=1)
    unit_price: Decimal = Field(..., ge=0)


class OrderCreate(BaseModel):
    """Payload for POST /api/v1/orders.

    Customers may omit ``customer_id``; it defaults to the caller.
    """
    customer_id: int | None = None
    merchant_id: int
    total_amount: Decimal = Field(..., ge=0)
    currency: str = Field("NPR", min_length=3, max_length=3)
    shipping_address: dict | None = None
    billing_address: dict | None = None
    items: list[OrderItemIn] = []


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemOut(BaseModel):
    id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    subtotal: Decimal

    model_config = {"from_attributes": True}


class OrderOut(BaseModel):
    id: int
    order_number: str
    customer_id: int
    merchant_id: int
    status: OrderStatus
    total_amount: Decimal
    currency: str
    shipping_address: dict | None = None
    billing_address: dict | None = None
    items: list[OrderItemOut] = []
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
