"""Pydantic schemas for product catalogue operations."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class ProductCreate(BaseModel):
    """Payload for POST /api/v1/products.

    ``merchant_id`` is only honoured for admins; merchants always create
    inside their own merchant scope.
    """
    sku: str = Field(..., max_length=64)
    name: str = Field(..., max_length=255)
    description: str | None = None
    price: Decimal = Field(Decimal("0"), ge=0)
    currency: str = Field("NPR", min_length=3, max_length=3)
    stock: int = Field(0, ge=0)
    image_url: str | None = Field(None, max_length=2048)
    attributes: dict | None = None
    merchant_id: int | None = None


class ProductUpdate(BaseModel):
    name: str | None = Field(None, max_length=255)
    description: str | None = None
    price: Decimal | None = Field(None, ge=0)
    stock: int | None = Field(None, ge=0)
    image_url: str | None = Field(None, max_length=2048)
    attributes: dict | None = None


class ProductOut(BaseModel):
    id: int
    sku: str
    name: str
    description: str | None = None
    price: Decimal
    currency: str
    stock: int
    is_active: bool
    merchant_id: int
    image_url: str | None = None
    attributes: dict | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
