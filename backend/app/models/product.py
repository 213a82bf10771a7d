"""Product catalogue, owned by a merchant scope."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean, CheckConstraint, DateTime, ForeignKey, Integer, JSON, Numeric,
    String, Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price >= 0", name="products_price_check"),
        CheckConstraint("stock >= 0", name="products_stock_check"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sku: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    price: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=0, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="NPR", nullable=False)
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Soft delete: inactive products drop out of listings and lookups
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # ── Ownership ────────────────────────────────────────────
    merchant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    created_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"))

    image_url: Mapped[str | None] = mapped_column(String(2048))
    # JSON: {"tags": [...], "weight_g": 250, ...}
    attributes: Mapped[dict | None] = mapped_column(JSON)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
