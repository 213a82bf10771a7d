"""Aggregate model imports for Alembic auto-detection."""

from app.models.user import User, UserPermission  # noqa: F401
from app.models.product import Product  # noqa: F401
from app.models.order import Order, OrderItem, OrderStatus  # noqa: F401
