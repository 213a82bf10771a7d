"""Order service.

Every function here runs AFTER the permission gate has authorized the
caller; the routes in `app.routers.orders` do the gating. The one
exception is `cancel_order`, which drives the gate itself because the
cancellable-status guard must run strictly after authorization.
"""

import logging
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.gate import PermissionGate, ensure_cancellable
from app.auth.policy import DataScopeFilter
from app.auth.principal import AuthenticatedPrincipal
from app.auth.roles import Role
from app.config import settings
from app.errors import Forbidden, InvalidState, NotFound
from app.models.order import Order, OrderItem, OrderStatus, STATUS_TRANSITIONS
from app.schemas.common import PaginatedResponse
from app.schemas.order import OrderCreate, OrderOut
from app.utils.cache import cache_key, cached, invalidate_cache
from app.utils.numbering import generate_order_number
from app.utils.scoping import apply_scope

logger = logging.getLogger(__name__)


# ── Create ───────────────────────────────────────────────────

async def create_order(
    db: AsyncSession,
    principal: AuthenticatedPrincipal,
    body: OrderCreate,
) -> Order:
    """Create an order with its line items.

    Customers always order for themselves; other roles must name the
    customer explicitly.
    """
    customer_id = body.customer_id
    if principal.role == Role.CUSTOMER:
        if customer_id is not None and customer_id != principal.id:
            raise Forbidden("Customers can only create orders for themselves")
        customer_id = principal.id
    elif customer_id is None:
        raise InvalidState("customer_id is required", error_code="CUSTOMER_REQUIRED")

    order = Order(
        order_number=generate_order_number(),
        customer_id=customer_id,
        merchant_id=body.merchant_id,
        total_amount=body.total_amount,
        currency=body.currency,
        shipping_address=body.shipping_address,
        billing_address=body.billing_address,
        status=OrderStatus.PENDING,
    )
    order.items = [
        OrderItem(
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price=item.unit_price,
            subtotal=(item.unit_price * item.quantity).quantize(Decimal("0.01")),
        )
        for item in body.items
    ]
    db.add(order)
    await db.flush()

    await invalidate_cache("orders:*")
    return order


# ── Read ─────────────────────────────────────────────────────

def _orders_list_key(db, scope: DataScopeFilter, **kwargs) -> str:
    return f"list:{scope.cache_token()}:{cache_key(**kwargs)}"


@cached(ttl=settings.orders_list_cache_ttl, prefix="orders", key_builder=_orders_list_key)
async def list_orders(
    db: AsyncSession,
    scope: DataScopeFilter,
    *,
    status: OrderStatus | None = None,
    limit: int = 50,
    offset: int = 0,
) -> dict:
    """Return one page of orders visible under `scope`, as JSON-ready data."""
    stmt = apply_scope(select(Order), Order, scope)
    count_stmt = apply_scope(select(func.count(Order.id)), Order, scope)
    if status is not None:
        stmt = stmt.where(Order.status == status)
        count_stmt = count_stmt.where(Order.status == status)

    total = (await db.execute(count_stmt)).scalar() or 0
    result = await db.execute(
        stmt.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).offset(offset)
    )
    orders = result.scalars().all()

    page = PaginatedResponse[OrderOut](
        items=[OrderOut.model_validate(o) for o in orders],
        total=total,
        limit=limit,
        offset=offset,
    )
    return page.model_dump(mode="json")


async def get_order(db: AsyncSession, order_id: int, for_update: bool = False) -> Order:
    stmt = select(Order).where(Order.id == order_id)
    if for_update:
        stmt = stmt.with_for_update()
    order = (await db.execute(stmt)).scalar_one_or_none()
    if order is None:
        raise NotFound("Order", order_id)
    return order


# ── Update ───────────────────────────────────────────────────

async def update_order_status(
    db: AsyncSession,
    order_id: int,
    new_status: OrderStatus,
) -> Order:
    """Move an order one step forward in its lifecycle."""
    order = await get_order(db, order_id, for_update=True)

    if new_status == OrderStatus.CANCELLED:
        raise InvalidState(
            "Use the cancel endpoint to cancel an order",
            error_code="USE_CANCEL_ENDPOINT",
        )
    if new_status not in STATUS_TRANSITIONS[order.status]:
        raise InvalidState(
            f"Cannot change order status from {order.status.value} to {new_status.value}",
            error_code="INVALID_STATUS_TRANSITION",
        )

    order.status = new_status
    await db.flush()

    await invalidate_cache("orders:*")
    return order


async def cancel_order(
    db: AsyncSession,
    gate: PermissionGate,
    principal: AuthenticatedPrincipal,
    order_id: int,
) -> Order:
    """Cancel an order.

    1. Authorization: `orders.cancel` plus the strict cancel ownership rule.
    2. Business rule: only pending/confirmed orders can be cancelled.

    Raises Forbidden for (1) and InvalidState for (2), never the other
    way round.
    """
    await gate.authorize_cancel(principal, order_id)

    order = await get_order(db, order_id, for_update=True)
    ensure_cancellable(order.status)

    order.status = OrderStatus.CANCELLED
    await db.flush()
    logger.info("Order %s cancelled by user %s", order.order_number, principal.id)

    await invalidate_cache("orders:*")
    return order
