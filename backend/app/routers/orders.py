"""Order routes.

  GET        /                list orders visible to the caller (orders.read, scoped)
  POST       /                create an order (orders.create)
  GET        /{order_id}      one order (orders.read + ownership)
  PUT        /{order_id}/status  move an order forward (orders.update + ownership)
  PUT|PATCH  /{order_id}/cancel  cancel an order (orders.cancel + cancel ownership + status guard)
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import get_current_principal, get_gate, require_permission
from app.auth.gate import PermissionGate
from app.auth.policy import READ, UPDATE
from app.auth.principal import AuthenticatedPrincipal
from app.auth.roles import Permission
from app.database import get_db
from app.models.order import OrderStatus
from app.schemas.common import PaginatedResponse
from app.schemas.order import OrderCreate, OrderOut, OrderStatusUpdate
from app.services import orders as order_service

router = APIRouter()


@router.get("/", response_model=PaginatedResponse[OrderOut])
async def list_orders(
    status_filter: OrderStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    gate: PermissionGate = Depends(get_gate),
    db: AsyncSession = Depends(get_db),
):
    scope = await gate.authorize_list(principal, Permission.ORDERS_READ)
    return await order_service.list_orders(
        db, scope, status=status_filter, limit=limit, offset=offset
    )


@router.post("/", response_model=OrderOut, status_code=status.HTTP_201_CREATED)
async def create_order(
    body: OrderCreate,
    principal: AuthenticatedPrincipal = Depends(require_permission(Permission.ORDERS_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    return await order_service.create_order(db, principal, body)


@router.get("/{order_id}", response_model=OrderOut)
async def get_order(
    order_id: int,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    gate: PermissionGate = Depends(get_gate),
    db: AsyncSession = Depends(get_db),
):
    await gate.authorize_order(principal, Permission.ORDERS_READ, order_id, READ)
    return await order_service.get_order(db, order_id)


@router.put("/{order_id}/status", response_model=OrderOut)
async def update_order_status(
    order_id: int,
    body: OrderStatusUpdate,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    gate: PermissionGate = Depends(get_gate),
    db: AsyncSession = Depends(get_db),
):
    await gate.authorize_order(principal, Permission.ORDERS_UPDATE, order_id, UPDATE)
    return await order_service.update_order_status(db, order_id, body.status)


@router.put("/{order_id}/cancel", response_model=OrderOut)
@router.patch("/{order_id}/cancel", response_model=OrderOut)
async def cancel_order(
    order_id: int,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    gate: PermissionGate = Depends(get_gate),
    db: AsyncSession = Depends(get_db),
):
    return await order_service.cancel_order(db, gate, principal, order_id)
