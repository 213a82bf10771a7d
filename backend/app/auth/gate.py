"""Permission gate: the per-request entry point into the access-control core.

Request shapes:
  List             coarse permission check, then `scope_for` restricts rows
  Single resource  coarse permission check, owner lookup, then `can_access`
  Cancel           coarse permission check, owner lookup, then `can_cancel`;
                   the cancellable-status guard runs only after that passes

Every failure is raised as a typed `AccessError`. Store failures propagate
unchanged; a lookup error is never reported as a denial.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from app.auth.permissions import effective_permissions
from app.auth.policy import (
    CANCEL,
    AccessContext,
    DataScopeFilter,
    can_access,
    can_cancel,
    scope_for,
)
from app.auth.principal import AuthenticatedPrincipal
from app.auth.roles import Permission, Role, parse_permission
from app.auth.store import AccessStore, OwnerInfo
from app.errors import Forbidden, InvalidState, Unauthenticated
from app.models.order import CANCELLABLE_STATUSES, OrderStatus

logger = logging.getLogger(__name__)

OwnerLookup = Callable[[int], Awaitable[OwnerInfo]]


def ensure_authenticated(principal: AuthenticatedPrincipal | None) -> AuthenticatedPrincipal:
    if principal is None:
        raise Unauthenticated()
    if not principal.is_active:
        raise Forbidden("Account deactivated")
    return principal


def ensure_cancellable(status: OrderStatus | str) -> None:
    """Business-rule guard: only pending or confirmed orders can be cancelled."""
    if OrderStatus(status) not in CANCELLABLE_STATUSES:
        raise InvalidState(
            f"Cannot cancel order with status: {OrderStatus(status).value}. "
            "Only pending or confirmed orders can be cancelled.",
            error_code="ORDER_NOT_CANCELLABLE",
        )


class PermissionGate:
    def __init__(self, store: AccessStore):
        self.store = store

    async def has_permission(
        self, principal: AuthenticatedPrincipal, permission: Permission | str
    ) -> bool:
        principal = ensure_authenticated(principal)
        perms = await effective_permissions(self.store, principal.id, principal.role)
        return parse_permission(permission) in perms

    async def require_any_permission(
        self, principal: AuthenticatedPrincipal | None, *permissions: Permission | str
    ) -> None:
        """Pass if the principal holds at least one of `permissions`.

        Effective permissions are resolved once and every requested
        permission is checked against that snapshot.
        """
        principal = ensure_authenticated(principal)
        required = [parse_permission(p) for p in permissions]
        perms = await effective_permissions(self.store, principal.id, principal.role)
        if not any(p in perms for p in required):
            raise Forbidden("Insufficient permissions to perform this action")

    # ── Request shapes ──────────────────────────────────────

    async def authorize_list(
        self, principal: AuthenticatedPrincipal | None, permission: Permission | str
    ) -> DataScopeFilter:
        await self.require_any_permission(principal, permission)
        return scope_for(principal)

    async def authorize_instance(
        self,
        principal: AuthenticatedPrincipal | None,
        permission: Permission | str,
        resource_id: int,
        action: str,
        lookup: OwnerLookup,
    ) -> OwnerInfo:
        """Coarse permission check, then ownership for one resource instance."""
        await self.require_any_permission(principal, permission)
        owner = await lookup(resource_id)
        ctx = AccessContext(
            principal=principal,
            resource_owner_id=owner.owner_id,
            resource_merchant_id=owner.merchant_id,
            action=action,
        )
        if not can_access(ctx):
            logger.debug("User %s denied %s on resource %s", principal.id, action, resource_id)
            raise Forbidden("You don't have access to this resource")
        return owner

    async def authorize_order(
        self,
        principal: AuthenticatedPrincipal | None,
        permission: Permission | str,
        order_id: int,
        action: str,
    ) -> OwnerInfo:
        return await self.authorize_instance(
            principal, permission, order_id, action, self.store.find_order_owner_info
        )

    async def authorize_cancel(
        self, principal: AuthenticatedPrincipal | None, order_id: int
    ) -> OwnerInfo:
        await self.require_any_permission(principal, Permission.ORDERS_CANCEL)
        owner = await self.store.find_order_owner_info(order_id)
        ctx = AccessContext(
            principal=principal,
            resource_owner_id=owner.owner_id,
            resource_merchant_id=owner.merchant_id,
            action=CANCEL,
        )
        if not can_cancel(ctx):
            logger.debug("User %s denied cancel on order %s", principal.id, order_id)
            if principal.role == Role.CUSTOMER:
                raise Forbidden("You can only cancel your own orders")
            raise Forbidden("You don't have permission to cancel this order")
        return owner
