"""Ownership policy and data-scope filters.

Pure functions of the principal and a resource's owning identities; no
I/O, no shared mutable state.

  can_access(ctx)      general read/update/delete gate
  can_cancel(ctx)      stricter gate for cancellation
  scope_for(principal) equality constraints for listing queries

`can_access` and `can_cancel` are deliberately separate. Merchants may
read/update resources they own OR that sit in their merchant scope, but
may only cancel inside their merchant scope. Loosening one must never
loosen the other.

Self-merchant convention: a merchant that has no separate merchant_id
uses its own user id as its merchant scope.

Admins pass both gates for every resource; no merchant scoping is applied
to them at this layer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from app.auth.principal import AuthenticatedPrincipal
from app.auth.roles import Role

logger = logging.getLogger(__name__)

READ = "read"
CREATE = "create"
UPDATE = "update"
DELETE = "delete"
CANCEL = "cancel"


@dataclass(frozen=True)
class AccessContext:
    principal: AuthenticatedPrincipal
    resource_owner_id: int | None
    resource_merchant_id: int | None
    action: str


def _in_merchant_scope(principal: AuthenticatedPrincipal, merchant_id: int | None) -> bool:
    if merchant_id is None:
        return False
    return merchant_id == principal.merchant_id or merchant_id == principal.id


def can_access(ctx: AccessContext) -> bool:
    principal = ctx.principal
    role = principal.role

    if role == Role.SUPER_ADMIN:
        return True
    if role == Role.ADMIN:
        return True
    if role == Role.MERCHANT:
        return (
            ctx.resource_owner_id == principal.id
            or _in_merchant_scope(principal, ctx.resource_merchant_id)
        )
    if role == Role.CUSTOMER:
        return ctx.resource_owner_id == principal.id
    if role == Role.VIEWER:
        return ctx.action == READ

    logger.warning("Denying access for unrecognized role %r (user %s)", role, principal.id)
    return False


def can_cancel(ctx: AccessContext) -> bool:
    principal = ctx.principal
    role = principal.role

    if role == Role.SUPER_ADMIN:
        return True
    if role == Role.ADMIN:
        return True
    if role == Role.MERCHANT:
        # resource_owner_id is ignored: merchant-scope match only
        return _in_merchant_scope(principal, ctx.resource_merchant_id)
    if role == Role.CUSTOMER:
        return ctx.resource_owner_id == principal.id

    if role != Role.VIEWER:
        logger.warning("Denying cancel for unrecognized role %r (user %s)", role, principal.id)
    return False


# ── Data scope ──────────────────────────────────────────────

@dataclass(frozen=True)
class DataScopeFilter:
    """Field → required value constraints for a listing query.

    An empty filter means no restriction. `deny_all` means no row may
    match, whatever the constraints say.
    """

    constraints: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    deny_all: bool = False

    @classmethod
    def of(cls, **constraints: Any) -> "DataScopeFilter":
        return cls(constraints=MappingProxyType(dict(constraints)))

    @property
    def is_unrestricted(self) -> bool:
        return not self.deny_all and not self.constraints

    def matches(self, row: Mapping[str, Any]) -> bool:
        if self.deny_all:
            return False
        return all(row.get(name) == value for name, value in self.constraints.items())

    def cache_token(self) -> str:
        """Stable string form, used to partition listing caches by scope."""
        if self.deny_all:
            return "deny"
        if not self.constraints:
            return "all"
        return ",".join(f"{k}={v}" for k, v in sorted(self.constraints.items()))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DataScopeFilter):
            return NotImplemented
        return self.deny_all == other.deny_all and dict(self.constraints) == dict(other.constraints)

    def __hash__(self) -> int:
        return hash((self.deny_all, tuple(sorted(self.constraints.items()))))


UNRESTRICTED = DataScopeFilter()
DENY_ALL = DataScopeFilter(deny_all=True)


def scope_for(principal: AuthenticatedPrincipal) -> DataScopeFilter:
    role = principal.role

    # Viewer is read-only, which the permission layer enforces, not this filter
    if role in (Role.SUPER_ADMIN, Role.ADMIN, Role.VIEWER):
        return UNRESTRICTED
    if role == Role.MERCHANT:
        return DataScopeFilter.of(merchant_id=principal.effective_merchant_id)
    if role == Role.CUSTOMER:
        return DataScopeFilter.of(customer_id=principal.id)

    logger.warning("Deny-all data scope for unrecognized role %r (user %s)", role, principal.id)
    return DENY_ALL
