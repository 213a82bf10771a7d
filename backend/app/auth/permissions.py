"""Permission resolution: role defaults combined with per-user overrides.

Design:
  - Each role has a set of DEFAULT permissions (see `app.auth.roles`).
  - Admins grant/revoke individual permissions per user; each decision is
    one `user_permissions` row keyed by (user_id, permission).
  - `resolve_permissions(role, overrides)` is the pure merge; the async
    helpers fetch overrides from an `AccessStore` and call it.
  - SUPER_ADMIN always resolves to the universal set. Overrides cannot
    downgrade a super admin.
  - Nothing is cached: every check reads the current override rows, so a
    grant/revoke takes effect on the very next request.
"""

from __future__ import annotations

import logging
from typing import Iterable

from app.auth.principal import AuthenticatedPrincipal
from app.auth.roles import (
    ALL_PERMISSIONS,
    Permission,
    Role,
    default_permissions,
    parse_permission,
    parse_role,
)
from app.auth.store import AccessStore, PermissionOverride
from app.errors import Forbidden, Unauthenticated

logger = logging.getLogger(__name__)

PERMISSION_MANAGER_ROLES = frozenset({Role.SUPER_ADMIN, Role.ADMIN})


# ── Resolution ──────────────────────────────────────────────

def resolve_permissions(
    role: Role | str,
    overrides: Iterable[PermissionOverride] = (),
) -> frozenset[Permission]:
    """Compute effective permissions from role defaults and overrides.

    1. Start with the role's defaults.
    2. Remove every permission revoked by an override, add every granted one.
    3. SUPER_ADMIN ignores overrides entirely.

    There is at most one override per permission, so the result does not
    depend on the order of `overrides`.
    """
    role = parse_role(role)
    if role is Role.SUPER_ADMIN:
        return ALL_PERMISSIONS

    granted: set[Permission] = set()
    revoked: set[Permission] = set()
    for override in overrides:
        (granted if override.granted else revoked).add(override.permission)

    return frozenset((default_permissions(role) - revoked) | granted)


async def effective_permissions(
    store: AccessStore,
    user_id: int,
    role: Role | str,
) -> frozenset[Permission]:
    role = parse_role(role)
    if role is Role.SUPER_ADMIN:
        return ALL_PERMISSIONS
    overrides = await store.list_overrides(user_id)
    return resolve_permissions(role, overrides)


async def has_permission(
    store: AccessStore,
    user_id: int,
    role: Role | str,
    permission: Permission | str,
) -> bool:
    permission = parse_permission(permission)
    if parse_role(role) is Role.SUPER_ADMIN:
        return True
    return permission in await effective_permissions(store, user_id, role)


# ── Management ──────────────────────────────────────────────

async def grant_or_revoke(
    store: AccessStore,
    actor: AuthenticatedPrincipal | None,
    target_user_id: int,
    permission: Permission | str,
    granted: bool,
) -> PermissionOverride:
    """Set the single override row for (target_user_id, permission).

    Raises:
        Unauthenticated  no actor
        Forbidden        actor is not an admin, or a non-super-admin
                         targets a super admin
        NotFound         target user does not exist (from the store)
    """
    if actor is None:
        raise Unauthenticated()
    permission = parse_permission(permission)

    if actor.role not in PERMISSION_MANAGER_ROLES:
        raise Forbidden("Only admins can manage permissions")

    target = await store.find_user_by_id(target_user_id)
    if target.role is Role.SUPER_ADMIN and actor.role is not Role.SUPER_ADMIN:
        raise Forbidden("Only super admins can modify super admin permissions")

    await store.upsert_override(target_user_id, permission, granted)
    logger.info(
        "Permission %s %s for user %s by user %s",
        permission.value,
        "granted" if granted else "revoked",
        target_user_id,
        actor.id,
    )
    return PermissionOverride(
        user_id=target_user_id, permission=permission, granted=granted
    )
