"""Role catalog: the closed set of roles, their rank, and default permissions.

Design:
  - Roles form a strict total order by rank. Rank drives hierarchical
    role checks (`require_role`), never permission membership.
  - Each role has a set of DEFAULT permissions (defined here, not in DB).
    The sets are not monotonic across ranks: admins do not create orders,
    customers do.
  - SUPER_ADMIN's defaults are the universal set.
  - Both tables are read-only mappings of frozensets; there is no
    runtime mutation path.

Permission naming: `<resource>.<verb>`
  Resources: products, orders, users
  Verbs:     create, read, update, delete, cancel (orders only)

Unrecognized role or permission values are a configuration error and
fail loudly (ConfigurationError) instead of silently narrowing to the
least-privileged role.
"""

from __future__ import annotations

import enum
import logging
from types import MappingProxyType
from typing import Mapping

from app.errors import ConfigurationError

logger = logging.getLogger(__name__)


class Role(str, enum.Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    MERCHANT = "merchant"
    CUSTOMER = "customer"
    VIEWER = "viewer"


class Permission(str, enum.Enum):
    # Products
    PRODUCTS_CREATE = "products.create"
    PRODUCTS_READ = "products.read"
    PRODUCTS_UPDATE = "products.update"
    PRODUCTS_DELETE = "products.delete"

    # Orders
    ORDERS_CREATE = "orders.create"
    ORDERS_READ = "orders.read"
    ORDERS_UPDATE = "orders.update"
    ORDERS_DELETE = "orders.delete"
    ORDERS_CANCEL = "orders.cancel"

    # Users
    USERS_CREATE = "users.create"
    USERS_READ = "users.read"
    USERS_UPDATE = "users.update"
    USERS_DELETE = "users.delete"


ALL_PERMISSIONS: frozenset[Permission] = frozenset(Permission)


# ── Role → rank ─────────────────────────────────────────────

ROLE_RANK: Mapping[Role, int] = MappingProxyType({
    Role.SUPER_ADMIN: 5,
    Role.ADMIN: 4,
    Role.MERCHANT: 3,
    Role.CUSTOMER: 2,
    Role.VIEWER: 1,
})


# ── Role → default permissions ──────────────────────────────

ROLE_DEFAULTS: Mapping[Role, frozenset[Permission]] = MappingProxyType({
    Role.SUPER_ADMIN: ALL_PERMISSIONS,

    Role.ADMIN: frozenset({
        Permission.PRODUCTS_CREATE,
        Permission.PRODUCTS_READ,
        Permission.PRODUCTS_UPDATE,
        Permission.PRODUCTS_DELETE,
        Permission.ORDERS_READ,
        Permission.ORDERS_UPDATE,
        Permission.ORDERS_CANCEL,
        Permission.USERS_READ,
    }),

    Role.MERCHANT: frozenset({
        Permission.PRODUCTS_CREATE,
        Permission.PRODUCTS_READ,
        Permission.PRODUCTS_UPDATE,
        Permission.ORDERS_READ,
        Permission.ORDERS_UPDATE,
        Permission.ORDERS_CANCEL,
    }),

    Role.CUSTOMER: frozenset({
        Permission.PRODUCTS_READ,
        Permission.ORDERS_CREATE,
        Permission.ORDERS_READ,
        Permission.ORDERS_CANCEL,
    }),

    Role.VIEWER: frozenset({
        Permission.PRODUCTS_READ,
        Permission.ORDERS_READ,
    }),
})


# ── Boundary validation ─────────────────────────────────────

def parse_role(value: Role | str) -> Role:
    """Validate a raw role value against the closed enumeration."""
    try:
        return Role(value)
    except ValueError:
        logger.error("Unrecognized role value: %r", value)
        raise ConfigurationError(f"Unrecognized role: {value!r}") from None


def parse_permission(value: Permission | str) -> Permission:
    """Validate a raw permission tag against the closed enumeration."""
    try:
        return Permission(value)
    except ValueError:
        logger.error("Unrecognized permission value: %r", value)
        raise ConfigurationError(f"Unrecognized permission: {value!r}") from None


# ── Lookups ─────────────────────────────────────────────────

def rank(role: Role | str) -> int:
    return ROLE_RANK[parse_role(role)]


def default_permissions(role: Role | str) -> frozenset[Permission]:
    return ROLE_DEFAULTS[parse_role(role)]
