"""Storage collaborator for the access-control core.

The core only needs four reads/writes, described by `AccessStore`:

  list_overrides(user_id)                        → every PermissionOverride for a user
  upsert_override(user_id, permission, granted)  → atomic insert-or-update of one override
  find_user_by_id(user_id)                       → UserInfo (raises NotFound)
  find_order_owner_info(order_id)                → OwnerInfo (raises NotFound)

`SQLAlchemyAccessStore` is the production implementation. The upsert is a
single `INSERT ... ON CONFLICT (user_id, permission) DO UPDATE` statement
keyed by the unique constraint, so two concurrent grant/revoke calls for
the same pair can never leave duplicate rows. Storage errors are not
caught here; they propagate to the caller unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.roles import Permission, Role, parse_permission, parse_role
from app.errors import NotFound
from app.models.order import Order
from app.models.product import Product
from app.models.user import User, UserPermission


@dataclass(frozen=True)
class PermissionOverride:
    user_id: int
    permission: Permission
    granted: bool


@dataclass(frozen=True)
class UserInfo:
    id: int
    role: Role
    merchant_id: int | None


@dataclass(frozen=True)
class OwnerInfo:
    owner_id: int | None
    merchant_id: int | None


class AccessStore(Protocol):
    async def list_overrides(self, user_id: int) -> list[PermissionOverride]: ...

    async def upsert_override(
        self, user_id: int, permission: Permission, granted: bool
    ) -> None: ...

    async def find_user_by_id(self, user_id: int) -> UserInfo: ...

    async def find_order_owner_info(self, order_id: int) -> OwnerInfo: ...


_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class SQLAlchemyAccessStore:
    """`AccessStore` backed by the request's AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_overrides(self, user_id: int) -> list[PermissionOverride]:
        result = await self.db.execute(
            select(UserPermission.permission, UserPermission.granted)
            .where(UserPermission.user_id == user_id)
        )
        return [
            PermissionOverride(
                user_id=user_id,
                permission=parse_permission(permission),
                granted=granted,
            )
            for permission, granted in result.all()
        ]

    async def upsert_override(
        self, user_id: int, permission: Permission, granted: bool
    ) -> None:
        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise NotImplementedError(f"No upsert support for dialect {dialect!r}")

        stmt = insert(UserPermission).values(
            user_id=user_id,
            permission=Permission(permission).value,
            granted=granted,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[UserPermission.user_id, UserPermission.permission],
            set_={"granted": stmt.excluded.granted, "updated_at": func.now()},
        )
        await self.db.execute(stmt)

    async def find_user_by_id(self, user_id: int) -> UserInfo:
        result = await self.db.execute(
            select(User.id, User.role, User.merchant_id).where(User.id == user_id)
        )
        row = result.one_or_none()
        if row is None:
            raise NotFound("User", user_id)
        return UserInfo(id=row.id, role=parse_role(row.role), merchant_id=row.merchant_id)

    async def find_order_owner_info(self, order_id: int) -> OwnerInfo:
        result = await self.db.execute(
            select(Order.customer_id, Order.merchant_id).where(Order.id == order_id)
        )
        row = result.one_or_none()
        if row is None:
            raise NotFound("Order", order_id)
        return OwnerInfo(owner_id=row.customer_id, merchant_id=row.merchant_id)

    async def find_product_owner_info(self, product_id: int) -> OwnerInfo:
        result = await self.db.execute(
            select(Product.created_by, Product.merchant_id)
            .where(Product.id == product_id, Product.is_active.is_(True))
        )
        row = result.one_or_none()
        if row is None:
            raise NotFound("Product", product_id)
        return OwnerInfo(owner_id=row.created_by, merchant_id=row.merchant_id)
