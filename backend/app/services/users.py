"""User accounts and permission management."""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.password import hash_password, verify_password
from app.auth.permissions import effective_permissions
from app.auth.roles import Permission, Role
from app.auth.store import AccessStore
from app.errors import Forbidden, InvalidState, Unauthenticated
from app.models.user import User
from app.schemas.auth import RegisterRequest

logger = logging.getLogger(__name__)


async def register_customer(db: AsyncSession, body: RegisterRequest) -> User:
    """Self-registration always creates a customer account."""
    existing = await db.execute(select(User.id).where(User.email == body.email))
    if existing.scalar_one_or_none() is not None:
        raise InvalidState("Email already registered", error_code="EMAIL_TAKEN")

    user = User(
        email=body.email,
        hashed_password=hash_password(body.password),
        name=body.name,
        role=Role.CUSTOMER,
    )
    db.add(user)
    await db.flush()
    logger.info("Registered customer account %s", user.id)
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(password, user.hashed_password):
        raise Unauthenticated("Invalid credentials")
    if not user.is_active:
        raise Forbidden("Account deactivated")

    user.last_login = datetime.utcnow()
    await db.flush()
    return user


async def get_active_user(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise Unauthenticated("User not found or inactive")
    return user


async def permissions_for_user(store: AccessStore, user_id: int) -> tuple[Role, list[Permission]]:
    """Role and sorted effective permissions of any existing user."""
    target = await store.find_user_by_id(user_id)
    perms = await effective_permissions(store, target.id, target.role)
    return target.role, sorted(perms, key=lambda p: p.value)

