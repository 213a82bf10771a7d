"""FastAPI dependencies for authentication and authorization.

Dependencies:
  get_current_user          → decode JWT, load user from DB, return User
  get_current_principal     → immutable AuthenticatedPrincipal for the request
  get_store / get_gate      → access-control collaborators bound to the session
  require_role(...)         → restrict by role hierarchy
  require_permission(...)   → restrict to users holding ANY listed permission
"""

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.gate import PermissionGate
from app.auth.jwt import decode_token
from app.auth.principal import AuthenticatedPrincipal
from app.auth.roles import Permission, Role, rank
from app.auth.store import SQLAlchemyAccessStore
from app.database import get_db
from app.errors import Forbidden, Unauthenticated
from app.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


# ── Core user dependency ────────────────────────────────────

async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the JWT and load the user it names."""
    if not token:
        raise Unauthenticated()

    payload = decode_token(token)
    user_id = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        raise Unauthenticated("Invalid or expired token")

    try:
        user_pk = int(user_id)
    except (TypeError, ValueError):
        raise Unauthenticated("Invalid or expired token") from None

    result = await db.execute(select(User).where(User.id == user_pk))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise Unauthenticated("User not found or inactive")
    return user


async def get_current_principal(
    user: User = Depends(get_current_user),
) -> AuthenticatedPrincipal:
    return AuthenticatedPrincipal.from_user(user)


# ── Access-control collaborators ────────────────────────────

async def get_store(db: AsyncSession = Depends(get_db)) -> SQLAlchemyAccessStore:
    return SQLAlchemyAccessStore(db)


async def get_gate(store: SQLAlchemyAccessStore = Depends(get_store)) -> PermissionGate:
    return PermissionGate(store)


# ── Role-based access control ───────────────────────────────

def require_role(*roles: Role):
    """Dependency factory: restrict by role hierarchy.

    A caller passes when their role is listed, or when their rank is at
    least the highest rank among the listed roles.

    Usage:
        @router.post("/permissions")
        async def manage(principal = Depends(require_role(Role.ADMIN))):
            ...
    """
    required_rank = max(rank(r) for r in roles)

    async def _check(
        principal: AuthenticatedPrincipal = Depends(get_current_principal),
    ) -> AuthenticatedPrincipal:
        if principal.role not in roles and rank(principal.role) < required_rank:
            raise Forbidden("Insufficient role to perform this action")
        return principal

    return _check


# ── Permission-based access control ─────────────────────────

def require_permission(*perms: Permission):
    """Dependency factory: restrict to users who hold at least ONE listed permission.

    Resolved from role defaults plus the current override rows on every
    request.

    Usage:
        @router.get("/orders")
        async def list_orders(
            principal = Depends(require_permission(Permission.ORDERS_READ)),
        ):
            ...
    """
    async def _check(
        principal: AuthenticatedPrincipal = Depends(get_current_principal),
        gate: PermissionGate = Depends(get_gate),
    ) -> AuthenticatedPrincipal:
        await gate.require_any_permission(principal, *perms)
        return principal

    return _check
