"""Auth routes: register, login, refresh, profile, permission management.

Route overview:
  POST /register                   self-registration (customer accounts)
  POST /login                      email + password login
  POST /refresh                    exchange a refresh token for new tokens
  GET  /me                         current user profile + effective permissions
  GET  /users/{user_id}/permissions   effective permissions of a user (users.read)
  POST /permissions                grant or revoke one permission (admins)
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import (
    get_current_user,
    get_store,
    require_permission,
    require_role,
)
from app.auth.jwt import create_access_token, create_refresh_token, decode_token
from app.auth.permissions import effective_permissions, grant_or_revoke
from app.auth.principal import AuthenticatedPrincipal
from app.auth.roles import Permission, Role
from app.auth.store import SQLAlchemyAccessStore
from app.database import get_db
from app.errors import Unauthenticated
from app.models.user import User
from app.schemas.auth import (
    GrantPermissionRequest,
    LoginRequest,
    PermissionChangeOut,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserOut,
    UserPermissionsOut,
)
from app.services import users as user_service

router = APIRouter()


# ── Helpers ──────────────────────────────────────────────────

def _build_user_out(user: User, permissions) -> UserOut:
    out = UserOut.model_validate(user)
    out.permissions = sorted(permissions, key=lambda p: p.value)
    return out


async def _build_token_response(user: User, store: SQLAlchemyAccessStore) -> TokenResponse:
    permissions = await effective_permissions(store, user.id, user.role)
    return TokenResponse(
        access_token=create_access_token(
            user_id=user.id,
            role=user.role.value,
            merchant_id=user.merchant_id,
        ),
        refresh_token=create_refresh_token(
            user_id=user.id,
            role=user.role.value,
        ),
        user=_build_user_out(user, permissions),
    )


# ── POST /register ──────────────────────────────────────────

@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    store: SQLAlchemyAccessStore = Depends(get_store),
):
    """Self-registration. Always creates a customer; other roles are seeded or admin-created."""
    user = await user_service.register_customer(db, body)
    return await _build_token_response(user, store)


# ── POST /login ──────────────────────────────────────────────

@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
    store: SQLAlchemyAccessStore = Depends(get_store),
):
    user = await user_service.authenticate(db, body.email, body.password)
    return await _build_token_response(user, store)


# ── POST /refresh ────────────────────────────────────────────

@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    body: RefreshRequest,
    db: AsyncSession = Depends(get_db),
    store: SQLAlchemyAccessStore = Depends(get_store),
):
    payload = decode_token(body.refresh_token)
    if payload.get("type") != "refresh" or not payload.get("sub"):
        raise Unauthenticated("Invalid or expired refresh token")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise Unauthenticated("Invalid or expired refresh token") from None

    user = await user_service.get_active_user(db, user_id)
    return await _build_token_response(user, store)


# ── GET /me ──────────────────────────────────────────────────

@router.get("/me", response_model=UserOut)
async def me(
    user: User = Depends(get_current_user),
    store: SQLAlchemyAccessStore = Depends(get_store),
):
    permissions = await effective_permissions(store, user.id, user.role)
    return _build_user_out(user, permissions)


# ── Permission management ────────────────────────────────────

@router.get("/users/{user_id}/permissions", response_model=UserPermissionsOut)
async def get_user_permissions(
    user_id: int,
    _principal: AuthenticatedPrincipal = Depends(require_permission(Permission.USERS_READ)),
    store: SQLAlchemyAccessStore = Depends(get_store),
):
    role, permissions = await user_service.permissions_for_user(store, user_id)
    return UserPermissionsOut(user_id=user_id, role=role, permissions=permissions)


@router.post("/permissions", response_model=PermissionChangeOut)
async def manage_permission(
    body: GrantPermissionRequest,
    principal: AuthenticatedPrincipal = Depends(require_role(Role.ADMIN)),
    store: SQLAlchemyAccessStore = Depends(get_store),
):
    """Grant or revoke one permission for a user.

    Admins and super admins only; only super admins may touch another
    super admin's permissions.
    """
    override = await grant_or_revoke(
        store, principal, body.user_id, body.permission, body.granted
    )
    return PermissionChangeOut(
        user_id=override.user_id,
        permission=override.permission,
        granted=override.granted,
        message=f"Permission {'granted' if override.granted else 'revoked'} successfully",
    )
