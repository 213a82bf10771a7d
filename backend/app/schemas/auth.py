from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from app.auth.roles import Permission, Role


class UserOut(BaseModel):
    id: int
    email: str
    name: str
    role: Role
    merchant_id: int | None
    is_active: bool
    is_verified: bool = False
    permissions: list[Permission] = []
    last_login: datetime | None = None

    model_config = {"from_attributes": True}


# ── Self-registration (customers) ────────────────────────────

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    name: str = Field(..., min_length=1, max_length=100)


# ── Login ────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserOut


# ── Token refresh ────────────────────────────────────────────

class RefreshRequest(BaseModel):
    refresh_token: str


# ── Permission management ────────────────────────────────────

class GrantPermissionRequest(BaseModel):
    """Grant (granted=true) or revoke (granted=false) one permission for a user."""
    user_id: int
    permission: Permission
    granted: bool


class PermissionChangeOut(BaseModel):
    user_id: int
    permission: Permission
    granted: bool
    message: str


class UserPermissionsOut(BaseModel):
    user_id: int
    role: Role
    permissions: list[Permission]
