"""The resolved identity of the caller for the duration of one request."""

from __future__ import annotations

from dataclasses import dataclass

from app.auth.roles import Role, parse_role


@dataclass(frozen=True)
class AuthenticatedPrincipal:
    id: int
    role: Role
    merchant_id: int | None = None
    is_active: bool = True

    @classmethod
    def from_user(cls, user) -> "AuthenticatedPrincipal":
        """Build a principal from a loaded `User` row.

        The role is validated here, at the boundary, so the policy
        functions only ever see members of the closed `Role` enumeration.
        """
        return cls(
            id=user.id,
            role=parse_role(user.role),
            merchant_id=user.merchant_id,
            is_active=user.is_active,
        )

    @property
    def effective_merchant_id(self) -> int:
        """Merchant scope id: a merchant without a separate merchant_id acts as its own."""
        return self.merchant_id if self.merchant_id is not None else self.id
