"""Tests for authentication and permission-management endpoints."""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from conftest import TEST_PASSWORD

AUTH_URL = "/api/v1/auth"


@pytest.mark.auth
@pytest.mark.integration
@pytest.mark.asyncio
class TestAuthEndpoints:
    async def test_register_creates_customer(self, client: AsyncClient):
        response = await client.post(
            f"{AUTH_URL}/register",
            json={
                "email": "newuser@example.com",
                "password": "SecurePassword123!",
                "name": "New User",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert "access_token" in data
        assert data["user"]["role"] == "customer"
        assert "orders.create" in data["user"]["permissions"]

    async def test_register_duplicate_email(self, client: AsyncClient, accounts):
        response = await client.post(
            f"{AUTH_URL}/register",
            json={
                "email": accounts["customer"].email,
                "password": "AnotherPassword123!",
                "name": "Another User",
            },
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "EMAIL_TAKEN"

    async def test_register_validates_payload(self, client: AsyncClient):
        response = await client.post(
            f"{AUTH_URL}/register",
            json={"email": "not-an-email", "password": "short", "name": ""},
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_login_success(self, client: AsyncClient, accounts):
        response = await client.post(
            f"{AUTH_URL}/login",
            json={"email": accounts["merchant"].email, "password": TEST_PASSWORD},
        )

        assert response.status_code == 200
        data = response.json()
        assert "refresh_token" in data
        assert data["user"]["merchant_id"] == accounts["merchant"].id

    async def test_login_wrong_password(self, client: AsyncClient, accounts):
        response = await client.post(
            f"{AUTH_URL}/login",
            json={"email": accounts["merchant"].email, "password": "wrongpassword"},
        )

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid credentials"

    async def test_login_deactivated_account(self, client: AsyncClient, accounts):
        response = await client.post(
            f"{AUTH_URL}/login",
            json={"email": accounts["inactive"].email, "password": TEST_PASSWORD},
        )
        assert response.status_code == 403

    async def test_me_lists_effective_permissions(
        self, client: AsyncClient, accounts, headers_for
    ):
        response = await client.get(f"{AUTH_URL}/me", headers=headers_for(accounts["viewer"]))

        assert response.status_code == 200
        assert response.json()["permissions"] == ["orders.read", "products.read"]

    async def test_refresh_requires_refresh_token(
        self, client: AsyncClient, accounts, headers_for
    ):
        login = await client.post(
            f"{AUTH_URL}/login",
            json={"email": accounts["customer"].email, "password": TEST_PASSWORD},
        )
        tokens = login.json()

        refreshed = await client.post(
            f"{AUTH_URL}/refresh", json={"refresh_token": tokens["refresh_token"]}
        )
        assert refreshed.status_code == 200

        rejected = await client.post(
            f"{AUTH_URL}/refresh", json={"refresh_token": tokens["access_token"]}
        )
        assert rejected.status_code == 401

    async def test_garbage_token_is_unauthenticated(self, client: AsyncClient):
        response = await client.get(
            f"{AUTH_URL}/me", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401


@pytest.mark.auth
@pytest.mark.integration
@pytest.mark.asyncio
class TestPermissionManagement:
    async def _change(self, client, headers, user_id, permission, granted):
        return await client.post(
            f"{AUTH_URL}/permissions",
            json={"user_id": user_id, "permission": permission, "granted": granted},
            headers=headers,
        )

    async def test_admin_grants_permission(self, client: AsyncClient, accounts, headers_for):
        customer = accounts["customer"]
        response = await self._change(
            client, headers_for(accounts["admin"]), customer.id, "users.read", True
        )

        assert response.status_code == 200
        assert response.json() == {
            "user_id": customer.id,
            "permission": "users.read",
            "granted": True,
            "message": "Permission granted successfully",
        }

        me = await client.get(f"{AUTH_URL}/me", headers=headers_for(customer))
        assert "users.read" in me.json()["permissions"]

    async def test_grant_then_revoke_returns_to_absent(
        self, client: AsyncClient, accounts, headers_for
    ):
        admin_headers = headers_for(accounts["admin"])
        viewer = accounts["viewer"]

        await self._change(client, admin_headers, viewer.id, "orders.update", True)
        response = await self._change(client, admin_headers, viewer.id, "orders.update", False)
        assert response.json()["message"] == "Permission revoked successfully"

        perms = await client.get(
            f"{AUTH_URL}/users/{viewer.id}/permissions", headers=admin_headers
        )
        assert perms.status_code == 200
        assert perms.json()["permissions"] == ["orders.read", "products.read"]

    @pytest.mark.parametrize("who", ["merchant", "customer", "viewer"])
    async def test_non_admins_cannot_manage(self, client: AsyncClient, accounts, headers_for, who):
        response = await self._change(
            client, headers_for(accounts[who]), accounts["viewer"].id, "orders.update", True
        )
        assert response.status_code == 403

    async def test_admin_cannot_touch_super_admin(
        self, client: AsyncClient, accounts, headers_for
    ):
        response = await self._change(
            client,
            headers_for(accounts["admin"]),
            accounts["super_admin"].id,
            "users.delete",
            False,
        )

        assert response.status_code == 403
        assert "super admin" in response.json()["error"]["message"]

    async def test_super_admin_can_touch_super_admin(
        self, client: AsyncClient, accounts, headers_for
    ):
        super_admin = accounts["super_admin"]
        response = await self._change(
            client, headers_for(super_admin), super_admin.id, "users.delete", False
        )
        assert response.status_code == 200

    async def test_unknown_target_user(self, client: AsyncClient, accounts, headers_for):
        response = await self._change(
            client, headers_for(accounts["admin"]), 9999, "users.read", True
        )

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "User not found: 9999"

    async def test_unknown_permission_rejected(self, client: AsyncClient, accounts, headers_for):
        response = await self._change(
            client, headers_for(accounts["admin"]), accounts["customer"].id, "orders.refund", True
        )
        assert response.status_code == 422

    async def test_viewing_permissions_requires_users_read(
        self, client: AsyncClient, accounts, headers_for
    ):
        response = await client.get(
            f"{AUTH_URL}/users/{accounts['customer'].id}/permissions",
            headers=headers_for(accounts["merchant"]),
        )
        assert response.status_code == 403


@pytest.mark.unit
class TestPasswordHashing:
    def test_hash_password(self):
        from app.auth.password import hash_password, verify_password

        password = "MySecurePassword123!"
        hashed = hash_password(password)

        assert hashed != password
        assert verify_password(password, hashed)
        assert not verify_password("WrongPassword", hashed)

    def test_unknown_hash_format(self):
        from app.auth.password import verify_password

        assert not verify_password("anything", "plaintext-not-a-hash")

    def test_empty_password_rejected(self):
        from app.auth.password import hash_password

        with pytest.raises(ValueError):
            hash_password("   ")


@pytest.mark.unit
class TestJWTTokens:
    def test_access_token_claims(self):
        from app.auth.jwt import create_access_token, decode_token

        token = create_access_token(user_id=7, role="merchant", merchant_id=7)
        payload = decode_token(token)

        assert payload["sub"] == "7"
        assert payload["role"] == "merchant"
        assert payload["merchant_id"] == 7
        assert payload["type"] == "access"
        assert "permissions" not in payload

    def test_expired_token_decodes_to_empty(self):
        from app.auth.jwt import create_access_token, decode_token

        token = create_access_token(user_id=7, role="viewer", expires_delta=timedelta(seconds=-1))
        assert decode_token(token) == {}
