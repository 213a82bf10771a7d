"""Pytest configuration and fixtures for the merchant access tests.

Provides an aiosqlite-backed database, an httpx client wired to the app,
seeded accounts/orders/products, and an in-memory AccessStore for the
pure gate tests. No Postgres or Redis is needed.
"""

import os

os.environ.setdefault("CACHE_ENABLED", "false")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.auth.jwt import create_access_token
from app.auth.password import hash_password
from app.auth.roles import Permission, Role
from app.auth.store import OwnerInfo, PermissionOverride, UserInfo
from app.database import Base, get_db
from app.errors import NotFound
from app.main import app
from app.models import Order, OrderStatus, Product, User

TEST_PASSWORD = "CorrectHorse42"


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """File-backed SQLite database, created fresh for every test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Test client whose requests each get their own committed session."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Test Data Fixtures ───────────────────────────────────────────

ACCOUNTS = [
    # key, role, is_active
    ("super_admin", Role.SUPER_ADMIN, True),
    ("admin", Role.ADMIN, True),
    ("merchant", Role.MERCHANT, True),
    ("other_merchant", Role.MERCHANT, True),
    ("customer", Role.CUSTOMER, True),
    ("other_customer", Role.CUSTOMER, True),
    ("viewer", Role.VIEWER, True),
    ("inactive", Role.CUSTOMER, False),
]


@pytest_asyncio.fixture
async def accounts(session_factory) -> dict[str, User]:
    """One committed user per key in ACCOUNTS.

    Merchants follow the seeding convention: merchant_id == own id.
    """
    hashed = hash_password(TEST_PASSWORD)
    async with session_factory() as session:
        users = {}
        for key, role, is_active in ACCOUNTS:
            user = User(
                email=f"{key.replace('_', '.')}@example.com",
                hashed_password=hashed,
                name=key.replace("_", " ").title(),
                role=role,
                is_active=is_active,
                is_verified=True,
            )
            session.add(user)
            users[key] = user
        await session.flush()

        for key in ("merchant", "other_merchant"):
            users[key].merchant_id = users[key].id
        await session.commit()
    return users


@pytest_asyncio.fixture
async def orders(session_factory, accounts) -> dict[str, Order]:
    """Committed orders keyed by a short description of owner and status."""
    specs = {
        # key: (customer, merchant, status)
        "own_pending": ("customer", "merchant", OrderStatus.PENDING),
        "own_shipped": ("customer", "merchant", OrderStatus.SHIPPED),
        "own_elsewhere": ("customer", "other_merchant", OrderStatus.PENDING),
        "other_confirmed": ("other_customer", "other_merchant", OrderStatus.CONFIRMED),
        "other_shipped": ("other_customer", "other_merchant", OrderStatus.SHIPPED),
    }
    async with session_factory() as session:
        made = {}
        for n, (key, (customer, merchant, status)) in enumerate(specs.items(), start=1):
            order = Order(
                order_number=f"ORD-TEST-{n:04d}",
                customer_id=accounts[customer].id,
                merchant_id=accounts[merchant].id,
                status=status,
                total_amount=Decimal("100.00"),
            )
            session.add(order)
            made[key] = order
        await session.commit()
    return made


@pytest_asyncio.fixture
async def products(session_factory, accounts) -> dict[str, Product]:
    async with session_factory() as session:
        made = {}
        for key, owner in (("mouse", "merchant"), ("cable", "other_merchant")):
            product = Product(
                sku=f"SKU-{key.upper()}",
                name=key.title(),
                price=Decimal("25.000"),
                stock=10,
                merchant_id=accounts[owner].id,
                created_by=accounts[owner].id,
            )
            session.add(product)
            made[key] = product
        await session.commit()
    return made


@pytest.fixture
def headers_for():
    """Build bearer auth headers for a seeded user."""

    def _make(user: User) -> dict:
        token = create_access_token(
            user_id=user.id,
            role=user.role.value,
            merchant_id=user.merchant_id,
        )
        return {"Authorization": f"Bearer {token}"}

    return _make


# ── In-memory AccessStore ────────────────────────────────────────

class InMemoryAccessStore:
    """Dict-backed AccessStore for gate and resolver tests."""

    def __init__(self):
        self.users: dict[int, UserInfo] = {}
        self.orders: dict[int, OwnerInfo] = {}
        self.overrides: dict[tuple[int, Permission], bool] = {}
        self.lookup_error: Exception | None = None

    def add_user(self, user_id: int, role: Role, merchant_id: int | None = None):
        self.users[user_id] = UserInfo(id=user_id, role=role, merchant_id=merchant_id)

    def add_order(self, order_id: int, customer_id: int, merchant_id: int):
        self.orders[order_id] = OwnerInfo(owner_id=customer_id, merchant_id=merchant_id)

    async def list_overrides(self, user_id: int) -> list[PermissionOverride]:
        return [
            PermissionOverride(user_id=uid, permission=perm, granted=granted)
            for (uid, perm), granted in self.overrides.items()
            if uid == user_id
        ]

    async def upsert_override(self, user_id: int, permission: Permission, granted: bool) -> None:
        self.overrides[(user_id, permission)] = granted

    async def find_user_by_id(self, user_id: int) -> UserInfo:
        if user_id not in self.users:
            raise NotFound("User", user_id)
        return self.users[user_id]

    async def find_order_owner_info(self, order_id: int) -> OwnerInfo:
        if self.lookup_error is not None:
            raise self.lookup_error
        if order_id not in self.orders:
            raise NotFound("Order", order_id)
        return self.orders[order_id]


@pytest.fixture
def memory_store() -> InMemoryAccessStore:
    return InMemoryAccessStore()


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "auth: Authentication and permission management tests")
    config.addinivalue_line("markers", "cache: Listing cache tests")
