"""Tests for the permission gate request shapes."""

import pytest

from app.auth.gate import PermissionGate, ensure_authenticated, ensure_cancellable
from app.auth.policy import READ, UPDATE, DataScopeFilter
from app.auth.principal import AuthenticatedPrincipal
from app.auth.roles import Permission, Role
from app.errors import Forbidden, InvalidState, NotFound, Unauthenticated
from app.models.order import OrderStatus

SUPER_ADMIN = AuthenticatedPrincipal(id=1, role=Role.SUPER_ADMIN)
MERCHANT = AuthenticatedPrincipal(id=5, role=Role.MERCHANT)
CUSTOMER = AuthenticatedPrincipal(id=10, role=Role.CUSTOMER)
VIEWER = AuthenticatedPrincipal(id=30, role=Role.VIEWER)


@pytest.fixture
def gate(memory_store) -> PermissionGate:
    memory_store.add_order(100, customer_id=10, merchant_id=2)  # customer 10, other merchant
    memory_store.add_order(101, customer_id=11, merchant_id=5)  # merchant 5's scope
    memory_store.add_order(102, customer_id=5, merchant_id=2)   # placed by the merchant elsewhere
    return PermissionGate(memory_store)


@pytest.mark.unit
class TestGuards:
    def test_missing_principal_is_unauthenticated(self):
        with pytest.raises(Unauthenticated):
            ensure_authenticated(None)

    def test_inactive_principal_is_forbidden(self):
        inactive = AuthenticatedPrincipal(id=10, role=Role.CUSTOMER, is_active=False)
        with pytest.raises(Forbidden):
            ensure_authenticated(inactive)

    @pytest.mark.parametrize("status", [OrderStatus.PENDING, OrderStatus.CONFIRMED, "pending"])
    def test_cancellable_statuses(self, status):
        ensure_cancellable(status)

    @pytest.mark.parametrize(
        "status",
        [
            OrderStatus.PROCESSING,
            OrderStatus.SHIPPED,
            OrderStatus.DELIVERED,
            OrderStatus.CANCELLED,
            OrderStatus.REFUNDED,
        ],
    )
    def test_other_statuses_are_invalid_state(self, status):
        with pytest.raises(InvalidState) as exc_info:
            ensure_cancellable(status)
        assert exc_info.value.error_code == "ORDER_NOT_CANCELLABLE"
        assert exc_info.value.status_code == 422


@pytest.mark.unit
@pytest.mark.asyncio
class TestPermissionChecks:
    async def test_any_of_semantics(self, gate):
        with pytest.raises(Forbidden):
            await gate.require_any_permission(VIEWER, Permission.ORDERS_UPDATE)
        await gate.require_any_permission(VIEWER, Permission.ORDERS_UPDATE, Permission.ORDERS_READ)

    async def test_missing_principal(self, gate):
        with pytest.raises(Unauthenticated):
            await gate.require_any_permission(None, Permission.ORDERS_READ)

    async def test_override_applies_on_next_check(self, gate, memory_store):
        assert await gate.has_permission(VIEWER, Permission.ORDERS_UPDATE) is False
        await memory_store.upsert_override(VIEWER.id, Permission.ORDERS_UPDATE, True)
        assert await gate.has_permission(VIEWER, Permission.ORDERS_UPDATE) is True


@pytest.mark.unit
@pytest.mark.asyncio
class TestRequestShapes:
    async def test_list_returns_caller_scope(self, gate):
        assert await gate.authorize_list(CUSTOMER, Permission.ORDERS_READ) == DataScopeFilter.of(
            customer_id=10
        )
        assert (await gate.authorize_list(VIEWER, Permission.ORDERS_READ)).is_unrestricted

    async def test_list_requires_permission(self, gate, memory_store):
        await memory_store.upsert_override(CUSTOMER.id, Permission.ORDERS_READ, False)
        with pytest.raises(Forbidden):
            await gate.authorize_list(CUSTOMER, Permission.ORDERS_READ)

    async def test_single_resource_owner(self, gate):
        owner = await gate.authorize_order(CUSTOMER, Permission.ORDERS_READ, 100, READ)
        assert owner.owner_id == 10

    async def test_single_resource_not_owner(self, gate):
        with pytest.raises(Forbidden) as exc_info:
            await gate.authorize_order(CUSTOMER, Permission.ORDERS_READ, 101, READ)
        assert exc_info.value.message == "You don't have access to this resource"

    async def test_viewer_cannot_update(self, gate):
        with pytest.raises(Forbidden):
            await gate.authorize_order(VIEWER, Permission.ORDERS_UPDATE, 100, UPDATE)

    async def test_missing_resource_is_not_found(self, gate):
        with pytest.raises(NotFound):
            await gate.authorize_order(CUSTOMER, Permission.ORDERS_READ, 404, READ)

    async def test_permission_checked_before_lookup(self, gate):
        # Viewer lacks orders.cancel, so a missing order still reads as Forbidden
        with pytest.raises(Forbidden):
            await gate.authorize_cancel(VIEWER, 404)

    async def test_store_failure_is_not_a_denial(self, gate, memory_store):
        memory_store.lookup_error = ConnectionError("store unavailable")
        with pytest.raises(ConnectionError):
            await gate.authorize_order(SUPER_ADMIN, Permission.ORDERS_READ, 100, READ)


@pytest.mark.unit
@pytest.mark.asyncio
class TestCancelShape:
    async def test_customer_cancels_own(self, gate):
        await gate.authorize_cancel(CUSTOMER, 100)

    async def test_customer_cancels_others(self, gate):
        with pytest.raises(Forbidden) as exc_info:
            await gate.authorize_cancel(CUSTOMER, 101)
        assert exc_info.value.message == "You can only cancel your own orders"

    async def test_self_merchant_cancels_in_scope(self, gate):
        await gate.authorize_cancel(MERCHANT, 101)

    async def test_merchant_ownership_is_not_enough(self, gate):
        # Order 102 was placed by the merchant but belongs to merchant 2
        await gate.authorize_order(MERCHANT, Permission.ORDERS_READ, 102, READ)
        with pytest.raises(Forbidden) as exc_info:
            await gate.authorize_cancel(MERCHANT, 102)
        assert exc_info.value.message == "You don't have permission to cancel this order"

    async def test_super_admin_authorized_but_status_still_checked(self, gate):
        await gate.authorize_cancel(SUPER_ADMIN, 100)
        with pytest.raises(InvalidState):
            ensure_cancellable(OrderStatus.SHIPPED)
