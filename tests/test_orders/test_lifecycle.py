"""
Tests for the order lifecycle manager.

These tests verify the creation protocol end to end (fields, catalog
validation, transactional write) and both status transition policies.
"""

import httpx
import pytest
from decimal import Decimal
from sqlalchemy.exc import OperationalError

from orders.lifecycle import (
    STRICT_TRANSITIONS,
    OrderLifecycleManager,
    TransitionPolicy,
    parse_status,
)
from orders.store import OrderStore
from orders.validator import OrderValidator
from shared.errors import (
    OrderNotFoundError,
    OrderValidationError,
    ProductReferenceError,
    StorageError,
    TransitionConflictError,
)
from shared.models import OrderStatus


class TestCreateOrder:
    """Tests for the happy path of order creation."""

    def test_alice_orders_two_mice(self, manager: OrderLifecycleManager, alice_items):
        order = manager.create_order("Alice", "alice@example.com", alice_items)

        assert order.customer_name == "Alice"
        assert order.customer_email == "alice@example.com"
        assert order.status == OrderStatus.PENDING
        assert order.total_amount == Decimal("59.98")
        assert len(order.items) == 1
        item = order.items[0]
        assert (item.product_id, item.product_name, item.quantity, item.price) == (
            1, "Wireless Mouse", 2, Decimal("29.99"),
        )

    def test_total_matches_items(self, manager: OrderLifecycleManager):
        order = manager.create_order("Alice", "alice@example.com", [
            {"product_id": 1, "quantity": 2},
            {"product_id": 2, "quantity": 3},
        ])

        assert order.total_amount == Decimal("209.95")
        assert order.total_amount == order.items_total()

    def test_customer_fields_are_trimmed(self, manager: OrderLifecycleManager, alice_items):
        order = manager.create_order("  Alice  ", " alice@example.com ", alice_items)

        assert order.customer_name == "Alice"
        assert order.customer_email == "alice@example.com"

    def test_order_is_immediately_readable(self, manager: OrderLifecycleManager, store: OrderStore, alice_items):
        order = manager.create_order("Alice", "alice@example.com", alice_items)
        assert store.get_by_id(order.id) == order

    def test_snapshot_survives_catalog_changes(self, manager, store, catalog, alice_items):
        order = manager.create_order("Alice", "alice@example.com", alice_items)

        catalog.update_product_price(1, "9.99")
        catalog.remove_product(1)

        stored = store.get_by_id(order.id)
        assert stored.items[0].price == Decimal("29.99")
        assert stored.items[0].product_name == "Wireless Mouse"
        assert stored.total_amount == Decimal("59.98")


class TestCreateOrderRejections:
    """Tests for requests that must leave no trace."""

    @pytest.mark.parametrize("name, email, items", [
        (None, "alice@example.com", [{"product_id": 1, "quantity": 1}]),
        ("Alice", None, [{"product_id": 1, "quantity": 1}]),
        ("Alice", "alice@example.com", None),
        ("Alice", "alice@example.com", []),
        ("   ", "alice@example.com", [{"product_id": 1, "quantity": 1}]),
        ("Alice", "", [{"product_id": 1, "quantity": 1}]),
    ])
    def test_missing_fields(self, store, name, email, items):
        lookups = []

        class NoCatalog:
            def lookup(self, product_id):
                lookups.append(product_id)
                raise AssertionError("catalog must not be called")

        manager = OrderLifecycleManager(store, OrderValidator(NoCatalog()))

        with pytest.raises(OrderValidationError, match="Customer name, email, and items are required"):
            manager.create_order(name, email, items)

        assert lookups == []
        assert store.list() == []

    def test_invalid_quantity(self, manager: OrderLifecycleManager, store: OrderStore):
        with pytest.raises(OrderValidationError, match="positive integer"):
            manager.create_order("Alice", "alice@example.com", [{"product_id": 1, "quantity": 0}])

        assert store.list() == []

    @pytest.mark.parametrize("quantity", [2**63, 10**30])
    def test_quantity_beyond_column_range(self, manager: OrderLifecycleManager, store: OrderStore, quantity):
        with pytest.raises(OrderValidationError, match="no greater than"):
            manager.create_order("Alice", "alice@example.com", [{"product_id": 1, "quantity": quantity}])

        assert store.list() == []

    def test_total_too_large(self, manager: OrderLifecycleManager, store: OrderStore):
        with pytest.raises(OrderValidationError, match="Order total exceeds"):
            manager.create_order("Alice", "alice@example.com", [{"product_id": 1, "quantity": 10_000_000}])

        assert store.list() == []

    def test_unknown_product_rejects_whole_order(self, manager: OrderLifecycleManager, store: OrderStore):
        with pytest.raises(ProductReferenceError) as exc_info:
            manager.create_order("Bob", "bob@example.com", [
                {"product_id": 1, "quantity": 1},
                {"product_id": 9999, "quantity": 1},
            ])

        assert exc_info.value.product_id == 9999
        assert "9999" in exc_info.value.message
        assert store.list() == []

    def test_unavailable_catalog_is_reported(self, store: OrderStore, make_catalog_client):
        client = make_catalog_client(lambda request: httpx.Response(503))
        manager = OrderLifecycleManager(store, OrderValidator(client))

        with pytest.raises(ProductReferenceError) as exc_info:
            manager.create_order("Alice", "alice@example.com", [{"product_id": 1, "quantity": 1}])

        assert exc_info.value.status_code == 400
        assert "could not be verified" in exc_info.value.message
        assert store.list() == []

    def test_write_failure_rolls_back(self, manager: OrderLifecycleManager, store: OrderStore, monkeypatch, alice_items):
        """A database failure after the header insert leaves nothing behind."""
        original_add = store.add_order

        def failing_add(session, header, items):
            original_add(session, header, items)
            raise OperationalError("INSERT INTO order_items", {}, Exception("disk I/O error"))

        monkeypatch.setattr(store, "add_order", failing_add)

        with pytest.raises(StorageError, match="Failed to create order"):
            manager.create_order("Alice", "alice@example.com", alice_items)

        assert store.list() == []


class TestSetStatusLenient:
    """Tests for the default policy: any known status may follow any other."""

    @pytest.fixture
    def order(self, manager, alice_items):
        return manager.create_order("Alice", "alice@example.com", alice_items)

    def test_forward_transition(self, manager: OrderLifecycleManager, order):
        updated = manager.set_status(order.id, "processing")

        assert updated.status == OrderStatus.PROCESSING
        assert updated.items == order.items
        assert updated.total_amount == order.total_amount

    def test_backward_transition_is_allowed(self, manager: OrderLifecycleManager, order):
        manager.set_status(order.id, "delivered")
        assert manager.set_status(order.id, "pending").status == OrderStatus.PENDING

    def test_same_status_is_a_no_op(self, manager: OrderLifecycleManager, order):
        again = manager.set_status(order.id, "pending")

        assert again.status == OrderStatus.PENDING
        assert again.updated_at == order.updated_at

    def test_unknown_status_leaves_stored_status(self, manager: OrderLifecycleManager, store, order):
        manager.set_status(order.id, "shipped")

        with pytest.raises(OrderValidationError, match="Status must be one of"):
            manager.set_status(order.id, "lost")

        assert store.get_by_id(order.id).status == OrderStatus.SHIPPED

    def test_repeated_shipped_succeeds(self, manager: OrderLifecycleManager, store, order):
        shipped = manager.set_status(order.id, "shipped")

        for _ in range(2):
            again = manager.set_status(order.id, "shipped")
            assert again.status == OrderStatus.SHIPPED
            assert again.updated_at == shipped.updated_at

        assert store.get_by_id(order.id).status == OrderStatus.SHIPPED

    def test_unknown_order(self, manager: OrderLifecycleManager):
        with pytest.raises(OrderNotFoundError):
            manager.set_status(999, "shipped")

    def test_concurrent_change_is_last_write_wins(self, manager, store, order, monkeypatch):
        original_update = store.update_status

        def racing_update(order_id, status, expected_status=None):
            original_update(order_id, OrderStatus.CANCELLED)
            return original_update(order_id, status, expected_status=expected_status)

        monkeypatch.setattr(store, "update_status", racing_update)

        assert manager.set_status(order.id, "processing").status == OrderStatus.PROCESSING


class TestSetStatusStrict:
    """Tests for the transition table policy."""

    @pytest.fixture
    def order(self, strict_manager, alice_items):
        return strict_manager.create_order("Alice", "alice@example.com", alice_items)

    def test_full_happy_path(self, strict_manager: OrderLifecycleManager, order):
        for target in ("processing", "shipped", "delivered"):
            order = strict_manager.set_status(order.id, target)

        assert order.status == OrderStatus.DELIVERED

    def test_skipping_a_step_is_refused(self, strict_manager: OrderLifecycleManager, store, order):
        with pytest.raises(TransitionConflictError, match="from pending to shipped"):
            strict_manager.set_status(order.id, "shipped")

        assert store.get_by_id(order.id).status == OrderStatus.PENDING

    @pytest.mark.parametrize("path", [
        ["cancelled"],
        ["processing", "cancelled"],
        ["processing", "shipped", "cancelled"],
    ])
    def test_cancel_before_delivery(self, strict_manager: OrderLifecycleManager, order, path):
        for target in path:
            order = strict_manager.set_status(order.id, target)

        assert order.status == OrderStatus.CANCELLED

    @pytest.mark.parametrize("terminal", ["delivered", "cancelled"])
    def test_terminal_states_are_final(self, strict_manager: OrderLifecycleManager, order, terminal):
        path = ["processing", "shipped", "delivered"] if terminal == "delivered" else ["cancelled"]
        for target in path:
            strict_manager.set_status(order.id, target)

        with pytest.raises(TransitionConflictError):
            strict_manager.set_status(order.id, "pending")

    def test_same_status_is_still_a_no_op(self, strict_manager: OrderLifecycleManager, order):
        assert strict_manager.set_status(order.id, "pending").updated_at == order.updated_at

    def test_concurrent_change_is_a_conflict(self, strict_manager, store, order, monkeypatch):
        original_update = store.update_status

        def racing_update(order_id, status, expected_status=None):
            original_update(order_id, OrderStatus.CANCELLED)
            return original_update(order_id, status, expected_status=expected_status)

        monkeypatch.setattr(store, "update_status", racing_update)

        with pytest.raises(TransitionConflictError):
            strict_manager.set_status(order.id, "processing")

        assert store.get_by_id(order.id).status == OrderStatus.CANCELLED


class TestTransitionPolicy:
    """Tests for the policy object on its own."""

    def test_lenient_allows_everything(self):
        policy = TransitionPolicy.lenient()

        assert not policy.is_strict
        assert all(policy.allows(a, b) for a in OrderStatus for b in OrderStatus)

    def test_strict_table(self):
        policy = TransitionPolicy.strict()

        assert policy.is_strict
        assert policy.allows(OrderStatus.PENDING, OrderStatus.PROCESSING)
        assert policy.allows(OrderStatus.SHIPPED, OrderStatus.CANCELLED)
        assert not policy.allows(OrderStatus.PENDING, OrderStatus.DELIVERED)
        assert not policy.allows(OrderStatus.DELIVERED, OrderStatus.CANCELLED)

    def test_terminal_states_have_no_exits(self):
        for status in OrderStatus:
            assert (STRICT_TRANSITIONS[status] == frozenset()) == status.is_terminal

    def test_staying_put_is_always_allowed(self):
        policy = TransitionPolicy.strict()
        assert all(policy.allows(status, status) for status in OrderStatus)


class TestParseStatus:
    """Tests for status string parsing."""

    @pytest.mark.parametrize("value", OrderStatus.values())
    def test_known_values(self, value):
        assert parse_status(value).value == value

    def test_enum_passes_through(self):
        assert parse_status(OrderStatus.SHIPPED) is OrderStatus.SHIPPED

    @pytest.mark.parametrize("value", ["Shipped", "lost", "", None, 3])
    def test_unknown_values(self, value):
        with pytest.raises(OrderValidationError) as exc_info:
            parse_status(value)

        assert exc_info.value.message == (
            "Status must be one of: pending, processing, shipped, delivered, cancelled"
        )
