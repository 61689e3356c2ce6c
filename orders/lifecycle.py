"""
Order lifecycle manager.

The single place that decides commit vs. rollback for order creation and
that changes an order's status.

Creation protocol:
1. Reject missing/blank customer name, email or item list (no catalog calls)
2. Validate and price every item against the catalog (all-or-nothing)
3. Open a transaction, insert the header as pending with the computed
   total, insert every validated item
4. Commit, or roll back everything on any failure

Catalog lookups finish before the write transaction opens, so a slow
catalog never holds database locks.

Status transitions go through a TransitionPolicy. The default policy is
lenient (any known status may follow any other); the strict policy enforces

    pending -> processing -> shipped -> delivered
    pending | processing | shipped -> cancelled
"""

import logging
from typing import Any, Iterable, Optional

from orders.store import NewOrder, OrderStore
from orders.validator import OrderValidator, Rejection, RejectionKind
from shared.errors import (
    OrderNotFoundError,
    OrderValidationError,
    ProductReferenceError,
    StorageError,
    TransitionConflictError,
)
from shared.models import Order, OrderStatus

logger = logging.getLogger("order_lifecycle")


# Rejections caused by the request itself rather than by a product reference
REQUEST_REJECTIONS = frozenset({
    RejectionKind.EMPTY_ITEMS,
    RejectionKind.INVALID_QUANTITY,
    RejectionKind.TOTAL_TOO_LARGE,
})

STRICT_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


class TransitionPolicy:
    """Which status changes are allowed. Staying in place is always allowed."""

    def __init__(self, table: Optional[dict[OrderStatus, frozenset[OrderStatus]]] = None):
        """
        Args:
            table: Allowed targets per current status. None allows everything.
        """
        self.table = table

    @classmethod
    def lenient(cls) -> "TransitionPolicy":
        return cls(None)

    @classmethod
    def strict(cls) -> "TransitionPolicy":
        return cls(STRICT_TRANSITIONS)

    @property
    def is_strict(self) -> bool:
        return self.table is not None

    def allows(self, current: OrderStatus, target: OrderStatus) -> bool:
        if current == target or self.table is None:
            return True
        return target in self.table.get(current, frozenset())


def parse_status(value: Any) -> OrderStatus:
    """Map a caller-supplied status string to OrderStatus or raise a validation error."""
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        raise OrderValidationError(
            f"Status must be one of: {', '.join(OrderStatus.values())}"
        ) from None


def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


class OrderLifecycleManager:
    """
    Creates orders and moves them through their statuses.

    Example:
        manager = OrderLifecycleManager(store, OrderValidator(catalog))
        order = manager.create_order("Alice", "alice@example.com",
                                     [{"product_id": 2, "quantity": 2}])
        manager.set_status(order.id, "processing")
    """

    def __init__(
        self,
        store: OrderStore,
        validator: OrderValidator,
        transitions: Optional[TransitionPolicy] = None,
    ):
        self.store = store
        self.validator = validator
        self.transitions = transitions or TransitionPolicy.lenient()

    def create_order(
        self,
        customer_name: Optional[str],
        customer_email: Optional[str],
        items: Optional[Iterable[Any]],
    ) -> Order:
        """
        Validate, price and persist a new order.

        Raises:
            OrderValidationError: required fields missing, bad quantity
            ProductReferenceError: a product could not be resolved
            StorageError: the transaction failed and was rolled back
        """
        items = list(items or [])
        if _blank(customer_name) or _blank(customer_email) or not items:
            raise OrderValidationError("Customer name, email, and items are required")

        customer_name = customer_name.strip()
        customer_email = customer_email.strip()

        outcome = self.validator.validate(items)
        if isinstance(outcome, Rejection):
            raise self._rejection_error(outcome)

        header = NewOrder(
            customer_name=customer_name,
            customer_email=customer_email,
            total_amount=outcome.total,
        )
        try:
            with self.store.transaction() as session:
                order_id = self.store.add_order(session, header, outcome.items)
        except StorageError as e:
            logger.error(f"Order for {customer_email} rolled back; nothing persisted")
            raise StorageError("Failed to create order") from e

        order = self.store.get_by_id(order_id)
        logger.info(
            f"Order {order_id} created for {customer_email}: "
            f"{len(outcome.items)} items, total ${outcome.total}"
        )
        return order

    def set_status(self, order_id: int, target: Any) -> Order:
        """
        Move an order to a new status.

        Re-applying the current status is a successful no-op. Under the strict
        policy the update is conditional on the status that was read, so a
        concurrent change surfaces as TransitionConflictError.
        """
        status = parse_status(target)

        order = self.store.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)

        if order.status == status:
            logger.info(f"Order {order_id} already {status.value}; nothing to do")
            return order

        if not self.transitions.allows(order.status, status):
            raise TransitionConflictError(
                f"Cannot change order {order_id} from {order.status.value} to {status.value}"
            )

        expected = order.status if self.transitions.is_strict else None
        updated = self.store.update_status(order_id, status, expected_status=expected)
        if updated is None:
            raise OrderNotFoundError(order_id)

        logger.info(f"Order {order_id} status {order.status.value} -> {status.value}")
        return updated

    @staticmethod
    def _rejection_error(rejection: Rejection) -> Exception:
        if rejection.kind in REQUEST_REJECTIONS:
            return OrderValidationError(rejection.message)
        return ProductReferenceError(
            rejection.message,
            product_id=rejection.product_id,
            reason=rejection.reason,
        )
