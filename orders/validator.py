"""
Order validator.

Turns a proposed item list into an authoritative, priced item set by
resolving every product against the catalog.

All-or-nothing: if any item fails to resolve, the whole list is rejected
and no partial result is returned. Prices and names come from the
catalog, never from the caller, and are frozen into the validated items.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Optional, Union

from orders.catalog_client import CatalogClient, Found, LookupResult, NotFound, Unavailable
from orders.models import OrderItemRequest
from shared.models import to_money

logger = logging.getLogger("order_validator")

# Column limits: order_items.quantity is INTEGER, money columns are NUMERIC(10, 2)
MAX_QUANTITY = 2_147_483_647
MAX_ORDER_TOTAL = Decimal("99999999.99")


class RejectionKind(str, Enum):
    EMPTY_ITEMS = "empty_items"
    INVALID_QUANTITY = "invalid_quantity"
    PRODUCT_NOT_FOUND = "product_not_found"
    CATALOG_UNAVAILABLE = "catalog_unavailable"
    INSUFFICIENT_STOCK = "insufficient_stock"
    TOTAL_TOO_LARGE = "total_too_large"


@dataclass(frozen=True)
class Rejection:
    """Why an item list was refused, and which product caused it."""
    kind: RejectionKind
    product_id: Any = None
    reason: str = ""

    @property
    def message(self) -> str:
        if self.kind == RejectionKind.EMPTY_ITEMS:
            return "Order must contain at least one item"
        if self.kind == RejectionKind.INVALID_QUANTITY:
            return (
                f"Quantity for product {self.product_id} must be a positive integer "
                f"no greater than {MAX_QUANTITY}"
            )
        if self.kind == RejectionKind.PRODUCT_NOT_FOUND:
            return f"Product {self.product_id} not found"
        if self.kind == RejectionKind.TOTAL_TOO_LARGE:
            return f"Order total exceeds the maximum of {MAX_ORDER_TOTAL}"
        if self.kind == RejectionKind.INSUFFICIENT_STOCK:
            return f"Insufficient stock for product {self.product_id}: {self.reason}"
        return f"Product {self.product_id} could not be verified: {self.reason}"


@dataclass(frozen=True)
class ValidatedItem:
    """A line item after resolution, carrying the catalog snapshot."""
    product_id: int
    product_name: str
    quantity: int
    price: Decimal

    @property
    def line_total(self) -> Decimal:
        return to_money(self.price * self.quantity)


@dataclass(frozen=True)
class ValidatedOrder:
    items: tuple[ValidatedItem, ...]
    total: Decimal


ValidationOutcome = Union[ValidatedOrder, Rejection]


def _is_valid_quantity(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 < value <= MAX_QUANTITY


class OrderValidator:
    """
    Resolves and prices order items against the catalog.

    Example:
        validator = OrderValidator(CatalogClient("http://localhost:8001"))
        outcome = validator.validate([{"product_id": 2, "quantity": 2}])
        if isinstance(outcome, ValidatedOrder):
            print(outcome.total)
    """

    def __init__(
        self,
        catalog: CatalogClient,
        lookup_workers: int = 1,
        check_stock: bool = False,
    ):
        """
        Args:
            catalog: Client used for every product lookup.
            lookup_workers: >1 runs lookups concurrently on a thread pool.
            check_stock: Reject items whose quantity exceeds catalog stock.
        """
        self.catalog = catalog
        self.lookup_workers = max(1, lookup_workers)
        self.check_stock = check_stock

    def validate(self, items: Optional[Iterable[Any]]) -> ValidationOutcome:
        requested = [self._coerce(item) for item in (items or [])]

        if not requested:
            return Rejection(RejectionKind.EMPTY_ITEMS)

        # Cheap checks first: no catalog traffic for a request that is already bad
        for item in requested:
            if not _is_valid_quantity(item.quantity):
                return Rejection(RejectionKind.INVALID_QUANTITY, item.product_id)

        results = self._lookup_all([item.product_id for item in requested])

        validated = []
        for item, result in zip(requested, results):
            if isinstance(result, NotFound):
                logger.info(f"Rejecting order: product {item.product_id} not found ({result.reason})")
                return Rejection(RejectionKind.PRODUCT_NOT_FOUND, item.product_id, result.reason)
            if isinstance(result, Unavailable):
                logger.warning(f"Rejecting order: product {item.product_id} unverifiable ({result.reason})")
                return Rejection(RejectionKind.CATALOG_UNAVAILABLE, item.product_id, result.reason)

            product = result.product
            if self.check_stock and item.quantity > product.stock:
                return Rejection(
                    RejectionKind.INSUFFICIENT_STOCK,
                    item.product_id,
                    f"requested {item.quantity}, available {product.stock}",
                )

            validated.append(ValidatedItem(
                product_id=product.id,
                product_name=product.name,
                quantity=item.quantity,
                price=product.price,
            ))

        try:
            total = to_money(sum((item.line_total for item in validated), Decimal("0")))
        except ValueError:
            total = None
        if total is None or total > MAX_ORDER_TOTAL:
            logger.info(f"Rejecting order: total over {MAX_ORDER_TOTAL}")
            return Rejection(RejectionKind.TOTAL_TOO_LARGE)

        logger.info(f"Validated {len(validated)} items, total ${total}")
        return ValidatedOrder(items=tuple(validated), total=total)

    def _lookup_all(self, product_ids: list[Any]) -> list[LookupResult]:
        """Look up every id, preserving request order."""
        if self.lookup_workers == 1 or len(product_ids) == 1:
            results = []
            for product_id in product_ids:
                result = self.catalog.lookup(product_id)
                results.append(result)
                if not isinstance(result, Found):
                    # No point resolving the rest once the order is doomed
                    break
            return results

        workers = min(self.lookup_workers, len(product_ids))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(self.catalog.lookup, product_ids))

    @staticmethod
    def _coerce(item: Any) -> OrderItemRequest:
        if isinstance(item, OrderItemRequest):
            return item
        if isinstance(item, dict):
            return OrderItemRequest.model_validate(item)
        return OrderItemRequest(
            product_id=getattr(item, "product_id", None),
            quantity=getattr(item, "quantity", None),
        )
