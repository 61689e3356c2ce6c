"""
Read side of the order service.

Assembles orders with their items for single and multi-order retrieval.
Items are always served from the snapshot stored at creation time; they
are never refreshed from the catalog.
"""

import logging
from typing import Any, Optional

from orders.lifecycle import parse_status
from orders.store import OrderStore
from shared.errors import OrderNotFoundError
from shared.models import Order

logger = logging.getLogger("order_queries")


class OrderQueries:
    def __init__(self, store: OrderStore):
        self.store = store

    def get_order(self, order_id: int) -> Order:
        order = self.store.get_by_id(order_id)
        if order is None:
            logger.info(f"Order not found: {order_id}")
            raise OrderNotFoundError(order_id)
        return order

    def list_orders(
        self,
        status: Optional[Any] = None,
        customer_email: Optional[str] = None,
    ) -> list[Order]:
        """
        Orders newest first, optionally filtered.

        Blank filters are ignored; an unknown status is a validation error
        rather than an empty result.
        """
        status_filter = parse_status(status) if status not in (None, "") else None
        email_filter = customer_email.strip() if customer_email and customer_email.strip() else None

        orders = self.store.list(status=status_filter, customer_email=email_filter)
        logger.debug(f"Listed {len(orders)} orders (status={status_filter}, email={email_filter})")
        return orders
