"""
Order core.

Catalog-validated order creation with transactional persistence:
- CatalogClient resolves products against the catalog service
- OrderValidator prices a proposed item list, all-or-nothing
- OrderStore persists orders and their items
- OrderLifecycleManager owns the creation transaction and status changes
- OrderQueries serves the read side
"""

from orders.catalog_client import CatalogClient, Found, NotFound, Unavailable
from orders.validator import OrderValidator, ValidatedItem, ValidatedOrder, Rejection, RejectionKind
from orders.store import OrderStore, NewOrder
from orders.lifecycle import OrderLifecycleManager, TransitionPolicy
from orders.queries import OrderQueries

__all__ = [
    "CatalogClient",
    "Found",
    "NotFound",
    "Unavailable",
    "OrderValidator",
    "ValidatedItem",
    "ValidatedOrder",
    "Rejection",
    "RejectionKind",
    "OrderStore",
    "NewOrder",
    "OrderLifecycleManager",
    "TransitionPolicy",
    "OrderQueries",
]
