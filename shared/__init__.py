"""
Shared infrastructure for the storefront order service.

This package contains code used by the order core, the HTTP layer and the
catalog stand-in:
- Domain models (Product, Order, OrderItem, OrderStatus)
- The caller-facing error taxonomy
- Environment-driven settings
"""

from shared.models import (
    Product,
    Order,
    OrderItem,
    OrderStatus,
    ApiResponse,
    to_money,
)
from shared.errors import (
    OrderServiceError,
    OrderValidationError,
    ProductReferenceError,
    OrderNotFoundError,
    TransitionConflictError,
    StorageError,
)
from shared.config import Settings

__all__ = [
    "Product",
    "Order",
    "OrderItem",
    "OrderStatus",
    "ApiResponse",
    "to_money",
    "OrderServiceError",
    "OrderValidationError",
    "ProductReferenceError",
    "OrderNotFoundError",
    "TransitionConflictError",
    "StorageError",
    "Settings",
]
