"""
Error taxonomy for the order service.

Lower layers return typed results; the lifecycle manager and query surface
turn them into these exceptions, and the HTTP layer maps each one to a
status code in a single handler.
"""

from typing import Any, Optional


class OrderServiceError(Exception):
    """Base class for every caller-facing failure."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class OrderValidationError(OrderServiceError):
    """Missing or blank fields, empty item list, bad quantity, unknown status."""

    status_code = 400


class ProductReferenceError(OrderServiceError):
    """A requested product could not be resolved against the catalog."""

    status_code = 400

    def __init__(self, message: str, product_id: Any, reason: Optional[str] = None):
        super().__init__(message)
        self.product_id = product_id
        self.reason = reason


class OrderNotFoundError(OrderServiceError):
    status_code = 404

    def __init__(self, order_id: Any):
        super().__init__("Order not found")
        self.order_id = order_id


class TransitionConflictError(OrderServiceError):
    """Status change refused by the transition table or lost a concurrent race."""

    status_code = 409


class StorageError(OrderServiceError):
    """Database failure. Raised only after the transaction has rolled back."""

    status_code = 500
