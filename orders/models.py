"""
Request models for the order service.

These Pydantic models define the contract between HTTP callers and the
order core.

Design decisions:
- Request models are permissive: required-field and value checks happen in
  the lifecycle manager and validator so every failure gets the same
  envelope and message, and so missing fields are caught before any
  catalog lookup
- snake_case is the wire format; camelCase aliases are accepted for
  clients that send productId/customerEmail
"""

from typing import Any, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class OrderItemRequest(BaseModel):
    """One requested line: which product, how many."""
    product_id: Any = Field(
        default=None,
        validation_alias=AliasChoices("product_id", "productId"),
        description="Catalog product identifier",
    )
    quantity: Any = Field(
        default=None,
        description="Units requested; must be a positive integer",
    )

    model_config = ConfigDict(populate_by_name=True)


class CreateOrderRequest(BaseModel):
    """
    Request to create an order.

    The order service resolves every item against the catalog and
    computes the total itself; callers never send prices.
    """
    customer_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("customer_name", "customerName"),
    )
    customer_email: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("customer_email", "customerEmail"),
    )
    items: Optional[list[OrderItemRequest]] = Field(default=None)

    model_config = ConfigDict(populate_by_name=True)


class StatusUpdateRequest(BaseModel):
    status: Optional[str] = Field(default=None, description="Target order status")
