"""
Domain models for the storefront order service.

These models describe the data that crosses the boundary between the order
service, its database and the product catalog.

Design decisions:
- Using Pydantic for validation and serialization
- Money is always a Decimal quantized to two places (never float)
- Products are read-only references owned by the catalog service
- Order items carry a name/price snapshot taken when the order was created
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator


CENTS = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """
    Convert a price-like value to a Decimal with two places.

    Floats go through str() so 29.99 stays 29.99 instead of picking up
    binary noise.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a monetary amount: {value!r}")
    try:
        if isinstance(value, Decimal):
            amount = value
        elif isinstance(value, float):
            amount = Decimal(str(value))
        else:
            amount = Decimal(value)
        if not amount.is_finite():
            raise ValueError(f"Not a monetary amount: {value!r}")
        return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Not a monetary amount: {value!r}") from e


# =============================================================================
# Enums - Status values used across the domain
# =============================================================================

class OrderStatus(str, Enum):
    """
    Order lifecycle states.

    pending -> processing -> shipped -> delivered, and any non-terminal
    state may move to cancelled.
    """
    PENDING = "pending"           # Order created, awaiting processing
    PROCESSING = "processing"     # Order is being processed
    SHIPPED = "shipped"           # Order has been shipped
    DELIVERED = "delivered"       # Order has been delivered
    CANCELLED = "cancelled"       # Order was cancelled

    @classmethod
    def values(cls) -> list[str]:
        return [status.value for status in cls]

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)


# =============================================================================
# Catalog reference
# =============================================================================

class Product(BaseModel):
    """
    Product as served by the catalog service.

    The order service only ever reads these. The catalog's database returns
    DECIMAL columns as strings, so price accepts "29.99" as well as numbers.
    """
    id: int = Field(..., description="Catalog product identifier")
    name: str = Field(..., description="Product display name")
    price: Decimal = Field(..., ge=0, description="Current unit price")
    stock: int = Field(default=0, ge=0, description="Units available")
    category: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)
    image_url: Optional[str] = Field(default=None)

    @field_validator("price", mode="before")
    @classmethod
    def _parse_price(cls, value: Any) -> Decimal:
        return to_money(value)


# =============================================================================
# Orders
# =============================================================================

class OrderItem(BaseModel):
    """
    A single line within an order.

    product_name and price are frozen at creation time so historical
    orders are unaffected by later catalog changes.
    """
    id: int
    order_id: int
    product_id: int
    product_name: str
    quantity: int = Field(..., ge=1)
    price: Decimal = Field(..., ge=0, description="Unit price at time of order")
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def line_total(self) -> Decimal:
        return to_money(self.price * self.quantity)


class Order(BaseModel):
    """
    Order header plus its items.

    total_amount is computed once at creation from the item snapshots.
    """
    id: int
    customer_name: str
    customer_email: str
    status: OrderStatus = OrderStatus.PENDING
    total_amount: Decimal = Field(..., ge=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: list[OrderItem] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

    def items_total(self) -> Decimal:
        """Sum of price x quantity over the stored items."""
        return to_money(sum((item.line_total for item in self.items), Decimal("0")))


# =============================================================================
# Response envelope
# =============================================================================

class ApiResponse(BaseModel):
    """Uniform response body: {success, data?, count?, error?}."""
    success: bool
    data: Optional[Any] = None
    count: Optional[int] = None
    error: Optional[str] = None

    def to_body(self) -> dict[str, Any]:
        """JSON-ready dict with unset top-level keys dropped."""
        body = self.model_dump(mode="json")
        return {key: value for key, value in body.items() if value is not None}
