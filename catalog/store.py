"""
JSON-backed product catalog used as a stand-in for the catalog service.

The real catalog owns its own database; the order service only ever calls
its single-product endpoint. This store lets that endpoint run in-process
for local development, the demo and the tests.

Design decisions:
- Products are loaded lazily from data/products.json
- Write operations update in-memory state only (used to simulate catalog
  changes after an order was placed)
"""

import json
from pathlib import Path
from typing import Iterable, Optional
from decimal import Decimal

from shared.models import Product, to_money


class ProductCatalog:
    """
    In-memory product catalog.

    Example:
        catalog = ProductCatalog()
        catalog.get_product(2)        # Wireless Mouse
        catalog.list_products(category="Accessories")
    """

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        products: Optional[Iterable[Product]] = None,
    ):
        """
        Initialize the catalog.

        Args:
            data_dir: Directory containing products.json. Defaults to ./data
                      relative to the project root.
            products: Explicit product list; skips the JSON fixture entirely.
        """
        if data_dir is None:
            data_dir = Path(__file__).parent.parent / "data"

        self.data_dir = Path(data_dir)
        self._products: Optional[dict[int, Product]] = None
        if products is not None:
            self._products = {p.id: p for p in products}

    def _load_json(self, filename: str) -> list[dict]:
        filepath = self.data_dir / filename
        if not filepath.exists():
            return []
        with open(filepath, "r") as f:
            return json.load(f)

    def _ensure_products_loaded(self):
        if self._products is None:
            data = self._load_json("products.json")
            self._products = {p["id"]: Product(**p) for p in data}

    def get_product(self, product_id: int) -> Optional[Product]:
        self._ensure_products_loaded()
        return self._products.get(product_id)

    def list_products(
        self,
        category: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
    ) -> list[Product]:
        """All products matching the optional filters, highest id first."""
        self._ensure_products_loaded()
        products = sorted(self._products.values(), key=lambda p: p.id, reverse=True)
        if category:
            products = [p for p in products if p.category == category]
        if min_price is not None:
            products = [p for p in products if p.price >= min_price]
        if max_price is not None:
            products = [p for p in products if p.price <= max_price]
        return products

    def update_product_price(self, product_id: int, new_price) -> Optional[Product]:
        """
        Update a product's price (in-memory only).

        Returns the updated product or None if not found.
        """
        self._ensure_products_loaded()
        product = self._products.get(product_id)
        if product is None:
            return None
        updated = product.model_copy(update={"price": to_money(new_price)})
        self._products[product_id] = updated
        return updated

    def remove_product(self, product_id: int) -> bool:
        self._ensure_products_loaded()
        return self._products.pop(product_id, None) is not None

    def reload(self):
        """Drop in-memory changes and re-read the fixture on next access."""
        self._products = None
