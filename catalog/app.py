"""
FastAPI stand-in for the catalog service.

Serves the read endpoints the order service depends on, using the same
response envelope as the real catalog:

    GET /api/products/{id}  -> {"success": true, "data": {...}} or 404
    GET /api/products       -> {"success": true, "count": n, "data": [...]}

Run with:
    uv run uvicorn catalog.app:app --port 8001
"""

import logging
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse

from catalog.store import ProductCatalog
from shared.models import ApiResponse

logger = logging.getLogger("catalog_api")


def _envelope(status_code: int = 200, **fields) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ApiResponse(**fields).to_body())


def create_catalog_app(catalog: Optional[ProductCatalog] = None) -> FastAPI:
    """Build the catalog app around a product store (JSON fixture by default)."""
    catalog = catalog or ProductCatalog()
    started = time.monotonic()

    app = FastAPI(
        title="Catalog Service (stand-in)",
        description="Read-only product catalog used by the order service",
        version="1.0.0",
    )
    app.state.catalog = catalog

    @app.get("/health", tags=["Health"])
    def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "product-service",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - started, 3),
        }

    @app.get("/api/products", tags=["Products"])
    def list_products(
        category: Optional[str] = None,
        min_price: Optional[Decimal] = Query(default=None, alias="minPrice"),
        max_price: Optional[Decimal] = Query(default=None, alias="maxPrice"),
    ):
        """List products with optional category and price filters."""
        products = catalog.list_products(category=category, min_price=min_price, max_price=max_price)
        return _envelope(success=True, count=len(products), data=products)

    @app.get("/api/products/{product_id}", tags=["Products"])
    def get_product(product_id: str):
        """Get a single product. Unknown or non-numeric ids are a 404."""
        numeric = product_id.isascii() and product_id.isdigit()
        product = catalog.get_product(int(product_id)) if numeric else None
        if product is None:
            logger.info(f"Product not found: {product_id}")
            return _envelope(404, success=False, error="Product not found")
        return _envelope(success=True, data=product)

    return app


app = create_catalog_app()
