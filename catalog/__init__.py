"""
Catalog service stand-in.

A JSON-backed product store and the FastAPI app exposing the catalog's
read endpoints, so the order service can run end to end without the real
catalog.
"""

from catalog.store import ProductCatalog
from catalog.app import app, create_catalog_app

__all__ = ["ProductCatalog", "app", "create_catalog_app"]
