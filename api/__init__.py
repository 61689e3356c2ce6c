"""
HTTP API for the storefront order service.

This package provides the FastAPI application that exposes order creation,
status changes and order queries over the order core in orders/.
"""

from api.main import app, create_app

__all__ = ["app", "create_app"]
