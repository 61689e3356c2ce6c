"""
Shared pytest fixtures for the order service tests.

These fixtures provide a known catalog, an in-memory order database and
fully wired services, fresh for every test.
"""

import pytest
import httpx
from pathlib import Path
from fastapi.testclient import TestClient

from api.main import create_app
from catalog.app import create_catalog_app
from catalog.store import ProductCatalog
from orders.catalog_client import CatalogClient
from orders.lifecycle import OrderLifecycleManager, TransitionPolicy
from orders.queries import OrderQueries
from orders.store import OrderStore
from orders.validator import OrderValidator
from shared.config import Settings
from shared.models import Product


@pytest.fixture
def data_dir() -> Path:
    """Path to the JSON fixture directory used by the catalog stand-in."""
    return Path(__file__).parent.parent / "data"


# =============================================================================
# Catalog Fixtures
# =============================================================================

@pytest.fixture
def products() -> list[Product]:
    """
    Products known to the test catalog.

    1: Wireless Mouse, 29.99, plenty of stock
    2: USB-C Hub, 49.99
    3: 4K Monitor, 399.99, only 2 left (stock checks)
    """
    return [
        Product(id=1, name="Wireless Mouse", price="29.99", stock=200, category="Accessories"),
        Product(id=2, name="USB-C Hub", price="49.99", stock=100, category="Accessories"),
        Product(id=3, name='4K Monitor 27"', price="399.99", stock=2, category="Electronics"),
    ]


@pytest.fixture
def catalog(products) -> ProductCatalog:
    """In-memory catalog; tests may change prices on it."""
    return ProductCatalog(products=products)


@pytest.fixture
def catalog_http(catalog) -> TestClient:
    """HTTP client talking to the in-process catalog app."""
    return TestClient(create_catalog_app(catalog))


@pytest.fixture
def catalog_client(catalog_http) -> CatalogClient:
    """CatalogClient wired to the in-process catalog app."""
    return CatalogClient(base_url=str(catalog_http.base_url), http_client=catalog_http)


@pytest.fixture
def make_catalog_client():
    """
    Factory for CatalogClients backed by an httpx.MockTransport handler.

    Used to simulate catalog failures: timeouts, 5xx, garbage bodies.
    """
    opened = []

    def _make(handler, **kwargs) -> CatalogClient:
        http = httpx.Client(base_url="http://catalog.test", transport=httpx.MockTransport(handler))
        opened.append(http)
        return CatalogClient(base_url="http://catalog.test", http_client=http, **kwargs)

    yield _make
    for http in opened:
        http.close()


# =============================================================================
# Order Fixtures
# =============================================================================

@pytest.fixture
def store() -> OrderStore:
    """Fresh in-memory order database with the schema created."""
    order_store = OrderStore.from_url("sqlite://")
    order_store.create_schema()
    yield order_store
    order_store.dispose()


@pytest.fixture
def validator(catalog_client) -> OrderValidator:
    return OrderValidator(catalog_client)


@pytest.fixture
def manager(store, validator) -> OrderLifecycleManager:
    """Lifecycle manager with the default lenient transition policy."""
    return OrderLifecycleManager(store, validator)


@pytest.fixture
def strict_manager(store, validator) -> OrderLifecycleManager:
    """Lifecycle manager enforcing the transition table."""
    return OrderLifecycleManager(store, validator, TransitionPolicy.strict())


@pytest.fixture
def queries(store) -> OrderQueries:
    return OrderQueries(store)


@pytest.fixture
def alice_items() -> list[dict]:
    """Two Wireless Mice (29.99 each): total 59.98."""
    return [{"product_id": 1, "quantity": 2}]


# =============================================================================
# API Fixtures
# =============================================================================

@pytest.fixture
def api_client(store, catalog_client):
    """Order service test client with the lifespan running."""
    app = create_app(Settings(), store=store, catalog=catalog_client)
    with TestClient(app) as client:
        yield client
