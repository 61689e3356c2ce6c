"""
Walkthrough scripts for the order core.

Each demo wires the real components against an in-memory database and the
in-process catalog stand-in, then prints what happened.
"""

import logging

from fastapi.testclient import TestClient

from catalog.app import create_catalog_app
from catalog.store import ProductCatalog
from orders.catalog_client import CatalogClient
from orders.lifecycle import OrderLifecycleManager, TransitionPolicy
from orders.queries import OrderQueries
from orders.store import OrderStore
from orders.validator import OrderValidator
from shared.errors import OrderServiceError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s",
    datefmt="%H:%M:%S",
)


def _build(strict: bool = False):
    """Fresh catalog, store and manager for one demo run."""
    catalog = ProductCatalog()
    catalog_http = TestClient(create_catalog_app(catalog))
    client = CatalogClient(base_url=str(catalog_http.base_url), http_client=catalog_http)

    store = OrderStore.from_url("sqlite://")
    store.create_schema()

    policy = TransitionPolicy.strict() if strict else TransitionPolicy.lenient()
    manager = OrderLifecycleManager(store, OrderValidator(client), policy)
    return catalog, store, manager, OrderQueries(store)


def _banner(title: str) -> None:
    print("\n" + "=" * 70)
    print(title)
    print("=" * 70 + "\n")


def run_create_order_demo():
    """
    Create an order and show that its total and item snapshots come from
    the catalog, not from the caller.
    """
    _banner("DEMO: Catalog-validated order creation")
    catalog, store, manager, queries = _build()

    order = manager.create_order(
        "Alice Example",
        "alice@example.com",
        [{"product_id": 2, "quantity": 2}, {"product_id": 3, "quantity": 1}],
    )
    print(f"Order {order.id} ({order.status.value}) total ${order.total_amount}")
    for item in order.items:
        print(f"  - {item.product_name} x{item.quantity} @ ${item.price}")

    print("\nACTION: catalog drops the Wireless Mouse price to $19.99")
    catalog.update_product_price(2, "19.99")
    stored = queries.get_order(order.id)
    print(f"Stored order still totals ${stored.total_amount} (snapshot unchanged)")

    store.dispose()
    return order


def run_unknown_product_demo():
    """Reference a product the catalog does not have: nothing is persisted."""
    _banner("DEMO: Rejected order leaves no trace")
    _, store, manager, queries = _build()

    try:
        manager.create_order("Bob Example", "bob@example.com", [
            {"product_id": 1, "quantity": 1},
            {"product_id": 9999, "quantity": 1},
        ])
    except OrderServiceError as e:
        print(f"Rejected: {e.message}")

    remaining = queries.list_orders(customer_email="bob@example.com")
    print(f"Orders stored for bob@example.com: {len(remaining)}")

    store.dispose()
    return remaining


def run_status_lifecycle_demo():
    """Walk an order through its statuses under both transition policies."""
    _banner("DEMO: Status lifecycle (lenient vs strict)")

    for strict in (False, True):
        label = "strict" if strict else "lenient"
        _, store, manager, _ = _build(strict=strict)
        order = manager.create_order("Carol Example", "carol@example.com", [{"product_id": 4, "quantity": 1}])

        print(f"[{label}] order {order.id} created as {order.status.value}")
        for target in ("processing", "shipped", "shipped", "delivered", "pending"):
            try:
                order = manager.set_status(order.id, target)
                print(f"[{label}]   -> {target}: ok (now {order.status.value})")
            except OrderServiceError as e:
                print(f"[{label}]   -> {target}: refused ({e.message})")
        store.dispose()


def run_all_demos():
    run_create_order_demo()
    run_unknown_product_demo()
    run_status_lifecycle_demo()
