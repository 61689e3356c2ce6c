"""
FastAPI application for the storefront order service.

Endpoints:
    GET  /health                   - liveness plus database check
    GET  /api/orders               - list orders (status / customer_email filters)
    GET  /api/orders/{id}          - single order with items
    POST /api/orders               - create an order (catalog-validated)
    PUT  /api/orders/{id}/status   - change an order's status

Every response uses the envelope {success, data?, count?, error?}.

Run with:
    uv run uvicorn api.main:app --port 8002

Then visit http://localhost:8002/docs for interactive API documentation.
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s",
    datefmt="%H:%M:%S",
)

from orders.catalog_client import CatalogClient
from orders.lifecycle import OrderLifecycleManager, TransitionPolicy, parse_status
from orders.models import CreateOrderRequest, StatusUpdateRequest
from orders.queries import OrderQueries
from orders.store import OrderStore
from orders.validator import OrderValidator
from shared.config import Settings
from shared.errors import OrderNotFoundError, OrderServiceError
from shared.models import ApiResponse

logger = logging.getLogger("order_api")

# Largest id the orders table can hold (SERIAL)
MAX_ORDER_ID = 2_147_483_647


def _envelope(status_code: int = 200, **fields) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ApiResponse(**fields).to_body())


def _parse_order_id(raw: str) -> int:
    """Path ids that could never name a stored order are simply not found."""
    if raw.isascii() and raw.isdigit() and 0 < int(raw) <= MAX_ORDER_ID:
        return int(raw)
    raise OrderNotFoundError(raw)


# =============================================================================
# Dependencies
# =============================================================================

def get_lifecycle(request: Request) -> OrderLifecycleManager:
    return request.app.state.lifecycle


def get_queries(request: Request) -> OrderQueries:
    return request.app.state.queries


router = APIRouter()


# =============================================================================
# Health Check
# =============================================================================

@router.get("/health", tags=["Health"])
def health_check(request: Request):
    """Health check endpoint. 503 when the database is unreachable."""
    healthy = request.app.state.store.ping()
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "service": "order-service",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - request.app.state.started, 3),
            "database": "ok" if healthy else "unreachable",
        },
    )


# =============================================================================
# Orders
# =============================================================================

@router.get("/api/orders", tags=["Orders"])
def list_orders(
    status: Optional[str] = None,
    customer_email: Optional[str] = None,
    customer_email_alias: Optional[str] = Query(default=None, alias="customerEmail"),
    queries: OrderQueries = Depends(get_queries),
):
    """List orders with their items, newest first."""
    orders = queries.list_orders(
        status=status,
        customer_email=customer_email or customer_email_alias,
    )
    return _envelope(success=True, count=len(orders), data=orders)


@router.get("/api/orders/{order_id}", tags=["Orders"])
def get_order(order_id: str, queries: OrderQueries = Depends(get_queries)):
    """Get a single order with its items."""
    order = queries.get_order(_parse_order_id(order_id))
    return _envelope(success=True, data=order)


@router.post("/api/orders", status_code=201, tags=["Orders"])
def create_order(
    request: CreateOrderRequest,
    lifecycle: OrderLifecycleManager = Depends(get_lifecycle),
):
    """
    Create an order.

    Every item is resolved against the catalog and priced from it; the
    order and its items are stored in one transaction or not at all.
    """
    order = lifecycle.create_order(request.customer_name, request.customer_email, request.items)
    return _envelope(201, success=True, data=order)


@router.put("/api/orders/{order_id}/status", tags=["Orders"])
def update_order_status(
    order_id: str,
    request: StatusUpdateRequest,
    lifecycle: OrderLifecycleManager = Depends(get_lifecycle),
):
    """Change an order's status. Re-sending the current status is a no-op."""
    status = parse_status(request.status)
    order = lifecycle.set_status(_parse_order_id(order_id), status)
    return _envelope(success=True, data=order)


# =============================================================================
# Error handling
# =============================================================================

async def order_service_error_handler(request: Request, exc: OrderServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return _envelope(exc.status_code, success=False, error=exc.message)


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = "malformed request body"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        detail = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    return _envelope(400, success=False, error=f"Invalid request: {detail}")


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _envelope(exc.status_code, success=False, error=str(exc.detail))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _envelope(500, success=False, error="Internal server error")


# =============================================================================
# Application
# =============================================================================

def create_app(
    settings: Optional[Settings] = None,
    store: Optional[OrderStore] = None,
    catalog: Optional[CatalogClient] = None,
) -> FastAPI:
    """
    Build the order service app.

    The store (database pool) and catalog client (HTTP pool) are created in
    the lifespan and released on shutdown. Injected instances are used as-is
    and left open for their owner to close.
    """
    settings = settings or Settings.from_env()
    logging.getLogger().setLevel(settings.log_level.upper())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application startup and shutdown."""
        order_store = store or OrderStore.from_settings(settings)
        catalog_client = catalog or CatalogClient.from_settings(settings)
        order_store.create_schema()

        validator = OrderValidator(
            catalog_client,
            lookup_workers=settings.lookup_workers,
            check_stock=settings.check_stock,
        )
        transitions = TransitionPolicy.strict() if settings.strict_transitions else TransitionPolicy.lenient()

        app.state.store = order_store
        app.state.lifecycle = OrderLifecycleManager(order_store, validator, transitions)
        app.state.queries = OrderQueries(order_store)
        app.state.started = time.monotonic()

        logger.info(
            f"Order service ready (catalog={catalog_client.base_url}, "
            f"strict_transitions={settings.strict_transitions})"
        )
        try:
            yield
        finally:
            logger.info("Shutting down")
            if catalog is None:
                catalog_client.close()
            if store is None:
                order_store.dispose()

    app = FastAPI(
        title="Order Service",
        description="Catalog-validated order creation and order lifecycle for the storefront",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)")
        return response

    app.add_exception_handler(OrderServiceError, order_service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(router)
    return app


app = create_app()
