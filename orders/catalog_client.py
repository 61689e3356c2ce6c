"""
Catalog lookup client.

Point lookup of a single product against the catalog service:

    GET {catalog_url}/api/products/{id}

Every call resolves to exactly one of three results:
- Found: the catalog returned the product
- NotFound: the product does not exist, or the identifier is malformed
- Unavailable: timeout, connection failure, 5xx, 408/429, or an unreadable
  response

NotFound and Unavailable are kept apart so callers can tell "this order is
wrong" from "the catalog is down", even though order creation currently
rejects on both.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Union

import httpx
from pydantic import ValidationError

from shared.config import Settings
from shared.models import Product

logger = logging.getLogger("catalog_client")

# Request timeout and rate limiting say nothing about whether the product exists
RETRYABLE_STATUSES = frozenset({408, 429})


@dataclass(frozen=True)
class Found:
    product_id: Any
    product: Product


@dataclass(frozen=True)
class NotFound:
    product_id: Any
    reason: str = "product not found"


@dataclass(frozen=True)
class Unavailable:
    product_id: Any
    reason: str = "catalog service unavailable"


LookupResult = Union[Found, NotFound, Unavailable]


def normalize_product_id(value: Any) -> Optional[int]:
    """
    Interpret a caller-supplied product id as a positive integer.

    Returns None for anything the catalog could never match, so the
    lookup can answer NotFound without a network round trip.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str):
        text = value.strip()
        if text.isascii() and text.isdigit():
            number = int(text)
            return number if number > 0 else None
    return None


class CatalogClient:
    """
    Synchronous client for the catalog's single-product endpoint.

    The client owns an httpx connection pool unless one is injected; call
    close() (or use it as a context manager) when done.

    Example:
        with CatalogClient("http://localhost:8001", timeout=2.0) as catalog:
            result = catalog.lookup(2)
            if isinstance(result, Found):
                print(result.product.price)
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8001",
        timeout: float = 5.0,
        http_client: Optional[httpx.Client] = None,
    ):
        """
        Args:
            base_url: Root URL of the catalog service.
            timeout: Seconds allowed for each lookup (connect + read).
            http_client: Pre-built client (tests, shared pools). It must carry
                         its own base_url and timeout; it is not closed here.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "CatalogClient":
        return cls(base_url=settings.catalog_url, timeout=settings.catalog_timeout)

    def lookup(self, product_id: Any) -> LookupResult:
        """
        Resolve one product id. Never raises for catalog-side failures.

        The whole call (connect, headers, body) must finish within
        `timeout` seconds; a catalog that trickles its body is cut off.
        """
        normalized = normalize_product_id(product_id)
        if normalized is None:
            logger.info(f"Rejecting malformed product id without lookup: {product_id!r}")
            return NotFound(product_id, "invalid product identifier")

        deadline = time.monotonic() + self.timeout
        try:
            with self._http.stream("GET", f"/api/products/{normalized}") as response:
                chunks = []
                for chunk in response.iter_bytes():
                    if time.monotonic() > deadline:
                        logger.warning(f"Catalog lookup for product {normalized} exceeded {self.timeout}s")
                        return Unavailable(product_id, "catalog service timed out")
                    chunks.append(chunk)
        except httpx.TimeoutException as e:
            logger.warning(f"Catalog lookup timed out for product {normalized}: {e}")
            return Unavailable(product_id, "catalog service timed out")
        except httpx.HTTPError as e:
            logger.warning(f"Catalog unreachable for product {normalized}: {e}")
            return Unavailable(product_id, "catalog service unreachable")

        if time.monotonic() > deadline:
            logger.warning(f"Catalog lookup for product {normalized} exceeded {self.timeout}s")
            return Unavailable(product_id, "catalog service timed out")

        return self._interpret(product_id, response.status_code, b"".join(chunks))

    def _interpret(self, product_id: Any, status: int, content: bytes) -> LookupResult:
        if status >= 500 or status in RETRYABLE_STATUSES:
            logger.warning(f"Catalog returned {status} for product {product_id}")
            return Unavailable(product_id, f"catalog service error ({status})")
        if 400 <= status < 500:
            logger.info(f"Catalog returned {status} for product {product_id}")
            return NotFound(product_id)
        if status != 200:
            return Unavailable(product_id, f"unexpected catalog response ({status})")

        try:
            body = json.loads(content)
        except ValueError:
            logger.error(f"Catalog sent a non-JSON body for product {product_id}")
            return Unavailable(product_id, "malformed catalog response")

        if not isinstance(body, dict) or not body.get("success"):
            error = body.get("error") if isinstance(body, dict) else None
            return NotFound(product_id, error or "product not found")

        try:
            product = Product.model_validate(body.get("data"))
        except ValidationError as e:
            logger.error(f"Catalog sent an invalid product for {product_id}: {e}")
            return Unavailable(product_id, "malformed catalog response")

        return Found(product_id, product)

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def __enter__(self) -> "CatalogClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
