"""
Runtime configuration for the order service.

Values come from environment variables so the same build runs locally,
in docker-compose and in tests. Variable names follow the ones the
storefront's other services already use (PRODUCT_SERVICE_URL, DB_*).
"""

import os
from typing import Mapping, Optional
from pydantic import BaseModel, Field


# Environment variable -> Settings field
ENV_VARS = {
    "DATABASE_URL": "database_url",
    "PRODUCT_SERVICE_URL": "catalog_url",
    "CATALOG_TIMEOUT_SECONDS": "catalog_timeout",
    "CATALOG_LOOKUP_WORKERS": "lookup_workers",
    "ORDER_STRICT_TRANSITIONS": "strict_transitions",
    "ORDER_CHECK_STOCK": "check_stock",
    "DB_POOL_SIZE": "db_pool_size",
    "DB_POOL_TIMEOUT": "db_pool_timeout",
    "LOG_LEVEL": "log_level",
}


class Settings(BaseModel):
    """Order service settings. Invalid values fail fast at startup."""
    database_url: str = Field(default="sqlite:///./orders.db")
    catalog_url: str = Field(default="http://localhost:8001")
    catalog_timeout: float = Field(default=5.0, gt=0, description="Seconds per catalog lookup")
    lookup_workers: int = Field(default=1, ge=1, description="Concurrent catalog lookups per order")
    strict_transitions: bool = Field(default=False, description="Enforce the status transition table")
    check_stock: bool = Field(default=False, description="Reject items that exceed catalog stock")
    db_pool_size: int = Field(default=20, ge=1)
    db_pool_timeout: float = Field(default=2.0, gt=0)
    log_level: str = Field(default="INFO")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from the environment, ignoring unset or empty variables."""
        environ = os.environ if environ is None else environ
        values = {
            field: environ[name]
            for name, field in ENV_VARS.items()
            if environ.get(name, "").strip()
        }
        return cls(**values)
