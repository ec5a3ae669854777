"""
Configuration module for the SuspensionPrice comparison backend.

All settings are configurable via environment variables with sensible defaults
for Databricks Apps deployment.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Unity Catalog
# ---------------------------------------------------------------------------
CATALOG_NAME: str = os.getenv("CATALOG_NAME", "suspension_catalog")
SCHEMA_CATALOG: str = os.getenv("SCHEMA_CATALOG", "pricing")


# Fully-qualified table helpers
def _fqn(schema: str, table: str) -> str:
    """Return a fully-qualified three-level Unity Catalog table name."""
    return f"{CATALOG_NAME}.{schema}.{table}"


TABLE_PRODUCTS: str = _fqn(SCHEMA_CATALOG, os.getenv("TABLE_PRODUCTS", "products"))
TABLE_BRANDS: str = _fqn(SCHEMA_CATALOG, os.getenv("TABLE_BRANDS", "brands"))
TABLE_PRICES: str = _fqn(SCHEMA_CATALOG, os.getenv("TABLE_PRICES", "prices"))
TABLE_SETTINGS: str = _fqn(SCHEMA_CATALOG, os.getenv("TABLE_SETTINGS", "app_settings"))
TABLE_PRICE_HISTORY: str = _fqn(
    SCHEMA_CATALOG, os.getenv("TABLE_PRICE_HISTORY", "price_history")
)

# ---------------------------------------------------------------------------
# SQL Warehouse
# ---------------------------------------------------------------------------
WAREHOUSE_ID: str = os.getenv("DATABRICKS_WAREHOUSE_ID", "your-warehouse-id")

# ---------------------------------------------------------------------------
# Caching
# ---------------------------------------------------------------------------
CACHE_TTL: int = int(os.getenv("CACHE_TTL", "300"))  # seconds

# ---------------------------------------------------------------------------
# Databricks connection (local dev fallback)
# ---------------------------------------------------------------------------
DATABRICKS_HOST: str = os.getenv("DATABRICKS_HOST", "")
DATABRICKS_TOKEN: str = os.getenv("DATABRICKS_TOKEN", "")

# ---------------------------------------------------------------------------
# Admin access
# ---------------------------------------------------------------------------
ADMIN_USERS: list[str] = [
    email.strip().lower()
    for email in os.getenv("ADMIN_USERS", "admin@suspensionprice.my").split(",")
    if email.strip()
]
HISTORY_LIMIT: int = int(os.getenv("HISTORY_LIMIT", "50"))

# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------
APP_TITLE: str = "SuspensionPrice Comparison"
APP_VERSION: str = "1.0.0"
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
STATIC_FILES_DIR: str = os.getenv("STATIC_FILES_DIR", "static")
