"""
Price maintenance service.

Upserts a product's price snapshot, logs the old and new values to the price
history table, and reads the latest history entries back with product and
brand details.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from pricematrix.models import (
    TIER_KEYS,
    PriceChange,
    PriceHistoryEntry,
    PriceSnapshot,
    PriceUpdateRequest,
)
from pricematrix.services.catalog import CACHE_PREFIX, price_from_row
from pricematrix.utils.config import (
    TABLE_BRANDS,
    TABLE_PRICE_HISTORY,
    TABLE_PRICES,
    TABLE_PRODUCTS,
)
from pricematrix.utils.databricks_client import execute_sql, invalidate_cache

logger = logging.getLogger(__name__)


def _snapshot_json(snapshot: PriceSnapshot | None) -> str:
    if snapshot is None:
        return "{}"
    return snapshot.model_dump_json(exclude_none=True)


def _load_snapshot(raw: Any) -> dict[str, float]:
    if not raw:
        return {}
    data = json.loads(raw) if isinstance(raw, str) else dict(raw)
    return {k: float(v) for k, v in data.items() if k in TIER_KEYS and v is not None}


def diff_prices(old: dict[str, float], new: dict[str, float]) -> list[PriceChange]:
    """List the tiers whose value changed.  Zero and missing are the same."""
    changes: list[PriceChange] = []
    for tier in TIER_KEYS:
        before = old.get(tier) or 0.0
        after = new.get(tier) or 0.0
        if before == after:
            continue
        changes.append(PriceChange(tier=tier, old=before, new=after))
    return changes


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------
def get_current_price(product_id: str) -> PriceSnapshot | None:
    """Return the newest snapshot for a product.

    Raises
    ------
    ValueError
        If the product does not exist.
    """
    product_rows = execute_sql(
        f"SELECT id FROM {TABLE_PRODUCTS} WHERE id = :product_id LIMIT 1",
        parameters={"product_id": product_id},
    )
    if not product_rows:
        raise ValueError(f"Product {product_id} not found")

    price_cols = ", ".join(f"price_{tier}" for tier in TIER_KEYS)
    rows = execute_sql(
        f"""
        SELECT {price_cols}
        FROM {TABLE_PRICES}
        WHERE product_id = :product_id
        ORDER BY updated_at DESC
        LIMIT 1
        """,
        parameters={"product_id": product_id},
    )
    return price_from_row(rows[0]) if rows else None


def update_prices(
    product_id: str,
    request: PriceUpdateRequest,
    changed_by: str | None = None,
) -> PriceSnapshot:
    """Store new prices for *product_id* and append a history entry."""
    old = get_current_price(product_id)
    new = PriceSnapshot(**request.model_dump())
    now = datetime.now(timezone.utc).isoformat()

    assignments = ", ".join(f"t.price_{tier} = s.price_{tier}" for tier in TIER_KEYS)
    source_cols = ", ".join(
        f"CAST(:{tier} AS DOUBLE) AS price_{tier}" for tier in TIER_KEYS
    )
    insert_cols = ", ".join(f"price_{tier}" for tier in TIER_KEYS)
    insert_vals = ", ".join(f"s.price_{tier}" for tier in TIER_KEYS)
    execute_sql(
        f"""
        MERGE INTO {TABLE_PRICES} t
        USING (SELECT :product_id AS product_id, {source_cols},
                      CAST(:updated_at AS TIMESTAMP) AS updated_at) s
        ON t.product_id = s.product_id
        WHEN MATCHED THEN UPDATE SET {assignments}, t.updated_at = s.updated_at
        WHEN NOT MATCHED THEN INSERT (product_id, {insert_cols}, updated_at)
            VALUES (s.product_id, {insert_vals}, s.updated_at)
        """,
        parameters={
            "product_id": product_id,
            "updated_at": now,
            **{tier: getattr(new, tier) for tier in TIER_KEYS},
        },
    )

    execute_sql(
        f"""
        INSERT INTO {TABLE_PRICE_HISTORY}
            (product_id, changed_by, changed_at, old_prices, new_prices)
        VALUES (:product_id, :changed_by, CAST(:changed_at AS TIMESTAMP),
                :old_prices, :new_prices)
        """,
        parameters={
            "product_id": product_id,
            "changed_by": changed_by,
            "changed_at": now,
            "old_prices": _snapshot_json(old),
            "new_prices": _snapshot_json(new),
        },
    )

    invalidate_cache(CACHE_PREFIX)
    logger.info("Updated prices for product %s (by %s)", product_id, changed_by)
    return new


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------
def get_price_history(limit: int = 50) -> list[PriceHistoryEntry]:
    """Return the latest *limit* price changes, newest first."""
    query = f"""
        SELECT h.product_id, h.changed_by, h.changed_at,
               h.old_prices, h.new_prices,
               p.car_make, p.car_model, p.product_variant, p.position,
               b.name AS brand_name
        FROM {TABLE_PRICE_HISTORY} h
        LEFT JOIN {TABLE_PRODUCTS} p ON h.product_id = p.id
        LEFT JOIN {TABLE_BRANDS} b ON p.brand_id = b.id
        ORDER BY h.changed_at DESC
        LIMIT {int(limit)}
    """
    rows = execute_sql(query)

    return [
        PriceHistoryEntry(
            product_id=str(r["product_id"]),
            make=r.get("car_make"),
            model=r.get("car_model"),
            variant=r.get("product_variant"),
            position=r.get("position"),
            brand_name=r.get("brand_name"),
            changed_by=r.get("changed_by"),
            changed_at=r.get("changed_at"),
            changes=diff_prices(
                _load_snapshot(r.get("old_prices")),
                _load_snapshot(r.get("new_prices")),
            ),
        )
        for r in rows
    ]
