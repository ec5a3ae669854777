"""
Unity Catalog query service for the comparison catalog.

Reads the joined product / brand / price batch and the tier visibility
settings.  Results are cached through the ``execute_sql`` helper under the
``catalog:`` prefix; writers invalidate that prefix.
"""

from __future__ import annotations

import logging
from typing import Any

from pricematrix.models import (
    TIER_KEYS,
    PriceSnapshot,
    ProductRecord,
    VisibilitySetting,
)
from pricematrix.services.tiers import tier_for_setting
from pricematrix.utils.config import (
    TABLE_BRANDS,
    TABLE_PRICES,
    TABLE_PRODUCTS,
    TABLE_SETTINGS,
)
from pricematrix.utils.databricks_client import execute_sql, invalidate_cache

logger = logging.getLogger(__name__)

CACHE_PREFIX = "catalog:"

_PRICE_COLUMNS = ", ".join(f"pr.price_{tier}" for tier in TIER_KEYS)


# ---------------------------------------------------------------------------
# Row conversion helpers
# ---------------------------------------------------------------------------
def _to_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def _to_str(value: Any) -> str | None:
    return None if value is None else str(value)


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "t", "yes")


def price_from_row(row: dict[str, Any]) -> PriceSnapshot | None:
    """Build a snapshot from ``price_<tier>`` columns; None when all are NULL."""
    values = {tier: _to_float(row.get(f"price_{tier}")) for tier in TIER_KEYS}
    if all(v is None for v in values.values()):
        return None
    return PriceSnapshot(**values)


def record_from_row(row: dict[str, Any]) -> ProductRecord:
    return ProductRecord(
        product_id=_to_str(row.get("product_id")),
        make=_to_str(row.get("car_make")),
        model=_to_str(row.get("car_model")),
        variant=_to_str(row.get("product_variant")),
        position=_to_str(row.get("position")),
        category=_to_str(row.get("category")),
        brand_name=_to_str(row.get("brand_name")),
        part_number=_to_str(row.get("part_number")),
        price=price_from_row(row),
    )


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------
def load_records() -> tuple[ProductRecord, ...]:
    """Return every product with its brand and most recent price snapshot.

    The batch is ordered by make, model and position; the pivot relies on
    that order for row display.  A product with several price rows keeps
    only the first (newest) one.
    """
    query = f"""
        SELECT p.id AS product_id, p.car_make, p.car_model, p.product_variant,
               p.position, p.category, p.part_number,
               b.name AS brand_name,
               {_PRICE_COLUMNS}
        FROM {TABLE_PRODUCTS} p
        LEFT JOIN {TABLE_BRANDS} b ON p.brand_id = b.id
        LEFT JOIN {TABLE_PRICES} pr ON pr.product_id = p.id
        ORDER BY p.car_make ASC, p.car_model ASC, p.position ASC,
                 p.id ASC, pr.updated_at DESC
    """
    rows = execute_sql(query, cache_key=f"{CACHE_PREFIX}records")

    records: list[ProductRecord] = []
    seen: set[str] = set()
    for r in rows:
        product_id = _to_str(r.get("product_id"))
        if product_id is not None:
            if product_id in seen:
                continue
            seen.add(product_id)
        records.append(record_from_row(r))

    logger.info("Loaded %d catalog records", len(records))
    return tuple(records)


# ---------------------------------------------------------------------------
# Visibility settings
# ---------------------------------------------------------------------------
def load_visibility() -> list[VisibilitySetting]:
    """Return the tier visibility toggles in their configured order."""
    query = f"""
        SELECT setting_key, is_visible
        FROM {TABLE_SETTINGS}
        ORDER BY display_order ASC, id ASC
    """
    rows = execute_sql(query, cache_key=f"{CACHE_PREFIX}settings")
    return [
        VisibilitySetting(
            setting_key=str(r["setting_key"]),
            is_visible=_to_bool(r.get("is_visible")),
        )
        for r in rows
    ]


def save_visibility(settings: list[VisibilitySetting]) -> list[VisibilitySetting]:
    """Upsert the given toggles and return the stored settings.

    The position of each toggle in *settings* is stored as its
    ``display_order``, for existing keys as well as new ones.

    Raises
    ------
    ValueError
        If a setting key does not name a known price tier.
    """
    unknown = [s.setting_key for s in settings if tier_for_setting(s.setting_key) is None]
    if unknown:
        raise ValueError(f"Unknown visibility setting(s): {', '.join(unknown)}")

    for position, setting in enumerate(settings):
        execute_sql(
            f"""
            MERGE INTO {TABLE_SETTINGS} t
            USING (SELECT :setting_key AS setting_key,
                          CAST(:is_visible AS BOOLEAN) AS is_visible,
                          CAST(:display_order AS INT) AS display_order) s
            ON t.setting_key = s.setting_key
            WHEN MATCHED THEN UPDATE SET
                t.is_visible = s.is_visible,
                t.display_order = s.display_order
            WHEN NOT MATCHED THEN INSERT (setting_key, is_visible, display_order)
                VALUES (s.setting_key, s.is_visible, s.display_order)
            """,
            parameters={
                "setting_key": setting.setting_key,
                "is_visible": "true" if setting.is_visible else "false",
                "display_order": position,
            },
        )

    invalidate_cache(CACHE_PREFIX)
    logger.info("Saved %d visibility setting(s)", len(settings))
    return load_visibility()
