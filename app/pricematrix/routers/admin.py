"""
Admin router.

Visibility settings, the printable price sheet, price updates and the price
history log.  Every route requires an admin identity from the OBO headers.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from pricematrix.models import (
    PriceHistoryEntry,
    PriceSnapshot,
    PriceUpdateRequest,
    PrintSheetResponse,
    VisibilitySetting,
    VisibilityUpdateRequest,
)
from pricematrix.services.catalog import load_records, load_visibility, save_visibility
from pricematrix.services.obo_auth import require_admin
from pricematrix.services.pricing import get_price_history, update_prices
from pricematrix.services.print_sheet import build_print_sheet
from pricematrix.utils.config import HISTORY_LIMIT

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


# ---------------------------------------------------------------------------
# Visibility settings
# ---------------------------------------------------------------------------
@router.get(
    "/settings",
    response_model=list[VisibilitySetting],
    summary="Tier visibility toggles",
)
async def get_settings() -> list[VisibilitySetting]:
    try:
        return load_visibility()
    except Exception as exc:
        logger.exception("Failed to fetch visibility settings")
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@router.put(
    "/settings",
    response_model=list[VisibilitySetting],
    summary="Replace tier visibility toggles",
)
async def put_settings(request: VisibilityUpdateRequest) -> list[VisibilitySetting]:
    """Store the toggles in the given order; that order becomes the column order."""
    try:
        return save_visibility(request.settings)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Failed to save visibility settings")
        raise HTTPException(status_code=500, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# Print sheet
# ---------------------------------------------------------------------------
@router.get(
    "/print-sheet",
    response_model=PrintSheetResponse,
    summary="Printable cost / RRP sheet",
)
async def get_print_sheet(
    q: str = Query("", description="Filter by make, model, brand or part number"),
) -> PrintSheetResponse:
    """Return distributor cost and retail price per brand for every row,
    regardless of the public visibility settings.
    """
    try:
        return build_print_sheet(load_records(), q)
    except Exception as exc:
        logger.exception("Failed to build print sheet")
        raise HTTPException(status_code=500, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# Prices
# ---------------------------------------------------------------------------
@router.put(
    "/prices/{product_id}",
    response_model=PriceSnapshot,
    summary="Update a product's tiered prices",
)
async def put_prices(
    product_id: str,
    request: PriceUpdateRequest,
    identity: dict[str, Any] = Depends(require_admin),
) -> PriceSnapshot:
    try:
        return update_prices(product_id, request, changed_by=identity["user_email"])
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Failed to update prices for %s", product_id)
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@router.get(
    "/price-history",
    response_model=list[PriceHistoryEntry],
    summary="Latest price changes",
)
async def get_history(
    limit: int = Query(HISTORY_LIMIT, ge=1, le=500, description="Max entries returned"),
) -> list[PriceHistoryEntry]:
    try:
        return get_price_history(limit)
    except Exception as exc:
        logger.exception("Failed to fetch price history")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
