"""
SuspensionPrice comparison -- FastAPI application.

Provides the public price comparison matrix (products x brands x price
tiers) with search filtering, plus admin endpoints for tier visibility,
the printable price sheet, price updates and the price history log.

The application is designed to run inside a Databricks App with SDK
auto-authentication.  For local development, set DATABRICKS_HOST and
DATABRICKS_TOKEN environment variables.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from pricematrix.models import MatrixResponse, TierDescriptor, ViewMode
from pricematrix.routers.admin import router as admin_router
from pricematrix.services.catalog import load_records, load_visibility
from pricematrix.services.matrix import build_matrix
from pricematrix.services.tiers import resolve_tiers
from pricematrix.utils.config import APP_TITLE, APP_VERSION, LOG_LEVEL, STATIC_FILES_DIR

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan (startup / shutdown)
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application startup and shutdown hooks."""
    logger.info("Starting %s v%s", APP_TITLE, APP_VERSION)
    yield
    logger.info("Shutting down %s", APP_TITLE)


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------
app = FastAPI(
    title=APP_TITLE,
    version=APP_VERSION,
    lifespan=lifespan,
)

# CORS -- allow all origins for Databricks App iframe embedding
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(admin_router)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------
@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Return a simple health-check response."""
    return {"status": "healthy", "version": APP_VERSION}


# ---------------------------------------------------------------------------
# Price matrix
# ---------------------------------------------------------------------------
@app.get(
    "/api/v1/matrix",
    response_model=MatrixResponse,
    tags=["catalog"],
    summary="Price comparison matrix",
)
async def api_get_matrix(
    q: str = Query("", description="Filter by make, model, brand or part number"),
    view: ViewMode = Query(ViewMode.TIER_MAJOR, description="Column nesting order"),
) -> MatrixResponse:
    """Return the filtered products pivoted into rows x (brand x tier) cells.

    Only the tiers switched on in the visibility settings are included.
    Brands with no record matching the filter are left out entirely.
    """
    try:
        tiers = resolve_tiers(load_visibility())
        matrix = build_matrix(load_records(), q, tiers, view=view)
        return MatrixResponse(**matrix.model_dump(), query=q)
    except Exception as exc:
        logger.exception("Failed to build matrix for query %r", q)
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@app.get(
    "/api/v1/tiers",
    response_model=list[TierDescriptor],
    tags=["catalog"],
    summary="Configured price tiers",
)
async def api_get_tiers() -> list[TierDescriptor]:
    """Return every known tier with its label, visibility and display order."""
    try:
        return resolve_tiers(load_visibility())
    except Exception as exc:
        logger.exception("Failed to resolve tiers")
        raise HTTPException(status_code=500, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# Static files (frontend) -- must be last so it doesn't shadow API routes
# ---------------------------------------------------------------------------
_static_dir = os.path.join(os.path.dirname(__file__), "..", STATIC_FILES_DIR)
if os.path.isdir(_static_dir):
    app.mount("/", StaticFiles(directory=_static_dir, html=True), name="static")
    logger.info("Mounted static files from %s", _static_dir)
else:
    logger.warning(
        "Static directory %s not found; frontend will not be served", _static_dir
    )
