"""
Pydantic data models for the SuspensionPrice comparison API.

Catalog records, tier descriptors, the assembled price matrix and the admin
request / response schemas are all defined here so they can be shared across
routers, services, and tests.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# Price tiers known to the catalog, in their default column order.
TIER_KEYS: tuple[str, ...] = ("distributor", "agent", "workshop", "retail", "online")


# ---------------------------------------------------------------------------
# Catalog records
# ---------------------------------------------------------------------------
class PriceSnapshot(BaseModel):
    """Tiered prices for one product.  Zero or missing means "not set"."""

    model_config = ConfigDict(frozen=True)

    distributor: float | None = None
    agent: float | None = None
    workshop: float | None = None
    retail: float | None = None
    online: float | None = None

    def value(self, tier: str) -> float | None:
        """Return the tier price when it is set (positive), else None."""
        amount = getattr(self, tier, None)
        if amount is None or amount <= 0:
            return None
        return amount


class ProductRecord(BaseModel):
    """One product joined with its brand and latest price snapshot.

    Grouping fields are optional so that incomplete rows from the warehouse
    can still be loaded; the pivot engine skips and counts them.
    """

    model_config = ConfigDict(frozen=True)

    product_id: str | None = None
    make: str | None
    model: str | None
    variant: str | None
    position: str | None
    category: str | None = None
    brand_name: str | None
    part_number: str | None = None
    price: PriceSnapshot | None = None


# ---------------------------------------------------------------------------
# Tiers and visibility
# ---------------------------------------------------------------------------
class TierDescriptor(BaseModel):
    """A price column as configured for display."""

    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    visible: bool = True
    display_order: int = 0


class VisibilitySetting(BaseModel):
    """A single ``show_<tier>`` toggle from the settings table."""

    setting_key: str = Field(..., description="Setting key, e.g. show_retail")
    is_visible: bool = False


class VisibilityUpdateRequest(BaseModel):
    """Replacement set of visibility toggles, in display order."""

    settings: list[VisibilitySetting]


# ---------------------------------------------------------------------------
# Price matrix
# ---------------------------------------------------------------------------
class ViewMode(str, Enum):
    """Column nesting order of the matrix."""

    TIER_MAJOR = "tierMajor"
    BRAND_MAJOR = "brandMajor"


class CellState(str, Enum):
    """Display state of one (row, brand, tier) cell."""

    ABSENT = "absent"  # no price for this brand in this row
    UNSET = "unset"  # price record exists, tier is zero or missing
    PRICED = "priced"


class MatrixColumn(BaseModel):
    """A data column: one brand crossed with one tier."""

    brand: str
    tier: str


class MatrixCell(BaseModel):
    brand: str
    tier: str
    state: CellState
    value: float | None = None


class HeaderGroup(BaseModel):
    """A first-row header cell spanning *span* data columns."""

    label: str
    span: int


class MatrixRow(BaseModel):
    """One visual row: descriptive fields plus one cell per data column."""

    key: list[str | None]
    make: str
    model: str
    variant: str
    position: str
    category: str | None = None
    cells: list[MatrixCell]


class PriceMatrix(BaseModel):
    """Fully assembled matrix, ready to be walked by a renderer."""

    view: ViewMode
    brands: list[str]
    tiers: list[TierDescriptor]
    header_groups: list[HeaderGroup]
    sub_headers: list[str]
    columns: list[MatrixColumn]
    rows: list[MatrixRow]
    skipped: int = Field(0, description="Malformed records excluded from rows")


class MatrixResponse(PriceMatrix):
    """Public matrix response."""

    query: str = ""


class PrintSheetResponse(PriceMatrix):
    """Condensed cost / RRP sheet for the admin print view."""

    query: str = ""
    generated_on: str


# ---------------------------------------------------------------------------
# Price maintenance
# ---------------------------------------------------------------------------
class PriceUpdateRequest(BaseModel):
    """New tiered prices for a product.  Zero leaves a tier unset."""

    distributor: float = Field(0.0, ge=0)
    agent: float = Field(0.0, ge=0)
    workshop: float = Field(0.0, ge=0)
    retail: float = Field(..., ge=0, description="Retail price (required)")
    online: float = Field(0.0, ge=0)


class PriceChange(BaseModel):
    """Old and new value of a single tier."""

    tier: str
    old: float
    new: float


class PriceHistoryEntry(BaseModel):
    """One logged price update with product and brand details."""

    product_id: str
    make: str | None = None
    model: str | None = None
    variant: str | None = None
    position: str | None = None
    brand_name: str | None = None
    changed_by: str | None = None
    changed_at: str | None = None
    changes: list[PriceChange]
