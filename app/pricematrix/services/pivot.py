"""
Product pivot / grouping engine.

Reshapes a flat batch of ``ProductRecord`` objects into rows keyed by a
structured row identity (make, model, variant, position and optionally
category) with one price snapshot per brand.  The brand columns are the
distinct brand names of the batch being grouped.

Everything here is a pure function of its inputs: the caller snapshots the
raw batch once per request and the engine never mutates it.
"""

from __future__ import annotations

import logging
from typing import Iterable, NamedTuple, Sequence

from pydantic import BaseModel, Field

from pricematrix.models import PriceSnapshot, ProductRecord

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------
def filter_records(
    records: Iterable[ProductRecord], query: str
) -> list[ProductRecord]:
    """Return the records whose make, model, brand or part number contain *query*.

    Matching is case-insensitive substring containment.  An empty query
    keeps every record.
    """
    needle = (query or "").lower()
    if not needle:
        return list(records)

    def _matches(record: ProductRecord) -> bool:
        haystack = (record.make, record.model, record.brand_name, record.part_number)
        return any(field and needle in field.lower() for field in haystack)

    return [r for r in records if _matches(r)]


# ---------------------------------------------------------------------------
# Row identity
# ---------------------------------------------------------------------------
class MalformedRecordError(ValueError):
    """Raised when a record lacks a field needed to place it in the matrix."""


class RowIdentity(NamedTuple):
    """Composite grouping key, compared field by field."""

    make: str
    model: str
    variant: str
    position: str
    category: str | None = None


def row_key(record: ProductRecord, include_category: bool = True) -> RowIdentity:
    """Build the row identity of *record* from its trimmed grouping fields.

    Raises
    ------
    MalformedRecordError
        If a grouping field is missing.
    """
    fields = ["make", "model", "variant", "position"]
    if include_category:
        fields.append("category")

    values: dict[str, str] = {}
    for name in fields:
        value = getattr(record, name)
        if value is None:
            raise MalformedRecordError(f"record is missing '{name}'")
        values[name] = value.strip()
    return RowIdentity(**values)


# ---------------------------------------------------------------------------
# Pivot
# ---------------------------------------------------------------------------
class PivotRow(BaseModel):
    """One visual row with the price snapshot of each brand that has a record."""

    identity: RowIdentity
    make: str
    model: str
    variant: str
    position: str
    category: str | None = None
    cells_by_brand: dict[str, PriceSnapshot | None] = Field(default_factory=dict)


class PivotResult(BaseModel):
    rows: list[PivotRow] = Field(default_factory=list)
    brands: list[str] = Field(default_factory=list)
    skipped: int = 0


def pivot(
    records: Sequence[ProductRecord], include_category: bool = True
) -> PivotResult:
    """Group *records* into rows and discover the brand columns.

    Rows keep the first-seen order of the batch (the record source sorts by
    make, model and position).  A later record for the same row and brand
    overwrites the earlier one.  Records without a grouping field or a brand
    name are left out and counted in ``skipped``.
    """
    keyed: list[tuple[RowIdentity, ProductRecord]] = []
    skipped = 0
    for record in records:
        try:
            identity = row_key(record, include_category)
            if record.brand_name is None:
                raise MalformedRecordError("record is missing 'brand_name'")
        except MalformedRecordError as exc:
            skipped += 1
            logger.debug("Skipping record %s: %s", record.product_id, exc)
            continue
        keyed.append((identity, record))

    if skipped:
        logger.warning("Skipped %d malformed record(s) while pivoting", skipped)

    # Brands come from exactly the records that are grouped below.
    brands = sorted({record.brand_name for _, record in keyed})

    rows: dict[RowIdentity, PivotRow] = {}
    for identity, record in keyed:
        row = rows.get(identity)
        if row is None:
            row = PivotRow(
                identity=identity,
                make=record.make,
                model=record.model,
                variant=record.variant,
                position=record.position,
                category=record.category if include_category else None,
            )
            rows[identity] = row
        elif record.brand_name in row.cells_by_brand:
            logger.debug(
                "Duplicate price for %s / %s; keeping the later record",
                identity,
                record.brand_name,
            )
        row.cells_by_brand[record.brand_name] = record.price

    return PivotResult(rows=list(rows.values()), brands=brands, skipped=skipped)
