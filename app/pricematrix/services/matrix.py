"""
Matrix assembly.

Lays a ``PivotResult`` out as header rows and cells in one of two column
orders: tier-major (tiers outside, brands inside) or brand-major (brands
outside, tiers inside).  Both orders go through ``column_layout`` so they
always enumerate the same (brand, tier) cells.
"""

from __future__ import annotations

import logging
from typing import Sequence

from pricematrix.models import (
    CellState,
    HeaderGroup,
    MatrixCell,
    MatrixColumn,
    MatrixRow,
    PriceMatrix,
    ProductRecord,
    TierDescriptor,
    ViewMode,
)
from pricematrix.services.pivot import PivotResult, PivotRow, filter_records, pivot
from pricematrix.services.tiers import visible_tiers

logger = logging.getLogger(__name__)


def column_layout(
    brands: Sequence[str],
    tiers: Sequence[TierDescriptor],
    view: ViewMode,
) -> tuple[list[HeaderGroup], list[str], list[MatrixColumn]]:
    """Return the group headers, sub headers and data columns for *view*.

    The outer axis produces one group header per item, each spanning the
    inner axis; the sub headers repeat the inner labels once per group.
    No group headers are produced when the inner axis is empty.
    """
    tier_major = ViewMode(view) is ViewMode.TIER_MAJOR
    outer: Sequence[str | TierDescriptor] = tiers if tier_major else brands
    inner: Sequence[str | TierDescriptor] = brands if tier_major else tiers

    def _label(item: str | TierDescriptor) -> str:
        return item.label if isinstance(item, TierDescriptor) else item

    groups: list[HeaderGroup] = []
    sub_headers: list[str] = []
    columns: list[MatrixColumn] = []
    if not inner:
        return groups, sub_headers, columns

    for o in outer:
        groups.append(HeaderGroup(label=_label(o), span=len(inner)))
        for i in inner:
            brand, tier = (i, o) if tier_major else (o, i)
            columns.append(MatrixColumn(brand=brand, tier=tier.key))
            sub_headers.append(_label(i))
    return groups, sub_headers, columns


def resolve_cell(row: PivotRow, brand: str, tier: str) -> MatrixCell:
    """Resolve the display state and value of one cell."""
    snapshot = row.cells_by_brand.get(brand)
    if snapshot is None:
        return MatrixCell(brand=brand, tier=tier, state=CellState.ABSENT)

    amount = snapshot.value(tier)
    if amount is None:
        return MatrixCell(brand=brand, tier=tier, state=CellState.UNSET)
    return MatrixCell(brand=brand, tier=tier, state=CellState.PRICED, value=amount)


def assemble_matrix(
    result: PivotResult,
    tiers: Sequence[TierDescriptor],
    view: ViewMode = ViewMode.TIER_MAJOR,
) -> PriceMatrix:
    """Lay *result* out for *view* using only the visible *tiers*."""
    shown = visible_tiers(tiers)
    groups, sub_headers, columns = column_layout(result.brands, shown, view)

    rows = [
        MatrixRow(
            key=list(row.identity),
            make=row.make,
            model=row.model,
            variant=row.variant,
            position=row.position,
            category=row.category,
            cells=[resolve_cell(row, c.brand, c.tier) for c in columns],
        )
        for row in result.rows
    ]

    return PriceMatrix(
        view=view,
        brands=result.brands,
        tiers=shown,
        header_groups=groups,
        sub_headers=sub_headers,
        columns=columns,
        rows=rows,
        skipped=result.skipped,
    )


def build_matrix(
    records: Sequence[ProductRecord],
    query: str,
    tiers: Sequence[TierDescriptor],
    view: ViewMode = ViewMode.TIER_MAJOR,
    include_category: bool = True,
) -> PriceMatrix:
    """Run filter, pivot and assembly over one snapshot of the record batch."""
    batch = tuple(records)
    filtered = filter_records(batch, query)
    result = pivot(filtered, include_category=include_category)
    logger.debug(
        "Matrix for query %r: %d/%d records, %d rows, %d brands",
        query,
        len(filtered),
        len(batch),
        len(result.rows),
        len(result.brands),
    )
    return assemble_matrix(result, tiers, view)
