"""
Printable price sheet.

A configuration of the regular matrix: cost and RRP side by side under each
brand, rows grouped without the product category, and the tier visibility
settings ignored.
"""

from __future__ import annotations

from datetime import date
from typing import Sequence

from pricematrix.models import PrintSheetResponse, ProductRecord, ViewMode
from pricematrix.services.matrix import build_matrix
from pricematrix.services.tiers import PRINT_TIERS


def build_print_sheet(
    records: Sequence[ProductRecord],
    query: str = "",
    generated_on: date | None = None,
) -> PrintSheetResponse:
    matrix = build_matrix(
        records,
        query,
        PRINT_TIERS,
        view=ViewMode.BRAND_MAJOR,
        include_category=False,
    )
    generated_on = generated_on or date.today()
    return PrintSheetResponse(
        **matrix.model_dump(),
        query=query,
        generated_on=generated_on.strftime("%d/%m/%Y"),
    )
