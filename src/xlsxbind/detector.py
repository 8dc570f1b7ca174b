"""Used-range detection for sheets carrying "ghost" extent.

Real-world workbooks often carry formatting on thousands of rows or columns
that hold no content.  This module scans only the cells that actually
exist and computes the minimal rectangle containing real data, so that
formatting-only rows and columns never widen the parsed region.

A cell has real data when it is a number or boolean (zero and ``False``
included), a formula (whatever its cached result), or text that is not
blank after trimming.  Blank and error cells never count.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from xlsxbind.models import CellKind, CellValue, UsedRange
from xlsxbind.protocols import SheetGrid

logger = logging.getLogger("xlsxbind")


def has_real_data(cell: CellValue | None) -> bool:
    """Return True if *cell* holds content rather than just formatting."""
    if cell is None:
        return False
    kind = cell.kind
    if kind is CellKind.TEXT:
        return bool(cell.text and cell.text.strip())
    # A formula is authored content even when its cached result is blank.
    return kind in (CellKind.NUMBER, CellKind.BOOLEAN, CellKind.FORMULA)


def is_row_empty(row: Mapping[int, CellValue] | None) -> bool:
    """Return True if no cell in *row* has real data; an absent row is empty."""
    if row is None:
        return True
    return not any(has_real_data(cell) for cell in row.values())


def detect_used_range(sheet: SheetGrid) -> UsedRange | None:
    """Compute the bounding rectangle of all cells with real data.

    Returns ``None`` when no cell in the sheet has real data.  The result is
    a snapshot of the sheet's current state; it must be recomputed after the
    sheet is written to.
    """
    first_row = -1
    last_row = -1
    min_col = -1
    max_col = -1

    for row_index, cells in sheet.iter_rows():
        row_has_data = False
        for col_index, cell in cells.items():
            if not has_real_data(cell):
                continue
            row_has_data = True
            if min_col == -1 or col_index < min_col:
                min_col = col_index
            if col_index > max_col:
                max_col = col_index
        if row_has_data:
            if first_row == -1:
                first_row = row_index
            last_row = row_index

    if first_row == -1:
        logger.debug("Sheet '%s' has no data cells.", sheet.name)
        return None

    used = UsedRange(
        first_row=first_row,
        last_row=last_row,
        first_column=min_col,
        last_column=max_col,
    )
    logger.debug("Sheet '%s' used range %s", sheet.name, range_to_a1(used))
    return used


# ---------------------------------------------------------------------------
# Notation helpers
# ---------------------------------------------------------------------------


def column_letter(column: int) -> str:
    """Convert a 0-based column index to letters (0 -> A, 25 -> Z, 26 -> AA)."""
    if column < 0:
        raise ValueError(f"column index must be >= 0, got {column}")
    letters = ""
    col = column
    while col >= 0:
        letters = chr(ord("A") + col % 26) + letters
        col = col // 26 - 1
    return letters


def cell_address(row: int, column: int) -> str:
    """Render a 0-based (row, column) pair as an A1 address."""
    return f"{column_letter(column)}{row + 1}"


def range_to_a1(used: UsedRange | None) -> str:
    """Render a used range in A1 notation; an absent range renders as ``A1:A1``."""
    if used is None:
        return "A1:A1"
    start = cell_address(used.first_row, used.first_column)
    end = cell_address(used.last_row, used.last_column)
    return f"{start}:{end}"


def row_count(used: UsedRange | None) -> int:
    """Inclusive number of rows spanned by *used*; 0 when absent."""
    return used.row_count if used is not None else 0


def column_count(used: UsedRange | None) -> int:
    """Inclusive number of columns spanned by *used*; 0 when absent."""
    return used.column_count if used is not None else 0
