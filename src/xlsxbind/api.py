"""Public entry points for xlsxbind.

Sheet-level functions work on any :class:`~xlsxbind.protocols.SheetGrid`;
the ``*_bytes`` and ``*_file`` variants open or create an openpyxl-backed
:class:`~xlsxbind.workbook.Workbook` around the same operations.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from xlsxbind.config import ParseConfig, ResourceLimits, WriteConfig
from xlsxbind.detector import detect_used_range, range_to_a1
from xlsxbind.models import SheetSummary
from xlsxbind.projector import RowProjector, Target
from xlsxbind.workbook import Workbook
from xlsxbind.writer import SheetWriter

if TYPE_CHECKING:
    import pandas as pd

    from xlsxbind.models import RecordSchema
    from xlsxbind.protocols import SheetGrid

logger = logging.getLogger("xlsxbind")


# ---------------------------------------------------------------------------
# Sheet-level operations
# ---------------------------------------------------------------------------


def parse_sheet(
    sheet: SheetGrid,
    target: Target = None,
    config: ParseConfig | None = None,
    limits: ResourceLimits | None = None,
) -> list[Any]:
    """Parse *sheet* into raw rows, records or maps (see :meth:`RowProjector.parse`)."""
    return RowProjector(config, limits).parse(sheet, target)


def get_row(
    sheet: SheetGrid,
    index: int,
    target: Target = None,
    config: ParseConfig | None = None,
    limits: ResourceLimits | None = None,
) -> Any:
    """Read the row *index* rows below the data start row."""
    return RowProjector(config, limits).get_row(sheet, index, target)


def write_sheet(
    sheet: SheetGrid,
    data: Iterable[Any] | pd.DataFrame,
    schema: RecordSchema | None = None,
    config: WriteConfig | None = None,
    limits: ResourceLimits | None = None,
) -> int:
    """Write *data* into *sheet*; returns the number of data rows written."""
    return SheetWriter(config, limits).write(sheet, data, schema)


def sheet_summary(sheet: SheetGrid) -> SheetSummary:
    """Describe the used range of *sheet*."""
    used = detect_used_range(sheet)
    return SheetSummary(
        name=sheet.name,
        used_range=range_to_a1(used),
        row_count=used.row_count if used is not None else 0,
        column_count=used.column_count if used is not None else 0,
    )


# ---------------------------------------------------------------------------
# Workbook-level operations
# ---------------------------------------------------------------------------


def parse_bytes(
    data: bytes,
    target: Target = None,
    config: ParseConfig | None = None,
    limits: ResourceLimits | None = None,
) -> list[Any]:
    """Open an ``.xlsx`` package from bytes and parse the configured sheet.

    Raises:
        ParseError: If the package is empty or unreadable.
        SheetNotFoundError: If ``config.sheet`` names no worksheet.
        ResourceLimitError: If the input or its used range is too large.
    """
    config = config or ParseConfig()
    with Workbook.from_bytes(data, limits) as workbook:
        return parse_sheet(workbook.get_sheet(config.sheet), target, config, workbook.limits)


def parse_file(
    path: str | Path,
    target: Target = None,
    config: ParseConfig | None = None,
    limits: ResourceLimits | None = None,
) -> list[Any]:
    """Open an ``.xlsx`` file and parse the configured sheet."""
    config = config or ParseConfig()
    with Workbook.open(path, limits) as workbook:
        return parse_sheet(workbook.get_sheet(config.sheet), target, config, workbook.limits)


def write_bytes(
    data: Iterable[Any] | pd.DataFrame,
    schema: RecordSchema | None = None,
    config: WriteConfig | None = None,
    limits: ResourceLimits | None = None,
) -> bytes:
    """Write *data* into a new single-sheet workbook and serialize it.

    Raises:
        WriteError: If the data cannot be written or serialized.
        ResourceLimitError: If the output exceeds the configured limits.
    """
    config = config or WriteConfig()
    with Workbook.new(limits) as workbook:
        sheet = workbook.create_sheet(config.sheet_name)
        write_sheet(sheet, data, schema, config, workbook.limits)
        return workbook.to_bytes()


def write_file(
    path: str | Path,
    data: Iterable[Any] | pd.DataFrame,
    schema: RecordSchema | None = None,
    config: WriteConfig | None = None,
    limits: ResourceLimits | None = None,
) -> None:
    """Write *data* into a new workbook saved at *path*."""
    payload = write_bytes(data, schema, config, limits)
    Path(path).write_bytes(payload)
    logger.debug("Wrote %d bytes to %s", len(payload), path)
