"""openpyxl-backed workbook container.

``Workbook`` opens ``.xlsx`` packages (from a path or bytes), creates new
ones, and hands out :class:`OpenpyxlSheet` views that satisfy the
:class:`~xlsxbind.protocols.SheetGrid` protocol.

openpyxl exposes either a formula's source or its cached result, never both,
so a package is loaded twice: once as authored (``data_only=False``) and once
with cached values (``data_only=True``).  Formula cells are classified from
the first load and paired with the cached result from the second.

Chart sheets carry no cells and are skipped.
"""

from __future__ import annotations

import io
import logging
from datetime import date, datetime, time, timedelta
from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING

import openpyxl
from openpyxl.utils.datetime import to_excel
from openpyxl.worksheet.formula import ArrayFormula

from xlsxbind.config import ResourceLimits
from xlsxbind.errors import (
    ErrorCode,
    ParseError,
    ResourceLimitError,
    SheetNotFoundError,
    WriteError,
)
from xlsxbind.models import CellKind, CellValue

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from openpyxl.cell.cell import Cell
    from openpyxl.worksheet.worksheet import Worksheet

logger = logging.getLogger("xlsxbind")

_DATE_FORMAT = "yyyy-mm-dd"
_DATETIME_FORMAT = "yyyy-mm-dd h:mm:ss"


def check_input_size(size: int, limits: ResourceLimits) -> None:
    """Reject empty or oversized input before any parsing is attempted.

    Raises:
        ParseError: If *size* is zero (``E_PARSE_EMPTY``).
        ResourceLimitError: If *size* exceeds ``limits.max_file_size_bytes``.
    """
    if size == 0:
        raise ParseError(
            code=ErrorCode.E_PARSE_EMPTY,
            message="Input is empty (0 bytes).",
            stage="parse",
        )
    max_bytes = limits.max_file_size_bytes
    if size > max_bytes:
        raise ResourceLimitError(
            code=ErrorCode.E_LIMIT_FILE_TOO_LARGE,
            message=(
                f"Input size {size} bytes exceeds limit of "
                f"{max_bytes} bytes ({limits.max_file_size_mb} MB)"
            ),
            stage="parse",
        )


# ---------------------------------------------------------------------------
# Cell classification
# ---------------------------------------------------------------------------


def _classify_value(value: object, data_type: str | None) -> CellValue:
    """Classify a non-formula openpyxl cell value."""
    if value is None:
        return CellValue.blank()
    if data_type == "e":
        return CellValue.from_error(str(value))
    if isinstance(value, bool):
        return CellValue.from_bool(value)
    if isinstance(value, (int, float)):
        return CellValue.from_number(float(value))
    if isinstance(value, (datetime, date, time, timedelta)):
        return CellValue.from_number(float(to_excel(value)), is_date=True)
    return CellValue.from_text(str(value))


def _formula_source(value: object) -> str:
    if isinstance(value, ArrayFormula):
        return value.text or ""
    return str(value)


class OpenpyxlSheet:
    """:class:`~xlsxbind.protocols.SheetGrid` view over an openpyxl worksheet.

    Only cells openpyxl has materialized are visited, so a worksheet whose
    dimensions were inflated by formatting is not scanned cell by cell.
    Indices are 0-based here and 1-based in openpyxl.
    """

    def __init__(self, worksheet: Worksheet, cached: Worksheet | None = None) -> None:
        self._ws = worksheet
        self._cached = cached

    def __repr__(self) -> str:
        return f"<OpenpyxlSheet {self.name!r}>"

    @property
    def name(self) -> str:
        return self._ws.title

    @property
    def worksheet(self) -> Worksheet:
        return self._ws

    def _classify(self, cell: Cell) -> CellValue:
        if cell.data_type != "f":
            return _classify_value(cell.value, cell.data_type)
        cached = CellValue.blank()
        if self._cached is not None:
            twin = self._cached._cells.get((cell.row, cell.column))  # noqa: SLF001
            if twin is not None and twin.data_type != "f":
                cached = _classify_value(twin.value, twin.data_type)
        return CellValue.from_formula(_formula_source(cell.value), cached)

    # -- SheetGrid ------------------------------------------------------------

    def iter_rows(self) -> Iterator[tuple[int, Mapping[int, CellValue]]]:
        grouped: dict[int, dict[int, CellValue]] = {}
        for (row, column), cell in self._ws._cells.items():  # noqa: SLF001
            grouped.setdefault(row - 1, {})[column - 1] = self._classify(cell)
        for row_index in sorted(grouped):
            yield row_index, grouped[row_index]

    def get_row(self, row: int) -> Mapping[int, CellValue] | None:
        target = row + 1
        cells = {
            column - 1: self._classify(cell)
            for (r, column), cell in self._ws._cells.items()  # noqa: SLF001
            if r == target
        }
        return cells or None

    def get_cell(self, row: int, column: int) -> CellValue | None:
        cell = self._ws._cells.get((row + 1, column + 1))  # noqa: SLF001
        if cell is None:
            return None
        return self._classify(cell)

    def set_cell(self, row: int, column: int, value: CellValue) -> None:
        cell = self._ws.cell(row=row + 1, column=column + 1)
        kind = value.kind

        if kind is CellKind.TEXT:
            cell.value = value.text
            # openpyxl would otherwise treat "=..." as a formula and "#N/A"
            # as an error code.
            cell.data_type = "s"
        elif kind is CellKind.NUMBER:
            number = value.number
            cell.value = number
            if value.is_date and number is not None:
                cell.number_format = (
                    _DATE_FORMAT if float(number).is_integer() else _DATETIME_FORMAT
                )
        elif kind is CellKind.BOOLEAN:
            cell.value = value.boolean
        elif kind is CellKind.FORMULA:
            # openpyxl cannot store a cached result; it is recomputed on open.
            cell.value = f"={value.formula}"
        elif kind is CellKind.ERROR:
            cell.value = value.error
            cell.data_type = "e"
        else:
            cell.value = None

        if self._cached is not None:
            self._cached._cells.pop((row + 1, column + 1), None)  # noqa: SLF001


# ---------------------------------------------------------------------------
# Workbook container
# ---------------------------------------------------------------------------


class Workbook:
    """An ``.xlsx`` package: its worksheets and serialization.

    Use :meth:`open`, :meth:`from_bytes` or :meth:`new` rather than the
    constructor.  Instances are context managers.
    """

    def __init__(
        self,
        workbook: openpyxl.Workbook,
        cached: openpyxl.Workbook | None = None,
        limits: ResourceLimits | None = None,
    ) -> None:
        self._wb = workbook
        self._cached_wb = cached
        self._limits = limits or ResourceLimits()
        self._sheets: dict[str, OpenpyxlSheet] = {}

        for chartsheet in workbook.chartsheets:
            logger.warning("Skipped chart-only sheet '%s'", chartsheet.title)

    # -- construction ---------------------------------------------------------

    @classmethod
    def open(cls, path: str | Path, limits: ResourceLimits | None = None) -> Workbook:
        """Open an ``.xlsx`` file from disk.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ResourceLimitError: If the file exceeds the configured size cap.
            ParseError: If the file is empty or not a readable package.
        """
        limits = limits or ResourceLimits()
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        check_input_size(file_path.stat().st_size, limits)
        return cls._load(file_path.read_bytes(), limits, source=str(file_path))

    @classmethod
    def from_bytes(cls, data: bytes, limits: ResourceLimits | None = None) -> Workbook:
        """Open an ``.xlsx`` package held in memory.

        Raises:
            ResourceLimitError: If *data* exceeds the configured size cap.
            ParseError: If *data* is empty or not a readable package.
        """
        limits = limits or ResourceLimits()
        check_input_size(len(data), limits)
        return cls._load(data, limits, source="<bytes>")

    @classmethod
    def new(cls, limits: ResourceLimits | None = None) -> Workbook:
        """Create an empty workbook with no sheets."""
        wb = openpyxl.Workbook()
        wb.remove(wb.active)
        return cls(wb, None, limits)

    @classmethod
    def _load(cls, data: bytes, limits: ResourceLimits, source: str) -> Workbook:
        try:
            formulas = openpyxl.load_workbook(io.BytesIO(data))
            values = openpyxl.load_workbook(io.BytesIO(data), data_only=True)
        except Exception as exc:
            logger.error("Could not open workbook %s: %s", source, exc)
            raise ParseError(
                code=ErrorCode.E_PARSE_CORRUPT,
                message=f"Failed to open workbook: {exc}",
                stage="parse",
            ) from exc
        logger.debug("Opened workbook %s (%d bytes)", source, len(data))
        return cls(formulas, values, limits)

    # -- sheets ---------------------------------------------------------------

    @property
    def limits(self) -> ResourceLimits:
        return self._limits

    @property
    def sheet_names(self) -> list[str]:
        return [ws.title for ws in self._wb.worksheets]

    @property
    def sheet_count(self) -> int:
        return len(self._wb.worksheets)

    def get_sheet(self, sheet: str | int | None = None) -> OpenpyxlSheet:
        """Return a sheet by name or 0-based index; ``None`` selects the first.

        Raises:
            SheetNotFoundError: ``E_SHEET_NOT_FOUND`` for an unknown name,
                ``E_SHEET_INDEX_OUT_OF_RANGE`` for an index outside the
                workbook.
        """
        worksheets = self._wb.worksheets
        if sheet is None:
            sheet = 0

        if isinstance(sheet, int) and not isinstance(sheet, bool):
            if not 0 <= sheet < len(worksheets):
                raise SheetNotFoundError(
                    code=ErrorCode.E_SHEET_INDEX_OUT_OF_RANGE,
                    message=(
                        f"Sheet index {sheet} out of range "
                        f"(workbook has {len(worksheets)} sheets)"
                    ),
                    identifier=sheet,
                    stage="select",
                )
            return self._wrap(worksheets[sheet])

        for ws in worksheets:
            if ws.title == sheet:
                return self._wrap(ws)
        raise SheetNotFoundError(
            message=f"Sheet '{sheet}' not found",
            identifier=str(sheet),
            stage="select",
        )

    def create_sheet(self, name: str) -> OpenpyxlSheet:
        """Append a new, empty worksheet.

        Raises:
            WriteError: ``E_SHEET_ALREADY_EXISTS`` if the name is taken,
                ``E_WRITE_FAILED`` if openpyxl rejects the title.
        """
        if name in self._wb.sheetnames:
            raise WriteError(
                code=ErrorCode.E_SHEET_ALREADY_EXISTS,
                message=f"Sheet '{name}' already exists",
                sheet_name=name,
                stage="write",
            )
        try:
            ws = self._wb.create_sheet(title=name)
        except ValueError as exc:
            raise WriteError(
                message=f"Cannot create sheet '{name}': {exc}",
                sheet_name=name,
                stage="write",
            ) from exc
        return self._wrap(ws)

    def _wrap(self, ws: Worksheet) -> OpenpyxlSheet:
        wrapped = self._sheets.get(ws.title)
        if wrapped is None or wrapped.worksheet is not ws:
            twin = None
            if self._cached_wb is not None and ws.title in self._cached_wb.sheetnames:
                twin = self._cached_wb[ws.title]
            wrapped = OpenpyxlSheet(ws, twin)
            self._sheets[ws.title] = wrapped
        return wrapped

    # -- output ---------------------------------------------------------------

    def to_bytes(self) -> bytes:
        """Serialize the workbook as an ``.xlsx`` package.

        Raises:
            WriteError: ``E_WRITE_SERIALIZE`` if openpyxl cannot save it.
        """
        buffer = io.BytesIO()
        try:
            self._wb.save(buffer)
        except Exception as exc:
            raise WriteError(
                code=ErrorCode.E_WRITE_SERIALIZE,
                message=f"Failed to serialize workbook: {exc}",
                stage="serialize",
            ) from exc
        return buffer.getvalue()

    def save(self, path: str | Path) -> None:
        data = self.to_bytes()
        Path(path).write_bytes(data)
        logger.debug("Saved workbook to %s (%d bytes)", path, len(data))

    def close(self) -> None:
        self._wb.close()
        if self._cached_wb is not None:
            self._cached_wb.close()

    def __enter__(self) -> Workbook:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
