"""Type-directed conversion between classified cells and Python values.

Read direction (:class:`CellConverter`) coerces one cell into a target
:class:`~xlsxbind.models.FieldType`, honouring the configured formula mode.
Coercion from text is deliberately forgiving: a string that cannot be parsed
as the target type is returned unchanged instead of raising.  Blank and error
cells read as ``None``.

Write direction (:func:`to_cell_value`) classifies a Python value as the
cell kind that stores it natively.
"""

from __future__ import annotations

import logging
import math
import numbers
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from openpyxl.utils.datetime import from_excel, to_excel

from xlsxbind.config import ParseConfig
from xlsxbind.errors import TypeConversionError
from xlsxbind.models import CellKind, CellValue, FieldType, FormulaMode
from xlsxbind.protocols import SheetGrid

logger = logging.getLogger("xlsxbind")

_INT_RE = re.compile(r"[+-]?\d+")
_TRUE_STRINGS = frozenset({"true", "yes", "1"})
_ERROR_TEXT = "#ERROR"
# Serials in [0, 1) carry a time of day only; Excel renders their date part
# as day zero of the 1900 system.
_DAY_ZERO = date(1899, 12, 31)


def _is_whole(value: float) -> bool:
    return math.isfinite(value) and value.is_integer()


def format_number(value: float) -> str:
    """Render a number the way raw-row output shows it.

    Whole numbers drop the decimal point (``30.0`` -> ``"30"``); everything
    else uses Python's shortest round-trip float repr.
    """
    if _is_whole(value):
        return str(int(value))
    return repr(value)


def serial_to_date(serial: float) -> date:
    """Convert an Excel serial day number (1900 date system) to a calendar date.

    Raises:
        TypeConversionError: If the serial does not denote a representable date.
    """
    try:
        converted = from_excel(serial)
    except (OverflowError, ValueError) as exc:
        raise TypeConversionError(
            message=f"Numeric value {serial!r} is not a valid date serial: {exc}",
            raw_value=repr(serial),
            target_type=FieldType.DATE.value,
        ) from exc
    if isinstance(converted, datetime):
        return converted.date()
    return _DAY_ZERO


def _parse_iso_date(value: str) -> date | None:
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        return None


class CellConverter:
    """Converts classified cells into Python values for a target type.

    Parameters
    ----------
    config:
        Parse configuration; only ``formula_mode`` is consulted.
    """

    def __init__(self, config: ParseConfig | None = None) -> None:
        self._config = config or ParseConfig()

    @property
    def text_formulas(self) -> bool:
        return self._config.formula_mode is FormulaMode.TEXT

    # ------------------------------------------------------------------
    # Typed conversion
    # ------------------------------------------------------------------

    def convert(self, cell: CellValue | None, target: FieldType = FieldType.ANY) -> Any:
        """Convert *cell* to *target*; ``None`` means "no value".

        In ``TEXT`` formula mode a formula cell always yields its source text
        prefixed with ``=``, whatever the target.  In ``CACHED`` mode the
        cached result is converted as if it were a plain cell.

        Raises:
            TypeConversionError: When the cell's content has no defined
                conversion to *target* (for example a non-finite number read
                as ``INT``).  String coercions never raise.
        """
        if cell is None:
            return None
        if cell.kind is CellKind.FORMULA:
            if self.text_formulas:
                return f"={cell.formula}"
            if cell.cached is None:
                return None
            cell = cell.cached

        kind = cell.kind
        if kind is CellKind.TEXT:
            text = cell.text or ""
            if not text.strip():
                return None
            return self._coerce_text(text, target)
        if kind is CellKind.NUMBER:
            number = cell.number if cell.number is not None else 0.0
            if cell.is_date:
                return self._convert_date(number, target)
            return self._coerce_number(number, target)
        if kind is CellKind.BOOLEAN:
            return self._coerce_bool(bool(cell.boolean), target)
        # Blank, and error cells in data context.
        return None

    def convert_to_string(self, cell: CellValue | None) -> str:
        """Project *cell* onto the string form used for raw-row output."""
        if cell is None:
            return ""
        if cell.kind is CellKind.FORMULA:
            if self.text_formulas:
                return f"={cell.formula}"
            if cell.cached is None:
                return ""
            cell = cell.cached

        kind = cell.kind
        if kind is CellKind.TEXT:
            return cell.text or ""
        if kind is CellKind.NUMBER:
            number = cell.number if cell.number is not None else 0.0
            if cell.is_date:
                try:
                    return serial_to_date(number).isoformat()
                except TypeConversionError:
                    logger.debug("Date serial %r out of range; rendering as number.", number)
            return format_number(number)
        if kind is CellKind.BOOLEAN:
            return "true" if cell.boolean else "false"
        if kind is CellKind.ERROR:
            return _ERROR_TEXT
        return ""

    # ------------------------------------------------------------------
    # Per-kind coercion
    # ------------------------------------------------------------------

    @staticmethod
    def _coerce_text(value: str, target: FieldType) -> Any:
        stripped = value.strip()

        if target is FieldType.INT:
            if _INT_RE.fullmatch(stripped):
                return int(stripped)
            try:
                as_float = float(stripped)
            except ValueError:
                return value
            if not math.isfinite(as_float):
                return value
            return int(as_float)

        if target is FieldType.FLOAT:
            try:
                return float(stripped)
            except ValueError:
                return value

        if target is FieldType.DECIMAL:
            try:
                return Decimal(stripped)
            except InvalidOperation:
                return value

        if target is FieldType.BOOLEAN:
            return stripped.lower() in _TRUE_STRINGS

        if target is FieldType.DATE:
            parsed = _parse_iso_date(stripped)
            return parsed if parsed is not None else value

        return value

    @staticmethod
    def _coerce_number(value: float, target: FieldType) -> Any:
        if target is FieldType.INT:
            if not math.isfinite(value):
                raise TypeConversionError(
                    message=f"Cannot convert non-finite number {value!r} to int",
                    raw_value=repr(value),
                    target_type=target.value,
                )
            return int(value)
        if target is FieldType.FLOAT:
            return value
        if target is FieldType.DECIMAL:
            return Decimal(repr(value))
        if target is FieldType.STRING:
            return format_number(value)
        if target is FieldType.BOOLEAN:
            return value != 0
        if target is FieldType.DATE:
            return serial_to_date(value)
        if _is_whole(value):
            return int(value)
        return Decimal(repr(value))

    @staticmethod
    def _convert_date(serial: float, target: FieldType) -> Any:
        converted = serial_to_date(serial)
        if target is FieldType.DATE:
            return converted
        return converted.isoformat()

    @staticmethod
    def _coerce_bool(value: bool, target: FieldType) -> Any:
        if target is FieldType.STRING:
            return "true" if value else "false"
        if target is FieldType.INT:
            return 1 if value else 0
        if target is FieldType.FLOAT:
            return 1.0 if value else 0.0
        return value


# ---------------------------------------------------------------------------
# Write direction
# ---------------------------------------------------------------------------


def to_cell_value(value: Any) -> CellValue:
    """Classify a Python value as the cell that stores it.

    ``None`` becomes a blank cell; booleans, integers, floats and decimals
    become native boolean/numeric cells (decimals via their closest float);
    dates and datetimes become date-styled numeric cells.  A ``CellValue``
    passes through unchanged.  Anything else is stored as its ``str()``.
    """
    if value is None:
        return CellValue.blank()
    if isinstance(value, CellValue):
        return value
    if isinstance(value, bool):
        return CellValue.from_bool(value)
    if isinstance(value, Decimal):
        return CellValue.from_number(float(value))
    if isinstance(value, numbers.Real):
        return CellValue.from_number(float(value))
    if isinstance(value, (datetime, date)):
        return CellValue.from_number(to_excel(value), is_date=True)
    return CellValue.from_text(str(value))


def set_cell_value(sheet: SheetGrid, row: int, column: int, value: Any) -> None:
    """Write *value* into (*row*, *column*) of *sheet*."""
    sheet.set_cell(row, column, to_cell_value(value))
