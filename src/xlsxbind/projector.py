"""Row projection: turn a sheet's used range into rows, records or maps.

Pipeline per call:

1. Detect the used range and check it against ``ResourceLimits``.
2. For records and maps, read the header row and bind columns.
3. Walk rows from the data start row through the last used row, skipping
   empty rows unless ``include_empty_rows`` is set.
4. Convert each cell; the first ``TypeConversionError`` aborts the call.

Raw rows never consult headers, so they start at the first used row unless
``data_start_row`` is set explicitly.  Records and maps start at
``ParseConfig.resolved_data_start_row``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator, Mapping
from typing import Any, Union

from xlsxbind.config import ParseConfig, ResourceLimits
from xlsxbind.converter import CellConverter
from xlsxbind.detector import cell_address, detect_used_range, is_row_empty
from xlsxbind.errors import ErrorCode, ParseError, ResourceLimitError, TypeConversionError
from xlsxbind.headers import build_header_map, map_columns, resolve_fields
from xlsxbind.models import (
    CellValue,
    FieldMapping,
    FieldType,
    MapSchema,
    RecordSchema,
    TargetShape,
    UsedRange,
)
from xlsxbind.protocols import SheetGrid

logger = logging.getLogger("xlsxbind")

Target = Union[TargetShape, RecordSchema, MapSchema, None]
RowMap = Mapping[int, CellValue]

_EMPTY_ROW: dict[int, CellValue] = {}


class RowProjector:
    """Projects sheet rows into Python collections.

    Args:
        config: Parse options; defaults to ``ParseConfig()``.
        limits: Resource ceilings checked before any row is produced.
    """

    def __init__(
        self,
        config: ParseConfig | None = None,
        limits: ResourceLimits | None = None,
    ) -> None:
        self._config = config or ParseConfig()
        self._limits = limits or ResourceLimits()
        self._converter = CellConverter(self._config)

    @property
    def config(self) -> ParseConfig:
        return self._config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self, sheet: SheetGrid, target: Target = None) -> list[Any]:
        """Parse *sheet* into the shape described by *target*.

        ``None`` or ``TargetShape.ROWS`` yields raw string rows, a
        ``RecordSchema`` yields records, and a ``MapSchema`` or
        ``TargetShape.MAPS`` yields open maps.

        Raises:
            TypeError: If ``TargetShape.RECORDS`` is given without a schema.
            ParseError: If a required header row is missing.
            TypeConversionError: On the first cell that cannot be converted.
            ResourceLimitError: If the used range exceeds the configured limits.
        """
        if target is None or target is TargetShape.ROWS:
            return self.rows(sheet)
        if isinstance(target, RecordSchema):
            return self.records(sheet, target)
        if isinstance(target, MapSchema):
            return self.maps(sheet, target)
        if target is TargetShape.MAPS:
            return self.maps(sheet)
        raise TypeError("record parsing requires a RecordSchema describing the fields")

    def rows(self, sheet: SheetGrid) -> list[list[str]]:
        """Parse every data row as a list of strings, one per used column."""
        start = time.monotonic()
        used = self._bounds(sheet)
        if used is None:
            return []

        result = [
            self._project_raw(cells, used)
            for _, cells in self._data_rows(sheet, used, self._raw_start_row(used))
        ]
        self._log_parse(sheet, TargetShape.ROWS, len(result), start)
        return result

    def records(self, sheet: SheetGrid, schema: RecordSchema) -> list[dict[str, Any]]:
        """Parse data rows as records keyed by schema field name."""
        start = time.monotonic()
        used = self._bounds(sheet)
        if used is None:
            return []

        header_map = build_header_map(self._header_row(sheet), used)
        mappings = resolve_fields(schema, header_map)

        result = [
            self._project_record(sheet, row, cells, mappings)
            for row, cells in self._data_rows(
                sheet, used, self._config.resolved_data_start_row
            )
        ]
        self._log_parse(sheet, TargetShape.RECORDS, len(result), start)
        return result

    def maps(self, sheet: SheetGrid, schema: MapSchema | None = None) -> list[dict[str, Any]]:
        """Parse data rows as dicts keyed by every detected header."""
        schema = schema or MapSchema()
        start = time.monotonic()
        used = self._bounds(sheet)
        if used is None:
            return []

        columns = map_columns(build_header_map(self._header_row(sheet), used))

        result = [
            self._project_map(sheet, row, cells, columns, schema.value_type)
            for row, cells in self._data_rows(
                sheet, used, self._config.resolved_data_start_row
            )
        ]
        self._log_parse(sheet, TargetShape.MAPS, len(result), start)
        return result

    def get_row(self, sheet: SheetGrid, index: int, target: Target = None) -> Any:
        """Read exactly one row, ``index`` rows below the data start row.

        Indices count physical rows: empty rows between the start row and
        the target are counted whether or not ``include_empty_rows`` is set.

        Raises:
            ParseError: ``E_PARSE_SHEET_EMPTY`` if the sheet has no data,
                ``E_PARSE_ROW_OUT_OF_RANGE`` if the row lies outside the
                used range, ``E_PARSE_HEADER_MISSING`` for record/map
                targets without a header row.
            TypeConversionError: If a cell of the row cannot be converted.
        """
        used = self._bounds(sheet)
        if used is None:
            raise ParseError(
                code=ErrorCode.E_PARSE_SHEET_EMPTY,
                message=f"Sheet '{sheet.name}' contains no data",
                sheet_name=sheet.name,
                stage="parse",
            )

        raw = target is None or target is TargetShape.ROWS
        first = self._raw_start_row(used) if raw else self._config.resolved_data_start_row
        row = first + index
        if index < 0 or row < used.first_row or row > used.last_row:
            raise ParseError(
                code=ErrorCode.E_PARSE_ROW_OUT_OF_RANGE,
                message=(
                    f"Row index {index} is out of range for sheet '{sheet.name}' "
                    f"(data rows {first}..{used.last_row})"
                ),
                sheet_name=sheet.name,
                row=row,
                stage="parse",
            )

        cells = self._cells_in_row(sheet, row, used)
        if raw:
            return self._project_raw(cells, used)

        header_map = build_header_map(self._header_row(sheet), used)
        if isinstance(target, RecordSchema):
            mappings = resolve_fields(target, header_map)
            return self._project_record(sheet, row, cells, mappings)
        if isinstance(target, MapSchema) or target is TargetShape.MAPS:
            value_type = target.value_type if isinstance(target, MapSchema) else FieldType.ANY
            return self._project_map(sheet, row, cells, map_columns(header_map), value_type)
        raise TypeError("record rows require a RecordSchema describing the fields")

    # ------------------------------------------------------------------
    # Bounds and row iteration
    # ------------------------------------------------------------------

    def _bounds(self, sheet: SheetGrid) -> UsedRange | None:
        used = detect_used_range(sheet)
        if used is not None:
            self._check_limits(sheet, used)
        return used

    def _check_limits(self, sheet: SheetGrid, used: UsedRange) -> None:
        limits = self._limits
        if used.last_row + 1 > limits.max_rows:
            logger.error("Sheet '%s' exceeds the row limit", sheet.name)
            raise ResourceLimitError(
                code=ErrorCode.E_LIMIT_TOO_MANY_ROWS,
                message=(
                    f"Sheet '{sheet.name}' uses {used.last_row + 1} rows; "
                    f"limit is {limits.max_rows}"
                ),
                sheet_name=sheet.name,
                stage="parse",
            )
        if used.last_column + 1 > limits.max_columns:
            logger.error("Sheet '%s' exceeds the column limit", sheet.name)
            raise ResourceLimitError(
                code=ErrorCode.E_LIMIT_TOO_MANY_COLUMNS,
                message=(
                    f"Sheet '{sheet.name}' uses {used.last_column + 1} columns; "
                    f"limit is {limits.max_columns}"
                ),
                sheet_name=sheet.name,
                stage="parse",
            )

    def _raw_start_row(self, used: UsedRange) -> int:
        if self._config.data_start_row is not None:
            return self._config.data_start_row
        return used.first_row

    def _data_rows(
        self, sheet: SheetGrid, used: UsedRange, first: int
    ) -> Iterator[tuple[int, RowMap]]:
        existing = {
            index: cells
            for index, cells in sheet.iter_rows()
            if first <= index <= used.last_row
        }
        include_empty = self._config.include_empty_rows
        for row in range(max(first, used.first_row), used.last_row + 1):
            cells = existing.get(row, _EMPTY_ROW)
            if not include_empty and is_row_empty(cells):
                continue
            yield row, cells

    @staticmethod
    def _cells_in_row(sheet: SheetGrid, row: int, used: UsedRange) -> dict[int, CellValue]:
        cells: dict[int, CellValue] = {}
        for column in used.columns():
            cell = sheet.get_cell(row, column)
            if cell is not None:
                cells[column] = cell
        return cells

    def _header_row(self, sheet: SheetGrid) -> RowMap:
        header_row = self._config.header_row
        if header_row < 0:
            raise ParseError(
                code=ErrorCode.E_PARSE_HEADER_MISSING,
                message="Records and maps require a header row (header_row is -1)",
                sheet_name=sheet.name,
                stage="parse",
            )
        cells = sheet.get_row(header_row)
        if cells is None or is_row_empty(cells):
            raise ParseError(
                code=ErrorCode.E_PARSE_HEADER_MISSING,
                message=f"Header row {header_row} is empty",
                sheet_name=sheet.name,
                row=header_row,
                stage="parse",
            )
        return cells

    # ------------------------------------------------------------------
    # Per-row projection
    # ------------------------------------------------------------------

    def _project_raw(self, cells: RowMap, used: UsedRange) -> list[str]:
        to_string = self._converter.convert_to_string
        return [to_string(cells.get(column)) for column in used.columns()]

    def _project_record(
        self,
        sheet: SheetGrid,
        row: int,
        cells: RowMap,
        mappings: list[FieldMapping],
    ) -> dict[str, Any]:
        record: dict[str, Any] = {}
        for mapping in mappings:
            column = mapping.column_index
            if column is None:
                # No header for this field: nilable fields still appear.
                if mapping.nilable:
                    record[mapping.field_name] = None
                continue
            value = self._convert(
                sheet, cells.get(column), row, column, mapping.field_type
            )
            if value is not None:
                record[mapping.field_name] = value
            elif mapping.nilable:
                record[mapping.field_name] = None
        return record

    def _project_map(
        self,
        sheet: SheetGrid,
        row: int,
        cells: RowMap,
        columns: list[tuple[str, int]],
        value_type: FieldType,
    ) -> dict[str, Any]:
        entry: dict[str, Any] = {}
        for header, column in columns:
            value = self._convert(sheet, cells.get(column), row, column, value_type)
            if value is not None:
                entry[header] = value
        return entry

    def _convert(
        self,
        sheet: SheetGrid,
        cell: CellValue | None,
        row: int,
        column: int,
        target: FieldType,
    ) -> Any:
        try:
            return self._converter.convert(cell, target)
        except TypeConversionError as exc:
            address = cell_address(row, column)
            logger.error("Conversion failed at %s!%s", sheet.name, address)
            raise TypeConversionError(
                message=f"{exc.message} (cell {address} of sheet '{sheet.name}')",
                sheet_name=sheet.name,
                cell_address=address,
                row=row,
                column=column,
                raw_value=exc.raw_value,
                target_type=exc.target_type,
                stage="convert",
            ) from exc

    def _log_parse(
        self, sheet: SheetGrid, shape: TargetShape, count: int, start: float
    ) -> None:
        logger.info(
            "Parsed %d %s from sheet '%s' in %.3fs",
            count,
            shape.value,
            sheet.name,
            time.monotonic() - start,
        )
