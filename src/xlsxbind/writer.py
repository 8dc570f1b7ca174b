"""Write rows, records or maps into a sheet.

The input shape decides the layout:

* With a ``RecordSchema``: one column per field in schema order, headed by
  the field's header name (its rename when set).  Items may be dicts keyed
  by field name or pydantic model instances.
* Without a schema, a sequence of lists/tuples is written as raw rows;
  ``write_headers`` does not apply to them.
* Without a schema, a sequence of dicts (or models) is written as open maps,
  headed by the union of their keys in first-seen order.
* A pandas DataFrame is written as open maps in its column order.

Empty record or map input writes nothing, not even a header row.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import pandas as pd
from pydantic import BaseModel

from xlsxbind.config import ResourceLimits, WriteConfig
from xlsxbind.converter import to_cell_value
from xlsxbind.detector import cell_address
from xlsxbind.errors import ErrorCode, ResourceLimitError, WriteError, XlsxException
from xlsxbind.frames import dataframe_to_records
from xlsxbind.headers import collect_map_keys, resolve_write_headers
from xlsxbind.models import CellValue, RecordSchema, TargetShape
from xlsxbind.protocols import SheetGrid

logger = logging.getLogger("xlsxbind")


def _as_mapping(item: Any) -> Mapping[Any, Any] | None:
    if isinstance(item, BaseModel):
        return item.model_dump()
    if isinstance(item, Mapping):
        return item
    return None


def _is_row_sequence(item: Any) -> bool:
    return isinstance(item, Sequence) and not isinstance(item, (str, bytes))


class SheetWriter:
    """Writes Python collections into a :class:`~xlsxbind.protocols.SheetGrid`.

    Args:
        config: Write options; defaults to ``WriteConfig()``.
        limits: Resource ceilings checked before any cell is written.
    """

    def __init__(
        self,
        config: WriteConfig | None = None,
        limits: ResourceLimits | None = None,
    ) -> None:
        self._config = config or WriteConfig()
        self._limits = limits or ResourceLimits()

    @property
    def config(self) -> WriteConfig:
        return self._config

    def write(
        self,
        sheet: SheetGrid,
        data: Iterable[Any] | pd.DataFrame,
        schema: RecordSchema | None = None,
    ) -> int:
        """Write *data* into *sheet* starting at ``config.start_row``.

        Returns:
            Number of data rows written (the header row is not counted).

        Raises:
            WriteError: ``E_WRITE_UNSUPPORTED_DATA`` if the input shape is not
                recognised, ``E_WRITE_FAILED`` if a cell cannot be stored.
            ResourceLimitError: If the output would exceed the row or column
                limits.
        """
        start = time.monotonic()

        if isinstance(data, pd.DataFrame):
            items: list[Any] = dataframe_to_records(data)
            keys: list[Any] | None = list(data.columns)
        else:
            if isinstance(data, (str, bytes, Mapping)):
                raise WriteError(
                    code=ErrorCode.E_WRITE_UNSUPPORTED_DATA,
                    message=f"Expected a sequence of rows, got {type(data).__name__}",
                    sheet_name=sheet.name,
                    stage="write",
                )
            items = list(data)
            keys = None

        if schema is not None:
            shape = TargetShape.RECORDS
            headers = resolve_write_headers(schema)
            fields: list[Any] = schema.field_names
            rows = self._mappings(sheet, items)
        elif items and all(_is_row_sequence(item) for item in items):
            shape = TargetShape.ROWS
            rows_written = self._write_raw(sheet, items)
            self._log_write(sheet, shape, rows_written, start)
            return rows_written
        else:
            shape = TargetShape.MAPS
            rows = self._mappings(sheet, items)
            fields = keys if keys is not None else collect_map_keys(rows)
            headers = [str(key) for key in fields]

        if not rows:
            logger.debug("Nothing to write to sheet '%s'", sheet.name)
            return 0

        header_rows = 1 if self._config.write_headers else 0
        self._check_limits(sheet, header_rows + len(rows), len(fields))

        row = self._config.start_row
        if header_rows:
            for column, header in enumerate(headers):
                self._set(sheet, row, column, CellValue.from_text(header))
            row += 1
        for item in rows:
            for column, field in enumerate(fields):
                if field in item:
                    self._set(sheet, row, column, item[field])
            row += 1

        self._log_write(sheet, shape, len(rows), start)
        return len(rows)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _mappings(self, sheet: SheetGrid, items: list[Any]) -> list[Mapping[Any, Any]]:
        rows: list[Mapping[Any, Any]] = []
        for position, item in enumerate(items):
            mapping = _as_mapping(item)
            if mapping is None:
                raise WriteError(
                    code=ErrorCode.E_WRITE_UNSUPPORTED_DATA,
                    message=(
                        f"Item {position} is a {type(item).__name__}; "
                        "expected a dict or a pydantic model"
                    ),
                    sheet_name=sheet.name,
                    stage="write",
                )
            rows.append(mapping)
        return rows

    def _write_raw(self, sheet: SheetGrid, items: list[Sequence[Any]]) -> int:
        width = max(len(item) for item in items)
        self._check_limits(sheet, len(items), width)
        row = self._config.start_row
        for values in items:
            for column, value in enumerate(values):
                self._set(sheet, row, column, value)
            row += 1
        return len(items)

    def _check_limits(self, sheet: SheetGrid, rows: int, columns: int) -> None:
        limits = self._limits
        last_row = self._config.start_row + rows
        if last_row > limits.max_rows:
            logger.error("Write to sheet '%s' exceeds the row limit", sheet.name)
            raise ResourceLimitError(
                code=ErrorCode.E_LIMIT_TOO_MANY_ROWS,
                message=f"Writing {rows} rows would use {last_row}; limit is {limits.max_rows}",
                sheet_name=sheet.name,
                stage="write",
            )
        if columns > limits.max_columns:
            logger.error("Write to sheet '%s' exceeds the column limit", sheet.name)
            raise ResourceLimitError(
                code=ErrorCode.E_LIMIT_TOO_MANY_COLUMNS,
                message=f"Writing {columns} columns exceeds limit of {limits.max_columns}",
                sheet_name=sheet.name,
                stage="write",
            )

    @staticmethod
    def _set(sheet: SheetGrid, row: int, column: int, value: Any) -> None:
        try:
            sheet.set_cell(row, column, to_cell_value(value))
        except XlsxException:
            raise
        except Exception as exc:
            address = cell_address(row, column)
            raise WriteError(
                message=f"Failed to write cell {address}: {exc}",
                sheet_name=sheet.name,
                cell_address=address,
                row=row,
                column=column,
                stage="write",
            ) from exc

    @staticmethod
    def _log_write(
        sheet: SheetGrid, shape: TargetShape, count: int, start: float
    ) -> None:
        logger.info(
            "Wrote %d %s to sheet '%s' in %.3fs",
            count,
            shape.value,
            sheet.name,
            time.monotonic() - start,
        )
