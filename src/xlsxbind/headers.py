"""Header-row resolution.

Builds the header text -> column index map for a sheet and binds record
schemas against it.  Two behaviours here are contracts, not accidents:

* Duplicate header text resolves to the *last* (highest-index) column.
* A schema field whose header is missing from the sheet is left unbound;
  it is omitted from records (or set to ``None`` when nilable), never an
  error.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from xlsxbind.config import ParseConfig
from xlsxbind.converter import CellConverter
from xlsxbind.models import (
    CellKind,
    CellValue,
    FieldMapping,
    HeaderMap,
    RecordSchema,
    UsedRange,
)

logger = logging.getLogger("xlsxbind")

# Header text is always read from cached results, whatever the parse mode.
_HEADER_CONVERTER = CellConverter(ParseConfig())


def header_text(cell: CellValue | None) -> str | None:
    """Return the trimmed header text of *cell*, or ``None`` if it names nothing.

    Non-text cells use their string projection (``2024`` -> ``"2024"``).
    Blank and error cells, including formulas whose cached result is one,
    contribute no header.
    """
    if cell is None:
        return None
    if cell.kind is CellKind.FORMULA and cell.cached is not None:
        cell = cell.cached
    if cell.kind in (CellKind.BLANK, CellKind.ERROR):
        return None
    text = _HEADER_CONVERTER.convert_to_string(cell).strip()
    return text or None


def build_header_map(
    header_row: Mapping[int, CellValue] | None,
    used: UsedRange,
) -> HeaderMap:
    """Map trimmed header text to its column for every column of *used*.

    Columns are visited left to right, so a repeated header ends up bound
    to its rightmost column.
    """
    header_map: HeaderMap = {}
    if header_row is None:
        return header_map
    for column in used.columns():
        text = header_text(header_row.get(column))
        if text is not None:
            header_map[text] = column
    logger.debug("Resolved %d headers", len(header_map))
    return header_map


def resolve_fields(schema: RecordSchema, header_map: HeaderMap) -> list[FieldMapping]:
    """Bind each schema field, in declared order, to its header's column."""
    mappings = [
        FieldMapping(
            field_name=spec.name,
            field_type=spec.type,
            nilable=spec.nilable,
            header_name=spec.header_name,
            column_index=header_map.get(spec.header_name),
        )
        for spec in schema.fields
    ]
    unbound = [m.field_name for m in mappings if not m.is_bound]
    if unbound:
        logger.debug("Schema '%s' fields without a header: %s", schema.name, unbound)
    return mappings


def map_columns(header_map: HeaderMap) -> list[tuple[str, int]]:
    """Return ``(header, column)`` pairs for open-map output, left to right."""
    return sorted(header_map.items(), key=lambda item: item[1])


def resolve_write_headers(schema: RecordSchema) -> list[str]:
    """Header text written for each schema field (rename, else field name)."""
    return [spec.header_name for spec in schema.fields]


def collect_map_keys(rows: Iterable[Mapping[Any, Any]]) -> list[Any]:
    """Union of all keys across *rows*, in first-seen order."""
    keys: dict[Any, None] = {}
    for row in rows:
        for key in row:
            keys.setdefault(key, None)
    return list(keys)
