"""xlsxbind -- typed binding between spreadsheet cell grids and Python collections.

Public API exports for models, configuration, errors, the sheet protocol and
its implementations, and the parse/write entry points.
"""

from xlsxbind.api import (
    get_row,
    parse_bytes,
    parse_file,
    parse_sheet,
    sheet_summary,
    write_bytes,
    write_file,
    write_sheet,
)
from xlsxbind.config import ParseConfig, ResourceLimits, WriteConfig
from xlsxbind.converter import CellConverter, set_cell_value, to_cell_value
from xlsxbind.detector import (
    cell_address,
    column_count,
    column_letter,
    detect_used_range,
    has_real_data,
    is_row_empty,
    range_to_a1,
    row_count,
)
from xlsxbind.errors import (
    ErrorCode,
    ParseError,
    ResourceLimitError,
    SheetNotFoundError,
    TypeConversionError,
    WriteError,
    XlsxError,
    XlsxException,
)
from xlsxbind.frames import dataframe_to_records, records_to_dataframe
from xlsxbind.grid import MemorySheet
from xlsxbind.headers import build_header_map, resolve_fields
from xlsxbind.models import (
    CellKind,
    CellValue,
    FieldMapping,
    FieldSpec,
    FieldType,
    FormulaMode,
    HeaderMap,
    MapSchema,
    RecordSchema,
    SheetSummary,
    TargetShape,
    UsedRange,
)
from xlsxbind.projector import RowProjector
from xlsxbind.protocols import SheetGrid
from xlsxbind.workbook import OpenpyxlSheet, Workbook
from xlsxbind.writer import SheetWriter

__all__ = [
    # Enums
    "CellKind",
    "FieldType",
    "FormulaMode",
    "TargetShape",
    # Core models
    "CellValue",
    "UsedRange",
    "HeaderMap",
    "FieldSpec",
    "RecordSchema",
    "MapSchema",
    "FieldMapping",
    "SheetSummary",
    # Config
    "ParseConfig",
    "WriteConfig",
    "ResourceLimits",
    # Errors
    "ErrorCode",
    "XlsxError",
    "XlsxException",
    "ParseError",
    "SheetNotFoundError",
    "TypeConversionError",
    "ResourceLimitError",
    "WriteError",
    # Protocols
    "SheetGrid",
    # Sheets and workbooks
    "MemorySheet",
    "OpenpyxlSheet",
    "Workbook",
    # Used range
    "detect_used_range",
    "has_real_data",
    "is_row_empty",
    "range_to_a1",
    "row_count",
    "column_count",
    "column_letter",
    "cell_address",
    # Conversion
    "CellConverter",
    "to_cell_value",
    "set_cell_value",
    # Headers
    "build_header_map",
    "resolve_fields",
    # Projection
    "RowProjector",
    "SheetWriter",
    # pandas bridge
    "records_to_dataframe",
    "dataframe_to_records",
    # Entry points
    "parse_sheet",
    "get_row",
    "write_sheet",
    "parse_bytes",
    "parse_file",
    "write_bytes",
    "write_file",
    "sheet_summary",
]
