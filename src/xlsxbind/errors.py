"""Normalized error codes and structured error model for xlsxbind.

Every failure carries a stable ``ErrorCode`` plus enough location context
(sheet name, cell address, 0-based row/column) to pinpoint the offending
cell without re-scanning the sheet.

``XlsxError`` is a Pydantic model (data structure), not a Python Exception.
Raisable errors are the ``XlsxException`` subclasses below, which wrap the
model as ``.error``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Normalized error codes for xlsxbind.

    Values equal their names so they are stable strings suitable for
    metrics, alerting, and programmatic handling.
    """

    # Parse errors
    E_PARSE_CORRUPT = "E_PARSE_CORRUPT"
    E_PARSE_EMPTY = "E_PARSE_EMPTY"
    E_PARSE_HEADER_MISSING = "E_PARSE_HEADER_MISSING"
    E_PARSE_ROW_OUT_OF_RANGE = "E_PARSE_ROW_OUT_OF_RANGE"
    E_PARSE_SHEET_EMPTY = "E_PARSE_SHEET_EMPTY"

    # Sheet selection errors
    E_SHEET_NOT_FOUND = "E_SHEET_NOT_FOUND"
    E_SHEET_INDEX_OUT_OF_RANGE = "E_SHEET_INDEX_OUT_OF_RANGE"
    E_SHEET_ALREADY_EXISTS = "E_SHEET_ALREADY_EXISTS"

    # Conversion errors
    E_TYPE_CONVERSION_FAILED = "E_TYPE_CONVERSION_FAILED"

    # Resource ceilings
    E_LIMIT_FILE_TOO_LARGE = "E_LIMIT_FILE_TOO_LARGE"
    E_LIMIT_TOO_MANY_ROWS = "E_LIMIT_TOO_MANY_ROWS"
    E_LIMIT_TOO_MANY_COLUMNS = "E_LIMIT_TOO_MANY_COLUMNS"

    # Write errors
    E_WRITE_FAILED = "E_WRITE_FAILED"
    E_WRITE_SERIALIZE = "E_WRITE_SERIALIZE"
    E_WRITE_UNSUPPORTED_DATA = "E_WRITE_UNSUPPORTED_DATA"


class XlsxError(BaseModel):
    """Structured error with code, message, and cell-level context.

    ``row`` and ``column`` are 0-based; ``cell_address`` is the A1 form of
    the same location.  ``identifier`` holds the sheet name or index that
    was requested when sheet selection fails.
    """

    code: ErrorCode
    message: str
    sheet_name: str | None = None
    stage: str | None = None
    recoverable: bool = False
    identifier: str | int | None = None
    cell_address: str | None = None
    row: int | None = None
    column: int | None = None
    raw_value: str | None = None
    target_type: str | None = None


class XlsxException(Exception):
    """Raisable exception wrapping an ``XlsxError`` data model.

    Carries the structured ``XlsxError`` as the ``.error`` attribute for
    inspection and serialization.  Subclasses set ``default_code`` so callers
    can omit ``code`` for the common case.
    """

    default_code: ErrorCode = ErrorCode.E_PARSE_CORRUPT

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("code", self.default_code)
        self.error = XlsxError(**kwargs)
        super().__init__(self.error.message)

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def sheet_name(self) -> str | None:
        return self.error.sheet_name

    @property
    def cell_address(self) -> str | None:
        return self.error.cell_address

    @property
    def row(self) -> int | None:
        return self.error.row

    @property
    def column(self) -> int | None:
        return self.error.column


class ParseError(XlsxException):
    """Malformed container, or an unreadable header row when one is required."""

    default_code = ErrorCode.E_PARSE_CORRUPT


class SheetNotFoundError(XlsxException):
    """The requested sheet name or index does not exist."""

    default_code = ErrorCode.E_SHEET_NOT_FOUND

    @property
    def identifier(self) -> str | int | None:
        return self.error.identifier


class TypeConversionError(XlsxException):
    """A cell could not be coerced to its target type and no fallback applies."""

    default_code = ErrorCode.E_TYPE_CONVERSION_FAILED

    @property
    def raw_value(self) -> str | None:
        return self.error.raw_value

    @property
    def target_type(self) -> str | None:
        return self.error.target_type


class ResourceLimitError(XlsxException):
    """A configured row, column, or input-size ceiling was exceeded."""

    default_code = ErrorCode.E_LIMIT_TOO_MANY_ROWS


class WriteError(XlsxException):
    """Writing cells or serializing the output container failed."""

    default_code = ErrorCode.E_WRITE_FAILED
