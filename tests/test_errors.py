"""Tests for ErrorCode completeness and the exception wrappers."""

from __future__ import annotations

import pytest

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


class TestErrorCode:
    def test_member_count(self) -> None:
        assert len(ErrorCode) == 15

    def test_names_equal_values(self) -> None:
        for member in ErrorCode:
            assert member.name == member.value

    def test_is_str(self) -> None:
        assert ErrorCode.E_PARSE_CORRUPT == "E_PARSE_CORRUPT"


class TestXlsxError:
    def test_serializes(self) -> None:
        error = XlsxError(
            code=ErrorCode.E_TYPE_CONVERSION_FAILED,
            message="bad",
            cell_address="B3",
            row=2,
            column=1,
        )
        dumped = error.model_dump()
        assert dumped["code"] == "E_TYPE_CONVERSION_FAILED"
        assert dumped["cell_address"] == "B3"
        assert dumped["recoverable"] is False


class TestExceptions:
    @pytest.mark.parametrize(
        ("exc_type", "code"),
        [
            (ParseError, ErrorCode.E_PARSE_CORRUPT),
            (SheetNotFoundError, ErrorCode.E_SHEET_NOT_FOUND),
            (TypeConversionError, ErrorCode.E_TYPE_CONVERSION_FAILED),
            (ResourceLimitError, ErrorCode.E_LIMIT_TOO_MANY_ROWS),
            (WriteError, ErrorCode.E_WRITE_FAILED),
        ],
    )
    def test_default_codes(self, exc_type: type[XlsxException], code: ErrorCode) -> None:
        exc = exc_type(message="boom")
        assert exc.code is code
        assert isinstance(exc, XlsxException)
        assert str(exc) == "boom"

    def test_explicit_code_overrides_default(self) -> None:
        exc = ParseError(code=ErrorCode.E_PARSE_EMPTY, message="empty")
        assert exc.code is ErrorCode.E_PARSE_EMPTY

    def test_sheet_not_found_identifier(self) -> None:
        exc = SheetNotFoundError(message="missing", identifier="Totals")
        assert exc.identifier == "Totals"
        assert exc.error.identifier == "Totals"

    def test_type_conversion_context(self) -> None:
        exc = TypeConversionError(
            message="bad",
            sheet_name="Data",
            cell_address="C4",
            row=3,
            column=2,
            raw_value="inf",
            target_type="int",
        )
        assert exc.sheet_name == "Data"
        assert exc.cell_address == "C4"
        assert (exc.row, exc.column) == (3, 2)
        assert exc.raw_value == "inf"
        assert exc.target_type == "int"
