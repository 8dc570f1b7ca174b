"""Tests for the openpyxl-backed Workbook and OpenpyxlSheet.

Uses openpyxl to programmatically create .xlsx files and validates cell
classification, ghost-extent handling, formula pairing, sheet selection,
size limits and serialization.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime
from pathlib import Path

import openpyxl
import pytest
from openpyxl.styles import Font, PatternFill

from xlsxbind.config import ParseConfig, ResourceLimits
from xlsxbind.detector import detect_used_range, range_to_a1
from xlsxbind.errors import (
    ErrorCode,
    ParseError,
    ResourceLimitError,
    SheetNotFoundError,
    WriteError,
)
from xlsxbind.models import CellKind, CellValue, FieldSpec, FieldType, FormulaMode, RecordSchema
from xlsxbind.projector import RowProjector
from xlsxbind.protocols import SheetGrid
from xlsxbind.workbook import Workbook
from xlsxbind.writer import SheetWriter


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _create_ghost_xlsx(path: Path) -> Path:
    """Create an xlsx whose data sits in A1:B3 but whose styling reaches row 200."""
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Styled"
    ws.append(["Name", "Age"])
    ws.append(["Alice", 30])
    ws.append(["Bob", 25])

    fill = PatternFill(start_color="FFFF00", end_color="FFFF00", fill_type="solid")
    for row in range(4, 201):
        ws.cell(row=row, column=1).fill = fill
    ws.cell(row=2, column=8).font = Font(bold=True)
    ws["D10"] = "#N/A"

    file_path = path / "ghost.xlsx"
    wb.save(file_path)
    wb.close()
    return file_path


def _create_formula_xlsx(path: Path) -> Path:
    """Create an xlsx with formulas; openpyxl stores no cached results."""
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Formulas"
    ws.append(["Value", "Doubled"])
    for i in range(1, 4):
        ws.append([i, f"=A{i + 1}*2"])

    file_path = path / "formulas.xlsx"
    wb.save(file_path)
    wb.close()
    return file_path


def _create_multi_sheet_xlsx(path: Path) -> Path:
    """Create an xlsx with two data sheets and a chart sheet."""
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "First"
    ws.append(["a"])
    second = wb.create_sheet("Second")
    second.append(["b"])
    second.append([1])

    from openpyxl.chart import BarChart, Reference

    cs = wb.create_chartsheet("Chart")
    chart = BarChart()
    chart.add_data(Reference(second, min_col=1, min_row=1, max_row=2), titles_from_data=True)
    cs.add_chart(chart)

    file_path = path / "multi.xlsx"
    wb.save(file_path)
    wb.close()
    return file_path


# ---------------------------------------------------------------------------
# Opening
# ---------------------------------------------------------------------------


class TestOpen:
    def test_open_path(self, xlsx_factory: Callable[..., Path]) -> None:
        path = xlsx_factory([["Name", "Age"], ["Alice", 30]])
        with Workbook.open(path) as workbook:
            assert workbook.sheet_names == ["Data"]
            sheet = workbook.get_sheet()
            assert isinstance(sheet, SheetGrid)
            assert RowProjector().rows(sheet) == [["Name", "Age"], ["Alice", "30"]]

    def test_from_bytes(self, xlsx_factory: Callable[..., Path]) -> None:
        data = xlsx_factory([["x"]]).read_bytes()
        with Workbook.from_bytes(data) as workbook:
            assert workbook.sheet_count == 1

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            Workbook.open(tmp_path / "nope.xlsx")

    def test_empty_input(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            Workbook.from_bytes(b"")
        assert exc_info.value.code is ErrorCode.E_PARSE_EMPTY

    def test_corrupt_input(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            Workbook.from_bytes(b"this is not a zip archive")
        assert exc_info.value.code is ErrorCode.E_PARSE_CORRUPT
        assert exc_info.value.__cause__ is not None

    def test_size_limit_checked_first(self) -> None:
        data = b"x" * (1024 * 1024 + 1)
        with pytest.raises(ResourceLimitError) as exc_info:
            Workbook.from_bytes(data, ResourceLimits(max_file_size_mb=1))
        assert exc_info.value.code is ErrorCode.E_LIMIT_FILE_TOO_LARGE

    def test_size_limit_on_path(self, tmp_path: Path) -> None:
        path = tmp_path / "big.xlsx"
        path.write_bytes(b"x" * (1024 * 1024 + 1))
        with pytest.raises(ResourceLimitError):
            Workbook.open(path, ResourceLimits(max_file_size_mb=1))


# ---------------------------------------------------------------------------
# Sheet selection
# ---------------------------------------------------------------------------


class TestSheetSelection:
    def test_chart_sheet_skipped(self, tmp_path: Path) -> None:
        with Workbook.open(_create_multi_sheet_xlsx(tmp_path)) as workbook:
            assert workbook.sheet_names == ["First", "Second"]

    def test_by_name_and_index(self, tmp_path: Path) -> None:
        with Workbook.open(_create_multi_sheet_xlsx(tmp_path)) as workbook:
            assert workbook.get_sheet("Second").name == "Second"
            assert workbook.get_sheet(1).name == "Second"
            assert workbook.get_sheet(None).name == "First"

    def test_unknown_name(self, tmp_path: Path) -> None:
        with Workbook.open(_create_multi_sheet_xlsx(tmp_path)) as workbook:
            with pytest.raises(SheetNotFoundError) as exc_info:
                workbook.get_sheet("Totals")
        assert exc_info.value.code is ErrorCode.E_SHEET_NOT_FOUND
        assert exc_info.value.identifier == "Totals"

    @pytest.mark.parametrize("index", [2, -1])
    def test_index_out_of_range(self, tmp_path: Path, index: int) -> None:
        with Workbook.open(_create_multi_sheet_xlsx(tmp_path)) as workbook:
            with pytest.raises(SheetNotFoundError) as exc_info:
                workbook.get_sheet(index)
        assert exc_info.value.code is ErrorCode.E_SHEET_INDEX_OUT_OF_RANGE
        assert exc_info.value.identifier == index


# ---------------------------------------------------------------------------
# Cell classification
# ---------------------------------------------------------------------------


class TestClassification:
    def test_ghost_styling_ignored(self, tmp_path: Path) -> None:
        with Workbook.open(_create_ghost_xlsx(tmp_path)) as workbook:
            sheet = workbook.get_sheet("Styled")
            assert sheet.get_cell(99, 0) == CellValue.blank()
            assert range_to_a1(detect_used_range(sheet)) == "A1:B3"
            assert RowProjector().rows(sheet) == [
                ["Name", "Age"],
                ["Alice", "30"],
                ["Bob", "25"],
            ]

    def test_error_cell(self, tmp_path: Path) -> None:
        with Workbook.open(_create_ghost_xlsx(tmp_path)) as workbook:
            cell = workbook.get_sheet().get_cell(9, 3)
        assert cell is not None
        assert cell.kind is CellKind.ERROR
        assert cell.error == "#N/A"

    def test_native_kinds(self, xlsx_factory: Callable[..., Path]) -> None:
        path = xlsx_factory([["text", 1.5, 7, True, date(2024, 3, 1), None]])
        with Workbook.open(path) as workbook:
            sheet = workbook.get_sheet()
            assert sheet.get_cell(0, 0) == CellValue.from_text("text")
            assert sheet.get_cell(0, 1) == CellValue.from_number(1.5)
            assert sheet.get_cell(0, 2) == CellValue.from_number(7.0)
            assert sheet.get_cell(0, 3) == CellValue.from_bool(True)
            dated = sheet.get_cell(0, 4)
            assert sheet.get_cell(0, 5) is None
        assert dated is not None
        assert dated.is_date is True
        assert dated.number == 45352.0

    def test_dates_parse(self, xlsx_factory: Callable[..., Path]) -> None:
        path = xlsx_factory([["When"], [date(2024, 3, 1)], [datetime(2023, 12, 31, 18, 0)]])
        schema = RecordSchema(fields=[FieldSpec(name="When", type=FieldType.DATE)])
        with Workbook.open(path) as workbook:
            sheet = workbook.get_sheet()
            assert RowProjector().records(sheet, schema) == [
                {"When": date(2024, 3, 1)},
                {"When": date(2023, 12, 31)},
            ]
            assert RowProjector().rows(sheet)[1:] == [["2024-03-01"], ["2023-12-31"]]


class TestFormulas:
    def test_formula_paired_with_blank_cache(self, tmp_path: Path) -> None:
        with Workbook.open(_create_formula_xlsx(tmp_path)) as workbook:
            cell = workbook.get_sheet().get_cell(1, 1)
        assert cell is not None
        assert cell.kind is CellKind.FORMULA
        assert cell.formula == "A2*2"
        assert cell.cached == CellValue.blank()

    def test_text_mode(self, tmp_path: Path) -> None:
        with Workbook.open(_create_formula_xlsx(tmp_path)) as workbook:
            projector = RowProjector(ParseConfig(formula_mode=FormulaMode.TEXT))
            rows = projector.rows(workbook.get_sheet())
        assert rows[1:] == [["1", "=A2*2"], ["2", "=A3*2"], ["3", "=A4*2"]]

    def test_cached_mode_without_cache(self, tmp_path: Path) -> None:
        with Workbook.open(_create_formula_xlsx(tmp_path)) as workbook:
            sheet = workbook.get_sheet()
            assert range_to_a1(detect_used_range(sheet)) == "A1:B4"
            assert RowProjector().maps(sheet)[0] == {"Value": 1}


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


class TestWrite:
    def test_new_workbook_roundtrip(self) -> None:
        with Workbook.new() as workbook:
            sheet = workbook.create_sheet("Out")
            SheetWriter().write(
                sheet,
                [["Name", "When", "Score"], ["Ann", date(2024, 3, 1), 9.5], ["=1+1", "#N/A", 3]],
            )
            data = workbook.to_bytes()

        with Workbook.from_bytes(data) as reread:
            rows = RowProjector().rows(reread.get_sheet("Out"))
        assert rows == [
            ["Name", "When", "Score"],
            ["Ann", "2024-03-01", "9.5"],
            ["=1+1", "#N/A", "3"],
        ]

    def test_text_stays_text_before_save(self) -> None:
        with Workbook.new() as workbook:
            sheet = workbook.create_sheet("Out")
            SheetWriter().write(sheet, [["=A1", "#REF!"]])
            assert sheet.get_cell(0, 0) == CellValue.from_text("=A1")
            assert sheet.get_cell(0, 1) == CellValue.from_text("#REF!")

    def test_formula_cell_written(self) -> None:
        with Workbook.new() as workbook:
            sheet = workbook.create_sheet("Out")
            SheetWriter().write(sheet, [[2, CellValue.from_formula("A1*2")]])
            cell = sheet.get_cell(0, 1)
        assert cell is not None
        assert cell.kind is CellKind.FORMULA
        assert cell.formula == "A1*2"

    def test_overwrite_loaded_formula(self, tmp_path: Path) -> None:
        with Workbook.open(_create_formula_xlsx(tmp_path)) as workbook:
            sheet = workbook.get_sheet()
            sheet.set_cell(1, 1, CellValue.from_number(42))
            assert sheet.get_cell(1, 1) == CellValue.from_number(42.0)

    def test_save(self, tmp_path: Path) -> None:
        path = tmp_path / "out.xlsx"
        with Workbook.new() as workbook:
            SheetWriter().write(workbook.create_sheet("S"), [["a"]])
            workbook.save(path)
        with Workbook.open(path) as reread:
            assert reread.sheet_names == ["S"]

    def test_duplicate_sheet(self) -> None:
        with Workbook.new() as workbook:
            workbook.create_sheet("S")
            with pytest.raises(WriteError) as exc_info:
                workbook.create_sheet("S")
        assert exc_info.value.code is ErrorCode.E_SHEET_ALREADY_EXISTS

    def test_serialize_without_sheets(self) -> None:
        with Workbook.new() as workbook:
            with pytest.raises(WriteError) as exc_info:
                workbook.to_bytes()
        assert exc_info.value.code is ErrorCode.E_WRITE_SERIALIZE
