"""Shared test fixtures for xlsxbind tests.

Provides config fixtures, in-memory sheets for the common scenarios, and an
``.xlsx`` file generator backed by openpyxl.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import openpyxl
import pytest

from xlsxbind.config import ParseConfig, ResourceLimits, WriteConfig
from xlsxbind.grid import MemorySheet
from xlsxbind.models import FieldSpec, FieldType, RecordSchema


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def parse_config() -> ParseConfig:
    """Return a ParseConfig with all defaults."""
    return ParseConfig()


@pytest.fixture()
def write_config() -> WriteConfig:
    """Return a WriteConfig with all defaults."""
    return WriteConfig()


@pytest.fixture()
def limits() -> ResourceLimits:
    """Return ResourceLimits with all defaults."""
    return ResourceLimits()


# ---------------------------------------------------------------------------
# In-memory sheets
# ---------------------------------------------------------------------------


@pytest.fixture()
def ghost_sheet() -> MemorySheet:
    """Name/Age table whose third row carries formatting only.

    Rows: ["Name", "Age"], ["Alice", "30"], ghost, ["Bob", "25"].
    """
    sheet = MemorySheet.from_rows(
        "People",
        [
            ["Name", "Age"],
            ["Alice", "30"],
            [None, None],
            ["Bob", "25"],
        ],
    )
    sheet.ghost(2, 0)
    sheet.ghost(2, 1)
    return sheet


@pytest.fixture()
def people_sheet() -> MemorySheet:
    """Typed people table with a renamed header and a numeric column."""
    return MemorySheet.from_rows(
        "People",
        [
            ["First Name", "Age", "Active"],
            ["Alice", 30, True],
            ["Bob", 25.5, False],
        ],
    )


@pytest.fixture()
def people_schema() -> RecordSchema:
    return RecordSchema(
        name="Person",
        fields=[
            FieldSpec(name="first_name", header="First Name"),
            FieldSpec(name="Age", type=FieldType.INT),
            FieldSpec(name="Active", type=FieldType.BOOLEAN),
        ],
    )


# ---------------------------------------------------------------------------
# .xlsx generation
# ---------------------------------------------------------------------------


@pytest.fixture()
def xlsx_factory(tmp_path: Path) -> Callable[..., Path]:
    """Return a callable that writes rows into a new .xlsx under ``tmp_path``."""

    def _create(
        rows: Sequence[Sequence[Any]],
        name: str = "data.xlsx",
        title: str = "Data",
    ) -> Path:
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = title
        for row in rows:
            ws.append(list(row))
        file_path = tmp_path / name
        wb.save(file_path)
        wb.close()
        return file_path

    return _create
