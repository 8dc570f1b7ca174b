"""In-memory sheet grid.

``MemorySheet`` stores classified cells in a sparse ``{row: {column: cell}}``
dict.  It satisfies :class:`~xlsxbind.protocols.SheetGrid` and is what the
core uses when no workbook container is involved (tests, pipelines that
already hold cell data, and round-trips through the writer).
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any

from xlsxbind.converter import to_cell_value
from xlsxbind.models import CellValue


class MemorySheet:
    """Sparse, dict-backed sheet of :class:`CellValue` cells (0-based)."""

    def __init__(self, name: str = "Sheet1") -> None:
        self._name = name
        self._rows: dict[int, dict[int, CellValue]] = {}

    def __repr__(self) -> str:
        return f"<MemorySheet {self._name!r} rows={len(self._rows)}>"

    @property
    def name(self) -> str:
        return self._name

    @classmethod
    def from_rows(cls, name: str, rows: Iterable[Sequence[Any]]) -> MemorySheet:
        """Build a sheet from rows of Python values.

        Each value is classified the way the writer classifies it; ``None``
        leaves the cell absent, so a row made only of ``None`` does not exist.
        """
        sheet = cls(name)
        for row_index, values in enumerate(rows):
            for col_index, value in enumerate(values):
                if value is None:
                    continue
                sheet.set_cell(row_index, col_index, to_cell_value(value))
        return sheet

    def ghost(self, row: int, column: int) -> None:
        """Materialize a formatting-only cell: it exists but holds nothing."""
        self.set_cell(row, column, CellValue.blank())

    # -- SheetGrid ------------------------------------------------------------

    def iter_rows(self) -> Iterator[tuple[int, Mapping[int, CellValue]]]:
        for row_index in sorted(self._rows):
            yield row_index, self._rows[row_index]

    def get_row(self, row: int) -> Mapping[int, CellValue] | None:
        return self._rows.get(row)

    def get_cell(self, row: int, column: int) -> CellValue | None:
        cells = self._rows.get(row)
        if cells is None:
            return None
        return cells.get(column)

    def set_cell(self, row: int, column: int, value: CellValue) -> None:
        if row < 0 or column < 0:
            raise IndexError(f"cell ({row}, {column}) is outside the sheet")
        self._rows.setdefault(row, {})[column] = value
