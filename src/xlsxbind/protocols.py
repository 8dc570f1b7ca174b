"""Collaborator protocol for xlsxbind.

Defines the structural-subtyping interface a sheet must satisfy to be read
or written by the core.  The protocol is ``@runtime_checkable`` so callers
can optionally verify conformance with ``isinstance`` checks.

All indices are 0-based.  Rows and cells that were never materialized are
simply absent; they are never reported as zero-valued.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from xlsxbind.models import CellValue


@runtime_checkable
class SheetGrid(Protocol):
    """Random-access grid of classified cells for one sheet."""

    @property
    def name(self) -> str:
        """Sheet name as shown on its tab."""
        ...

    def iter_rows(self) -> Iterator[tuple[int, Mapping[int, CellValue]]]:
        """Yield ``(row_index, {column_index: cell})`` for existing rows, ascending."""
        ...

    def get_row(self, row: int) -> Mapping[int, CellValue] | None:
        """Return the existing cells of *row*, or ``None`` if the row does not exist."""
        ...

    def get_cell(self, row: int, column: int) -> CellValue | None:
        """Return the cell at (*row*, *column*), or ``None`` if it does not exist."""
        ...

    def set_cell(self, row: int, column: int, value: CellValue) -> None:
        """Store *value* at (*row*, *column*), materializing the cell."""
        ...
