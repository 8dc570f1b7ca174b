"""Configuration models for xlsxbind.

Provides ``ParseConfig`` (read direction), ``WriteConfig`` (write direction)
and ``ResourceLimits`` (hard ceilings checked before any output is
produced).  Each model supports loading overrides from YAML or JSON files
via its ``from_file()`` classmethod.
"""

from __future__ import annotations

import json
import pathlib
from typing import Any

from pydantic import BaseModel, Field

from xlsxbind.models import FormulaMode


def _load_config_data(path: str) -> dict[str, Any]:
    """Return the keyword arguments stored in a parse, write or limits file.

    Shared by the three ``from_file`` constructors below.  The suffix picks
    the format (``.yaml``/``.yml`` or ``.json``).  An empty file leaves
    every option at its default.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValueError: If the file extension is not recognized.
        ImportError: If a YAML file is provided but ``pyyaml`` is not
            installed.
    """
    file_path = pathlib.Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    suffix = file_path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        try:
            import yaml  # type: ignore[import-untyped]
        except ImportError as exc:
            raise ImportError(
                "pyyaml is required to load YAML config files. "
                "Install it with: pip install pyyaml"
            ) from exc
        with open(file_path) as fh:
            data = yaml.safe_load(fh)
    elif suffix == ".json":
        with open(file_path) as fh:
            data = json.load(fh)
    else:
        raise ValueError(
            f"Unsupported config file extension '{suffix}'. "
            "Use .yaml, .yml, or .json."
        )

    return data or {}


class ParseConfig(BaseModel):
    """Options for reading a sheet into rows, records or maps.

    ``header_row`` is 0-based; ``-1`` means the sheet has no header row.
    When ``data_start_row`` is not set, data starts on the row after the
    header (raw-row parsing instead starts at the first row of the used
    range, since raw rows never consult headers).
    """

    header_row: int = Field(default=0, ge=-1)
    data_start_row: int | None = Field(default=None, ge=0)
    include_empty_rows: bool = False
    formula_mode: FormulaMode = FormulaMode.CACHED
    sheet: str | int | None = None

    @property
    def has_header_row(self) -> bool:
        return self.header_row >= 0

    @property
    def has_explicit_data_start_row(self) -> bool:
        return self.data_start_row is not None

    @property
    def resolved_data_start_row(self) -> int:
        """First data row: the explicit value, else the row after the header."""
        if self.data_start_row is not None:
            return self.data_start_row
        return self.header_row + 1

    @classmethod
    def from_file(cls, path: str) -> ParseConfig:
        """Load a ``ParseConfig`` from a YAML or JSON file.

        Keys present in the file override the defaults; keys not present
        retain their defaults.
        """
        return cls(**_load_config_data(path))


class WriteConfig(BaseModel):
    """Options for writing rows, records or maps into a sheet."""

    sheet_name: str = "Sheet1"
    write_headers: bool = True
    start_row: int = Field(default=0, ge=0)

    @classmethod
    def from_file(cls, path: str) -> WriteConfig:
        """Load a ``WriteConfig`` from a YAML or JSON file."""
        return cls(**_load_config_data(path))


class ResourceLimits(BaseModel):
    """Hard ceilings; exceeding any raises ``ResourceLimitError``.

    Defaults match the xlsx format's own grid limits and a 100 MB input cap.
    """

    max_rows: int = Field(default=1_048_576, gt=0)
    max_columns: int = Field(default=16_384, gt=0)
    max_file_size_mb: int = Field(default=100, gt=0)

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024

    @classmethod
    def from_file(cls, path: str) -> ResourceLimits:
        """Load ``ResourceLimits`` from a YAML or JSON file."""
        return cls(**_load_config_data(path))
