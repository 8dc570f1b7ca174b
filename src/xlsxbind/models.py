"""Pydantic data models and enumerations for xlsxbind.

This module defines the data model layer shared by every stage: the tagged
cell classification (``CellValue``), the detected ``UsedRange``, the
caller-supplied schema objects (``FieldSpec``, ``RecordSchema``,
``MapSchema``), and the per-call ``FieldMapping`` derived from them.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from types import UnionType
from typing import Any, Union, get_args, get_origin

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class CellKind(str, Enum):
    """Closed set of spreadsheet cell kinds."""

    BLANK = "blank"
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    FORMULA = "formula"
    ERROR = "error"


class FormulaMode(str, Enum):
    """How formula cells are read.

    ``CACHED`` reads the last computed result stored with the formula;
    ``TEXT`` reads the formula source itself, prefixed with ``=``.
    """

    CACHED = "CACHED"
    TEXT = "TEXT"


class FieldType(str, Enum):
    """Target semantic type for a converted cell.

    ``ANY`` is the untyped target used for open maps: numbers, booleans and
    text keep their natural Python representation.
    """

    STRING = "string"
    INT = "int"
    FLOAT = "float"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATE = "date"
    ANY = "any"


class TargetShape(str, Enum):
    """Shape of the collection produced by a parse call."""

    ROWS = "rows"
    RECORDS = "records"
    MAPS = "maps"


# ---------------------------------------------------------------------------
# Cell classification
# ---------------------------------------------------------------------------


class CellValue(BaseModel):
    """Classified content of a single cell.

    A tagged variant over ``CellKind``: only the payload field matching
    ``kind`` is populated.  A formula carries its source text (without the
    leading ``=``) and the classification of its cached result, which can
    never itself be a formula.
    """

    model_config = ConfigDict(frozen=True)

    kind: CellKind
    text: str | None = None
    number: float | None = None
    is_date: bool = False
    boolean: bool | None = None
    formula: str | None = None
    cached: CellValue | None = None
    error: str | None = None

    @model_validator(mode="after")
    def _check_payload(self) -> CellValue:
        kind = self.kind
        if kind is CellKind.TEXT and self.text is None:
            raise ValueError("text cell requires a text payload")
        if kind is CellKind.NUMBER and self.number is None:
            raise ValueError("number cell requires a numeric payload")
        if kind is CellKind.BOOLEAN and self.boolean is None:
            raise ValueError("boolean cell requires a boolean payload")
        if kind is CellKind.FORMULA:
            if self.formula is None:
                raise ValueError("formula cell requires formula source text")
            if self.cached is None:
                raise ValueError("formula cell requires a cached classification")
            if self.cached.kind is CellKind.FORMULA:
                raise ValueError("formula cached result cannot itself be a formula")
        elif self.cached is not None:
            raise ValueError("only formula cells carry a cached classification")
        return self

    # -- constructors --------------------------------------------------------

    @classmethod
    def blank(cls) -> CellValue:
        return cls(kind=CellKind.BLANK)

    @classmethod
    def from_text(cls, value: str) -> CellValue:
        return cls(kind=CellKind.TEXT, text=value)

    @classmethod
    def from_number(cls, value: float, is_date: bool = False) -> CellValue:
        return cls(kind=CellKind.NUMBER, number=value, is_date=is_date)

    @classmethod
    def from_bool(cls, value: bool) -> CellValue:
        return cls(kind=CellKind.BOOLEAN, boolean=value)

    @classmethod
    def from_formula(cls, source: str, cached: CellValue | None = None) -> CellValue:
        """Build a formula cell; a missing cached result is treated as blank."""
        if source.startswith("="):
            source = source[1:]
        return cls(
            kind=CellKind.FORMULA,
            formula=source,
            cached=cached if cached is not None else cls.blank(),
        )

    @classmethod
    def from_error(cls, code: str = "#ERROR") -> CellValue:
        return cls(kind=CellKind.ERROR, error=code)


# ---------------------------------------------------------------------------
# Detected geometry
# ---------------------------------------------------------------------------


class UsedRange(BaseModel):
    """Minimal bounding rectangle of data-bearing cells (0-based, inclusive)."""

    model_config = ConfigDict(frozen=True)

    first_row: int = Field(ge=0)
    last_row: int = Field(ge=0)
    first_column: int = Field(ge=0)
    last_column: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> UsedRange:
        if self.first_row > self.last_row:
            raise ValueError(
                f"first_row {self.first_row} is after last_row {self.last_row}"
            )
        if self.first_column > self.last_column:
            raise ValueError(
                f"first_column {self.first_column} is after "
                f"last_column {self.last_column}"
            )
        return self

    @property
    def row_count(self) -> int:
        return self.last_row - self.first_row + 1

    @property
    def column_count(self) -> int:
        return self.last_column - self.first_column + 1

    def columns(self) -> range:
        return range(self.first_column, self.last_column + 1)


class SheetSummary(BaseModel):
    """Geometry of a sheet's used range, as reported by ``sheet_summary``."""

    name: str
    used_range: str
    row_count: int
    column_count: int


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


HeaderMap = dict[str, int]
"""Trimmed header text -> 0-based column index (last duplicate wins)."""


_PY_TYPE_TO_FIELD_TYPE: dict[Any, FieldType] = {
    str: FieldType.STRING,
    int: FieldType.INT,
    float: FieldType.FLOAT,
    Decimal: FieldType.DECIMAL,
    bool: FieldType.BOOLEAN,
    date: FieldType.DATE,
    datetime: FieldType.DATE,
}


def _field_type_for(annotation: Any) -> tuple[FieldType, bool]:
    """Map a Python annotation to ``(field_type, nilable)``."""
    if get_origin(annotation) in (Union, UnionType):
        args = get_args(annotation)
        members = [a for a in args if a is not type(None)]
        nilable = len(members) != len(args)
        if len(members) == 1:
            field_type, _ = _field_type_for(members[0])
            return field_type, nilable
        return FieldType.ANY, nilable
    return _PY_TYPE_TO_FIELD_TYPE.get(annotation, FieldType.ANY), False


class FieldSpec(BaseModel):
    """One field of a record schema.

    ``header`` renames the field: when set, the field binds to the column
    whose header text equals it instead of the field name.
    """

    name: str = Field(min_length=1)
    type: FieldType = FieldType.STRING
    nilable: bool = False
    header: str | None = None

    @property
    def header_name(self) -> str:
        return self.header if self.header is not None else self.name


class RecordSchema(BaseModel):
    """Ordered description of the records a sheet is parsed into."""

    name: str = "record"
    fields: list[FieldSpec]

    @model_validator(mode="after")
    def _check_unique_names(self) -> RecordSchema:
        seen: set[str] = set()
        for spec in self.fields:
            if spec.name in seen:
                raise ValueError(f"duplicate field name '{spec.name}'")
            seen.add(spec.name)
        return self

    @property
    def field_names(self) -> list[str]:
        return [spec.name for spec in self.fields]

    @classmethod
    def from_model(
        cls,
        model: type[BaseModel],
        headers: Mapping[str, str] | None = None,
    ) -> RecordSchema:
        """Derive a schema from a Pydantic model class.

        Field order follows the model's declaration order.  ``Optional``
        annotations make the field nilable; annotations other than the
        supported scalars map to ``FieldType.ANY``.  *headers* optionally
        renames fields (field name -> header text).
        """
        headers = headers or {}
        specs: list[FieldSpec] = []
        for field_name, info in model.model_fields.items():
            field_type, nilable = _field_type_for(info.annotation)
            specs.append(
                FieldSpec(
                    name=field_name,
                    type=field_type,
                    nilable=nilable,
                    header=headers.get(field_name),
                )
            )
        return cls(name=model.__name__, fields=specs)


class MapSchema(BaseModel):
    """Open schema: every detected header becomes a key of type ``value_type``."""

    value_type: FieldType = FieldType.ANY


class FieldMapping(BaseModel):
    """A schema field resolved against one sheet's header row."""

    field_name: str
    field_type: FieldType
    nilable: bool
    header_name: str
    column_index: int | None = None

    @property
    def is_bound(self) -> bool:
        return self.column_index is not None
