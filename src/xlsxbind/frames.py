"""pandas bridge for parsed records and maps."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import pandas as pd
from pandas.api.types import is_scalar

from xlsxbind.headers import collect_map_keys
from xlsxbind.models import RecordSchema


def records_to_dataframe(
    records: Iterable[Mapping[str, Any]],
    schema: RecordSchema | None = None,
) -> pd.DataFrame:
    """Build a DataFrame from parsed records or maps.

    Columns follow the schema's field order when *schema* is given, else the
    first-seen union of keys.  The frame has ``object`` dtype so values keep
    their exact Python types; missing values are ``None``.
    """
    rows = list(records)
    columns = schema.field_names if schema is not None else collect_map_keys(rows)
    data = [[row.get(column) for column in columns] for row in rows]
    return pd.DataFrame(data, columns=columns, dtype=object)


def _missing_to_none(value: Any) -> Any:
    if is_scalar(value) and pd.isna(value):
        return None
    return value


def dataframe_to_records(df: pd.DataFrame) -> list[dict[Any, Any]]:
    """Convert *df* into row dicts of native Python values, in column order.

    ``NaN``/``NaT``/``None`` all become ``None``.
    """
    return [
        {key: _missing_to_none(value) for key, value in row.items()}
        for row in df.to_dict(orient="records")
    ]
