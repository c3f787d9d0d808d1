from __future__ import annotations

from typing import Any

import pandas as pd

UNKNOWN_LABEL = "Unknown"


def _strip_text(value: Any) -> Any:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def coerce_numeric(values: pd.Series) -> pd.Series:
    """Parse values permissively: blank, null and non-numeric text become NaN."""
    if values.empty:
        return pd.Series(dtype=float, index=values.index)
    parsed = pd.to_numeric(values.map(_strip_text), errors="coerce")
    return parsed.astype(float)


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def group_key(value: Any) -> str:
    if is_blank(value):
        return UNKNOWN_LABEL
    # Whole-number floats come from spreadsheets and nullable columns; 2023.0 groups as "2023".
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def coerce_group_keys(values: pd.Series) -> pd.Series:
    """Render values as grouping keys, mapping null/blank to "Unknown"."""
    return values.map(group_key).astype(object)
