from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import pandas as pd

from fines_dashboard.preprocess.coerce import UNKNOWN_LABEL, coerce_group_keys, coerce_numeric
from fines_dashboard.preprocess.detection import (
    CAMERA_LABEL,
    POLICE_LABEL,
    DetectionPatterns,
    map_detection_label,
)

AggregateResult = dict[str, float | int]


@dataclass(frozen=True)
class YearSeries:
    """Per-year totals in two shapes: dense with zeros, and non-zero tick years."""

    dense: pd.DataFrame
    tick_years: list[int]

    @classmethod
    def empty(cls) -> YearSeries:
        return cls(
            dense=pd.DataFrame(
                {"year": pd.Series(dtype="int64"), "value": pd.Series(dtype=float)}
            ),
            tick_years=[],
        )

    @property
    def non_zero(self) -> pd.DataFrame:
        return self.dense.loc[self.dense["value"] > 0].reset_index(drop=True)

    def records(self) -> list[dict[str, Any]]:
        return [
            {"year": int(year), "value": float(value)}
            for year, value in zip(self.dense["year"], self.dense["value"])
        ]


def group_count(rows: pd.DataFrame, group_field: str) -> AggregateResult:
    if rows.empty or group_field not in rows.columns:
        return {}
    keys = coerce_group_keys(rows[group_field])
    counts = keys.groupby(keys, sort=False).size()
    return {str(key): int(count) for key, count in counts.items()}


def group_sum(
    rows: pd.DataFrame,
    group_field: str,
    value_field: str | None = None,
) -> AggregateResult:
    """Sum ``value_field`` per distinct ``group_field`` key; count rows when no value field."""
    if value_field is None:
        return group_count(rows, group_field)
    if rows.empty or group_field not in rows.columns or value_field not in rows.columns:
        return {}
    keys = coerce_group_keys(rows[group_field])
    values = coerce_numeric(rows[value_field]).fillna(0.0)
    totals = values.groupby(keys, sort=False).sum()
    return {str(key): float(total) for key, total in totals.items()}


def build_year_series(
    rows: pd.DataFrame,
    year_field: str | None,
    value_field: str | None = None,
) -> YearSeries:
    if rows.empty or year_field is None or year_field not in rows.columns:
        return YearSeries.empty()
    if value_field is not None and value_field not in rows.columns:
        return YearSeries.empty()

    years = coerce_numeric(rows[year_field])
    if value_field is None:
        values = pd.Series(1.0, index=rows.index)
    else:
        values = coerce_numeric(rows[value_field]).fillna(0.0)

    working = pd.DataFrame({"year": years, "value": values}).dropna(subset=["year"])
    working = working.loc[working["year"] == working["year"].round()]
    if working.empty:
        return YearSeries.empty()

    working["year"] = working["year"].astype("int64")
    totals = working.groupby("year")["value"].sum().sort_index()
    full_index = pd.RangeIndex(
        start=int(totals.index.min()),
        stop=int(totals.index.max()) + 1,
        name="year",
    )
    dense = totals.reindex(full_index, fill_value=0.0).reset_index()
    dense["value"] = dense["value"].astype(float)
    tick_years = [int(year) for year in dense.loc[dense["value"] > 0, "year"]]
    return YearSeries(dense=dense, tick_years=tick_years)


def build_cross_tab(
    rows: pd.DataFrame,
    row_field: str,
    column_field: str,
    value_field: str | None = None,
    *,
    drop_unknown: bool = False,
) -> pd.DataFrame:
    """Dense long-format matrix of totals for every (row, column) label pair."""
    columns = [row_field, column_field, "value"]
    required = {row_field, column_field} | ({value_field} if value_field else set())
    if rows.empty or not required.issubset(set(rows.columns)):
        return pd.DataFrame(columns=columns)

    working = pd.DataFrame(
        {
            row_field: coerce_group_keys(rows[row_field]),
            column_field: coerce_group_keys(rows[column_field]),
            "value": (
                coerce_numeric(rows[value_field]).fillna(0.0)
                if value_field
                else pd.Series(1.0, index=rows.index)
            ),
        }
    )
    if drop_unknown:
        working = working.loc[
            (working[row_field] != UNKNOWN_LABEL) & (working[column_field] != UNKNOWN_LABEL)
        ]
    if working.empty:
        return pd.DataFrame(columns=columns)

    totals = working.groupby([row_field, column_field])["value"].sum()
    full_index = pd.MultiIndex.from_product(
        [sorted(working[row_field].unique()), sorted(working[column_field].unique())],
        names=[row_field, column_field],
    )
    return totals.reindex(full_index, fill_value=0.0).reset_index()


def build_scatter_points(
    rows: pd.DataFrame,
    x_field: str | None,
    y_field: str | None,
    color_field: str | None = None,
    patterns: DetectionPatterns | None = None,
) -> pd.DataFrame:
    columns = ["x", "y", "c"]
    if rows.empty or x_field not in rows.columns or y_field not in rows.columns:
        return pd.DataFrame(columns=columns)

    if color_field is not None and color_field in rows.columns:
        colors = rows[color_field].map(lambda value: map_detection_label(value, patterns))
    else:
        colors = pd.Series(UNKNOWN_LABEL, index=rows.index)
    points = pd.DataFrame(
        {
            "x": coerce_numeric(rows[x_field]),
            "y": coerce_numeric(rows[y_field]),
            "c": colors.astype(object),
        }
    )
    return points.dropna(subset=["x", "y"]).reset_index(drop=True)


def build_detection_split(
    rows: pd.DataFrame,
    labels: pd.Series,
    value_field: str | None = None,
) -> AggregateResult:
    """Police vs camera totals from per-row detection labels."""
    split = {POLICE_LABEL: 0.0, CAMERA_LABEL: 0.0}
    if rows.empty or labels.empty:
        return split
    if value_field is not None and value_field in rows.columns:
        values = coerce_numeric(rows[value_field]).fillna(0.0)
    else:
        values = pd.Series(1.0, index=rows.index)
    aligned = labels.reindex(rows.index)
    for label in split:
        split[label] = float(values.loc[aligned == label].sum())
    return split


def sum_columns(rows: pd.DataFrame, columns: dict[str, str]) -> AggregateResult:
    """Totals of pre-aggregated numeric columns keyed by their labels."""
    totals: AggregateResult = {}
    for label, column in columns.items():
        if column in rows.columns:
            totals[label] = float(coerce_numeric(rows[column]).fillna(0.0).sum())
        else:
            totals[label] = 0.0
    return totals
