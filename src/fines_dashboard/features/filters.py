from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping

import pandas as pd

from fines_dashboard.features.aggregates import (
    AggregateResult,
    YearSeries,
    build_cross_tab,
    build_detection_split,
    build_scatter_points,
    build_year_series,
    group_count,
    group_sum,
    sum_columns,
)
from fines_dashboard.features.dataset import Dataset
from fines_dashboard.features.schema import Schema
from fines_dashboard.preprocess.coerce import UNKNOWN_LABEL, coerce_group_keys, coerce_numeric
from fines_dashboard.preprocess.detection import (
    CAMERA_LABEL,
    POLICE_LABEL,
    DetectionPatterns,
)

ALL = "All"


def parse_year_selection(value: Any) -> int | str:
    """Normalize a year selector value to ``"All"`` or an integer year."""
    if value is None:
        return ALL
    if isinstance(value, bool):
        raise ValueError(f"Invalid year selection: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    text = str(value).strip()
    if not text or text.lower() == ALL.lower():
        return ALL
    try:
        return int(text)
    except ValueError:
        raise ValueError(f"Invalid year selection: {value!r}") from None


@dataclass(frozen=True)
class FilterState:
    """Active selections; every non-"All" selection narrows the rows (logical AND)."""

    year: int | str = ALL
    category: str = ALL
    detection: str = ALL
    max_year: int | None = None
    dimensions: Mapping[str, str] | tuple[tuple[str, str], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "year", parse_year_selection(self.year))
        # Stored as sorted (field, value) pairs so equal selections hash equal.
        object.__setattr__(self, "dimensions", tuple(sorted(dict(self.dimensions).items())))

    @property
    def year_active(self) -> bool:
        return self.year != ALL

    def with_changes(self, **changes: Any) -> FilterState:
        return replace(self, **changes)


def _false_mask(frame: pd.DataFrame) -> pd.Series:
    return pd.Series(False, index=frame.index)


def _key_equals(frame: pd.DataFrame, field_name: str | None, value: str) -> pd.Series:
    if field_name is None or field_name not in frame.columns:
        return _false_mask(frame)
    return coerce_group_keys(frame[field_name]) == str(value)


def _year_values(frame: pd.DataFrame, schema: Schema) -> pd.Series | None:
    if schema.year_field is None or schema.year_field not in frame.columns:
        return None
    return coerce_numeric(frame[schema.year_field])


def _detection_mask(dataset: Dataset, schema: Schema, selected: str) -> pd.Series:
    frame = dataset.frame
    if schema.is_aggregated_detection:
        column = schema.detection_columns.get(selected)
        if column is None or column not in frame.columns:
            return _false_mask(frame)
        return coerce_numeric(frame[column]).fillna(0.0) > 0
    if dataset.detection is None:
        return _false_mask(frame)
    return dataset.detection.reindex(frame.index).fillna(UNKNOWN_LABEL) == selected


def _build_mask(dataset: Dataset, schema: Schema, filters: FilterState) -> pd.Series:
    frame = dataset.frame
    mask = pd.Series(True, index=frame.index)

    if filters.year_active or filters.max_year is not None:
        years = _year_values(frame, schema)
        if years is None:
            return _false_mask(frame)
        if filters.year_active:
            mask &= years == filters.year
        if filters.max_year is not None:
            mask &= years <= filters.max_year

    if filters.category != ALL:
        mask &= _key_equals(frame, schema.categorical_field, filters.category)
    if filters.detection != ALL:
        mask &= _detection_mask(dataset, schema, filters.detection)
    for field_name, value in filters.dimensions:
        if value == ALL:
            continue
        mask &= _key_equals(frame, field_name, value)
    return mask


@dataclass(frozen=True, eq=False)
class FilteredView:
    """Rows of one dataset matching one FilterState, plus aggregates over them.

    Views own copies of their rows, so views built from the same dataset with
    different filters never share mutable state.
    """

    rows: pd.DataFrame
    schema: Schema
    filters: FilterState
    detection: pd.Series | None = None
    patterns: DetectionPatterns | None = None

    def __len__(self) -> int:
        return len(self.rows)

    def equals(self, other: FilteredView) -> bool:
        if self.schema != other.schema or self.filters != other.filters:
            return False
        if not self.rows.equals(other.rows):
            return False
        if self.detection is None or other.detection is None:
            return self.detection is None and other.detection is None
        return self.detection.equals(other.detection)

    @property
    def default_value_field(self) -> str | None:
        if self.schema.is_aggregated_detection and self.filters.detection != ALL:
            column = self.schema.detection_columns.get(self.filters.detection)
            if column is not None:
                return column
        return self.schema.primary_value_field

    def group_sum(self, group_field: str, value_field: str | None = None) -> AggregateResult:
        return group_sum(self.rows, group_field, value_field)

    def group_count(self, group_field: str) -> AggregateResult:
        return group_count(self.rows, group_field)

    def category_rollup(self, value_field: str | None = None) -> AggregateResult:
        """Totals per category alone; with the year filter off, years are summed together."""
        if self.schema.categorical_field is None:
            return {}
        return group_sum(
            self.rows,
            self.schema.categorical_field,
            value_field or self.default_value_field,
        )

    def year_series(self, value_field: str | None = None) -> YearSeries:
        return build_year_series(
            self.rows,
            self.schema.year_field,
            value_field or self.default_value_field,
        )

    def cross_tab(
        self,
        row_field: str,
        column_field: str,
        value_field: str | None = None,
        *,
        drop_unknown: bool = False,
    ) -> pd.DataFrame:
        return build_cross_tab(
            self.rows,
            row_field,
            column_field,
            value_field,
            drop_unknown=drop_unknown,
        )

    def detection_split(self, value_field: str | None = None) -> AggregateResult:
        if self.schema.is_aggregated_detection:
            columns = {
                label: column
                for label, column in self.schema.detection_columns.items()
                if label in (POLICE_LABEL, CAMERA_LABEL)
            }
            split = {POLICE_LABEL: 0.0, CAMERA_LABEL: 0.0}
            split.update(sum_columns(self.rows, columns))
            return split
        labels = self.detection if self.detection is not None else pd.Series(dtype=object)
        return build_detection_split(self.rows, labels, value_field)

    def scatter_points(
        self,
        x_field: str | None = None,
        y_field: str | None = None,
        color_field: str | None = None,
    ) -> pd.DataFrame:
        color_field = color_field or self.schema.categorical_field
        if self.schema.is_aggregated_detection and x_field is None and y_field is None:
            return self._aggregated_detection_points(color_field)

        measures = self.schema.measure_fields
        x_field = x_field or (measures[0] if len(measures) >= 2 else None)
        y_field = y_field or (measures[1] if len(measures) >= 2 else None)
        return build_scatter_points(self.rows, x_field, y_field, color_field, self.patterns)

    def _aggregated_detection_points(self, color_field: str | None) -> pd.DataFrame:
        columns = [
            column
            for column in self.schema.detection_columns.values()
            if column in self.rows.columns
        ]
        if self.rows.empty or not columns:
            return pd.DataFrame(columns=["x", "y", "c"])
        selected = self.schema.detection_columns.get(self.filters.detection, columns[0])
        numeric = {column: coerce_numeric(self.rows[column]).fillna(0.0) for column in columns}
        if color_field is not None and color_field in self.rows.columns:
            colors = coerce_group_keys(self.rows[color_field])
        else:
            colors = pd.Series(UNKNOWN_LABEL, index=self.rows.index, dtype=object)
        return pd.DataFrame(
            {
                "x": numeric[selected],
                "y": sum(numeric.values()),
                "c": colors,
            }
        ).reset_index(drop=True)


def apply_filters(
    dataset: Dataset,
    filters: FilterState | None = None,
    schema: Schema | None = None,
) -> FilteredView:
    """Build a new view of ``dataset`` restricted by ``filters``."""
    filters = filters or FilterState()
    schema = schema or dataset.schema
    mask = _build_mask(dataset, schema, filters)
    rows = dataset.frame.loc[mask].copy()
    detection = None
    if dataset.detection is not None:
        detection = dataset.detection.loc[mask].copy()
    return FilteredView(
        rows=rows,
        schema=schema,
        filters=filters,
        detection=detection,
        patterns=dataset.patterns,
    )
