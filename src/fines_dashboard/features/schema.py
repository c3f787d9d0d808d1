from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence, Union

import pandas as pd

from fines_dashboard.config import InferenceConfig
from fines_dashboard.preprocess.coerce import coerce_numeric
from fines_dashboard.preprocess.detection import find_detection_columns

LOGGER = logging.getLogger(__name__)

Records = Union[pd.DataFrame, Sequence[Mapping[str, Any]]]


@dataclass(frozen=True)
class Schema:
    """Roles inferred for the fields of one dataset.

    Any role may be absent; consumers treat an absent role as "feature
    unavailable" and skip the dependent chart.
    """

    fields: tuple[str, ...] = ()
    year_field: str | None = None
    numeric_fields: tuple[str, ...] = ()
    categorical_field: str | None = None
    detection_columns: Mapping[str, str] = field(default_factory=dict)

    @property
    def is_aggregated_detection(self) -> bool:
        return bool(self.detection_columns)

    @property
    def measure_fields(self) -> tuple[str, ...]:
        return tuple(name for name in self.numeric_fields if name != self.year_field)

    @property
    def primary_value_field(self) -> str | None:
        measures = self.measure_fields
        return measures[0] if measures else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "fields": list(self.fields),
            "year_field": self.year_field,
            "numeric_fields": list(self.numeric_fields),
            "categorical_field": self.categorical_field,
            "detection_columns": dict(self.detection_columns),
            "is_aggregated_detection": self.is_aggregated_detection,
        }


def records_to_frame(records: Records) -> pd.DataFrame:
    if isinstance(records, pd.DataFrame):
        frame = records
    else:
        rows = list(records)
        if not rows:
            return pd.DataFrame()
        frame = pd.DataFrame(rows, dtype=object)
    # Spreadsheet headers such as 2020 arrive as int labels; fields are always strings.
    return frame.set_axis([str(name) for name in frame.columns], axis=1)


def minimum_numeric_count(n_records: int, fraction: float) -> int:
    # Rounding guards against float noise such as 0.1 * 30 == 3.0000000000000004.
    return max(1, math.ceil(round(fraction * n_records, 9)))


def detect_year_field(fields: Iterable[str], patterns: Sequence[str]) -> str | None:
    names = list(fields)
    for pattern in patterns:
        compiled = re.compile(pattern, re.IGNORECASE)
        for name in names:
            if compiled.search(name):
                return name
    return None


def detect_numeric_fields(frame: pd.DataFrame, fraction: float) -> tuple[str, ...]:
    required = minimum_numeric_count(len(frame), fraction)
    numeric: list[str] = []
    for name in frame.columns:
        parsed_count = int(coerce_numeric(frame[name]).notna().sum())
        if parsed_count >= required:
            numeric.append(name)
    return tuple(numeric)


def detect_categorical_field(
    fields: Iterable[str],
    numeric_fields: Iterable[str],
    keywords: Sequence[str],
) -> str | None:
    numeric = set(numeric_fields)
    candidates = [name for name in fields if name not in numeric]
    lowered_keywords = [keyword.lower() for keyword in keywords]
    for name in candidates:
        lowered = name.lower()
        if any(keyword in lowered for keyword in lowered_keywords):
            return name
    return candidates[0] if candidates else None


def infer_schema(records: Records, config: InferenceConfig | None = None) -> Schema:
    """Infer year, numeric and categorical roles from loosely typed records."""
    config = config or InferenceConfig()
    frame = records_to_frame(records)
    if frame.empty:
        return Schema()

    fields = tuple(frame.columns)
    year_field = detect_year_field(fields, config.year_patterns)
    numeric_fields = detect_numeric_fields(frame, config.numeric_threshold_fraction)
    categorical_field = detect_categorical_field(
        fields,
        numeric_fields,
        config.categorical_keywords,
    )
    schema = Schema(
        fields=fields,
        year_field=year_field,
        numeric_fields=numeric_fields,
        categorical_field=categorical_field,
        detection_columns=find_detection_columns(numeric_fields),
    )
    LOGGER.debug("Inferred schema: %s", schema.to_dict())
    return schema
