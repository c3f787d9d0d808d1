from __future__ import annotations

import logging
from dataclasses import dataclass

import pandas as pd

from fines_dashboard.config import AppConfig
from fines_dashboard.features.aggregates import build_year_series
from fines_dashboard.features.schema import Records, Schema, infer_schema, records_to_frame
from fines_dashboard.preprocess.coerce import coerce_group_keys
from fines_dashboard.preprocess.detection import (
    DetectionPatterns,
    derive_detection,
    order_detection_options,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Dataset:
    """Loaded records plus the schema inferred once at load time.

    ``detection`` holds a derived detection label per row, aligned to
    ``frame``; it is ``None`` when detection methods arrive as pre-aggregated
    numeric columns instead.
    """

    frame: pd.DataFrame
    schema: Schema
    detection: pd.Series | None = None
    patterns: DetectionPatterns | None = None

    @classmethod
    def from_records(cls, records: Records, config: AppConfig | None = None) -> Dataset:
        config = config or AppConfig()
        frame = records_to_frame(records).copy()
        schema = infer_schema(frame, config.inference)
        patterns = DetectionPatterns.from_config(config.detection)

        detection: pd.Series | None = None
        if not schema.is_aggregated_detection:
            detection = derive_detection(frame, patterns)

        LOGGER.info(
            "Dataset ready: %d records, year=%s, category=%s, measures=%s",
            len(frame),
            schema.year_field,
            schema.categorical_field,
            ", ".join(schema.measure_fields) or "-",
        )
        return cls(frame=frame, schema=schema, detection=detection, patterns=patterns)

    def __len__(self) -> int:
        return len(self.frame)

    def year_options(self, value_field: str | None = None) -> list[int]:
        """Years whose total over the whole dataset is strictly positive."""
        value_field = value_field or self.schema.primary_value_field
        return build_year_series(self.frame, self.schema.year_field, value_field).tick_years

    def category_options(self) -> list[str]:
        field = self.schema.categorical_field
        if field is None or self.frame.empty:
            return []
        return sorted(coerce_group_keys(self.frame[field]).unique())

    def detection_options(self) -> list[str]:
        if self.schema.is_aggregated_detection:
            return order_detection_options(self.schema.detection_columns.keys())
        if self.detection is None:
            return []
        return order_detection_options(self.detection.tolist())
