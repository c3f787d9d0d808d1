from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable

import pandas as pd

from fines_dashboard.config import DetectionConfig
from fines_dashboard.preprocess.coerce import UNKNOWN_LABEL, is_blank

CAMERA_LABEL = "Camera fined"
POLICE_LABEL = "Police issued"
DETECTION_ORDER = (CAMERA_LABEL, POLICE_LABEL, UNKNOWN_LABEL)

AGGREGATED_COLUMN_PATTERNS = {
    POLICE_LABEL: re.compile("police", re.IGNORECASE),
    CAMERA_LABEL: re.compile("camera", re.IGNORECASE),
}


@dataclass(frozen=True)
class DetectionPatterns:
    camera: re.Pattern[str]
    police: re.Pattern[str]

    @classmethod
    def from_config(cls, config: DetectionConfig | None = None) -> DetectionPatterns:
        config = config or DetectionConfig()
        return cls(
            camera=re.compile(config.camera_pattern, re.IGNORECASE),
            police=re.compile(config.police_pattern, re.IGNORECASE),
        )

    def match(self, value: Any) -> str | None:
        text = str(value)
        if self.camera.search(text):
            return CAMERA_LABEL
        if self.police.search(text):
            return POLICE_LABEL
        return None


def map_detection_label(value: Any, patterns: DetectionPatterns | None = None) -> str:
    """Map a raw detection value to a friendly label, keeping unmatched values as-is."""
    if is_blank(value):
        return UNKNOWN_LABEL
    patterns = patterns or DetectionPatterns.from_config()
    return patterns.match(value) or str(value)


def derive_detection(frame: pd.DataFrame, patterns: DetectionPatterns | None = None) -> pd.Series:
    """Label each row by the first value (in field order) naming a camera or police."""
    patterns = patterns or DetectionPatterns.from_config()

    def _row_label(row: pd.Series) -> str:
        for value in row:
            if is_blank(value):
                continue
            label = patterns.match(value)
            if label is not None:
                return label
        return UNKNOWN_LABEL

    if frame.empty:
        return pd.Series(dtype=object, index=frame.index)
    return frame.apply(_row_label, axis=1).astype(object)


def find_detection_columns(numeric_fields: Iterable[str]) -> dict[str, str]:
    """Map detection labels to pre-aggregated numeric columns such as "Police issued fines"."""
    columns: dict[str, str] = {}
    for field in numeric_fields:
        for label, pattern in AGGREGATED_COLUMN_PATTERNS.items():
            if pattern.search(field):
                columns[label] = field
    return columns


def order_detection_options(labels: Iterable[str]) -> list[str]:
    present = list(dict.fromkeys(label for label in labels if label))
    ordered = [label for label in DETECTION_ORDER if label in present]
    return ordered + [label for label in present if label not in DETECTION_ORDER]
