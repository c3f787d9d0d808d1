from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CATEGORICAL_KEYWORDS = [
    "method",
    "detection",
    "type",
    "issued",
    "offence",
    "offense",
    "category",
    "jurisdiction",
    "region",
]
DEFAULT_YEAR_PATTERNS = ["year", r"yr\b"]
DEFAULT_CAMERA_PATTERN = r"camera|photo|speed camera|red light|fixed camera|mobile camera"
DEFAULT_POLICE_PATTERN = r"police|officer|constable"


class InferenceConfig(BaseModel):
    numeric_threshold_fraction: float = Field(default=0.25, gt=0.0, le=1.0)
    categorical_keywords: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CATEGORICAL_KEYWORDS)
    )
    year_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_YEAR_PATTERNS))


class DetectionConfig(BaseModel):
    camera_pattern: str = DEFAULT_CAMERA_PATTERN
    police_pattern: str = DEFAULT_POLICE_PATTERN


class LocationConfig(BaseModel):
    year_field: str = "YEAR"
    location_field: str = "LOCATION"
    metric_field: str = "METRIC"
    value_field: str = "FINES"
    target_metric: str = "mobile_phone_use"
    years: list[int] = Field(default_factory=lambda: [2023, 2024])


class InputConfig(BaseModel):
    dataset_path: str | None = None
    geometry_path: str | None = None
    sheet_name: str | int = 0


class OutputsConfig(BaseModel):
    tables_format: Literal["parquet", "csv"] = "parquet"


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    inference: InferenceConfig = Field(default_factory=InferenceConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    location: LocationConfig = Field(default_factory=LocationConfig)
    input: InputConfig = Field(default_factory=InputConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _resolve_optional_path(path_value: str | None, base_dir: Path) -> str | None:
    if not path_value:
        return None
    candidate = Path(path_value)
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    base_dir = path.resolve().parent

    config.input.dataset_path = os.getenv("FINES_DASHBOARD_DATA") or _resolve_optional_path(
        config.input.dataset_path,
        base_dir,
    )
    config.input.geometry_path = _resolve_optional_path(config.input.geometry_path, base_dir)
    return config
