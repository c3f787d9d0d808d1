from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pandas as pd

LOGGER = logging.getLogger(__name__)

SPREADSHEET_SUFFIXES = (".xlsx", ".xls")


def load_records(path: Path, sheet_name: str | int = 0) -> pd.DataFrame:
    """Load a CSV or spreadsheet as loosely typed records.

    CSV cells stay as text and blank cells become null, so that numeric and
    categorical roles are decided later by schema inference rather than by the
    parser.
    """
    suffix = path.suffix.lower()
    if suffix == ".csv":
        # utf-8-sig strips BOM-prefixed headers commonly found in exported CSV files.
        frame = pd.read_csv(
            path,
            dtype=object,
            keep_default_na=False,
            na_values=[""],
            encoding="utf-8-sig",
        )
    elif suffix in SPREADSHEET_SUFFIXES:
        frame = pd.read_excel(path, sheet_name=sheet_name, dtype=object)
    else:
        raise ValueError(f"Unsupported dataset file type: {path.suffix}")

    LOGGER.info("Loaded %d records with %d fields from %s", len(frame), frame.shape[1], path)
    return frame


def load_geometry(path: Path) -> dict[str, Any]:
    """Load a GeoJSON FeatureCollection for the map renderer."""
    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict) or payload.get("type") != "FeatureCollection":
        raise ValueError(f"Geometry file must contain a GeoJSON FeatureCollection: {path}")
    if not isinstance(payload.get("features"), list):
        raise ValueError(f"Geometry file has no feature list: {path}")
    return payload


def load_table(path: Path) -> pd.DataFrame:
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    if path.suffix == ".csv":
        return pd.read_csv(path)
    raise ValueError(f"Unsupported table file type: {path.suffix}")
