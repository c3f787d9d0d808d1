from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pandas as pd

from fines_dashboard.config import AppConfig
from fines_dashboard.features.aggregates import AggregateResult
from fines_dashboard.features.dataset import Dataset
from fines_dashboard.features.filters import ALL, FilterState, apply_filters
from fines_dashboard.io.read import load_geometry, load_records, load_table
from fines_dashboard.io.write import write_summary, write_table
from fines_dashboard.paths import build_output_paths
from fines_dashboard.pipeline.comparison import compare_locations
from fines_dashboard.preprocess.location import jurisdiction_abbreviation

LOGGER = logging.getLogger(__name__)


def prepare_dataset(data_path: Path, config: AppConfig) -> Dataset:
    records = load_records(data_path, sheet_name=config.input.sheet_name)
    return Dataset.from_records(records, config)


def aggregate_to_frame(result: AggregateResult, key_name: str) -> pd.DataFrame:
    return pd.DataFrame(
        {"key": list(result.keys()), "value": [float(value) for value in result.values()]}
    ).rename(columns={"key": key_name})


def geometry_regions(geometry: dict[str, Any], name_property: str = "STATE_NAME") -> list[str]:
    regions: list[str] = []
    for feature in geometry.get("features", []):
        properties = feature.get("properties") or {}
        abbreviation = jurisdiction_abbreviation(properties.get(name_property))
        if abbreviation:
            regions.append(abbreviation)
    return regions


def load_dashboard_tables(out_dir: Path, config: AppConfig) -> dict[str, pd.DataFrame]:
    """Read back the panel tables a previous run wrote under ``out_dir``."""
    paths = build_output_paths(out_dir)
    extension = f".{config.outputs.tables_format}"

    tables: dict[str, pd.DataFrame] = {}
    for path in sorted(paths.tables.glob(f"*{extension}")):
        tables[path.stem] = load_table(path)
    return tables


def build_dashboard_artifacts(
    dataset: Dataset,
    filters: FilterState,
    heatmap_fields: tuple[str, str] | None = None,
) -> dict[str, pd.DataFrame]:
    """Aggregates for every dashboard panel under one filter selection."""
    schema = dataset.schema
    view = apply_filters(dataset, filters)
    # The split pie follows the year selection only, never the detection selector.
    split_view = apply_filters(dataset, filters.with_changes(detection=ALL))

    artifacts: dict[str, pd.DataFrame] = {
        "category_rollup": aggregate_to_frame(
            view.category_rollup(),
            key_name=schema.categorical_field or "category",
        ),
        "year_series": view.year_series().dense,
        "detection_split": aggregate_to_frame(
            split_view.detection_split(split_view.default_value_field),
            key_name="detection",
        ),
        "scatter_points": view.scatter_points(),
    }
    if heatmap_fields is not None:
        row_field, column_field = heatmap_fields
        artifacts["heatmap"] = view.cross_tab(
            row_field,
            column_field,
            view.default_value_field,
            drop_unknown=True,
        )
    return artifacts


def build_dashboard_summary(
    dataset: Dataset,
    filters: FilterState,
    geometry: dict[str, Any] | None = None,
) -> dict[str, Any]:
    view = apply_filters(dataset, filters)
    summary: dict[str, Any] = {
        "records_total": len(dataset),
        "records_selected": len(view),
        "schema": dataset.schema.to_dict(),
        "filters": {
            "year": filters.year,
            "category": filters.category,
            "detection": filters.detection,
            "max_year": filters.max_year,
            "dimensions": dict(filters.dimensions),
        },
        "options": {
            "years": dataset.year_options(),
            "categories": dataset.category_options(),
            "detections": dataset.detection_options(),
        },
        "tick_years": view.year_series().tick_years,
        "detection_totals": view.detection_split(view.default_value_field),
    }
    if geometry is not None:
        summary["geometry_regions"] = geometry_regions(geometry)
    return summary


def run_dashboard(
    data_path: Path,
    out_dir: Path,
    config: AppConfig,
    filters: FilterState | None = None,
    *,
    heatmap_fields: tuple[str, str] | None = None,
    include_comparison: bool = False,
) -> dict[str, Path]:
    """Load a dataset once, then write panel tables and a JSON summary under ``out_dir``."""
    filters = filters or FilterState()
    paths = build_output_paths(out_dir)
    dataset = prepare_dataset(data_path, config)
    geometry = None
    if config.input.geometry_path:
        geometry = load_geometry(Path(config.input.geometry_path))

    artifacts = build_dashboard_artifacts(dataset, filters, heatmap_fields=heatmap_fields)
    summary = build_dashboard_summary(dataset, filters, geometry=geometry)

    fmt = config.outputs.tables_format
    written: dict[str, Path] = {}
    for name, table in artifacts.items():
        written[name] = write_table(table, paths.table_path(name, fmt), fmt=fmt)

    if include_comparison:
        comparison = compare_locations(dataset.frame, config.location)
        written["location_by_year"] = write_table(
            comparison.by_year,
            paths.table_path("location_by_year", fmt),
            fmt=fmt,
        )
        summary["location_comparison"] = comparison.to_dict()

    written["summary"] = write_summary(summary, paths.summary_path("dashboard"))
    LOGGER.info("Wrote %d dashboard outputs to %s", len(written), out_dir)
    return written
