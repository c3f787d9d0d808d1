from __future__ import annotations

import logging
from dataclasses import dataclass

import pandas as pd

from fines_dashboard.config import LocationConfig
from fines_dashboard.preprocess.coerce import coerce_group_keys, coerce_numeric
from fines_dashboard.preprocess.location import (
    LOCATION_CATEGORIES,
    MAJOR_CITIES,
    OTHER_LOCATION,
    REGIONAL_CATEGORIES,
    location_category,
)
from fines_dashboard.stats import ChiSquareResult, chi_square_independence

LOGGER = logging.getLogger(__name__)

BY_YEAR_COLUMNS = ["year", *LOCATION_CATEGORIES, OTHER_LOCATION]


@dataclass(frozen=True)
class LocationComparison:
    """Major Cities vs Regional fines for the target metric against all other metrics."""

    table: list[list[float]]
    by_year: pd.DataFrame
    result: ChiSquareResult

    def to_dict(self) -> dict[str, object]:
        return {
            "rows": ["Major Cities", "Regional"],
            "columns": ["target_metric", "other_metrics"],
            "observed": self.table,
            **self.result.to_dict(),
        }


def _empty_by_year() -> pd.DataFrame:
    return pd.DataFrame(columns=BY_YEAR_COLUMNS)


def _prepare_location_rows(frame: pd.DataFrame, config: LocationConfig) -> pd.DataFrame | None:
    required = {config.year_field, config.location_field, config.metric_field, config.value_field}
    missing = sorted(required - set(frame.columns))
    if missing:
        LOGGER.warning("Location comparison skipped; missing fields: %s", ", ".join(missing))
        return None

    working = pd.DataFrame(
        {
            "year": coerce_numeric(frame[config.year_field]),
            "category": frame[config.location_field].map(location_category),
            "is_target": coerce_group_keys(frame[config.metric_field]) == config.target_metric,
            "fines": coerce_numeric(frame[config.value_field]).fillna(0.0),
        }
    )
    working = working.loc[working["year"].isin([float(year) for year in config.years])].copy()
    working["year"] = working["year"].astype("int64")
    return working


def build_location_by_year(working: pd.DataFrame) -> pd.DataFrame:
    """One row per year, one column per location category, target-metric fines only."""
    if working.empty:
        return _empty_by_year()
    years = sorted(working["year"].unique())
    target = working.loc[working["is_target"]]
    if target.empty:
        by_year = pd.DataFrame(0.0, index=years, columns=BY_YEAR_COLUMNS[1:])
    else:
        totals = target.groupby(["year", "category"])["fines"].sum().unstack(fill_value=0.0)
        by_year = totals.reindex(index=years, columns=BY_YEAR_COLUMNS[1:], fill_value=0.0)
    by_year = by_year.fillna(0.0)
    by_year.index.name = "year"
    by_year.columns.name = None
    return by_year.reset_index()


def build_location_contingency(working: pd.DataFrame) -> list[list[float]]:
    """Observed table ``[[major_target, major_other], [regional_target, regional_other]]``.

    Rows whose location falls in neither group are ignored.
    """
    if working.empty:
        return [[0.0, 0.0], [0.0, 0.0]]
    major = working["category"] == MAJOR_CITIES
    regional = working["category"].isin(REGIONAL_CATEGORIES)
    target = working["is_target"]
    fines = working["fines"]
    return [
        [float(fines[major & target].sum()), float(fines[major & ~target].sum())],
        [float(fines[regional & target].sum()), float(fines[regional & ~target].sum())],
    ]


def compare_locations(frame: pd.DataFrame, config: LocationConfig) -> LocationComparison:
    working = _prepare_location_rows(frame, config)
    if working is None:
        working = pd.DataFrame(columns=["year", "category", "is_target", "fines"])
    table = build_location_contingency(working)
    result = chi_square_independence(table)
    LOGGER.info(
        "Location comparison (%s): chi2=%.4f p=%.6f",
        config.target_metric,
        result.chi2,
        result.p,
    )
    return LocationComparison(table=table, by_year=build_location_by_year(working), result=result)
