from __future__ import annotations

import pandas as pd
import pytest

from fines_dashboard.config import LocationConfig
from fines_dashboard.pipeline.comparison import BY_YEAR_COLUMNS, compare_locations
from fines_dashboard.stats import chi_square_independence


def _location_frame() -> pd.DataFrame:
    return pd.DataFrame(
        [
            ["2023", "Major Cities of Australia", "mobile_phone_use", "100"],
            ["2023", "Inner Regional Australia", "mobile_phone_use", "40"],
            ["2024", "Outer Regional Australia", "speed", "30"],
            ["2024", "Major Cities of Australia", "speed", "50"],
            ["2022", "Major Cities of Australia", "mobile_phone_use", "999"],
            ["2024", "Unknown", "mobile_phone_use", "7"],
            ["2024", "Very Remote Australia", "mobile_phone_use", "5"],
        ],
        columns=["YEAR", "LOCATION", "METRIC", "FINES"],
        dtype=object,
    )


def test_compare_locations_builds_major_vs_regional_table() -> None:
    comparison = compare_locations(_location_frame(), LocationConfig())

    assert comparison.table == [[100.0, 50.0], [45.0, 30.0]]
    expected = chi_square_independence([[100, 50], [45, 30]])
    assert comparison.result.chi2 == pytest.approx(expected.chi2)
    assert comparison.result.p == pytest.approx(expected.p)


def test_location_by_year_covers_target_metric_only() -> None:
    by_year = compare_locations(_location_frame(), LocationConfig()).by_year

    assert list(by_year.columns) == BY_YEAR_COLUMNS
    assert by_year["year"].tolist() == [2023, 2024]
    assert by_year.loc[0, "Major Cities"] == 100.0
    assert by_year.loc[0, "Inner Regional"] == 40.0
    assert by_year.loc[1, "Outer Regional"] == 0.0
    assert by_year.loc[1, "Very Remote"] == 5.0
    assert by_year.loc[1, "Other"] == 7.0


def test_compare_locations_respects_configured_years_and_metric() -> None:
    config = LocationConfig(years=[2022, 2023], target_metric="speed")

    comparison = compare_locations(_location_frame(), config)

    assert comparison.table == [[0.0, 1099.0], [0.0, 40.0]]
    assert comparison.by_year[BY_YEAR_COLUMNS[1:]].to_numpy().sum() == 0.0


def test_compare_locations_missing_fields_is_degenerate() -> None:
    frame = _location_frame().drop(columns=["METRIC"])

    comparison = compare_locations(frame, LocationConfig())

    assert comparison.table == [[0.0, 0.0], [0.0, 0.0]]
    assert comparison.result.chi2 == 0.0
    assert comparison.result.p == 1.0
    assert comparison.by_year.empty
    assert list(comparison.by_year.columns) == BY_YEAR_COLUMNS


def test_location_comparison_to_dict() -> None:
    payload = compare_locations(_location_frame(), LocationConfig()).to_dict()

    assert payload["rows"] == ["Major Cities", "Regional"]
    assert payload["columns"] == ["target_metric", "other_metrics"]
    assert payload["observed"] == [[100.0, 50.0], [45.0, 30.0]]
    assert set(payload) >= {"chi2", "p", "expected"}
