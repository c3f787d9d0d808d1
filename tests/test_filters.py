from __future__ import annotations

import pandas as pd
import pytest

from fines_dashboard.features.dataset import Dataset
from fines_dashboard.features.filters import ALL, FilterState, apply_filters, parse_year_selection
from fines_dashboard.preprocess.detection import CAMERA_LABEL, POLICE_LABEL


def _scenario_dataset() -> Dataset:
    return Dataset.from_records(
        [
            {"YEAR": 2023, "CAT": "A", "V": "10"},
            {"YEAR": 2023, "CAT": "B", "V": "5"},
            {"YEAR": 2024, "CAT": "A", "V": "3"},
        ]
    )


def _fines_dataset() -> Dataset:
    return Dataset.from_records(
        [
            {
                "YEAR": "2023",
                "JURISDICTION": "NSW",
                "DETECTION_METHOD": "Fixed camera",
                "AGE_GROUP": "17-25",
                "FINES": "100",
            },
            {
                "YEAR": "2023",
                "JURISDICTION": "VIC",
                "DETECTION_METHOD": "Police issued",
                "AGE_GROUP": "26-39",
                "FINES": "40",
            },
            {
                "YEAR": "2024",
                "JURISDICTION": "NSW",
                "DETECTION_METHOD": "Police issued",
                "AGE_GROUP": "17-25",
                "FINES": "30",
            },
            {
                "YEAR": "2024",
                "JURISDICTION": "QLD",
                "DETECTION_METHOD": "Mobile camera",
                "AGE_GROUP": "40-64",
                "FINES": "50",
            },
        ]
    )


def _aggregated_dataset() -> Dataset:
    return Dataset.from_records(
        [
            {"YEAR": "2020", "JURISDICTION": "NSW", "Police issued fines": "10", "Camera fines": "0"},
            {"YEAR": "2021", "JURISDICTION": "VIC", "Police issued fines": "3", "Camera fines": "8"},
            {"YEAR": "2021", "JURISDICTION": "NSW", "Police issued fines": "0", "Camera fines": "2"},
        ]
    )


def test_category_rollup_sums_across_years_when_year_is_all() -> None:
    view = apply_filters(_scenario_dataset(), FilterState(year=ALL))

    assert view.category_rollup() == {"A": 13.0, "B": 5.0}


def test_year_filter_narrows_rows() -> None:
    dataset = _scenario_dataset()

    view = apply_filters(dataset, FilterState(year=2023))

    assert len(view) == 2
    assert view.category_rollup() == {"A": 10.0, "B": 5.0}


def test_filters_combine_with_logical_and() -> None:
    dataset = _scenario_dataset()

    assert len(apply_filters(dataset, FilterState(category="A"))) == 2
    assert len(apply_filters(dataset, FilterState(year=2024, category="A"))) == 1

    empty = apply_filters(dataset, FilterState(year=2024, category="B"))
    assert len(empty) == 0
    assert empty.category_rollup() == {}
    assert empty.year_series().tick_years == []


def test_max_year_keeps_rows_up_to_and_including_year() -> None:
    view = apply_filters(_scenario_dataset(), FilterState(max_year=2023))

    assert view.category_rollup() == {"A": 10.0, "B": 5.0}


def test_dimension_filters_use_string_keys() -> None:
    dataset = _fines_dataset()

    view = apply_filters(dataset, FilterState(dimensions={"AGE_GROUP": "17-25"}))
    assert view.category_rollup() == {"NSW": 130.0}

    missing_field = apply_filters(dataset, FilterState(dimensions={"GENDER": "F"}))
    assert len(missing_field) == 0

    all_value = apply_filters(dataset, FilterState(dimensions={"AGE_GROUP": ALL}))
    assert len(all_value) == 4


def test_year_filter_without_year_field_matches_nothing() -> None:
    dataset = Dataset.from_records([{"CAT": "A", "V": "1"}, {"CAT": "B", "V": "2"}])

    assert dataset.schema.year_field is None
    assert len(apply_filters(dataset, FilterState(year=2023))) == 0
    assert len(apply_filters(dataset)) == 2


def test_views_do_not_share_rows() -> None:
    dataset = _scenario_dataset()
    first = apply_filters(dataset, FilterState(year=2023))
    second = apply_filters(dataset, FilterState(year=2023))

    assert first.equals(second)

    first.rows.loc[:, "V"] = "999"

    assert second.category_rollup() == {"A": 10.0, "B": 5.0}
    assert apply_filters(dataset).category_rollup() == {"A": 13.0, "B": 5.0}
    assert not first.equals(second)


def test_repeated_filtering_is_deterministic() -> None:
    dataset = _fines_dataset()
    filters = FilterState(year="2023", detection=CAMERA_LABEL)

    first = apply_filters(dataset, filters)
    second = apply_filters(dataset, filters)

    assert first.equals(second)
    assert first.category_rollup() == second.category_rollup() == {"NSW": 100.0}


def test_derived_detection_filter_and_split() -> None:
    dataset = _fines_dataset()

    assert dataset.detection_options() == [CAMERA_LABEL, POLICE_LABEL]

    cameras = apply_filters(dataset, FilterState(detection=CAMERA_LABEL))
    assert cameras.category_rollup() == {"NSW": 100.0, "QLD": 50.0}

    full = apply_filters(dataset)
    assert full.detection_split("FINES") == {POLICE_LABEL: 70.0, CAMERA_LABEL: 150.0}
    assert full.detection_split() == {POLICE_LABEL: 2.0, CAMERA_LABEL: 2.0}

    unknown = apply_filters(dataset, FilterState(detection="Drone"))
    assert len(unknown) == 0


def test_aggregated_detection_filter_uses_matching_column() -> None:
    dataset = _aggregated_dataset()

    assert dataset.detection is None
    assert dataset.detection_options() == [CAMERA_LABEL, POLICE_LABEL]

    cameras = apply_filters(dataset, FilterState(detection=CAMERA_LABEL))
    assert len(cameras) == 2
    assert cameras.default_value_field == "Camera fines"
    assert cameras.category_rollup() == {"VIC": 8.0, "NSW": 2.0}

    full = apply_filters(dataset)
    assert full.default_value_field == "Police issued fines"
    assert full.detection_split() == {POLICE_LABEL: 13.0, CAMERA_LABEL: 10.0}


def test_aggregated_detection_unknown_label_matches_nothing() -> None:
    view = apply_filters(_aggregated_dataset(), FilterState(detection="Drone"))

    assert len(view) == 0
    assert view.category_rollup() == {}


def test_aggregated_scatter_points_compare_selected_column_to_total() -> None:
    view = apply_filters(_aggregated_dataset(), FilterState(detection=CAMERA_LABEL))

    points = view.scatter_points()

    assert points["x"].tolist() == [8.0, 2.0]
    assert points["y"].tolist() == [11.0, 2.0]
    assert points["c"].tolist() == ["VIC", "NSW"]


def test_year_options_list_years_with_positive_totals() -> None:
    dataset = Dataset.from_records(
        [
            {"YEAR": "2019", "CAT": "A", "V": "0"},
            {"YEAR": "2020", "CAT": "A", "V": "4"},
            {"YEAR": "2022", "CAT": "B", "V": "1"},
        ]
    )

    assert dataset.year_options() == [2020, 2022]
    assert dataset.category_options() == ["A", "B"]


def test_with_changes_returns_new_state() -> None:
    filters = FilterState(year=2023, dimensions={"AGE_GROUP": "17-25"})

    changed = filters.with_changes(detection=CAMERA_LABEL)

    assert changed.year == 2023
    assert changed.detection == CAMERA_LABEL
    assert dict(changed.dimensions) == {"AGE_GROUP": "17-25"}
    assert filters.detection == ALL


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, ALL),
        ("", ALL),
        ("all", ALL),
        ("All", ALL),
        (2023, 2023),
        (2023.0, 2023),
        (" 2024 ", 2024),
    ],
)
def test_parse_year_selection(value: object, expected: object) -> None:
    assert parse_year_selection(value) == expected


@pytest.mark.parametrize("value", [True, "twenty", 2023.5])
def test_parse_year_selection_rejects_invalid_values(value: object) -> None:
    with pytest.raises(ValueError, match="Invalid year selection"):
        parse_year_selection(value)


def test_apply_filters_accepts_schema_override() -> None:
    dataset = _scenario_dataset()
    schema = dataset.schema

    view = apply_filters(dataset, FilterState(), schema=schema)

    assert view.schema is schema
    assert isinstance(view.rows, pd.DataFrame)
    assert len(view) == 3


def test_package_exports_engine_entry_points() -> None:
    import fines_dashboard

    dataset = fines_dashboard.Dataset.from_records([{"YEAR": "2023", "CAT": "A", "V": "2"}])
    view = fines_dashboard.apply_filters(dataset, fines_dashboard.FilterState(year=2023))

    assert view.category_rollup() == {"A": 2.0}
    assert isinstance(fines_dashboard.__version__, str)


def test_int_column_labels_match_inferred_fields() -> None:
    frame = pd.DataFrame(
        {
            "YEAR": ["2023", "2024"],
            "JURISDICTION": ["NSW", "VIC"],
            2020: ["5", "7"],
        }
    )

    dataset = Dataset.from_records(frame)

    assert list(dataset.frame.columns) == ["YEAR", "JURISDICTION", "2020"]
    assert dataset.schema.primary_value_field == "2020"
    assert apply_filters(dataset).category_rollup() == {"NSW": 5.0, "VIC": 7.0}
    assert apply_filters(dataset).year_series().tick_years == [2023, 2024]
    assert len(apply_filters(dataset, FilterState(year=2024))) == 1
    assert list(frame.columns) == ["YEAR", "JURISDICTION", 2020]


def test_positional_column_labels_are_usable_as_fields() -> None:
    dataset = Dataset.from_records(
        pd.DataFrame({0: ["2020", "2021"], 1: ["x", "y"], 2: ["1", "2"]})
    )

    assert dataset.schema.categorical_field == "1"
    assert apply_filters(dataset).category_rollup("2") == {"x": 1.0, "y": 2.0}


def test_category_filter_matches_unknown_and_is_case_sensitive() -> None:
    dataset = Dataset.from_records(
        [
            {"CAT": None, "AREA": "north", "V": "1"},
            {"CAT": "", "AREA": None, "V": "2"},
            {"CAT": "A", "AREA": "North", "V": "4"},
            {"CAT": "A", "AREA": "north", "V": "8"},
        ]
    )

    unknown = apply_filters(dataset, FilterState(category="Unknown"))
    assert len(unknown) == 2
    assert unknown.group_sum("CAT", "V") == {"Unknown": 3.0}

    assert len(apply_filters(dataset, FilterState(category="a"))) == 0
    assert len(apply_filters(dataset, FilterState(category="A"))) == 2

    assert len(apply_filters(dataset, FilterState(dimensions={"AREA": "Unknown"}))) == 1
    assert len(apply_filters(dataset, FilterState(dimensions={"AREA": "north"}))) == 2
    assert len(apply_filters(dataset, FilterState(dimensions={"AREA": "NORTH"}))) == 0


def test_filter_state_is_hashable_and_order_insensitive() -> None:
    first = FilterState(year="2023", dimensions={"AGE_GROUP": "17-25", "GENDER": "F"})
    second = FilterState(year=2023, dimensions={"GENDER": "F", "AGE_GROUP": "17-25"})

    assert first == second
    assert hash(first) == hash(second)
    assert len({FilterState(), FilterState(), first, second}) == 2
    assert first.with_changes(detection=CAMERA_LABEL).dimensions == first.dimensions
