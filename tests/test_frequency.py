from __future__ import annotations

import pandas as pd
import pytest

from otvplots.errors import InvalidInput
from otvplots.features.frequency import category_order, compute_frequencies


def _scenario_frame() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "job": ["A", "A", "A", "B", "A", None, None],
            "month": [1, 1, 1, 1, 2, 2, 2],
        }
    )


def test_compute_frequencies_counts_na_and_orders_descending() -> None:
    frequencies = compute_frequencies(_scenario_frame(), category_field="job")

    assert list(frequencies.columns) == ["category", "count"]
    assert dict(zip(frequencies["category"], frequencies["count"])) == {
        "A": 4.0,
        "NA": 2.0,
        "B": 1.0,
    }
    assert category_order(frequencies) == ["A", "NA", "B"]


def test_compute_frequencies_ties_keep_first_appearance_order() -> None:
    df = pd.DataFrame({"color": ["blue", "red", "", "red", "blue", None, "green"]})
    frequencies = compute_frequencies(df, category_field="color")
    assert category_order(frequencies) == ["blue", "red", "NA", "green"]


def test_compute_frequencies_sums_weights() -> None:
    df = pd.DataFrame(
        {
            "job": ["a", "b", "a", "c", ""],
            "w": [0.5, 3.0, 1.0, 0.0, 2.5],
        }
    )
    frequencies = compute_frequencies(df, category_field="job", weight_field="w")

    assert category_order(frequencies) == ["b", "NA", "a", "c"]
    assert frequencies["count"].sum() == pytest.approx(df["w"].sum())
    assert frequencies.loc[frequencies["category"] == "a", "count"].item() == pytest.approx(1.5)


def test_compute_frequencies_total_matches_row_count() -> None:
    df = pd.DataFrame({"job": ["x", "y", None, "x", "", "z", "x"]})
    frequencies = compute_frequencies(df, category_field="job")
    assert frequencies["count"].sum() == len(df)
    assert frequencies["category"].is_unique


def test_compute_frequencies_requires_category_column() -> None:
    with pytest.raises(InvalidInput, match="job"):
        compute_frequencies(pd.DataFrame({"other": ["a"]}), category_field="job")


def test_compute_frequencies_rejects_negative_weight() -> None:
    df = pd.DataFrame({"job": ["a", "b"], "w": [1.0, -1.0]})
    with pytest.raises(InvalidInput, match="negative"):
        compute_frequencies(df, category_field="job", weight_field="w")
