from __future__ import annotations

import logging

import pandas as pd

from otvplots.preprocess.categories import prepare_category_frame

LOGGER = logging.getLogger(__name__)

FREQUENCY_COLUMNS = ["category", "count"]


def frequencies_from_working(working: pd.DataFrame) -> pd.DataFrame:
    # groupby(sort=False) keeps first-appearance order; mergesort keeps it for ties.
    counts = (
        working.groupby("category", sort=False)["weight"]
        .sum()
        .rename("count")
        .reset_index()
    )
    return counts.sort_values("count", ascending=False, kind="mergesort").reset_index(drop=True)


def compute_frequencies(
    df: pd.DataFrame,
    category_field: str,
    weight_field: str | None = None,
) -> pd.DataFrame:
    """Weighted category counts, ordered by descending count.

    Missing and empty values are counted under ``"NA"``. Without a weight
    column every row counts once. Ties keep the order in which categories
    first appear in ``df``.
    """
    working = prepare_category_frame(df, category_field=category_field, weight_field=weight_field)
    frequencies = frequencies_from_working(working)
    LOGGER.debug(
        "Computed %d category frequencies for %s over %d rows",
        len(frequencies),
        category_field,
        len(working),
    )
    return frequencies


def category_order(frequencies: pd.DataFrame) -> list[str]:
    return frequencies["category"].tolist()
