from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Literal, Sequence

import numpy as np
import pandas as pd

from otvplots.errors import InvalidInput
from otvplots.features.frequency import frequencies_from_working
from otvplots.preprocess.categories import NA_CATEGORY, prepare_category_frame

LOGGER = logging.getLogger(__name__)

NormalizeBy = Literal["time", "category"]

DEFAULT_TOP_K = 9
NORMALIZE_BY_ALIASES: dict[str, NormalizeBy] = {
    "time": "time",
    "category": "category",
    "var": "category",
}
RATE_COLUMNS = ["category", "period", "count", "total", "rate"]
SUMMARY_LEADING_COLUMNS = ["variable", "category", "global_count", "global_rate"]


@dataclass(frozen=True)
class RatesOverTime:
    rates: pd.DataFrame
    chart_rates: pd.DataFrame
    summary: pd.DataFrame
    normalize_by: NormalizeBy
    retained_categories: tuple[str, ...]
    period_labels: tuple[str, ...]


def resolve_normalize_by(value: Any) -> NormalizeBy:
    key = value.strip().lower() if isinstance(value, str) else None
    if key not in NORMALIZE_BY_ALIASES:
        raise InvalidInput(
            f"Unsupported normalize_by: {value!r}. Expected one of: time, category"
        )
    return NORMALIZE_BY_ALIASES[key]


def period_label(value: Any) -> str:
    """Column label for a time period: ISO dates for day-aligned timestamps."""
    if isinstance(value, pd.Timestamp):
        if value == value.normalize():
            return value.strftime("%Y-%m-%d")
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def chart_categories(order: Sequence[str], top_k: int = DEFAULT_TOP_K) -> list[str]:
    """Categories kept for the trace plots.

    A binary variable keeps only its less prevalent category since both traces
    mirror each other. Otherwise the ``top_k`` most prevalent are kept.
    """
    if len(order) == 2:
        return [order[1]]
    return list(order[:top_k])


def _resolve_order(working: pd.DataFrame, category_order: Sequence[str] | None) -> list[str]:
    if category_order is None:
        return frequencies_from_working(working)["category"].tolist()

    order = list(dict.fromkeys(category_order))
    observed = set(working["category"])
    uncovered = sorted(observed.difference(order))
    if uncovered:
        raise InvalidInput(
            f"category_order is missing observed categories: {', '.join(uncovered)}"
        )
    unobserved = [category for category in order if category not in observed]
    if unobserved:
        LOGGER.debug("Dropping %d unobserved categories from category_order", len(unobserved))
    return [category for category in order if category in observed]


def _factorize_periods(periods: pd.Series) -> tuple[np.ndarray, pd.Index]:
    try:
        codes, uniques = pd.factorize(periods, sort=True)
    except TypeError as exc:
        raise InvalidInput("Time period labels must share a single ordered type") from exc
    return codes, pd.Index(uniques)


def _build_summary(
    filled: pd.DataFrame,
    order: list[str],
    labels: list[str],
    variable: str,
) -> pd.DataFrame:
    global_count = filled.groupby("category_code")["count"].sum().reindex(range(len(order)))
    grand_total = float(global_count.sum())
    if grand_total > 0:
        global_rate = global_count / grand_total
    else:
        LOGGER.warning("Variable %s has zero total weight; global rates are undefined", variable)
        global_rate = pd.Series(np.nan, index=global_count.index)

    wide = filled.pivot(index="category_code", columns="period_code", values="rate")
    wide = wide.reindex(index=range(len(order)), columns=range(len(labels)))
    wide.columns = labels

    summary = pd.DataFrame(
        {
            "variable": variable,
            "category": order,
            "global_count": global_count.to_numpy(dtype=float),
            "global_rate": global_rate.to_numpy(dtype=float),
        }
    )
    summary = pd.concat([summary, wide.reset_index(drop=True)], axis=1)
    summary = summary.sort_values("global_count", ascending=False, kind="mergesort")
    summary = summary.reset_index(drop=True)

    if NA_CATEGORY not in order:
        na_row: dict[str, Any] = {
            "variable": variable,
            "category": NA_CATEGORY,
            "global_count": 0.0,
            "global_rate": 0.0,
        }
        na_row.update({label: 0.0 for label in labels})
        summary = pd.concat([summary, pd.DataFrame([na_row])], ignore_index=True)
    return summary


def compute_rates_over_time(
    df: pd.DataFrame,
    time_field: str,
    category_field: str,
    weight_field: str | None = None,
    category_order: Sequence[str] | None = None,
    normalize_by: str = "time",
    top_k: int = DEFAULT_TOP_K,
    variable: str | None = None,
) -> RatesOverTime:
    """Category rates per time period, in long and wide form.

    With ``normalize_by="time"`` each count is divided by its period total,
    showing how category shares move. With ``normalize_by="category"`` it is
    divided by the category total over all periods, showing how each
    category's volume moves. Every category appears in every period; absent
    combinations count as zero. Zero denominators give NaN rates.

    ``summary`` holds every category plus a guaranteed ``"NA"`` row.
    ``chart_rates`` is the subset meant for plotting, reduced to the less
    prevalent category of a binary variable or to the ``top_k`` most
    prevalent categories.
    """
    mode = resolve_normalize_by(normalize_by)
    if top_k < 1:
        raise InvalidInput(f"top_k must be >= 1, got {top_k}")

    working = prepare_category_frame(
        df,
        category_field=category_field,
        weight_field=weight_field,
        time_field=time_field,
    )
    order = _resolve_order(working, category_order)
    period_codes, periods = _factorize_periods(working["period"])
    labels = [period_label(value) for value in periods]

    working["category_code"] = working["category"].map(
        {category: code for code, category in enumerate(order)}
    )
    working["period_code"] = period_codes

    numerator = working.groupby(["category_code", "period_code"])["weight"].sum()
    grid = pd.MultiIndex.from_product(
        [range(len(order)), range(len(periods))],
        names=["category_code", "period_code"],
    )
    filled = numerator.reindex(grid, fill_value=0.0).rename("count").reset_index()

    denominator_key = "period_code" if mode == "time" else "category_code"
    totals = working.groupby(denominator_key)["weight"].sum()
    filled["total"] = filled[denominator_key].map(totals).astype(float)
    filled["rate"] = (filled["count"] / filled["total"]).where(filled["total"] > 0)

    zero_totals = int((totals <= 0).sum())
    if zero_totals:
        LOGGER.warning(
            "%s: %d %s totals are zero; their rates are left undefined",
            category_field,
            zero_totals,
            "period" if mode == "time" else "category",
        )

    rates = pd.DataFrame(
        {
            "category": np.asarray(order, dtype=object)[filled["category_code"].to_numpy()],
            "period": periods.take(filled["period_code"].to_numpy()),
            "count": filled["count"].astype(float).to_numpy(),
            "total": filled["total"].to_numpy(),
            "rate": filled["rate"].to_numpy(),
        },
        columns=RATE_COLUMNS,
    )
    summary = _build_summary(filled, order, labels, variable or category_field)

    retained = chart_categories(order, top_k)
    chart_rates = rates[rates["category"].isin(retained)].reset_index(drop=True)
    LOGGER.debug(
        "%s: %d categories x %d periods, %d charted",
        category_field,
        len(order),
        len(periods),
        len(retained),
    )
    return RatesOverTime(
        rates=rates,
        chart_rates=chart_rates,
        summary=summary,
        normalize_by=mode,
        retained_categories=tuple(retained),
        period_labels=tuple(labels),
    )
