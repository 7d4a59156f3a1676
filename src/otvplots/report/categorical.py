from __future__ import annotations

import logging
from dataclasses import dataclass

import pandas as pd

from otvplots.features.frequency import category_order, compute_frequencies
from otvplots.features.rates import DEFAULT_TOP_K, RatesOverTime, compute_rates_over_time
from otvplots.report.contracts import BarChartSpec, CompositeChartSpec, TraceChartSpec

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoricalReport:
    chart: CompositeChartSpec
    summary: pd.DataFrame
    frequencies: pd.DataFrame
    rates: RatesOverTime

    @property
    def variable(self) -> str:
        return self.chart.variable


def build_categorical_report(
    df: pd.DataFrame,
    categorical_field: str,
    time_field: str,
    weight_field: str | None = None,
    top_k: int = DEFAULT_TOP_K,
    normalize_by: str = "time",
) -> CategoricalReport:
    """Bar chart of global counts beside trace plots of rates over time.

    Works for binary variables too; those only trace their less prevalent
    category. The summary table lists every category, ``"NA"`` included.
    """
    frequencies = compute_frequencies(
        df, category_field=categorical_field, weight_field=weight_field
    )
    rates = compute_rates_over_time(
        df,
        time_field=time_field,
        category_field=categorical_field,
        weight_field=weight_field,
        category_order=category_order(frequencies),
        normalize_by=normalize_by,
        top_k=top_k,
        variable=categorical_field,
    )

    chart = CompositeChartSpec(
        bar=BarChartSpec.from_frequencies(categorical_field, frequencies),
        trace=TraceChartSpec(
            variable=categorical_field,
            data=rates.chart_rates,
            facets=rates.retained_categories,
        ),
    )
    LOGGER.info(
        "Built categorical report for %s: %d categories, %d traced, %d periods",
        categorical_field,
        len(frequencies),
        len(rates.retained_categories),
        len(rates.period_labels),
    )
    return CategoricalReport(
        chart=chart,
        summary=rates.summary,
        frequencies=frequencies,
        rates=rates,
    )
