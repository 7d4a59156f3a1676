from __future__ import annotations

import math
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.ticker import PercentFormatter

from otvplots.report.contracts import CompositeChartSpec
from otvplots.viz.common import save_figure

BAR_COLOR = "#475569"
TRACE_COLOR = "#0072B2"


def abbreviate_label(label: str, max_length: int = 10) -> str:
    if len(label) <= max_length:
        return label
    return label[: max_length - 1] + "."


def _facet_grid(n_facets: int) -> tuple[int, int]:
    n_cols = max(1, math.ceil(math.sqrt(n_facets)))
    n_rows = max(1, math.ceil(n_facets / n_cols))
    return n_rows, n_cols


def plot_categorical_report(chart: CompositeChartSpec, output_path: Path) -> Path:
    bar = chart.bar
    trace = chart.trace
    facets = list(trace.facets)
    n_rows, n_cols = _facet_grid(len(facets))

    fig = plt.figure(figsize=(15, max(4.0, 2.6 * n_rows)))
    outer = fig.add_gridspec(1, 2, width_ratios=list(chart.width_ratios))

    bar_axis = fig.add_subplot(outer[0])
    x = np.arange(len(bar.categories))
    bar_axis.bar(x, bar.counts, color=BAR_COLOR)
    bar_axis.set_xticks(x, [abbreviate_label(category) for category in bar.categories])
    bar_axis.tick_params(axis="x", labelrotation=45, labelsize=9)
    bar_axis.set_title(bar.variable)
    bar_axis.set_ylabel("Count")

    inner = outer[1].subgridspec(n_rows, n_cols)
    shared_axis = None
    for index, facet in enumerate(facets):
        axis = fig.add_subplot(inner[index // n_cols, index % n_cols], sharey=shared_axis)
        if shared_axis is None:
            shared_axis = axis
        frame = trace.facet_frame(facet)
        # NaN rates (empty denominators) render as gaps.
        axis.plot(
            frame[trace.x],
            pd.to_numeric(frame[trace.y], errors="coerce"),
            linewidth=1.2,
            color=TRACE_COLOR,
        )
        axis.set_title(abbreviate_label(facet, max_length=24), fontsize=9)
        if trace.y_format == "percent":
            axis.yaxis.set_major_formatter(PercentFormatter(xmax=1.0))
        axis.tick_params(axis="x", labelrotation=trace.x_label_rotation, labelsize=8)
        for label in axis.get_xticklabels():
            label.set_horizontalalignment("right")

    return save_figure(output_path)
