from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Sequence

import pandas as pd

from otvplots.config import AppConfig
from otvplots.errors import DegenerateInput
from otvplots.features.rates import DEFAULT_TOP_K, SUMMARY_LEADING_COLUMNS
from otvplots.io.read import coerce_period_column, load_table, resolve_variables
from otvplots.io.write import write_summary, write_table
from otvplots.paths import build_output_paths
from otvplots.report.categorical import CategoricalReport, build_categorical_report
from otvplots.viz.categorical import plot_categorical_report

LOGGER = logging.getLogger(__name__)


def _build_or_skip(
    df: pd.DataFrame,
    variable: str,
    time_field: str,
    weight_field: str | None,
    top_k: int,
    normalize_by: str,
) -> CategoricalReport | None:
    try:
        return build_categorical_report(
            df,
            categorical_field=variable,
            time_field=time_field,
            weight_field=weight_field,
            top_k=top_k,
            normalize_by=normalize_by,
        )
    except DegenerateInput as exc:
        LOGGER.warning("Skipping %s: %s", variable, exc)
        return None


def build_variable_reports(
    df: pd.DataFrame,
    variables: Sequence[str],
    time_field: str,
    weight_field: str | None = None,
    top_k: int = DEFAULT_TOP_K,
    normalize_by: str = "time",
    max_workers: int = 1,
) -> dict[str, CategoricalReport]:
    """One categorical report per variable; degenerate variables are skipped.

    Variables share no state, so ``max_workers > 1`` runs them on a thread pool.
    """
    def build(variable: str) -> CategoricalReport | None:
        return _build_or_skip(df, variable, time_field, weight_field, top_k, normalize_by)

    if max_workers > 1 and len(variables) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            built = list(executor.map(build, variables))
    else:
        built = [build(variable) for variable in variables]

    return {
        variable: report
        for variable, report in zip(variables, built)
        if report is not None
    }


def combine_summaries(reports: dict[str, CategoricalReport]) -> pd.DataFrame:
    if not reports:
        return pd.DataFrame(columns=SUMMARY_LEADING_COLUMNS)
    combined = pd.concat([report.summary for report in reports.values()], ignore_index=True)
    leading = [column for column in SUMMARY_LEADING_COLUMNS if column in combined.columns]
    periods = [column for column in combined.columns if column not in leading]
    return combined[leading + periods]


def write_report_outputs(
    reports: dict[str, CategoricalReport],
    out_dir: Path,
    config: AppConfig,
) -> dict[str, Path]:
    paths = build_output_paths(out_dir)
    extension = config.outputs.tables_format
    written: dict[str, Path] = {}

    for variable, report in reports.items():
        written[f"{variable}_summary"] = write_table(
            report.summary,
            paths.tables / f"{variable}_summary.{extension}",
            fmt=extension,
        )
        if config.outputs.render_figures:
            written[f"{variable}_figure"] = plot_categorical_report(
                report.chart,
                paths.figures / f"{variable}.{config.outputs.figures_format}",
            )

    written["categorical_summary"] = write_table(
        combine_summaries(reports),
        paths.tables / f"categorical_summary.{extension}",
        fmt=extension,
    )
    written["run"] = write_summary(
        {
            "variables": list(reports),
            "normalize_by": config.categorical.normalize_by,
            "top_k": config.categorical.top_k,
            "charts": {variable: report.chart.to_dict() for variable, report in reports.items()},
        },
        paths.summary / "run.json",
    )
    LOGGER.info("Wrote %d artifacts to %s", len(written), paths.root)
    return written


def run_all(csv_path: Path, out_dir: Path, config: AppConfig) -> dict[str, Path]:
    df = coerce_period_column(load_table(csv_path), config.columns.time)
    variables = resolve_variables(df, config.columns)
    reports = build_variable_reports(
        df,
        variables=variables,
        time_field=config.columns.time,
        weight_field=config.columns.weight,
        top_k=config.categorical.top_k,
        normalize_by=config.categorical.normalize_by,
        max_workers=config.run.max_workers,
    )
    return write_report_outputs(reports, out_dir=out_dir, config=config)
