from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import typer

from otvplots.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from otvplots.errors import DegenerateInput, InvalidInput
from otvplots.features.rates import DEFAULT_TOP_K
from otvplots.io.read import coerce_period_column, load_table
from otvplots.io.write import write_table
from otvplots.logging import configure_logging
from otvplots.paths import build_output_paths
from otvplots.pipeline.run_all import run_all
from otvplots.report.categorical import build_categorical_report
from otvplots.viz.categorical import plot_categorical_report

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _load_app_config(config_path: Path) -> AppConfig:
    return load_config(config_path)


@app.command()
def categorical(
    data: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    variable: str = typer.Option(..., help="Categorical (or binary) column to summarize."),
    time: str = typer.Option(..., help="Column holding bucketed time-period labels."),
    weight: str | None = typer.Option(None, help="Optional non-negative weight column."),
    top_k: int = typer.Option(DEFAULT_TOP_K, min=1, help="Categories traced over time."),
    normalize_by: Literal["time", "category"] = typer.Option(
        "time",
        help="Divide counts by period totals (time) or category totals (category).",
    ),
    out: Path | None = typer.Option(
        None,
        resolve_path=True,
        help="Write the summary table and figure under this directory instead of printing.",
    ),
    log_level: str = typer.Option("INFO"),
) -> None:
    """Summarize one categorical variable over time."""
    configure_logging(log_level)
    df = coerce_period_column(load_table(data), time)
    try:
        report = build_categorical_report(
            df,
            categorical_field=variable,
            time_field=time,
            weight_field=weight,
            top_k=top_k,
            normalize_by=normalize_by,
        )
    except InvalidInput as exc:
        raise typer.BadParameter(str(exc)) from exc
    except DegenerateInput as exc:
        typer.echo(f"Nothing to report for {variable}: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if out is None:
        typer.echo(report.summary.to_string(index=False))
        return

    paths = build_output_paths(out)
    table_path = write_table(report.summary, paths.tables / f"{variable}_summary.csv", fmt="csv")
    figure_path = plot_categorical_report(report.chart, paths.figures / f"{variable}.png")
    typer.echo(f"Summary written to: {table_path}")
    typer.echo(f"Figure written to: {figure_path}")


@app.command("run-all")
def run_all_command(
    data: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    log_level: str = typer.Option(os.getenv("OTVPLOTS_LOG_LEVEL", "INFO")),
) -> None:
    """Summarize every configured categorical variable and write tables and figures."""
    configure_logging(log_level)
    cfg = _load_app_config(config)
    try:
        written = run_all(csv_path=data, out_dir=out, config=cfg)
    except InvalidInput as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(f"Run complete. Artifacts: {', '.join(sorted(written))}")


if __name__ == "__main__":
    app()
