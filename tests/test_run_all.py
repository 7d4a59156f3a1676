from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pandas as pd
import pytest
import yaml
from typer.testing import CliRunner

from otvplots.cli import app
from otvplots.config import AppConfig
from otvplots.errors import InvalidInput
from otvplots.io.read import load_table
from otvplots.pipeline.run_all import build_variable_reports, combine_summaries, run_all


def _write_bank_csv(path: Path) -> Path:
    path.write_text(
        "\n".join(
            [
                "job,default,marital,date_group,weight",
                "admin,no,married,2017-01-01,1",
                "admin,no,single,2017-01-01,2",
                "tech,yes,,2017-01-01,1",
                "admin,no,married,2017-02-01,1",
                ",no,married,2017-02-01,1",
                "tech,no,single,2017-03-01,1",
                "retired,yes,married,2017-03-01,3",
            ]
        ),
        encoding="utf-8",
    )
    return path


def _bank_frame() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "job": ["admin", "admin", "tech", None, "tech"],
            "default": ["no", "no", "yes", "no", "no"],
            "month": [1, 1, 2, 2, 3],
        }
    )


@pytest.mark.parametrize("max_workers", [1, 3])
def test_build_variable_reports_keeps_variable_order(max_workers: int) -> None:
    reports = build_variable_reports(
        _bank_frame(),
        variables=["job", "default"],
        time_field="month",
        max_workers=max_workers,
    )
    assert list(reports) == ["job", "default"]
    assert reports["default"].chart.trace.facets == ("yes",)


def test_build_variable_reports_skips_degenerate_variables(caplog) -> None:
    empty = _bank_frame().iloc[0:0]
    reports = build_variable_reports(empty, variables=["job"], time_field="month")
    assert reports == {}
    assert "Skipping job" in caplog.text


def test_combine_summaries_stacks_variables() -> None:
    reports = build_variable_reports(
        _bank_frame(), variables=["job", "default"], time_field="month"
    )
    combined = combine_summaries(reports)

    assert list(combined.columns) == [
        "variable",
        "category",
        "global_count",
        "global_rate",
        "1",
        "2",
        "3",
    ]
    assert combined["variable"].tolist() == ["job", "job", "job", "default", "default", "default"]
    assert combine_summaries({}).empty


def test_run_all_writes_tables_figures_and_run_summary(tmp_path: Path) -> None:
    csv_path = _write_bank_csv(tmp_path / "bank.csv")
    config = AppConfig.model_validate(
        {
            "columns": {"time": "date_group", "weight": "weight"},
            "categorical": {"top_k": 2},
        }
    )

    written = run_all(csv_path=csv_path, out_dir=tmp_path / "out", config=config)

    assert {"job_summary", "default_summary", "marital_summary", "categorical_summary"} <= set(
        written
    )
    assert (tmp_path / "out" / "figures" / "job.png").exists()
    summary = pd.read_csv(tmp_path / "out" / "tables" / "job_summary.csv", keep_default_na=False)
    assert summary.columns.tolist()[4:] == ["2017-01-01", "2017-02-01", "2017-03-01"]
    assert "NA" in summary["category"].tolist()

    run_summary = json.loads((tmp_path / "out" / "summary" / "run.json").read_text("utf-8"))
    assert run_summary["variables"] == ["job", "default", "marital"]
    assert run_summary["charts"]["job"]["trace"]["facets"] == ["admin", "retired"]


def test_cli_help() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    assert "categorical" in result.stdout
    assert "run-all" in result.stdout


def test_cli_categorical_prints_summary(tmp_path: Path) -> None:
    csv_path = _write_bank_csv(tmp_path / "bank.csv")
    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "categorical",
            "--data",
            str(csv_path),
            "--variable",
            "job",
            "--time",
            "date_group",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "global_rate" in result.stdout
    assert "2017-01-01" in result.stdout


def test_cli_categorical_writes_outputs(tmp_path: Path) -> None:
    csv_path = _write_bank_csv(tmp_path / "bank.csv")
    out_dir = tmp_path / "out"
    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "categorical",
            "--data",
            str(csv_path),
            "--variable",
            "default",
            "--time",
            "date_group",
            "--weight",
            "weight",
            "--normalize-by",
            "category",
            "--out",
            str(out_dir),
        ],
    )

    assert result.exit_code == 0, result.output
    assert (out_dir / "tables" / "default_summary.csv").exists()
    assert (out_dir / "figures" / "default.png").exists()


def test_cli_categorical_rejects_unknown_column(tmp_path: Path) -> None:
    csv_path = _write_bank_csv(tmp_path / "bank.csv")
    runner = CliRunner()
    result = runner.invoke(
        app,
        ["categorical", "--data", str(csv_path), "--variable", "age", "--time", "date_group"],
    )
    assert result.exit_code != 0


def test_cli_run_all_uses_config(tmp_path: Path) -> None:
    csv_path = _write_bank_csv(tmp_path / "bank.csv")
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        yaml.safe_dump(
            {
                "columns": {"time": "date_group", "variables": ["job"]},
                "outputs": {"render_figures": False},
            }
        ),
        encoding="utf-8",
    )
    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "run-all",
            "--data",
            str(csv_path),
            "--out",
            str(tmp_path / "out"),
            "--config",
            str(config_path),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Run complete" in result.stdout
    assert (tmp_path / "out" / "tables" / "job_summary.csv").exists()
    assert not (tmp_path / "out" / "figures" / "job.png").exists()


def test_build_variable_reports_rejects_infinite_weight() -> None:
    df = pd.DataFrame({"job": ["a", "b"], "month": [1, 1], "w": [np.inf, 1.0]})
    with pytest.raises(InvalidInput, match="non-finite"):
        build_variable_reports(df, variables=["job"], time_field="month", weight_field="w")


def test_build_variable_reports_binary_codes_from_csv(tmp_path: Path) -> None:
    csv_path = tmp_path / "flags.csv"
    csv_path.write_text("flag,month\n1,1\n0,1\n,2\n1,2\n", encoding="utf-8")
    reports = build_variable_reports(load_table(csv_path), variables=["flag"], time_field="month")

    summary = reports["flag"].summary
    assert summary["category"].tolist() == ["1", "0", "NA"]
    assert reports["flag"].chart.trace.facets == ("1", "0", "NA")
