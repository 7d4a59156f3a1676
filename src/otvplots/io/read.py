from __future__ import annotations

from pathlib import Path

import pandas as pd

from otvplots.config import ColumnsConfig
from otvplots.errors import InvalidInput


def load_table(path: Path) -> pd.DataFrame:
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    if path.suffix == ".csv":
        # utf-8-sig strips BOM-prefixed headers commonly found in exported CSV files.
        return pd.read_csv(path, encoding="utf-8-sig")
    raise ValueError(f"Unsupported table file type: {path.suffix}")


def resolve_variables(df: pd.DataFrame, columns: ColumnsConfig) -> list[str]:
    """Configured variables, or every non-numeric column besides time and weight."""
    if columns.variables:
        missing = [name for name in columns.variables if name not in df.columns]
        if missing:
            raise InvalidInput(f"Configured variables missing from data: {', '.join(missing)}")
        return list(columns.variables)

    reserved = {columns.time, columns.weight}
    return [
        column
        for column in df.columns
        if column not in reserved
        and (
            pd.api.types.is_object_dtype(df[column])
            or pd.api.types.is_string_dtype(df[column])
            or isinstance(df[column].dtype, pd.CategoricalDtype)
            or pd.api.types.is_bool_dtype(df[column])
        )
    ]


def coerce_period_column(df: pd.DataFrame, time_field: str) -> pd.DataFrame:
    """Parse text period labels as dates when every label parses."""
    if time_field not in df.columns:
        return df
    column = df[time_field]
    if not (pd.api.types.is_object_dtype(column) or pd.api.types.is_string_dtype(column)):
        return df
    parsed = pd.to_datetime(column, errors="coerce")
    if parsed.isna().any():
        return df
    working = df.copy()
    working[time_field] = parsed
    return working
