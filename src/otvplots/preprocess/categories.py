from __future__ import annotations

import logging
from typing import Iterable

import numpy as np
import pandas as pd

from otvplots.errors import DegenerateInput, InvalidInput

LOGGER = logging.getLogger(__name__)

NA_CATEGORY = "NA"


def validate_fields(df: pd.DataFrame, fields: Iterable[str | None]) -> None:
    missing = [field for field in fields if field is not None and field not in df.columns]
    if missing:
        raise InvalidInput(f"Missing required columns: {', '.join(missing)}")


def recode_missing(values: pd.Series) -> pd.Series:
    """Map null and empty-string values to the reserved ``"NA"`` category.

    Non-null values are returned as strings so that boolean or integer coded
    variables share one category space with the ``"NA"`` sentinel.
    """
    if pd.api.types.is_float_dtype(values):
        # Blank cells force integer codes to float; keep "1" rather than "1.0".
        present = values.dropna()
        if np.isfinite(present).all() and (present == present.round()).all():
            values = values.astype("Int64")
    values = values.astype(object)
    is_missing = values.isna()
    as_text = values.where(is_missing, values.astype(str))
    collisions = int(((as_text == NA_CATEGORY) & ~is_missing).sum())
    if collisions:
        LOGGER.warning(
            "Column %s holds %d literal %r values; they are merged into the missing category",
            values.name,
            collisions,
            NA_CATEGORY,
        )
    is_missing = is_missing | (as_text == "")
    return as_text.mask(is_missing, NA_CATEGORY).astype(object)


def resolve_weights(df: pd.DataFrame, weight_field: str | None) -> pd.Series:
    if weight_field is None:
        return pd.Series(1.0, index=df.index, dtype="float64")
    validate_fields(df, [weight_field])

    raw = df[weight_field]
    if pd.api.types.is_bool_dtype(raw):
        raise InvalidInput(f"Weight column {weight_field} must be numeric")
    weights = pd.to_numeric(raw, errors="coerce")
    if weights.isna().any():
        bad = int(weights.isna().sum())
        raise InvalidInput(f"Weight column {weight_field} has {bad} null or non-numeric values")
    if (weights < 0).any():
        raise InvalidInput(f"Weight column {weight_field} has negative values")
    if not np.isfinite(weights).all():
        raise InvalidInput(f"Weight column {weight_field} has non-finite values")
    return weights.astype("float64")


def prepare_category_frame(
    df: pd.DataFrame,
    category_field: str,
    weight_field: str | None = None,
    time_field: str | None = None,
) -> pd.DataFrame:
    """Return a working frame with ``category``, ``weight`` and optionally ``period``."""
    validate_fields(df, [category_field, time_field])
    if df.empty:
        raise DegenerateInput(f"No rows to aggregate for {category_field}")

    working = pd.DataFrame(
        {
            "category": recode_missing(df[category_field]).to_numpy(),
            "weight": resolve_weights(df, weight_field).to_numpy(),
        },
        index=df.index,
    )
    if time_field is not None:
        periods = df[time_field]
        if periods.isna().any():
            raise InvalidInput(
                f"Time column {time_field} has {int(periods.isna().sum())} missing period labels"
            )
        working["period"] = periods.array
    return working
