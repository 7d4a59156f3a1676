from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Literal

import pandas as pd

YFormat = Literal["percent", "number"]

ALLOWED_Y_FORMATS = frozenset({"percent", "number"})
TRACE_COLUMNS = frozenset({"category", "period", "rate"})


@dataclass(slots=True, frozen=True)
class BarChartSpec:
    variable: str
    categories: tuple[str, ...]
    counts: tuple[float, ...]

    def __post_init__(self) -> None:
        if not self.variable.strip():
            raise ValueError("variable must be non-empty.")
        object.__setattr__(self, "categories", tuple(str(value) for value in self.categories))
        object.__setattr__(self, "counts", tuple(float(value) for value in self.counts))
        if len(self.categories) != len(self.counts):
            raise ValueError(
                f"categories and counts must align, got {len(self.categories)} "
                f"and {len(self.counts)}."
            )
        if len(set(self.categories)) != len(self.categories):
            raise ValueError("categories must be unique.")
        for value in self.counts:
            if not math.isfinite(value) or value < 0.0:
                raise ValueError(f"counts must be finite and >= 0, got {value!r}.")

    @classmethod
    def from_frequencies(cls, variable: str, frequencies: pd.DataFrame) -> BarChartSpec:
        return cls(
            variable=variable,
            categories=tuple(frequencies["category"].tolist()),
            counts=tuple(frequencies["count"].tolist()),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "variable": self.variable,
            "categories": list(self.categories),
            "counts": list(self.counts),
        }


@dataclass(slots=True, frozen=True)
class TraceChartSpec:
    variable: str
    data: pd.DataFrame
    facets: tuple[str, ...]
    facet_key: str = "category"
    x: str = "period"
    y: str = "rate"
    y_format: YFormat = "percent"
    x_label_rotation: int = 30

    def __post_init__(self) -> None:
        if self.y_format not in ALLOWED_Y_FORMATS:
            raise ValueError(f"Unsupported y_format: {self.y_format!r}.")
        missing = {self.facet_key, self.x, self.y}.difference(self.data.columns)
        if missing:
            raise ValueError(f"trace data missing columns: {', '.join(sorted(missing))}.")
        object.__setattr__(self, "facets", tuple(self.facets))
        unknown = set(self.data[self.facet_key]).difference(self.facets)
        if unknown:
            raise ValueError(f"trace data has rows outside facets: {sorted(unknown)!r}.")

    def facet_frame(self, facet: str) -> pd.DataFrame:
        subset = self.data[self.data[self.facet_key] == facet]
        return subset.sort_values(self.x, kind="mergesort")

    def to_dict(self) -> dict[str, Any]:
        return {
            "variable": self.variable,
            "facet_key": self.facet_key,
            "facets": list(self.facets),
            "x": self.x,
            "y": self.y,
            "y_format": self.y_format,
            "x_label_rotation": self.x_label_rotation,
            "points": len(self.data),
        }


@dataclass(slots=True, frozen=True)
class CompositeChartSpec:
    bar: BarChartSpec
    trace: TraceChartSpec
    width_ratios: tuple[int, int] = field(default=(1, 2))

    def __post_init__(self) -> None:
        if len(self.width_ratios) != 2 or min(self.width_ratios) <= 0:
            raise ValueError(
                f"width_ratios must be two positive values, got {self.width_ratios!r}."
            )
        if self.bar.variable != self.trace.variable:
            raise ValueError("bar and trace charts must describe the same variable.")

    @property
    def variable(self) -> str:
        return self.bar.variable

    def to_dict(self) -> dict[str, Any]:
        return {
            "variable": self.variable,
            "width_ratios": list(self.width_ratios),
            "bar": self.bar.to_dict(),
            "trace": self.trace.to_dict(),
        }
