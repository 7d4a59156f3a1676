from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from otvplots.features.rates import DEFAULT_TOP_K, NORMALIZE_BY_ALIASES


class ColumnsConfig(BaseModel):
    time: str
    weight: str | None = None
    variables: list[str] = Field(default_factory=list)


class CategoricalConfig(BaseModel):
    top_k: int = Field(default=DEFAULT_TOP_K, ge=1)
    normalize_by: Literal["time", "category"] = "time"

    @field_validator("normalize_by", mode="before")
    @classmethod
    def _accept_legacy_alias(cls, value: object) -> object:
        if isinstance(value, str):
            return NORMALIZE_BY_ALIASES.get(value.strip().lower(), value)
        return value


class OutputsConfig(BaseModel):
    tables_format: Literal["csv", "parquet"] = "csv"
    figures_format: str = "png"
    render_figures: bool = True


class RunConfig(BaseModel):
    max_workers: int = Field(default=1, ge=1)


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    columns: ColumnsConfig
    categorical: CategoricalConfig = Field(default_factory=CategoricalConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)
    run: RunConfig = Field(default_factory=RunConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    env_workers = os.getenv("OTVPLOTS_MAX_WORKERS")
    if env_workers:
        config.run = RunConfig(max_workers=int(env_workers))
    return config
