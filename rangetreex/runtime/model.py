from __future__ import annotations

import os
from dataclasses import asdict
from typing import Any, Dict, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rangetreex import config as rx_config
from rangetreex.core.metrics import available_metrics

_ENV_FIELDS: Dict[str, str] = {
    "precision": "RANGETREEX_PRECISION",
    "metric": "RANGETREEX_METRIC",
    "tree_type": "RANGETREEX_TREE",
    "leaf_size": "RANGETREEX_LEAF_SIZE",
    "accept_all": "RANGETREEX_ACCEPT_ALL",
    "naive_block_size": "RANGETREEX_NAIVE_BLOCK",
    "enable_numba": "RANGETREEX_ENABLE_NUMBA",
    "enable_diagnostics": "RANGETREEX_ENABLE_DIAGNOSTICS",
    "log_level": "RANGETREEX_LOG_LEVEL",
}

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")


class RuntimeModel(BaseModel):
    """Validated runtime settings.

    Environment strings and ``Runtime`` overrides both pass through this model,
    so ``"8"`` becomes ``8``, ``"off"`` becomes ``False`` and unknown metrics,
    tree types or log levels are rejected with a ``ValidationError`` (a
    ``ValueError``).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    precision: Literal["float32", "float64"] = "float64"
    metric: str = "euclidean"
    tree_type: str = "kdtree"
    leaf_size: int = Field(default=20, gt=0)
    accept_all: bool = True
    naive_block_size: int = Field(default=64, gt=0)
    enable_numba: bool = False
    enable_diagnostics: bool = True
    log_level: str = "INFO"

    @field_validator("precision", mode="before")
    @classmethod
    def _lower_precision(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("metric")
    @classmethod
    def _known_metric(cls, value: str) -> str:
        name = value.strip().lower()
        if name not in available_metrics():
            raise ValueError(f"Unknown metric '{value}'. Expected one of {available_metrics()}.")
        return name

    @field_validator("tree_type")
    @classmethod
    def _known_tree_type(cls, value: str) -> str:
        return rx_config.normalise_tree_type(value)

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level '{value}'. Expected one of {_LOG_LEVELS}.")
        return level

    @classmethod
    def from_env(cls) -> "RuntimeModel":
        """Build the model from ``RANGETREEX_*`` variables; blank values keep the default."""

        payload: Dict[str, Any] = {}
        for field_name, env_name in _ENV_FIELDS.items():
            raw = os.getenv(env_name)
            if raw is None or raw.strip() == "":
                continue
            payload[field_name] = raw.strip()
        return cls(**payload)

    @classmethod
    def from_legacy_config(cls, config: rx_config.RuntimeConfig) -> "RuntimeModel":
        return cls(**asdict(config))

    def to_runtime_config(self) -> rx_config.RuntimeConfig:
        return rx_config.RuntimeConfig(**self.model_dump())


__all__ = ["RuntimeModel"]
