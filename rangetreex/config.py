from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

_LOGGER = logging.getLogger("rangetreex")

_SUPPORTED_TREE_TYPES = {"kdtree", "balltree"}
_DEFAULT_LEAF_SIZE = 20
_DEFAULT_NAIVE_BLOCK_SIZE = 64


def _normalise_tree_type(value: str | None) -> str:
    if value is None:
        return "kdtree"
    tree_type = value.strip().lower().replace("-", "").replace("_", "")
    if tree_type not in _SUPPORTED_TREE_TYPES:
        raise ValueError(
            f"Unsupported tree type '{value}'. Expected one of {_SUPPORTED_TREE_TYPES}."
        )
    return tree_type


@dataclass(frozen=True)
class RuntimeConfig:
    precision: str = "float64"
    metric: str = "euclidean"
    tree_type: str = "kdtree"
    leaf_size: int = _DEFAULT_LEAF_SIZE
    accept_all: bool = True
    naive_block_size: int = _DEFAULT_NAIVE_BLOCK_SIZE
    enable_numba: bool = False
    enable_diagnostics: bool = True
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        from rangetreex.runtime.model import RuntimeModel  # lazy import to avoid cycles

        model = RuntimeModel.from_legacy_config(self)
        for item in fields(self):
            object.__setattr__(self, item.name, getattr(model, item.name))

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        """Read ``RANGETREEX_*`` variables; invalid values raise ``ValueError``."""

        from rangetreex.runtime.model import RuntimeModel  # lazy import to avoid cycles

        return RuntimeModel.from_env().to_runtime_config()


def normalise_tree_type(value: str | None) -> str:
    """Return the canonical tree name (``kd-tree`` and ``kd_tree`` become ``kdtree``)."""

    return _normalise_tree_type(value)


def _configure_logging(level: str) -> None:
    logger = logging.getLogger("rangetreex")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(level)
        formatter = logging.Formatter("%(levelname)s %(name)s: %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)


_CONFIG_CACHE: Optional[RuntimeConfig] = None


def runtime_config() -> RuntimeConfig:
    """Return the active runtime configuration, reading the environment on first use."""

    global _CONFIG_CACHE
    if _CONFIG_CACHE is None:
        config = RuntimeConfig.from_env()
        _configure_logging(config.log_level)
        _CONFIG_CACHE = config
    return _CONFIG_CACHE


def configure_runtime(config: RuntimeConfig) -> RuntimeConfig:
    """Force the active runtime to use ``config`` instead of env defaults."""

    global _CONFIG_CACHE
    _configure_logging(config.log_level)
    _CONFIG_CACHE = config
    _LOGGER.debug("Runtime configured: %s", config)
    return config


def reset_runtime_config_cache() -> None:
    """Clear the cached runtime configuration (used in tests)."""

    global _CONFIG_CACHE
    _CONFIG_CACHE = None


def describe_runtime() -> Dict[str, Any]:
    """Return a serialisable view of the active runtime configuration."""

    config = runtime_config()
    return {
        "precision": config.precision,
        "metric": config.metric,
        "tree_type": config.tree_type,
        "leaf_size": config.leaf_size,
        "accept_all": config.accept_all,
        "naive_block_size": config.naive_block_size,
        "enable_numba": config.enable_numba,
        "enable_diagnostics": config.enable_diagnostics,
        "log_level": config.log_level,
    }


__all__ = [
    "RuntimeConfig",
    "runtime_config",
    "configure_runtime",
    "reset_runtime_config_cache",
    "describe_runtime",
    "normalise_tree_type",
]
