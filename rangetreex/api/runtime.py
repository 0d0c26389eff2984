from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict

from rangetreex import config as rx_config
from rangetreex.runtime.model import RuntimeModel


_ATTR_TO_FIELD = {
    "precision": "precision",
    "metric": "metric",
    "tree_type": "tree_type",
    "leaf_size": "leaf_size",
    "accept_all": "accept_all",
    "naive_block_size": "naive_block_size",
    "enable_numba": "enable_numba",
    "diagnostics": "enable_diagnostics",
    "log_level": "log_level",
}


@dataclass(frozen=True)
class Runtime:
    """Declarative runtime configuration that can activate a rangetreex context.

    Every field left as ``None`` falls back to the environment-derived
    :class:`~rangetreex.config.RuntimeConfig` (or to ``base`` when one is passed
    to :meth:`to_config`).
    """

    precision: str | None = None
    metric: str | None = None
    tree_type: str | None = None
    leaf_size: int | None = None
    accept_all: bool | None = None
    naive_block_size: int | None = None
    enable_numba: bool | None = None
    diagnostics: bool | None = None
    log_level: str | None = None

    def to_model(self, base: RuntimeModel | None = None) -> RuntimeModel:
        base_model = base or RuntimeModel.from_env()
        payload = base_model.model_dump()
        for attr, field_name in _ATTR_TO_FIELD.items():
            value = getattr(self, attr)
            if value is not None:
                payload[field_name] = value
        return RuntimeModel(**payload)

    def to_config(self, base: rx_config.RuntimeConfig | None = None) -> rx_config.RuntimeConfig:
        base_model = (
            RuntimeModel.from_env()
            if base is None
            else RuntimeModel.from_legacy_config(base)
        )
        model = self.to_model(base=base_model)
        return model.to_runtime_config()

    def activate(self) -> rx_config.RuntimeConfig:
        """Install this runtime as the active global configuration and return it."""

        config = self.to_config()
        return rx_config.configure_runtime(config)

    def describe(self) -> Dict[str, Any]:
        config = self.to_config()
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

    def with_updates(self, **kwargs: Any) -> "Runtime":
        return replace(self, **kwargs)

    @classmethod
    def from_active(cls) -> "Runtime":
        return cls.from_config(rx_config.runtime_config())

    @classmethod
    def from_config(cls, config: rx_config.RuntimeConfig) -> "Runtime":
        return cls(
            precision=config.precision,
            metric=config.metric,
            tree_type=config.tree_type,
            leaf_size=config.leaf_size,
            accept_all=config.accept_all,
            naive_block_size=config.naive_block_size,
            enable_numba=config.enable_numba,
            diagnostics=config.enable_diagnostics,
            log_level=config.log_level,
        )


__all__ = ["Runtime"]
