from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Protocol, Tuple

import numpy as np

from rangetreex import config as rx_config

ArrayLike = Any


class PairwiseKernel(Protocol):
    def __call__(self, lhs: np.ndarray, rhs: np.ndarray) -> np.ndarray:
        ...


class PointwiseKernel(Protocol):
    def __call__(self, lhs: np.ndarray, rhs: np.ndarray) -> np.ndarray:
        ...


@dataclass(frozen=True)
class Metric:
    """Container for the distance kernels used by trees and traversal rules.

    ``power`` is the Minkowski exponent for L_p metrics (``math.inf`` for
    Chebyshev) and ``None`` for anything else. Hyper-rectangle bounds need it;
    ball bounds only rely on the triangle inequality.
    """

    name: str
    pairwise_kernel: PairwiseKernel
    pointwise_kernel: PointwiseKernel
    power: float | None = None

    @property
    def is_minkowski(self) -> bool:
        return self.power is not None

    def pairwise(self, lhs: ArrayLike, rhs: ArrayLike) -> np.ndarray:
        return self.pairwise_kernel(_ensure_2d(lhs), _ensure_2d(rhs))

    def pointwise(self, lhs: ArrayLike, rhs: ArrayLike) -> np.ndarray:
        lhs_arr = np.asarray(lhs)
        rhs_arr = np.asarray(rhs)
        if lhs_arr.shape != rhs_arr.shape:
            raise ValueError("Pointwise metric operands must have identical shapes.")
        return self.pointwise_kernel(lhs_arr, rhs_arr)

    def distance(self, lhs: ArrayLike, rhs: ArrayLike) -> float:
        return float(self.pointwise(lhs, rhs))


class MetricRegistry:
    """Minimal registry for runtime-selectable metrics."""

    def __init__(self) -> None:
        self._metrics: Dict[str, Metric] = {}

    def register(self, metric: Metric, *, overwrite: bool = False) -> None:
        name = metric.name.lower()
        if not overwrite and name in self._metrics:
            raise ValueError(f"Metric '{metric.name}' already registered.")
        self._metrics[name] = metric

    def get(self, name: str) -> Metric:
        key = name.lower()
        if key not in self._metrics:
            raise KeyError(f"Metric '{name}' not registered.")
        return self._metrics[key]

    def names(self) -> Tuple[str, ...]:
        return tuple(sorted(self._metrics.keys()))


def _ensure_2d(array: ArrayLike) -> np.ndarray:
    arr = np.asarray(array)
    if arr.ndim == 1:
        arr = arr[None, :]
    return arr


def _reduce_power(abs_diff: np.ndarray, power: float) -> np.ndarray:
    if math.isinf(power):
        if abs_diff.shape[-1] == 0:
            return np.zeros(abs_diff.shape[:-1], dtype=abs_diff.dtype)
        return np.max(abs_diff, axis=-1)
    if power == 1.0:
        return np.sum(abs_diff, axis=-1)
    if power == 2.0:
        return np.sqrt(np.sum(abs_diff * abs_diff, axis=-1))
    return np.power(np.sum(np.power(abs_diff, power), axis=-1), 1.0 / power)


def _minkowski_kernels(power: float) -> Tuple[PairwiseKernel, PointwiseKernel]:
    def pairwise(lhs: np.ndarray, rhs: np.ndarray) -> np.ndarray:
        if lhs.shape[0] == 0 or rhs.shape[0] == 0:
            dtype = np.result_type(lhs, rhs)
            return np.zeros((lhs.shape[0], rhs.shape[0]), dtype=dtype)
        diff = np.abs(lhs[:, None, :] - rhs[None, :, :])
        return _reduce_power(diff, power)

    def pointwise(lhs: np.ndarray, rhs: np.ndarray) -> np.ndarray:
        return _reduce_power(np.abs(lhs - rhs), power)

    return pairwise, pointwise


def minkowski_metric(power: float, *, name: str | None = None) -> Metric:
    """Build an L_p metric; ``power`` must be >= 1 for the triangle inequality to hold."""

    power = float(power)
    if math.isnan(power) or power < 1.0:
        raise ValueError(f"Minkowski power must be >= 1, got {power}.")
    pairwise, pointwise = _minkowski_kernels(power)
    label = name or ("chebyshev" if math.isinf(power) else f"minkowski_p{power:g}")
    return Metric(
        name=label,
        pairwise_kernel=pairwise,
        pointwise_kernel=pointwise,
        power=power,
    )


def _load_runtime_registry() -> MetricRegistry:
    registry = MetricRegistry()
    registry.register(minkowski_metric(2.0, name="euclidean"))
    registry.register(minkowski_metric(1.0, name="manhattan"))
    registry.register(minkowski_metric(math.inf, name="chebyshev"))
    return registry


_REGISTRY = _load_runtime_registry()


def get_metric(name: str | None = None) -> Metric:
    """Return a registered metric, defaulting to the runtime-selected metric."""

    if name is None:
        name = rx_config.runtime_config().metric
    return _REGISTRY.get(name)


def resolve_metric(metric: Metric | str | None) -> Metric:
    if isinstance(metric, Metric):
        return metric
    return get_metric(metric)


def register_metric(metric: Metric, *, overwrite: bool = False) -> None:
    """Make ``metric`` selectable by name (e.g. through ``RANGETREEX_METRIC``)."""

    _REGISTRY.register(metric, overwrite=overwrite)


def available_metrics() -> Tuple[str, ...]:
    return _REGISTRY.names()


__all__ = [
    "Metric",
    "MetricRegistry",
    "available_metrics",
    "get_metric",
    "minkowski_metric",
    "register_metric",
    "resolve_metric",
]
