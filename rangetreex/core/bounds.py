from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from rangetreex.core.metrics import Metric


def _combine_gaps(gaps: np.ndarray, power: float) -> float:
    if gaps.size == 0:
        return 0.0
    if math.isinf(power):
        return float(np.max(gaps))
    if power == 1.0:
        return float(np.sum(gaps))
    if power == 2.0:
        return float(np.sqrt(np.sum(gaps * gaps)))
    return float(np.power(np.sum(np.power(gaps, power)), 1.0 / power))


@dataclass(frozen=True)
class HRectBound:
    """Axis-aligned bounding box under an L_p metric."""

    lo: np.ndarray
    hi: np.ndarray
    metric: Metric

    def __post_init__(self) -> None:
        if not self.metric.is_minkowski:
            raise ValueError(
                f"Hyper-rectangle bounds require a Minkowski metric, got '{self.metric.name}'."
            )

    @classmethod
    def from_points(cls, points: np.ndarray, metric: Metric) -> "HRectBound":
        if points.shape[0] == 0:
            zeros = np.zeros(points.shape[1], dtype=np.float64)
            return cls(lo=zeros, hi=zeros.copy(), metric=metric)
        return cls(
            lo=np.min(points, axis=0).astype(np.float64),
            hi=np.max(points, axis=0).astype(np.float64),
            metric=metric,
        )

    @property
    def power(self) -> float:
        return float(self.metric.power)  # type: ignore[arg-type]

    def range_distance_point(self, point: np.ndarray) -> Tuple[float, float]:
        point = np.asarray(point, dtype=np.float64)
        below = self.lo - point
        above = point - self.hi
        lower_gaps = np.maximum(below, 0.0) + np.maximum(above, 0.0)
        upper_gaps = np.maximum(np.abs(point - self.lo), np.abs(point - self.hi))
        return _combine_gaps(lower_gaps, self.power), _combine_gaps(upper_gaps, self.power)

    def range_distance_bound(self, other: "HRectBound") -> Tuple[float, float]:
        lower_gaps = np.maximum(other.lo - self.hi, 0.0) + np.maximum(self.lo - other.hi, 0.0)
        upper_gaps = np.maximum(other.hi - self.lo, self.hi - other.lo)
        return _combine_gaps(lower_gaps, self.power), _combine_gaps(upper_gaps, self.power)


# Relative slack on ball bounds: the triangle inequality is tight on collinear
# points and must survive rounding in every distance that feeds it.
_BALL_SLACK = 16.0 * float(np.finfo(np.float64).eps)


def _widen(dist: float, spread: float) -> Tuple[float, float]:
    slack = _BALL_SLACK * (dist + spread)
    return max(dist - spread - slack, 0.0), dist + spread + slack


@dataclass(frozen=True)
class BallBound:
    """Ball bound: every contained point lies within ``radius`` of ``center``.

    Distances to other balls follow from the triangle inequality, so any
    metric works.
    """

    center: np.ndarray
    radius: float
    metric: Metric

    @classmethod
    def from_points(cls, points: np.ndarray, metric: Metric) -> "BallBound":
        if points.shape[0] == 0:
            return cls(center=np.zeros(points.shape[1], dtype=np.float64), radius=0.0, metric=metric)
        center = np.mean(points, axis=0, dtype=np.float64)
        radius = float(np.max(metric.pairwise(center[None, :], points)))
        return cls(center=center, radius=radius, metric=metric)

    def range_distance_point(self, point: np.ndarray) -> Tuple[float, float]:
        dist = self.metric.distance(self.center, np.asarray(point, dtype=np.float64))
        return _widen(dist, self.radius)

    def range_distance_bound(self, other: "BallBound") -> Tuple[float, float]:
        dist = self.metric.distance(self.center, other.center)
        return _widen(dist, self.radius + other.radius)


__all__ = ["BallBound", "HRectBound"]
