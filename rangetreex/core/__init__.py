"""Core data structures: metrics, distance intervals, bounds and trees."""

from .bounds import BallBound, HRectBound
from .metrics import (
    Metric,
    MetricRegistry,
    available_metrics,
    get_metric,
    minkowski_metric,
    register_metric,
    resolve_metric,
)
from .range import Range
from .tree import (
    BallTree,
    BinarySpaceTree,
    KDTree,
    SpatialTree,
    TreeNode,
    available_tree_types,
    build_tree,
)

__all__ = [
    "BallBound",
    "HRectBound",
    "Metric",
    "MetricRegistry",
    "available_metrics",
    "get_metric",
    "minkowski_metric",
    "register_metric",
    "resolve_metric",
    "Range",
    "BallTree",
    "BinarySpaceTree",
    "KDTree",
    "SpatialTree",
    "TreeNode",
    "available_tree_types",
    "build_tree",
]
