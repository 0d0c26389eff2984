"""rangetreex: tree-accelerated range search over metric spaces.

Quick Start
-----------
>>> import numpy as np
>>> from rangetreex import RangeSearch, Range
>>>
>>> reference = np.random.randn(10000, 3)
>>> queries = np.random.randn(100, 3)
>>> search = RangeSearch(reference)
>>> neighbors, distances = search.search(queries, Range(0.0, 0.5))

Self search
-----------
>>> neighbors, distances = search.search_self(Range(0.1, 0.3))

Classes
-------
RangeSearch : Naive, single-tree and dual-tree range search orchestrator.
RangeSearcher : Runtime-aware façade with ``fit``/``query``/``query_self``.
Range : Closed distance interval ``[lo, hi]``.
KDTree, BallTree : Reference/query trees.
Runtime : Declarative configuration overrides.
"""

from importlib.metadata import version as _pkg_version

try:
    __version__ = _pkg_version("rangetreex")
except Exception:  # pragma: no cover - best effort during local development
    __version__ = "0.1.0"

from .api import RangeSearcher, Runtime
from .algo import invert_permutation, remap_results
from .core import (
    BallTree,
    KDTree,
    Metric,
    Range,
    available_metrics,
    available_tree_types,
    build_tree,
    get_metric,
)
from .errors import InvalidConfigurationError
from .queries import RangeSearch

__all__ = [
    "__version__",
    "RangeSearch",
    "RangeSearcher",
    "Runtime",
    "Range",
    "KDTree",
    "BallTree",
    "Metric",
    "InvalidConfigurationError",
    "available_metrics",
    "available_tree_types",
    "build_tree",
    "get_metric",
    "invert_permutation",
    "remap_results",
]
