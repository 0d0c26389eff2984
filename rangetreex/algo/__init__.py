"""Traversal rules, traversal drivers and result remapping for range search."""

from .remap import invert_permutation, remap_results
from .rules import NodeScore, RangeSearchRules, RuleStats
from .traverse import (
    DualTreeTraverser,
    NaiveTraverser,
    SingleTreeTraverser,
    TraversalStats,
    dual_tree_traverse,
    naive_traverse,
    single_tree_traverse,
)

__all__ = [
    "invert_permutation",
    "remap_results",
    "NodeScore",
    "RangeSearchRules",
    "RuleStats",
    "DualTreeTraverser",
    "NaiveTraverser",
    "SingleTreeTraverser",
    "TraversalStats",
    "dual_tree_traverse",
    "naive_traverse",
    "single_tree_traverse",
]
