from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Tuple

import numpy as np

from rangetreex.logging import get_logger

from .rules import NodeScore, RangeSearchRules

LOGGER = get_logger("algo.traverse")


@dataclass(frozen=True)
class TraversalStats:
    """Counters collected from the rule after a traversal."""

    mode: str
    base_cases: int
    scores: int
    prunes: int
    accepts: int

    @classmethod
    def from_rules(cls, mode: str, rules: RangeSearchRules) -> "TraversalStats":
        stats = rules.stats
        return cls(
            mode=mode,
            base_cases=stats.base_cases,
            scores=stats.scores,
            prunes=stats.prunes,
            accepts=stats.accepts,
        )


class NaiveTraverser:
    """Brute force: every (query, reference) pair exactly once, no pruning."""

    def __init__(self, rules: RangeSearchRules, *, block_size: int = 64) -> None:
        if block_size <= 0:
            raise ValueError(f"block_size must be positive, got {block_size}.")
        self.rules = rules
        self.block_size = int(block_size)

    def traverse(self, num_queries: int, num_references: int) -> None:
        if num_queries == 0 or num_references == 0:
            return
        references = np.arange(num_references, dtype=np.int64)
        for start in range(0, num_queries, self.block_size):
            stop = min(start + self.block_size, num_queries)
            self.rules.base_case_block(np.arange(start, stop, dtype=np.int64), references)


class SingleTreeTraverser:
    """Descend the reference tree once per query point."""

    def __init__(self, rules: RangeSearchRules) -> None:
        self.rules = rules

    def traverse(self, query_index: int, reference_root: Any) -> None:
        if reference_root.count == 0:
            return
        rules = self.rules
        query = [int(query_index)]
        stack: List[Any] = [reference_root]
        while stack:
            node = stack.pop()
            score = rules.score_point(query_index, node)
            if score is NodeScore.PRUNE:
                continue
            if score is NodeScore.ACCEPT or node.is_leaf:
                rules.base_case_block(query, node.indices)
                continue
            # children pushed in reverse so the left child is visited first
            stack.extend(reversed(node.children))


class DualTreeTraverser:
    """Simultaneous descent of the query and reference trees."""

    def __init__(self, rules: RangeSearchRules) -> None:
        self.rules = rules

    def traverse(self, query_root: Any, reference_root: Any) -> None:
        if query_root.count == 0 or reference_root.count == 0:
            return
        rules = self.rules
        stack: List[Tuple[Any, Any]] = [(query_root, reference_root)]
        while stack:
            query_node, reference_node = stack.pop()
            score = rules.score_nodes(query_node, reference_node)
            if score is NodeScore.PRUNE:
                continue
            if score is NodeScore.ACCEPT or (query_node.is_leaf and reference_node.is_leaf):
                rules.base_case_block(query_node.indices, reference_node.indices)
                continue
            query_children = (query_node,) if query_node.is_leaf else query_node.children
            reference_children = (
                (reference_node,) if reference_node.is_leaf else reference_node.children
            )
            for query_child in reversed(query_children):
                for reference_child in reversed(reference_children):
                    stack.append((query_child, reference_child))


def naive_traverse(rules: RangeSearchRules, *, block_size: int = 64) -> TraversalStats:
    NaiveTraverser(rules, block_size=block_size).traverse(
        int(rules.query_set.shape[0]), int(rules.reference_set.shape[0])
    )
    stats = TraversalStats.from_rules("naive", rules)
    LOGGER.debug("Naive traversal finished: %s", stats)
    return stats


def single_tree_traverse(rules: RangeSearchRules, reference_tree: Any) -> TraversalStats:
    for query_index in range(int(rules.query_set.shape[0])):
        reference_tree.single_tree_traverse(query_index, rules)
    stats = TraversalStats.from_rules("single", rules)
    LOGGER.debug("Single-tree traversal finished: %s", stats)
    return stats


def dual_tree_traverse(rules: RangeSearchRules, query_tree: Any, reference_tree: Any) -> TraversalStats:
    reference_tree.dual_tree_traverse(query_tree, rules)
    stats = TraversalStats.from_rules("dual", rules)
    LOGGER.debug("Dual-tree traversal finished: %s", stats)
    return stats


__all__ = [
    "DualTreeTraverser",
    "NaiveTraverser",
    "SingleTreeTraverser",
    "TraversalStats",
    "dual_tree_traverse",
    "naive_traverse",
    "single_tree_traverse",
]
