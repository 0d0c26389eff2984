from __future__ import annotations

from typing import Any, Dict, List, Tuple

import numpy as np

from rangetreex import config as rx_config
from rangetreex.algo.remap import remap_results
from rangetreex.algo.rules import RangeSearchRules
from rangetreex.algo.traverse import (
    TraversalStats,
    dual_tree_traverse,
    naive_traverse,
    single_tree_traverse,
)
from rangetreex.core.metrics import Metric, resolve_metric
from rangetreex.core.range import Range
from rangetreex.core.tree import SpatialTree, build_tree
from rangetreex.diagnostics import log_operation
from rangetreex.errors import InvalidConfigurationError
from rangetreex.logging import get_logger

LOGGER = get_logger("queries.range_search")

Results = Tuple[List[List[int]], List[List[float]]]


def _ensure_points(value: Any, dtype: str) -> np.ndarray:
    arr = np.asarray(value, dtype=dtype)
    if arr.ndim == 0:
        arr = arr.reshape(1, 1)
    elif arr.ndim == 1:
        length = int(arr.shape[0])
        arr = arr.reshape(0, 0) if length == 0 else arr.reshape(1, length)
    if arr.ndim != 2:
        raise ValueError(f"Expected a 2-D point matrix, got shape {arr.shape}.")
    return arr


def _empty_results(count: int) -> Results:
    return [[] for _ in range(count)], [[] for _ in range(count)]


def _count_hits(neighbors: List[List[int]]) -> int:
    return sum(len(row) for row in neighbors)


class RangeSearch:
    """Range search over a fixed reference set.

    Naive mode keeps the raw reference matrix and compares every pair.
    Otherwise a reference tree is built once (``tree_owner`` is then true) and
    each call runs either a single-tree descent per query point or a dual-tree
    descent against a per-call query tree. Results always come back in the
    caller's indexing when this object built the tree; a tree passed to
    :meth:`from_tree` is borrowed, never released, and its slot order is
    reported as-is.
    """

    def __init__(
        self,
        reference_set: Any,
        *,
        naive: bool = False,
        single_mode: bool = False,
        metric: Metric | str | None = None,
        tree_type: str | None = None,
        leaf_size: int | None = None,
    ) -> None:
        runtime = rx_config.runtime_config()
        self._naive = bool(naive)
        self._single_mode = bool(single_mode) and not self._naive
        self._leaf_size = leaf_size
        self._closed = False
        self._last_stats: TraversalStats | None = None

        if self._naive:
            self._metric = resolve_metric(metric)
            self._reference_set: np.ndarray | None = _ensure_points(
                reference_set, runtime.precision
            )
            self._reference_tree: SpatialTree | None = None
            self._reference_map: np.ndarray | None = None
            self._tree_owner = False
            self._tree_type: str | None = None
        else:
            tree, old_from_new = build_tree(
                reference_set,
                tree_type=tree_type,
                metric=metric,
                leaf_size=leaf_size,
            )
            self._adopt_tree(tree, owner=True)
            self._reference_map = old_from_new

        LOGGER.debug("Constructed %r", self)

    @classmethod
    def from_tree(cls, reference_tree: SpatialTree, *, single_mode: bool = False) -> "RangeSearch":
        """Search a tree built elsewhere; the caller keeps ownership of it."""

        if reference_tree.closed:
            raise RuntimeError("Cannot search a tree that has been closed.")
        search = cls.__new__(cls)
        search._naive = False
        search._single_mode = bool(single_mode)
        search._leaf_size = getattr(reference_tree, "leaf_size", None)
        search._closed = False
        search._last_stats = None
        search._adopt_tree(reference_tree, owner=False)
        search._reference_map = None
        LOGGER.debug("Constructed %r", search)
        return search

    def _adopt_tree(self, tree: SpatialTree, *, owner: bool) -> None:
        self._reference_tree = tree
        self._reference_set = tree.dataset()
        self._metric = tree.metric
        self._tree_owner = owner
        self._tree_type = getattr(tree, "name", type(tree).__name__.lower())

    # ------------------------------------------------------------------
    # properties

    @property
    def naive(self) -> bool:
        return self._naive

    @property
    def single_mode(self) -> bool:
        return self._single_mode

    @property
    def tree_owner(self) -> bool:
        return self._tree_owner

    @property
    def reference_tree(self) -> SpatialTree | None:
        return self._reference_tree

    @property
    def reference_set(self) -> np.ndarray:
        """Reference matrix in the order traversals see it (tree slot order when rearranged)."""

        self._require_open()
        if self._reference_set is None:
            raise RuntimeError("RangeSearch holds no reference set.")
        return self._reference_set

    @property
    def metric(self) -> Metric:
        return self._metric

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def last_stats(self) -> TraversalStats | None:
        return self._last_stats

    @property
    def mode(self) -> str:
        if self._naive:
            return "naive"
        return "single" if self._single_mode else "dual"

    # ------------------------------------------------------------------
    # searches

    def search(self, query_set: Any, search_range: Range | Tuple[float, float]) -> Results:
        """Find every reference point within ``search_range`` of each query point."""

        self._require_open()
        interval = Range.coerce(search_range)
        runtime = rx_config.runtime_config()
        queries = _ensure_points(query_set, runtime.precision)
        self._check_dimension(queries.shape[0], queries.shape[1])

        with log_operation(LOGGER, "range_search") as op_log:
            neighbors, distances = self._search_points(queries, interval, runtime)
            if op_log is not None:
                self._record(op_log, queries.shape[0], interval, neighbors)
        return neighbors, distances

    def search_tree(
        self,
        query_tree: SpatialTree,
        search_range: Range | Tuple[float, float],
    ) -> Results:
        """Dual-tree search with a caller-built query tree.

        Neighbor lists are indexed by the query tree's slots; only reference
        indices are mapped back to the caller's order.
        """

        self._require_open()
        if self._naive or self._single_mode:
            raise InvalidConfigurationError(
                "search_tree() requires dual-tree mode; construct RangeSearch without "
                "naive or single_mode to pass a query tree."
            )
        if query_tree.closed:
            raise RuntimeError("Cannot search with a query tree that has been closed.")
        if self._reference_tree is None:
            raise RuntimeError("RangeSearch holds no reference tree.")
        if type(query_tree) is not type(self._reference_tree):
            raise InvalidConfigurationError(
                f"Query tree type {type(query_tree).__name__} does not match reference "
                f"tree type {type(self._reference_tree).__name__}."
            )
        if query_tree.metric.name != self._metric.name:
            raise InvalidConfigurationError(
                f"Query tree metric '{query_tree.metric.name}' does not match reference "
                f"metric '{self._metric.name}'."
            )
        interval = Range.coerce(search_range)
        runtime = rx_config.runtime_config()
        num_queries = query_tree.num_points
        if num_queries:
            self._check_dimension(num_queries, query_tree.dimension)

        with log_operation(LOGGER, "range_search") as op_log:
            neighbors, distances = _empty_results(num_queries)
            rules = self._make_rules(query_tree.dataset(), interval, neighbors, distances, runtime)
            self._last_stats = dual_tree_traverse(rules, query_tree, self._reference_tree)
            neighbors, distances = remap_results(
                neighbors,
                distances,
                reference_old_from_new=self._owned_reference_map(),
            )
            if op_log is not None:
                self._record(op_log, num_queries, interval, neighbors)
        return neighbors, distances

    def search_self(self, search_range: Range | Tuple[float, float]) -> Results:
        """Search the reference set against itself, never reporting a point as its own neighbor."""

        self._require_open()
        interval = Range.coerce(search_range)
        runtime = rx_config.runtime_config()
        references = self.reference_set
        num_points = int(references.shape[0])

        with log_operation(LOGGER, "range_search_self") as op_log:
            neighbors, distances = _empty_results(num_points)
            reference_map = self._reference_map if self._reference_tree is not None else None
            rules = self._make_rules(
                references,
                interval,
                neighbors,
                distances,
                runtime,
                same_set=True,
                query_old_from_new=reference_map,
            )
            if self._naive:
                self._last_stats = naive_traverse(rules, block_size=runtime.naive_block_size)
            elif self._single_mode:
                self._last_stats = single_tree_traverse(rules, self._reference_tree)
            else:
                self._last_stats = dual_tree_traverse(
                    rules, self._reference_tree, self._reference_tree
                )
            owned_map = self._owned_reference_map()
            neighbors, distances = remap_results(
                neighbors,
                distances,
                query_old_from_new=owned_map,
                reference_old_from_new=owned_map,
            )
            if op_log is not None:
                self._record(op_log, num_points, interval, neighbors)
        return neighbors, distances

    def _search_points(self, queries: np.ndarray, interval: Range, runtime: rx_config.RuntimeConfig) -> Results:
        num_queries = int(queries.shape[0])
        neighbors, distances = _empty_results(num_queries)
        if num_queries == 0:
            self._last_stats = TraversalStats(self.mode, 0, 0, 0, 0)
            return neighbors, distances

        if self._naive:
            rules = self._make_rules(queries, interval, neighbors, distances, runtime)
            self._last_stats = naive_traverse(rules, block_size=runtime.naive_block_size)
            return neighbors, distances

        if self._single_mode:
            rules = self._make_rules(queries, interval, neighbors, distances, runtime)
            self._last_stats = single_tree_traverse(rules, self._reference_tree)
            return remap_results(
                neighbors,
                distances,
                reference_old_from_new=self._owned_reference_map(),
            )

        query_tree, query_map = build_tree(
            queries,
            tree_type=self._tree_type,
            metric=self._metric,
            leaf_size=self._leaf_size,
        )
        try:
            rules = self._make_rules(
                query_tree.dataset(), interval, neighbors, distances, runtime
            )
            self._last_stats = dual_tree_traverse(rules, query_tree, self._reference_tree)
        finally:
            query_tree.close()
        return remap_results(
            neighbors,
            distances,
            query_old_from_new=query_map,
            reference_old_from_new=self._owned_reference_map(),
        )

    # ------------------------------------------------------------------
    # helpers

    def _make_rules(
        self,
        query_set: np.ndarray,
        interval: Range,
        neighbors: List[List[int]],
        distances: List[List[float]],
        runtime: rx_config.RuntimeConfig,
        *,
        same_set: bool = False,
        query_old_from_new: np.ndarray | None = None,
    ) -> RangeSearchRules:
        return RangeSearchRules(
            self.reference_set,
            query_set,
            interval,
            neighbors,
            distances,
            self._metric,
            same_set=same_set,
            query_old_from_new=query_old_from_new,
            reference_old_from_new=query_old_from_new if same_set else None,
            accept_all=runtime.accept_all,
            use_numba=runtime.enable_numba,
        )

    def _owned_reference_map(self) -> np.ndarray | None:
        if not self._tree_owner or self._reference_tree is None:
            return None
        if not self._reference_tree.rearranges_dataset:
            return None
        return self._reference_map

    def _check_dimension(self, num_queries: int, dimension: int) -> None:
        references = self.reference_set
        if num_queries == 0 or references.shape[0] == 0:
            return
        if int(dimension) != int(references.shape[1]):
            raise ValueError(
                f"Query dimension {dimension} does not match reference dimension "
                f"{references.shape[1]}."
            )

    def _record(self, op_log: Any, num_queries: int, interval: Range, neighbors: List[List[int]]) -> None:
        stats = self._last_stats
        op_log.add_metadata(
            mode=self.mode,
            queries=num_queries,
            references=int(self.reference_set.shape[0]),
            lo=interval.lo,
            hi=interval.hi,
            hits=_count_hits(neighbors),
            base_cases=stats.base_cases if stats is not None else 0,
            prunes=stats.prunes if stats is not None else 0,
        )

    def _require_open(self) -> None:
        if self._closed:
            raise RuntimeError("RangeSearch has been closed.")

    # ------------------------------------------------------------------
    # lifecycle

    def close(self) -> None:
        """Release an owned reference tree. Borrowed trees are left alone."""

        if self._closed:
            return
        if self._tree_owner and self._reference_tree is not None:
            self._reference_tree.close()
        self._reference_tree = None
        self._reference_set = None
        self._reference_map = None
        self._closed = True

    def __enter__(self) -> "RangeSearch":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def describe(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "naive": self._naive,
            "single_mode": self._single_mode,
            "tree_owner": self._tree_owner,
            "tree_type": self._tree_type,
            "metric": self._metric.name,
            "reference_points": None if self._closed else int(self.reference_set.shape[0]),
            "closed": self._closed,
        }

    def __repr__(self) -> str:
        fields = ", ".join(f"{key}={value}" for key, value in self.describe().items())
        return f"RangeSearch({fields})"


__all__ = ["RangeSearch", "Results"]
