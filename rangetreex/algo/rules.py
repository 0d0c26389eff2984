from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, List, Sequence

import numpy as np

from rangetreex.core.metrics import Metric
from rangetreex.core.range import Range

from ._distance_numba import euclidean_distance_block


class NodeScore(IntEnum):
    """Outcome of scoring a (query, reference node) combination."""

    PRUNE = 0
    DEFER = 1
    ACCEPT = 2


@dataclass
class RuleStats:
    base_cases: int = 0
    scores: int = 0
    prunes: int = 0
    accepts: int = 0


def _as_index_array(indices: Any) -> np.ndarray:
    return np.atleast_1d(np.asarray(indices, dtype=np.int64))


class RangeSearchRules:
    """Base-case and pruning rules shared by every traversal strategy.

    ``neighbors``/``distances`` are written in whatever index space the
    supplied matrices use; remapping to caller order happens afterwards.
    When ``same_set`` is set, a pair is skipped if both slots denote the same
    original point, comparing through ``query_old_from_new`` and
    ``reference_old_from_new`` when those are provided.
    """

    def __init__(
        self,
        reference_set: np.ndarray,
        query_set: np.ndarray,
        search_range: Range,
        neighbors: List[List[int]],
        distances: List[List[float]],
        metric: Metric,
        *,
        same_set: bool = False,
        query_old_from_new: np.ndarray | None = None,
        reference_old_from_new: np.ndarray | None = None,
        accept_all: bool = True,
        use_numba: bool = False,
    ) -> None:
        if len(neighbors) != query_set.shape[0] or len(distances) != query_set.shape[0]:
            raise ValueError("Output buffers must hold one list per query point.")
        self.reference_set = reference_set
        self.query_set = query_set
        self.range = search_range
        self.neighbors = neighbors
        self.distances = distances
        self.metric = metric
        self.same_set = bool(same_set)
        self.query_old_from_new = query_old_from_new
        self.reference_old_from_new = reference_old_from_new
        self.accept_all = bool(accept_all)
        self.use_numba = bool(use_numba) and metric.name == "euclidean"
        self.stats = RuleStats()

    def _original_query(self, indices: np.ndarray) -> np.ndarray:
        if self.query_old_from_new is None:
            return indices
        return self.query_old_from_new[indices]

    def _original_reference(self, indices: np.ndarray) -> np.ndarray:
        if self.reference_old_from_new is None:
            return indices
        return self.reference_old_from_new[indices]

    def _block_distances(self, query_indices: np.ndarray, reference_indices: np.ndarray) -> np.ndarray:
        lhs = np.asarray(self.query_set[query_indices], dtype=np.float64)
        rhs = np.asarray(self.reference_set[reference_indices], dtype=np.float64)
        if self.use_numba:
            return euclidean_distance_block(lhs, rhs)
        return self.metric.pairwise(lhs, rhs)

    def base_case(self, query_index: int, reference_index: int) -> float:
        """Evaluate one pair and record it if it falls inside the range."""

        self.stats.base_cases += 1
        query_point = np.asarray(self.query_set[query_index], dtype=np.float64)
        reference_point = np.asarray(self.reference_set[reference_index], dtype=np.float64)
        distance = self.metric.distance(query_point, reference_point)
        if self.same_set:
            query_orig = self._original_query(np.asarray([query_index]))[0]
            reference_orig = self._original_reference(np.asarray([reference_index]))[0]
            if query_orig == reference_orig:
                return distance
        if self.range.contains(distance):
            self.neighbors[query_index].append(int(reference_index))
            self.distances[query_index].append(distance)
        return distance

    def base_case_block(self, query_indices: Sequence[int] | np.ndarray, reference_indices: Sequence[int] | np.ndarray) -> None:
        """Evaluate every pair in ``query_indices x reference_indices``."""

        q_idx = _as_index_array(query_indices)
        r_idx = _as_index_array(reference_indices)
        if q_idx.size == 0 or r_idx.size == 0:
            return
        self.stats.base_cases += int(q_idx.size * r_idx.size)

        block = self._block_distances(q_idx, r_idx)
        mask = (block >= self.range.lo) & (block <= self.range.hi)
        if self.same_set:
            q_orig = self._original_query(q_idx)
            r_orig = self._original_reference(r_idx)
            mask &= q_orig[:, None] != r_orig[None, :]

        rows, cols = np.nonzero(mask)
        if rows.size == 0:
            return
        # np.nonzero is row-major, so each query's hits are contiguous
        boundaries = np.flatnonzero(np.diff(rows)) + 1
        starts = np.concatenate(([0], boundaries))
        stops = np.concatenate((boundaries, [rows.size]))
        hit_refs = r_idx[cols]
        hit_dists = block[rows, cols]
        for start, stop in zip(starts.tolist(), stops.tolist()):
            query_index = int(q_idx[rows[start]])
            self.neighbors[query_index].extend(hit_refs[start:stop].tolist())
            self.distances[query_index].extend(hit_dists[start:stop].tolist())

    def _classify(self, lower: float, upper: float) -> NodeScore:
        self.stats.scores += 1
        if self.range.disjoint_from(lower, upper):
            self.stats.prunes += 1
            return NodeScore.PRUNE
        if self.accept_all and self.range.contains_interval(lower, upper):
            self.stats.accepts += 1
            return NodeScore.ACCEPT
        return NodeScore.DEFER

    def score_point(self, query_index: int, reference_node: Any) -> NodeScore:
        point = np.asarray(self.query_set[query_index], dtype=np.float64)
        lower, upper = reference_node.bound.range_distance_point(point)
        return self._classify(lower, upper)

    def score_nodes(self, query_node: Any, reference_node: Any) -> NodeScore:
        lower, upper = reference_node.bound.range_distance_bound(query_node.bound)
        return self._classify(lower, upper)


__all__ = ["NodeScore", "RangeSearchRules", "RuleStats"]
