from __future__ import annotations

from typing import List, Tuple

import numpy as np


def invert_permutation(old_from_new: np.ndarray) -> np.ndarray:
    """Return ``new_from_old`` such that ``new_from_old[old_from_new[i]] == i``."""

    perm = np.asarray(old_from_new, dtype=np.int64)
    inverse = np.empty_like(perm)
    inverse[perm] = np.arange(perm.shape[0], dtype=np.int64)
    return inverse


def remap_results(
    neighbors: List[List[int]],
    distances: List[List[float]],
    *,
    query_old_from_new: np.ndarray | None = None,
    reference_old_from_new: np.ndarray | None = None,
) -> Tuple[List[List[int]], List[List[float]]]:
    """Translate traversal output from tree slot order back to caller order.

    A result recorded for query slot ``i`` and reference slot ``j`` ends up in
    ``neighbors[query_old_from_new[i]]`` with value ``reference_old_from_new[j]``.
    Missing maps are treated as the identity; with neither map the inputs are
    returned unchanged.
    """

    if len(neighbors) != len(distances):
        raise ValueError("neighbors and distances must have the same number of rows.")
    if query_old_from_new is None and reference_old_from_new is None:
        return neighbors, distances

    num_queries = len(neighbors)
    if query_old_from_new is not None and len(query_old_from_new) != num_queries:
        raise ValueError(
            f"Query permutation covers {len(query_old_from_new)} slots, expected {num_queries}."
        )

    if reference_old_from_new is not None:
        reference_map = np.asarray(reference_old_from_new, dtype=np.int64)
        mapped_neighbors = [
            reference_map[np.asarray(row, dtype=np.int64)].tolist() if row else []
            for row in neighbors
        ]
    else:
        mapped_neighbors = [list(row) for row in neighbors]

    if query_old_from_new is None:
        return mapped_neighbors, [list(row) for row in distances]

    out_neighbors: List[List[int]] = [[] for _ in range(num_queries)]
    out_distances: List[List[float]] = [[] for _ in range(num_queries)]
    for slot, original in enumerate(np.asarray(query_old_from_new, dtype=np.int64).tolist()):
        out_neighbors[original] = mapped_neighbors[slot]
        out_distances[original] = list(distances[slot])
    return out_neighbors, out_distances


__all__ = ["invert_permutation", "remap_results"]
