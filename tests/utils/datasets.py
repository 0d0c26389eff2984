from __future__ import annotations

import numpy as np

from cli.range.datasets import gaussian_dataset, gaussian_points

Array = np.ndarray

__all__ = ["brute_force_range", "gaussian_dataset", "gaussian_points"]


def brute_force_range(
    queries: Array,
    references: Array,
    lo: float,
    hi: float,
) -> list[set[int]]:
    """Reference answer: Euclidean neighbors of each query inside ``[lo, hi]``."""

    diff = queries[:, None, :] - references[None, :, :]
    dists = np.sqrt(np.sum(diff * diff, axis=2, dtype=np.float64))
    mask = (dists >= lo) & (dists <= hi)
    return [set(np.flatnonzero(row).tolist()) for row in mask]
