from __future__ import annotations

import math

import numba as nb
import numpy as np


@nb.njit(cache=True)
def _euclidean_block_kernel(lhs: np.ndarray, rhs: np.ndarray, out: np.ndarray) -> None:
    num_lhs = lhs.shape[0]
    num_rhs = rhs.shape[0]
    dim = lhs.shape[1]
    for i in range(num_lhs):
        for j in range(num_rhs):
            acc = 0.0
            for d in range(dim):
                diff = lhs[i, d] - rhs[j, d]
                acc += diff * diff
            out[i, j] = math.sqrt(acc)


def euclidean_distance_block(lhs: np.ndarray, rhs: np.ndarray) -> np.ndarray:
    """Dense Euclidean distances between two float64 blocks."""

    lhs_arr = np.ascontiguousarray(lhs, dtype=np.float64)
    rhs_arr = np.ascontiguousarray(rhs, dtype=np.float64)
    out = np.empty((lhs_arr.shape[0], rhs_arr.shape[0]), dtype=np.float64)
    if out.size:
        _euclidean_block_kernel(lhs_arr, rhs_arr, out)
    return out


__all__ = ["euclidean_distance_block"]
