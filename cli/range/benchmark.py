from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import numpy as np
from numpy.random import default_rng

from rangetreex.core.range import Range
from rangetreex.queries.range_search import RangeSearch, Results
from .datasets import gaussian_dataset


@dataclass(frozen=True)
class RangeBenchmarkResult:
    mode: str
    elapsed_seconds: float
    build_seconds: float
    queries: int
    hits: int
    queries_per_second: float
    base_cases: int
    prunes: int


def generate_points(
    *,
    dimension: int,
    reference_points: int,
    queries: int,
    seed: int,
) -> Tuple[np.ndarray, np.ndarray]:
    return gaussian_dataset(
        default_rng(seed),
        tree_points=reference_points,
        queries=queries,
        dimension=dimension,
        dtype=np.float64,
    )


def benchmark_range_search(
    mode: str,
    reference: np.ndarray,
    queries: np.ndarray,
    search_range: Range,
    *,
    tree_type: str | None = None,
    leaf_size: int | None = None,
) -> Tuple[RangeBenchmarkResult, Results]:
    """Build a searcher for ``mode`` and time one search over ``queries``."""

    start = time.perf_counter()
    search = RangeSearch(
        reference,
        naive=mode == "naive",
        single_mode=mode == "single",
        tree_type=tree_type,
        leaf_size=leaf_size,
    )
    build_seconds = time.perf_counter() - start
    try:
        start = time.perf_counter()
        results = search.search(queries, search_range)
        elapsed = time.perf_counter() - start
        stats = search.last_stats
    finally:
        search.close()

    query_count = int(queries.shape[0])
    qps = query_count / elapsed if elapsed > 0 else float("inf")
    hits = sum(len(row) for row in results[0])
    return (
        RangeBenchmarkResult(
            mode=mode,
            elapsed_seconds=elapsed,
            build_seconds=build_seconds,
            queries=query_count,
            hits=hits,
            queries_per_second=qps,
            base_cases=stats.base_cases if stats is not None else 0,
            prunes=stats.prunes if stats is not None else 0,
        ),
        results,
    )


def _as_sets(neighbors: Sequence[Sequence[int]]) -> List[frozenset]:
    return [frozenset(row) for row in neighbors]


def verify_against_naive(results: Dict[str, Results]) -> List[str]:
    """Return the modes whose neighbor sets differ from the naive answer."""

    if "naive" not in results:
        raise ValueError("Verification needs a naive run to compare against.")
    expected = _as_sets(results["naive"][0])
    mismatched: List[str] = []
    for mode, (neighbors, _) in results.items():
        if mode == "naive":
            continue
        if _as_sets(neighbors) != expected:
            mismatched.append(mode)
    return mismatched


__all__ = [
    "RangeBenchmarkResult",
    "benchmark_range_search",
    "generate_points",
    "verify_against_naive",
]
