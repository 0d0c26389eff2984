from __future__ import annotations

from .app import RangeCLIOptions, main, run_range
from .benchmark import RangeBenchmarkResult, benchmark_range_search, verify_against_naive

__all__ = [
    "RangeBenchmarkResult",
    "RangeCLIOptions",
    "benchmark_range_search",
    "main",
    "run_range",
    "verify_against_naive",
]
