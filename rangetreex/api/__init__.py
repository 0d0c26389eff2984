"""Public ergonomic façade for rangetreex."""

from .runtime import Runtime
from .searcher import RangeSearcher

__all__ = [
    "RangeSearcher",
    "Runtime",
]
