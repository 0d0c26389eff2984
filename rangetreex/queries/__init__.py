"""Query front-ends built on the traversal rules."""

from .range_search import RangeSearch, Results

__all__ = ["RangeSearch", "Results"]
