from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any

from rangetreex.api.runtime import Runtime
from rangetreex.core.range import Range
from rangetreex.queries.range_search import RangeSearch, Results


@dataclass(frozen=True)
class RangeSearcher:
    """Thin façade pairing a :class:`Runtime` with a fitted :class:`RangeSearch`."""

    runtime: Runtime = field(default_factory=Runtime)
    search: RangeSearch | None = None

    def fit(
        self,
        points: Any,
        *,
        naive: bool = False,
        single_mode: bool = False,
    ) -> "RangeSearcher":
        config = self.runtime.activate()
        fitted = RangeSearch(
            points,
            naive=naive,
            single_mode=single_mode,
            metric=config.metric,
            tree_type=config.tree_type,
            leaf_size=config.leaf_size,
        )
        return replace(self, search=fitted)

    def query(self, points: Any, lo: float = 0.0, hi: float = math.inf) -> Results:
        search = self._require_search()
        self.runtime.activate()
        return search.search(points, Range(lo, hi))

    def query_self(self, lo: float = 0.0, hi: float = math.inf) -> Results:
        search = self._require_search()
        self.runtime.activate()
        return search.search_self(Range(lo, hi))

    def close(self) -> None:
        if self.search is not None:
            self.search.close()

    def _require_search(self) -> RangeSearch:
        if self.search is None:
            raise ValueError("RangeSearcher requires a fitted index; call fit() first.")
        return self.search


__all__ = ["RangeSearcher"]
