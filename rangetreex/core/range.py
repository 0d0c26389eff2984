from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence


@dataclass(frozen=True)
class Range:
    """Closed distance interval ``[lo, hi]`` with ``0 <= lo <= hi``.

    ``hi`` may be ``math.inf``. Malformed intervals are rejected rather than
    silently swapped.
    """

    lo: float = 0.0
    hi: float = math.inf

    def __post_init__(self) -> None:
        lo = float(self.lo)
        hi = float(self.hi)
        if math.isnan(lo) or math.isnan(hi):
            raise ValueError("Range bounds must not be NaN.")
        if lo < 0.0:
            raise ValueError(f"Range lower bound must be non-negative, got {lo}.")
        if lo > hi:
            raise ValueError(f"Range lower bound {lo} exceeds upper bound {hi}.")
        object.__setattr__(self, "lo", lo)
        object.__setattr__(self, "hi", hi)

    @classmethod
    def coerce(cls, value: "Range | Sequence[float] | Any") -> "Range":
        if isinstance(value, Range):
            return value
        try:
            lo, hi = value
        except (TypeError, ValueError) as exc:
            raise ValueError(
                f"Expected a Range or a (lo, hi) pair, got {value!r}."
            ) from exc
        return cls(lo, hi)

    @property
    def width(self) -> float:
        return self.hi - self.lo

    def contains(self, distance: float) -> bool:
        return self.lo <= distance <= self.hi

    def contains_interval(self, lower: float, upper: float) -> bool:
        """True when every distance in ``[lower, upper]`` lies inside this range."""

        return self.lo <= lower and upper <= self.hi

    def disjoint_from(self, lower: float, upper: float) -> bool:
        """True when no distance in ``[lower, upper]`` can lie inside this range."""

        return upper < self.lo or lower > self.hi

    def __iter__(self):
        yield self.lo
        yield self.hi


__all__ = ["Range"]
