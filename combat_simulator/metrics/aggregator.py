"""Online mean/variance aggregation.

Values are folded one at a time with Welford's update, so nothing but the
count, mean and sum of squared differences is ever stored.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass
class OnlineAggregator:
    """Running count, mean and population variance of a scalar stream.

    Attributes:
        count: Number of values added so far.
        mean: Arithmetic mean of the values added so far.
        m2: Sum of squared differences from the current mean.

    Example:
        >>> agg = OnlineAggregator()
        >>> for value in (2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0):
        ...     agg.add(value)
        >>> agg.mean_and_std_dev()
        (5.0, 2.0)
    """

    count: int = 0
    mean: float = 0.0
    m2: float = 0.0

    def add(self, value: float) -> None:
        """Fold one value into the running statistics."""
        self.count += 1
        delta = value - self.mean
        self.mean += delta / self.count
        self.m2 += delta * (value - self.mean)

    def mean_and_std_dev(self) -> tuple[float, float]:
        """Return (mean, population standard deviation).

        Both are 0.0 when nothing has been added.
        """
        if self.count == 0:
            return 0.0, 0.0
        return self.mean, math.sqrt(self.m2 / self.count)

    def merge(self, other: OnlineAggregator) -> OnlineAggregator:
        """Combine another aggregator into this one and return ``self``.

        Uses the pairwise update of Chan et al., so merging per-worker
        aggregators matches adding every value to a single one.
        """
        if other.count == 0:
            return self
        if self.count == 0:
            self.count, self.mean, self.m2 = other.count, other.mean, other.m2
            return self

        total = self.count + other.count
        delta = other.mean - self.mean
        self.mean += delta * other.count / total
        self.m2 += other.m2 + delta * delta * self.count * other.count / total
        self.count = total
        return self
