"""Per-iteration distribution of one scalar rate (dps, hps, tmi, ...)."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from combat_simulator.metrics.aggregator import OnlineAggregator
from combat_simulator.metrics.report import DistributionReport

# Histogram buckets are rates rounded to the nearest multiple of this.
HISTOGRAM_BUCKET_WIDTH = 10


def histogram_bucket(rate: float) -> int:
    """Round a rate to its histogram bucket.

    Midpoints round away from zero: 25 -> 30, -25 -> -30.

    Example:
        >>> histogram_bucket(23.0), histogram_bucket(25.0)
        (20, 30)
    """
    scaled = abs(rate) / HISTOGRAM_BUCKET_WIDTH
    rounded = math.floor(scaled)
    # The fractional part is exact; adding 0.5 to scaled is not.
    if scaled - rounded >= 0.5:
        rounded += 1
    return int(math.copysign(rounded, rate)) * HISTOGRAM_BUCKET_WIDTH


@dataclass
class DistributionMetrics:
    """Distribution of a per-second rate across iterations.

    During an iteration callers add into ``total``. At the end of the
    iteration ``done_iteration`` divides it by the encounter duration and
    folds the resulting rate into the aggregate state. ``reset`` clears
    only ``total``.

    ``max`` is replaced on a strictly greater rate, so the first iteration
    reaching it keeps its seed. ``min`` is replaced on a lower or equal
    rate, so the last tying iteration's seed is recorded.

    Attributes:
        total: Iteration scratch accumulator.
        aggregator: Running mean/variance of per-iteration rates.
        max: Highest rate seen (0.0 until exceeded).
        max_seed: Seed of the iteration that produced ``max``.
        min: Lowest rate seen, valid once ``has_min`` is set.
        min_seed: Seed of the iteration that produced ``min``.
        histogram: Bucketed rate -> number of iterations.
        samples: Every rate, when raw values are being saved.
    """

    total: float = 0.0
    aggregator: OnlineAggregator = field(default_factory=OnlineAggregator)
    max: float = 0.0
    max_seed: int = 0
    min: float = 0.0
    min_seed: int = 0
    has_min: bool = False
    histogram: dict[int, int] = field(default_factory=dict)
    samples: list[float] = field(default_factory=list)

    def reset(self) -> None:
        """Clear the iteration scratch total."""
        self.total = 0.0

    def done_iteration(
        self,
        duration_seconds: float,
        seed: int,
        save_all_values: bool = False,
    ) -> float:
        """Fold the finished iteration's rate into the aggregate state.

        Args:
            duration_seconds: Encounter duration of the iteration.
            seed: RNG seed that reproduces the iteration.
            save_all_values: Keep the raw rate in ``samples``.

        Returns:
            The rate that was recorded.
        """
        rate = self.total / duration_seconds
        self.aggregator.add(rate)

        if save_all_values:
            self.samples.append(rate)

        if rate > self.max:
            self.max = rate
            self.max_seed = seed
        if rate <= self.min or not self.has_min:
            self.min = rate
            self.min_seed = seed
            self.has_min = True

        bucket = histogram_bucket(rate)
        self.histogram[bucket] = self.histogram.get(bucket, 0) + 1
        return rate

    @property
    def iterations(self) -> int:
        return self.aggregator.count

    def merge(self, other: DistributionMetrics) -> DistributionMetrics:
        """Combine a distribution built by another worker into this one.

        ``other``'s extremes win under the same rules ``done_iteration``
        applies, as if its iterations had run after ours.
        """
        self.aggregator.merge(other.aggregator)
        self.samples.extend(other.samples)
        for bucket, count in other.histogram.items():
            self.histogram[bucket] = self.histogram.get(bucket, 0) + count

        if other.max > self.max:
            self.max = other.max
            self.max_seed = other.max_seed
        if other.has_min and (not self.has_min or other.min <= self.min):
            self.min = other.min
            self.min_seed = other.min_seed
            self.has_min = True
        return self

    def to_report(self) -> DistributionReport:
        mean, stdev = self.aggregator.mean_and_std_dev()
        return DistributionReport(
            avg=mean,
            stdev=stdev,
            max=self.max,
            max_seed=self.max_seed,
            min=self.min,
            min_seed=self.min_seed,
            hist=dict(self.histogram),
            all_values=list(self.samples),
        )
