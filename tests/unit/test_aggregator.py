"""Unit tests for OnlineAggregator.

Tests ensure:
- Running mean/stdev match a brute-force recomputation for every prefix
- Empty aggregators report zeros instead of NaN
- Merging per-worker aggregators matches sequential accumulation
"""

from __future__ import annotations

import random
import statistics

import pytest

from combat_simulator.metrics.aggregator import OnlineAggregator


class TestOnlineAggregatorAdd:
    """Tests for folding values one at a time."""

    def test_empty_reports_zero_mean_and_stdev(self) -> None:
        """No values yields (0, 0), not NaN."""
        assert OnlineAggregator().mean_and_std_dev() == (0.0, 0.0)

    def test_single_value_has_zero_stdev(self) -> None:
        agg = OnlineAggregator()
        agg.add(42.5)

        assert agg.count == 1
        assert agg.mean_and_std_dev() == (42.5, 0.0)

    def test_every_prefix_matches_population_statistics(self) -> None:
        """Mean and population stdev match brute force after each add."""
        rng = random.Random(1234)
        values = [rng.uniform(-500.0, 5000.0) for _ in range(200)]
        agg = OnlineAggregator()

        for i, value in enumerate(values, start=1):
            agg.add(value)
            mean, stdev = agg.mean_and_std_dev()
            prefix = values[:i]

            assert agg.count == i
            assert mean == pytest.approx(statistics.fmean(prefix), rel=1e-9, abs=1e-9)
            assert stdev == pytest.approx(statistics.pstdev(prefix), rel=1e-7, abs=1e-7)

    def test_large_offset_values_stay_precise(self) -> None:
        """Values with a huge common offset keep their small variance."""
        agg = OnlineAggregator()
        for value in (1e9 + 4, 1e9 + 7, 1e9 + 13, 1e9 + 16):
            agg.add(value)

        mean, stdev = agg.mean_and_std_dev()
        assert mean == pytest.approx(1e9 + 10)
        assert stdev == pytest.approx(statistics.pstdev([4, 7, 13, 16]))

    def test_known_example(self) -> None:
        agg = OnlineAggregator()
        for value in (2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0):
            agg.add(value)

        assert agg.mean_and_std_dev() == pytest.approx((5.0, 2.0))


class TestOnlineAggregatorMerge:
    """Tests for combining aggregators built by separate workers."""

    def test_merge_matches_sequential(self) -> None:
        rng = random.Random(99)
        left_values = [rng.gauss(300.0, 40.0) for _ in range(37)]
        right_values = [rng.gauss(320.0, 10.0) for _ in range(55)]

        sequential = OnlineAggregator()
        for value in left_values + right_values:
            sequential.add(value)

        left, right = OnlineAggregator(), OnlineAggregator()
        for value in left_values:
            left.add(value)
        for value in right_values:
            right.add(value)
        merged = left.merge(right)

        assert merged is left
        assert merged.count == sequential.count
        assert merged.mean_and_std_dev() == pytest.approx(sequential.mean_and_std_dev())

    def test_merge_with_empty_sides(self) -> None:
        filled = OnlineAggregator()
        for value in (1.0, 2.0, 3.0):
            filled.add(value)
        expected = filled.mean_and_std_dev()

        assert filled.merge(OnlineAggregator()).mean_and_std_dev() == expected

        empty = OnlineAggregator()
        empty.merge(filled)
        assert empty.count == 3
        assert empty.mean_and_std_dev() == pytest.approx(expected)
