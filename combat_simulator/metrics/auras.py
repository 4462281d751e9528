"""Buff/debuff uptime and proc tracking."""

from __future__ import annotations

from dataclasses import dataclass, field

from combat_simulator.metrics.actions import ActionID
from combat_simulator.metrics.aggregator import OnlineAggregator
from combat_simulator.metrics.report import AuraReport


@dataclass
class AuraMetrics:
    """Uptime distribution and average proc count of one aura."""

    action_id: ActionID

    # Current iteration.
    uptime: float = 0.0  # seconds
    procs: int = 0

    # Whole run.
    aggregator: OnlineAggregator = field(default_factory=OnlineAggregator)
    procs_sum: int = 0

    def add_uptime(self, seconds: float) -> None:
        self.uptime += seconds

    def add_procs(self, count: int = 1) -> None:
        self.procs += count

    def reset(self) -> None:
        self.uptime = 0.0
        self.procs = 0

    def done_iteration(self) -> None:
        self.aggregator.add(self.uptime)
        self.procs_sum += self.procs

    def add_idle_iterations(self, count: int) -> None:
        """Count iterations that ran before this aura was first seen.

        Each contributes 0 uptime and 0 procs.
        """
        if count > 0:
            self.aggregator.merge(OnlineAggregator(count=count))

    def merge(self, other: AuraMetrics) -> None:
        self.aggregator.merge(other.aggregator)
        self.procs_sum += other.procs_sum

    def to_report(self) -> AuraReport:
        mean, stdev = self.aggregator.mean_and_std_dev()
        n = self.aggregator.count
        return AuraReport(
            id=self.action_id.to_report(),
            uptime_seconds_avg=mean,
            uptime_seconds_stdev=stdev,
            procs_avg=self.procs_sum / n if n > 0 else 0.0,
        )
