"""Resource gain/spend tracking with per-iteration checkpoints."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from combat_simulator.metrics.actions import ActionID
from combat_simulator.metrics.report import ResourceReport


class ResourceType(str, Enum):
    """Kinds of depletable or regenerating combatant resources."""

    HEALTH = "health"
    MANA = "mana"
    RAGE = "rage"
    ENERGY = "energy"
    COMBO_POINTS = "combo_points"
    FOCUS = "focus"


@dataclass
class ResourceMetrics:
    """Cumulative resource events of one (action, resource type) pair.

    Totals are never cleared. ``reset`` moves a checkpoint instead, so
    events recorded by one-off setup logic before the first tracked
    iteration can be excluded from per-iteration queries.

    Example:
        >>> metrics = ResourceMetrics(ActionID(spell_id=1), ResourceType.MANA)
        >>> metrics.add_event(10, 8)
        >>> metrics.reset()
        >>> metrics.add_event(2, 2)
        >>> metrics.events_for_current_iteration(), metrics.actual_gain_for_current_iteration()
        (1, 2.0)
    """

    action_id: ActionID
    type: ResourceType

    events: int = 0
    gain: float = 0.0
    actual_gain: float = 0.0

    events_from_previous_iterations: int = 0
    actual_gain_from_previous_iterations: float = 0.0

    # Recorded before the first tracked iteration; left out of the report.
    setup_events: int = 0
    setup_gain: float = 0.0
    setup_actual_gain: float = 0.0

    def add_event(self, gain: float, actual_gain: float) -> None:
        """Record one gain (negative for a cost paid)."""
        self.events += 1
        self.gain += gain
        self.actual_gain += actual_gain

    def reset(self) -> None:
        """Checkpoint the current totals at an iteration boundary."""
        self.events_from_previous_iterations = self.events
        self.actual_gain_from_previous_iterations = self.actual_gain

    def end_setup(self) -> None:
        """Mark everything recorded so far as setup, excluded from the report."""
        self.setup_events = self.events
        self.setup_gain = self.gain
        self.setup_actual_gain = self.actual_gain

    def events_for_current_iteration(self) -> int:
        return self.events - self.events_from_previous_iterations

    def actual_gain_for_current_iteration(self) -> float:
        return self.actual_gain - self.actual_gain_from_previous_iterations

    def merge(self, other: ResourceMetrics) -> None:
        self.events += other.events
        self.gain += other.gain
        self.actual_gain += other.actual_gain
        self.events_from_previous_iterations += other.events_from_previous_iterations
        self.actual_gain_from_previous_iterations += other.actual_gain_from_previous_iterations
        self.setup_events += other.setup_events
        self.setup_gain += other.setup_gain
        self.setup_actual_gain += other.setup_actual_gain

    def to_report(self) -> ResourceReport:
        return ResourceReport(
            id=self.action_id.to_report(),
            type=ResourceType(self.type).value,
            events=self.events - self.setup_events,
            gain=self.gain - self.setup_gain,
            actual_gain=self.actual_gain - self.setup_actual_gain,
        )
