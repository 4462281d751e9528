"""Per-combatant metrics and the iteration lifecycle.

A ``UnitMetrics`` owns every distribution, action, resource and aura
metric of one combatant. The scheduler drives it through::

    unit.reset()
    ...                      # add_spell_metrics, record_damage_taken, ...
    unit.done_iteration(duration_seconds, seed)

and ``to_report`` summarizes the run once all iterations are folded.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import NamedTuple

from combat_simulator.metrics.actions import (
    ActionID,
    ActionMetrics,
    SpellMetrics,
)
from combat_simulator.metrics.auras import AuraMetrics
from combat_simulator.metrics.distribution import DistributionMetrics
from combat_simulator.metrics.report import UnitReport
from combat_simulator.metrics.resources import ResourceMetrics, ResourceType
from combat_simulator.metrics.tmi import DEFAULT_TMI_BIN_SECONDS, TMIEvent, calculate_tmi

logger = logging.getLogger(__name__)

# Ceiling for an extrapolated time-to-OOM.
MAX_TIME_TO_OOM_SECONDS = 3600.0


class TargetRef(NamedTuple):
    """Non-owning handle to a unit an ability landed on.

    Attributes:
        metrics: The target's metrics, written to for damage taken.
        is_opponent: Whether the target is hostile to the acting unit.
    """

    metrics: UnitMetrics
    is_opponent: bool


@dataclass
class IterationScratch:
    """Per-iteration state of one unit; replaced wholesale on reset.

    Attributes:
        died: Whether the unit died this iteration.
        went_oom: Whether the unit ran out of mana at least once.
        mana_spent: Mana paid for abilities.
        mana_gained: Mana restored.
        oom_time: Seconds spent unable to cast, waiting for regen.
        first_oom_timestamp: When the unit first went OOM.
    """

    died: bool = False
    went_oom: bool = False
    mana_spent: float = 0.0
    mana_gained: float = 0.0
    oom_time: float = 0.0
    first_oom_timestamp: float = 0.0


def estimate_time_to_oom(
    duration_seconds: float,
    current_mana: float,
    mana_spent: float,
    mana_gained: float,
) -> float:
    """Extrapolate when a unit that never went OOM would have.

    Remaining mana is divided by the net spend rate observed over the
    encounter. The result is capped at one hour; a unit whose mana did
    not go down overall also reports one hour.
    """
    spend_per_second = (mana_spent - mana_gained) / duration_seconds
    if spend_per_second <= 0:
        return MAX_TIME_TO_OOM_SECONDS

    time_to_oom = min(
        duration_seconds + current_mana / spend_per_second,
        MAX_TIME_TO_OOM_SECONDS,
    )
    if time_to_oom < 0 or math.isnan(time_to_oom):
        return MAX_TIME_TO_OOM_SECONDS
    return time_to_oom


class UnitMetrics:
    """All metrics of one combatant across a run.

    Distributions:
        dps: damage dealt to opponents per second.
        dpasp: damage per attack/spell power per second.
        threat: threat generated per second.
        dtps: damage taken per second.
        tmi: burst-damage risk index (tanks only).
        hps: healing plus shielding done to allies per second.
        tto: seconds until out of mana (mana users only).

    Example:
        >>> tank = UnitMetrics("tank", 0, is_tanking=True, reference_health=1000.0)
        >>> boss = UnitMetrics("boss", 1)
        >>> tank.reset(); boss.reset()
        >>> boss.add_spell_metrics(
        ...     ActionID(other_id=1),
        ...     [SpellMetrics(casts=1, hits=1, total_damage=300.0)],
        ...     [TargetRef(tank, is_opponent=True)],
        ... )
        >>> boss.dps.total, tank.dtps.total
        (300.0, 300.0)
    """

    def __init__(
        self,
        name: str = "",
        unit_index: int = 0,
        has_mana_bar: bool = False,
        is_tanking: bool = False,
        tmi_bin_seconds: int = DEFAULT_TMI_BIN_SECONDS,
        reference_health: float = 1.0,
    ) -> None:
        self.name = name
        self.unit_index = unit_index
        self.has_mana_bar = has_mana_bar
        self.is_tanking = is_tanking
        self.tmi_bin_seconds = tmi_bin_seconds
        self.reference_health = reference_health

        self.dps = DistributionMetrics()
        self.dpasp = DistributionMetrics()
        self.threat = DistributionMetrics()
        self.dtps = DistributionMetrics()
        self.tmi = DistributionMetrics()
        self.hps = DistributionMetrics()
        self.tto = DistributionMetrics()

        # Current iteration
        self.scratch = IterationScratch()
        self.tmi_events: list[TMIEvent] = []

        # Whole run
        self.num_iters_dead = 0
        self.oom_time_sum = 0.0
        self.actions: dict[ActionID, ActionMetrics] = {}
        self.resources: list[ResourceMetrics] = []
        self._resource_index: dict[tuple[ActionID, ResourceType], ResourceMetrics] = {}
        self.auras: dict[ActionID, AuraMetrics] = {}
        self._setup_done = False

    def __repr__(self) -> str:
        return f"UnitMetrics(name={self.name!r}, unit_index={self.unit_index})"

    def distributions(self) -> dict[str, DistributionMetrics]:
        """Every tracked distribution, keyed by its report field name."""
        return {
            "dps": self.dps,
            "dpasp": self.dpasp,
            "threat": self.threat,
            "dtps": self.dtps,
            "tmi": self.tmi,
            "hps": self.hps,
            "tto": self.tto,
        }

    @property
    def iterations(self) -> int:
        return self.dps.iterations

    # ------------------------------------------------------------------
    # Get-or-create collections
    # ------------------------------------------------------------------

    def get_or_create_action(self, action_id: ActionID, is_melee: bool = False) -> ActionMetrics:
        action = self.actions.get(action_id)
        if action is None:
            action = ActionMetrics(is_melee=is_melee)
            self.actions[action_id] = action
            logger.debug("%s: tracking action %s", self.name, action_id)
        return action

    def new_resource_metrics(
        self, action_id: ActionID, resource_type: ResourceType
    ) -> ResourceMetrics:
        """Register a new resource metric for an action."""
        resource = ResourceMetrics(action_id, ResourceType(resource_type))
        self.resources.append(resource)
        self._resource_index[(action_id, resource.type)] = resource
        return resource

    def get_or_create_resource(
        self, action_id: ActionID, resource_type: ResourceType
    ) -> ResourceMetrics:
        resource = self._resource_index.get((action_id, ResourceType(resource_type)))
        if resource is None:
            resource = self.new_resource_metrics(action_id, resource_type)
        return resource

    def get_or_create_aura(self, action_id: ActionID) -> AuraMetrics:
        aura = self.auras.get(action_id)
        if aura is None:
            aura = AuraMetrics(action_id)
            aura.add_idle_iterations(self.iterations)
            self.auras[action_id] = aura
        return aura

    # ------------------------------------------------------------------
    # Recording during an iteration
    # ------------------------------------------------------------------

    def add_spell_metrics(
        self,
        action_id: ActionID,
        spell_metrics: Sequence[SpellMetrics],
        targets: Sequence[TargetRef],
        is_melee: bool = False,
    ) -> None:
        """Fold one ability resolution into this unit and its targets.

        ``spell_metrics[i]`` is the outcome against ``targets[i]``. Damage
        is also added to each target's damage taken. Against an opponent
        it counts as this unit's damage and threat; against an ally its
        healing and shielding count as this unit's healing.
        """
        action = self.get_or_create_action(action_id, is_melee)
        for tally, target in zip(spell_metrics, targets):
            action.for_target(target.metrics.unit_index).add(tally)

            target.metrics.dtps.total += tally.total_damage
            if target.is_opponent:
                self.dps.total += tally.total_damage
                self.threat.total += tally.total_threat
            else:
                self.hps.total += tally.total_healing + tally.total_shielding

    def add_tmi_event(self, timestamp: float, weighted_damage: float) -> None:
        """Log damage taken, already expressed as a fraction of health."""
        self.tmi_events.append(TMIEvent(timestamp, weighted_damage))

    def record_damage_taken(self, timestamp: float, amount: float) -> None:
        """Log damage taken for the TMI, weighted by the reference health."""
        self.add_tmi_event(timestamp, amount / self.reference_health)

    def add_mana_spent(self, amount: float) -> None:
        self.scratch.mana_spent += amount

    def add_mana_gained(self, amount: float) -> None:
        self.scratch.mana_gained += amount

    def update_dpasp(self, dpsp_seconds: float) -> None:
        # Stored as seconds * power so the per-second division recovers it.
        self.dpasp.total += dpsp_seconds

    def mark_died(self) -> None:
        self.scratch.died = True

    def mark_oom(self, timestamp: float) -> None:
        if not self.scratch.went_oom:
            self.scratch.went_oom = True
            self.scratch.first_oom_timestamp = timestamp

    def add_oom_time(self, timestamp: float, seconds: float) -> None:
        self.scratch.oom_time += seconds
        self.mark_oom(timestamp)

    def add_final_pet_metrics(self, pet: UnitMetrics) -> None:
        """Count a pet's damage as its owner's, before the owner folds."""
        self.dps.total += pet.dps.total

    # ------------------------------------------------------------------
    # Iteration boundaries
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Clear all iteration scratch state.

        The first call also closes the setup phase: resource events recorded
        before it stay out of the report.
        """
        for distribution in self.distributions().values():
            distribution.reset()
        self.tmi_events = []
        self.scratch = IterationScratch()

        for resource in self.resources:
            if not self._setup_done:
                resource.end_setup()
            resource.reset()
        self._setup_done = True
        for aura in self.auras.values():
            aura.reset()

    def calculate_tmi(self, duration_seconds: float) -> float:
        return calculate_tmi(self.tmi_events, self.tmi_bin_seconds, duration_seconds)

    def done_iteration(
        self,
        duration_seconds: float,
        seed: int,
        current_mana: float = 0.0,
        save_all_values: bool = False,
    ) -> None:
        """Fold the finished iteration into the run aggregates.

        Args:
            duration_seconds: Encounter duration of the iteration.
            seed: RNG seed that reproduces the iteration.
            current_mana: Mana left at the end, for the TTO estimate.
            save_all_values: Keep raw per-iteration values.
        """
        if self.has_mana_bar:
            if self.scratch.went_oom:
                time_to_oom = self.scratch.first_oom_timestamp
            else:
                time_to_oom = estimate_time_to_oom(
                    duration_seconds,
                    current_mana,
                    self.scratch.mana_spent,
                    self.scratch.mana_gained,
                )
            # Pre-multiplied: done_iteration divides by the duration.
            self.tto.total = time_to_oom * duration_seconds

        if self.is_tanking:
            self.tmi.total = self.calculate_tmi(duration_seconds) * duration_seconds

        for distribution in self.distributions().values():
            distribution.done_iteration(duration_seconds, seed, save_all_values)
        for aura in self.auras.values():
            aura.done_iteration()

        self.oom_time_sum += self.scratch.oom_time
        if self.scratch.died:
            self.num_iters_dead += 1

    # ------------------------------------------------------------------
    # Run level
    # ------------------------------------------------------------------

    def merge(self, other: UnitMetrics) -> None:
        """Combine the run aggregates of the same unit from another worker."""
        # Auras first: padding uses the iteration counts before merging.
        for action_id, aura in self.auras.items():
            if action_id not in other.auras:
                aura.add_idle_iterations(other.iterations)
        for action_id, aura in other.auras.items():
            self.get_or_create_aura(action_id).merge(aura)

        for key, distribution in self.distributions().items():
            distribution.merge(other.distributions()[key])

        self.num_iters_dead += other.num_iters_dead
        self.oom_time_sum += other.oom_time_sum

        for action_id, action in other.actions.items():
            self.get_or_create_action(action_id, action.is_melee).merge(action)
        for resource in other.resources:
            self.get_or_create_resource(resource.action_id, resource.type).merge(resource)

    def to_report(self) -> UnitReport:
        n = self.iterations
        return UnitReport(
            name=self.name,
            unit_index=self.unit_index,
            **{key: dist.to_report() for key, dist in self.distributions().items()},
            seconds_oom_avg=self.oom_time_sum / n if n > 0 else 0.0,
            chance_of_death=self.num_iters_dead / n if n > 0 else 0.0,
            actions=[action.to_report(action_id) for action_id, action in self.actions.items()],
            resources=[
                report for report in (resource.to_report() for resource in self.resources)
                if report.events > 0
            ],
            auras=[aura.to_report() for aura in self.auras.values()],
        )
