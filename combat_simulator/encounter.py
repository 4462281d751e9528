"""Encounter-level metrics: the interface the scheduler talks to.

``EncounterMetrics`` owns the ``UnitMetrics`` of every combatant in one
encounter and routes collaborator calls to them. It also keeps the
iteration state machine honest::

    metrics = EncounterMetrics()
    metrics.add_unit("tank", team="raid", is_tanking=True, reference_health=20_000)
    metrics.add_unit("boss", team="enemy")

    for seed in seeds:
        metrics.iteration_start()
        ...  # record_ability_outcome, record_damage_taken, mark_died, ...
        metrics.iteration_end(duration_seconds=300.0, seed=seed)

    report = metrics.to_report()

Parallel runs give every worker its own ``EncounterMetrics`` built from
the same roster and combine them afterwards with ``merge`` on a single
thread. A worker that abandons an iteration discards its whole instance.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from combat_simulator.metrics.actions import ActionID, SpellMetrics
from combat_simulator.metrics.report import EncounterReport
from combat_simulator.metrics.resources import ResourceType
from combat_simulator.metrics.tmi import DEFAULT_TMI_BIN_SECONDS
from combat_simulator.metrics.unit_metrics import TargetRef, UnitMetrics

if TYPE_CHECKING:
    from combat_simulator.config.schemas import MetricsConfig

logger = logging.getLogger(__name__)


class MetricsError(Exception):
    """Base class for misuse of the encounter metrics interface."""


class IterationStateError(MetricsError):
    """Raised when a call does not fit the iteration state machine."""


class DuplicateUnitError(MetricsError):
    """Raised when a unit name is registered twice."""


class UnknownUnitError(MetricsError, KeyError):
    """Raised when a unit name is not part of the roster."""


class RosterMismatchError(MetricsError):
    """Raised when merging encounters with different rosters."""


def _unit_settings(unit: UnitMetrics) -> tuple:
    return (
        unit.has_mana_bar,
        unit.is_tanking,
        unit.tmi_bin_seconds,
        unit.reference_health,
    )


class EncounterMetrics:
    """Roster of unit metrics for one encounter.

    Attributes:
        save_all_values: Keep every per-iteration value in the report.
        iterations: Number of iterations folded so far.
    """

    def __init__(self, save_all_values: bool = False) -> None:
        self.save_all_values = save_all_values
        self.iterations = 0

        self._units: dict[str, UnitMetrics] = {}
        self._teams: dict[str, str] = {}
        self._pet_owners: dict[str, str] = {}
        self._in_iteration = False

    @classmethod
    def from_config(cls, config: MetricsConfig) -> EncounterMetrics:
        """Build an encounter roster from a validated configuration."""
        metrics = cls(save_all_values=config.run.save_all_values)
        for unit in config.units:
            metrics.add_unit(
                unit.name,
                team=unit.team,
                has_mana_bar=unit.has_mana_bar,
                is_tanking=unit.is_tanking,
                tmi_bin_seconds=unit.tmi_bin_seconds,
                reference_health=unit.reference_health,
            )
        for pet in config.pets:
            metrics.add_pet(pet.owner, pet.name)
        return metrics

    # ------------------------------------------------------------------
    # Roster
    # ------------------------------------------------------------------

    def add_unit(
        self,
        name: str,
        team: str,
        has_mana_bar: bool = False,
        is_tanking: bool = False,
        tmi_bin_seconds: int = DEFAULT_TMI_BIN_SECONDS,
        reference_health: float = 1.0,
    ) -> UnitMetrics:
        """Register a combatant; its unit index is the registration order.

        Raises:
            DuplicateUnitError: If the name is already registered.
            IterationStateError: If an iteration is in progress.
        """
        if name in self._units:
            raise DuplicateUnitError(f"Unit already registered: {name}")
        if self._in_iteration:
            raise IterationStateError("Cannot add units while an iteration is in progress")

        unit = UnitMetrics(
            name=name,
            unit_index=len(self._units),
            has_mana_bar=has_mana_bar,
            is_tanking=is_tanking,
            tmi_bin_seconds=tmi_bin_seconds,
            reference_health=reference_health,
        )
        self._units[name] = unit
        self._teams[name] = team
        return unit

    def add_pet(self, owner: str, name: str) -> UnitMetrics:
        """Register a pet whose damage also counts towards its owner.

        Raises:
            UnknownUnitError: If the owner is not registered.
            MetricsError: If the owner is itself a pet.
        """
        owner_unit = self.unit(owner)
        if owner in self._pet_owners:
            raise MetricsError(f"Pet {name!r} cannot be owned by pet {owner!r}")
        pet = self.add_unit(name, team=self._teams[owner_unit.name])
        self._pet_owners[name] = owner
        return pet

    def unit(self, name: str) -> UnitMetrics:
        try:
            return self._units[name]
        except KeyError:
            raise UnknownUnitError(name) from None

    @property
    def units(self) -> list[UnitMetrics]:
        return list(self._units.values())

    def team_of(self, name: str) -> str:
        self.unit(name)
        return self._teams[name]

    def opponents_of(self, name: str) -> list[str]:
        """Names of every unit on another team, in unit index order."""
        team = self.team_of(name)
        return [other for other, other_team in self._teams.items() if other_team != team]

    @property
    def in_iteration(self) -> bool:
        return self._in_iteration

    # ------------------------------------------------------------------
    # Iteration boundaries
    # ------------------------------------------------------------------

    def iteration_start(self) -> None:
        """Clear every unit's scratch state and open an iteration."""
        if self._in_iteration:
            raise IterationStateError("Iteration already in progress")
        for unit in self._units.values():
            unit.reset()
        self._in_iteration = True

    def iteration_end(
        self,
        duration_seconds: float,
        seed: int,
        current_mana: Mapping[str, float] | None = None,
    ) -> None:
        """Fold the open iteration into every unit's run aggregates.

        Pets fold first and hand their damage to their owners.

        Args:
            duration_seconds: Simulated length of the encounter.
            seed: RNG seed that reproduces this iteration.
            current_mana: Mana left per unit name, for TTO estimates.

        Raises:
            IterationStateError: If no iteration is open.
            ValueError: If the duration is not a positive finite number.
        """
        self._require_iteration()
        if not math.isfinite(duration_seconds) or duration_seconds <= 0:
            raise ValueError(f"Iteration duration must be positive, got {duration_seconds}")
        current_mana = current_mana or {}

        for pet_name, owner_name in self._pet_owners.items():
            pet = self._units[pet_name]
            pet.done_iteration(
                duration_seconds,
                seed,
                current_mana.get(pet_name, 0.0),
                self.save_all_values,
            )
            self._units[owner_name].add_final_pet_metrics(pet)

        for name, unit in self._units.items():
            if name in self._pet_owners:
                continue
            unit.done_iteration(
                duration_seconds,
                seed,
                current_mana.get(name, 0.0),
                self.save_all_values,
            )

        self._in_iteration = False
        self.iterations += 1
        logger.debug(
            "Folded iteration %d (seed=%d, duration=%.1fs)",
            self.iterations,
            seed,
            duration_seconds,
        )

    def _require_iteration(self) -> None:
        if not self._in_iteration:
            raise IterationStateError("No iteration in progress")

    # ------------------------------------------------------------------
    # Collaborator events
    # ------------------------------------------------------------------

    def record_ability_outcome(
        self,
        actor: str,
        action_id: ActionID,
        outcomes: Sequence[SpellMetrics],
        targets: Sequence[str] | None = None,
        is_melee: bool = False,
    ) -> None:
        """Record one ability resolution.

        Args:
            actor: Name of the unit using the ability.
            action_id: Ability identifier.
            outcomes: Outcome tally per target, aligned with ``targets``.
            targets: Target unit names; defaults to the actor's opponents.
            is_melee: Whether the ability reports in the melee category.

        Raises:
            ValueError: If outcomes and targets differ in length.
        """
        self._require_iteration()
        unit = self.unit(actor)
        if targets is None:
            targets = self.opponents_of(actor)
        if len(outcomes) != len(targets):
            raise ValueError(
                f"{actor}: {len(outcomes)} outcomes for {len(targets)} targets of {action_id}"
            )
        if not targets:
            logger.warning("%s: %s resolved with no targets, ignoring", actor, action_id)
            return

        team = self._teams[actor]
        refs = [
            TargetRef(self.unit(target), is_opponent=self._teams[target] != team)
            for target in targets
        ]
        unit.add_spell_metrics(action_id, outcomes, refs, is_melee=is_melee)

    def record_resource_event(
        self,
        name: str,
        action_id: ActionID,
        resource_type: ResourceType,
        gain: float,
        actual_gain: float,
    ) -> None:
        """Record a resource gain (negative for a cost).

        Allowed outside an iteration: events from one-off setup before the
        first iteration are excluded from the per-iteration deltas and
        from the reported run totals.
        """
        unit = self.unit(name)
        resource_type = ResourceType(resource_type)
        unit.get_or_create_resource(action_id, resource_type).add_event(gain, actual_gain)

        if resource_type is ResourceType.MANA:
            if actual_gain < 0:
                unit.add_mana_spent(-actual_gain)
            else:
                unit.add_mana_gained(actual_gain)

    def record_aura_tick(
        self,
        name: str,
        action_id: ActionID,
        uptime_delta: float = 0.0,
        proc_delta: int = 0,
    ) -> None:
        self._require_iteration()
        aura = self.unit(name).get_or_create_aura(action_id)
        aura.add_uptime(uptime_delta)
        aura.add_procs(proc_delta)

    def record_damage_taken(self, name: str, timestamp: float, amount: float) -> None:
        self._require_iteration()
        self.unit(name).record_damage_taken(timestamp, amount)

    def record_dpasp(self, name: str, dpsp_seconds: float) -> None:
        self._require_iteration()
        self.unit(name).update_dpasp(dpsp_seconds)

    def mark_died(self, name: str) -> None:
        self._require_iteration()
        self.unit(name).mark_died()

    def mark_resource_exhausted(self, name: str, timestamp: float) -> None:
        self._require_iteration()
        self.unit(name).mark_oom(timestamp)

    def add_oom_time(self, name: str, timestamp: float, seconds: float) -> None:
        self._require_iteration()
        self.unit(name).add_oom_time(timestamp, seconds)

    # ------------------------------------------------------------------
    # Run level
    # ------------------------------------------------------------------

    def merge(self, other: EncounterMetrics) -> EncounterMetrics:
        """Fold another worker's encounter into this one and return ``self``.

        Raises:
            IterationStateError: If either side has an open iteration.
            RosterMismatchError: If the rosters or any unit settings differ.
        """
        if self._in_iteration or other._in_iteration:
            raise IterationStateError("Cannot merge while an iteration is in progress")
        if self._teams != other._teams or list(self._teams) != list(other._teams):
            raise RosterMismatchError(
                f"Rosters differ: {list(self._teams)} vs {list(other._teams)}"
            )
        if self._pet_owners != other._pet_owners:
            raise RosterMismatchError("Pet ownership differs between encounters")
        for name, unit in self._units.items():
            if _unit_settings(unit) != _unit_settings(other._units[name]):
                raise RosterMismatchError(
                    f"{name}: settings differ: "
                    f"{_unit_settings(unit)} vs {_unit_settings(other._units[name])}"
                )

        for name, unit in self._units.items():
            unit.merge(other._units[name])
        self.iterations += other.iterations
        logger.debug("Merged %d iterations, total %d", other.iterations, self.iterations)
        return self

    def to_report(self) -> EncounterReport:
        return EncounterReport(
            iterations=self.iterations,
            units=[unit.to_report() for unit in self._units.values()],
        )
