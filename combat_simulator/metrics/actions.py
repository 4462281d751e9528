"""Per-ability, per-target outcome counters."""

from __future__ import annotations

from dataclasses import dataclass, field

from combat_simulator.metrics.report import (
    ActionIDReport,
    ActionReport,
    TargetedActionReport,
)


@dataclass(frozen=True)
class ActionID:
    """Stable key of one discrete combatant action.

    Exactly which fields are set depends on the action's origin: a spell,
    an item, or some other source (auto attacks, regeneration ticks).
    ``tag`` separates variants sharing an id, such as ranks.
    """

    spell_id: int = 0
    item_id: int = 0
    other_id: int = 0
    tag: int = 0

    def to_report(self) -> ActionIDReport:
        return ActionIDReport(
            spell_id=self.spell_id,
            item_id=self.item_id,
            other_id=self.other_id,
            tag=self.tag,
        )

    def __str__(self) -> str:
        if self.spell_id:
            label = f"spell:{self.spell_id}"
        elif self.item_id:
            label = f"item:{self.item_id}"
        else:
            label = f"other:{self.other_id}"
        return f"{label}#{self.tag}" if self.tag else label


@dataclass
class SpellMetrics:
    """Outcome tally of one ability resolution against one target.

    Produced by combat resolution and consumed by
    ``UnitMetrics.add_spell_metrics``. Partial resists are not tracked.
    """

    casts: int = 0
    misses: int = 0
    hits: int = 0
    crits: int = 0
    crushes: int = 0
    dodges: int = 0
    glances: int = 0
    parries: int = 0
    blocks: int = 0

    total_damage: float = 0.0
    total_threat: float = 0.0
    total_healing: float = 0.0
    total_shielding: float = 0.0
    total_cast_time: float = 0.0  # seconds


@dataclass
class TargetedActionMetrics:
    """Running totals of one ability against one target for the whole run."""

    unit_index: int

    casts: int = 0
    hits: int = 0
    crits: int = 0
    misses: int = 0
    dodges: int = 0
    parries: int = 0
    blocks: int = 0
    glances: int = 0

    damage: float = 0.0
    threat: float = 0.0
    healing: float = 0.0
    shielding: float = 0.0
    cast_time: float = 0.0  # seconds

    def add(self, tally: SpellMetrics) -> None:
        self.casts += tally.casts
        self.misses += tally.misses
        self.hits += tally.hits
        self.crits += tally.crits
        self.dodges += tally.dodges
        self.parries += tally.parries
        self.blocks += tally.blocks
        self.glances += tally.glances
        self.damage += tally.total_damage
        self.threat += tally.total_threat
        self.healing += tally.total_healing
        self.shielding += tally.total_shielding
        self.cast_time += tally.total_cast_time

    def merge(self, other: TargetedActionMetrics) -> None:
        self.casts += other.casts
        self.misses += other.misses
        self.hits += other.hits
        self.crits += other.crits
        self.dodges += other.dodges
        self.parries += other.parries
        self.blocks += other.blocks
        self.glances += other.glances
        self.damage += other.damage
        self.threat += other.threat
        self.healing += other.healing
        self.shielding += other.shielding
        self.cast_time += other.cast_time

    def to_report(self) -> TargetedActionReport:
        return TargetedActionReport(
            unit_index=self.unit_index,
            casts=self.casts,
            hits=self.hits,
            crits=self.crits,
            misses=self.misses,
            dodges=self.dodges,
            parries=self.parries,
            blocks=self.blocks,
            glances=self.glances,
            damage=self.damage,
            threat=self.threat,
            healing=self.healing,
            shielding=self.shielding,
            cast_time_ms=self.cast_time * 1000.0,
        )


@dataclass
class ActionMetrics:
    """Metrics of one ability, split by target.

    ``targets`` keeps the order in which targets were first hit.
    """

    is_melee: bool = False
    targets: list[TargetedActionMetrics] = field(default_factory=list)

    def for_target(self, unit_index: int) -> TargetedActionMetrics:
        for tam in self.targets:
            if tam.unit_index == unit_index:
                return tam
        tam = TargetedActionMetrics(unit_index=unit_index)
        self.targets.append(tam)
        return tam

    def merge(self, other: ActionMetrics) -> None:
        for theirs in other.targets:
            self.for_target(theirs.unit_index).merge(theirs)

    def to_report(self, action_id: ActionID) -> ActionReport:
        return ActionReport(
            id=action_id.to_report(),
            is_melee=self.is_melee,
            targets=[tam.to_report() for tam in self.targets],
        )
