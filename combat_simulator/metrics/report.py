"""Pydantic models for the serialized end-of-run report.

The report is a plain structured record; hosts serialize it with
``model_dump(mode="json")`` or ``model_dump_json()``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ActionIDReport(BaseModel):
    """Serialized ability identifier."""

    spell_id: int = 0
    item_id: int = 0
    other_id: int = 0
    tag: int = 0


class DistributionReport(BaseModel):
    """Summary of one per-iteration rate across the run."""

    avg: float = 0.0
    stdev: float = 0.0
    max: float = 0.0
    max_seed: int = 0
    min: float = 0.0
    min_seed: int = 0
    hist: dict[int, int] = Field(default_factory=dict)
    all_values: list[float] = Field(default_factory=list)


class TargetedActionReport(BaseModel):
    """Outcome counters of one ability against one target."""

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
    cast_time_ms: float = 0.0


class ActionReport(BaseModel):
    id: ActionIDReport
    is_melee: bool = False
    targets: list[TargetedActionReport] = Field(default_factory=list)


class ResourceReport(BaseModel):
    id: ActionIDReport
    type: str
    events: int = 0
    gain: float = 0.0
    actual_gain: float = 0.0


class AuraReport(BaseModel):
    id: ActionIDReport
    uptime_seconds_avg: float = 0.0
    uptime_seconds_stdev: float = 0.0
    procs_avg: float = 0.0


class UnitReport(BaseModel):
    """Everything aggregated for one combatant."""

    name: str = ""
    unit_index: int = 0
    dps: DistributionReport = Field(default_factory=DistributionReport)
    dpasp: DistributionReport = Field(default_factory=DistributionReport)
    threat: DistributionReport = Field(default_factory=DistributionReport)
    dtps: DistributionReport = Field(default_factory=DistributionReport)
    tmi: DistributionReport = Field(default_factory=DistributionReport)
    hps: DistributionReport = Field(default_factory=DistributionReport)
    tto: DistributionReport = Field(default_factory=DistributionReport)
    seconds_oom_avg: float = 0.0
    chance_of_death: float = 0.0
    actions: list[ActionReport] = Field(default_factory=list)
    resources: list[ResourceReport] = Field(default_factory=list)
    auras: list[AuraReport] = Field(default_factory=list)


class EncounterReport(BaseModel):
    """Report for a whole run: one entry per registered unit."""

    iterations: int = 0
    units: list[UnitReport] = Field(default_factory=list)

    def unit(self, name: str) -> UnitReport:
        """Look up a unit's report by name.

        Raises:
            KeyError: If no unit has that name.
        """
        for unit in self.units:
            if unit.name == name:
                return unit
        raise KeyError(name)
