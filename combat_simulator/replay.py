"""Replay a recorded collaborator event stream into ``EncounterMetrics``.

The log is JSON lines, one event per line, discriminated by ``type``::

    {"type": "iteration_start"}
    {"type": "ability", "actor": "boss", "action": {"other_id": 1},
     "targets": ["tank"], "outcomes": [{"casts": 1, "hits": 1, "total_damage": 900}]}
    {"type": "damage_taken", "unit": "tank", "timestamp": 1.5, "amount": 900}
    {"type": "iteration_end", "duration_seconds": 180, "seed": 42}

Blank lines are skipped.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from combat_simulator.encounter import EncounterMetrics, MetricsError
from combat_simulator.metrics.actions import ActionID, SpellMetrics
from combat_simulator.metrics.resources import ResourceType


class ReplayError(Exception):
    """Raised when an event log line cannot be parsed or applied."""

    def __init__(self, line_number: int, message: str) -> None:
        super().__init__(f"line {line_number}: {message}")
        self.line_number = line_number


# ============================================================================
# Event Schemas
# ============================================================================

class ActionIDModel(BaseModel):
    spell_id: int = 0
    item_id: int = 0
    other_id: int = 0
    tag: int = 0

    def to_action_id(self) -> ActionID:
        return ActionID(self.spell_id, self.item_id, self.other_id, self.tag)


class OutcomeModel(BaseModel):
    """Outcome tally of one resolution against one target."""
    casts: int = Field(default=0, ge=0)
    misses: int = Field(default=0, ge=0)
    hits: int = Field(default=0, ge=0)
    crits: int = Field(default=0, ge=0)
    crushes: int = Field(default=0, ge=0)
    dodges: int = Field(default=0, ge=0)
    glances: int = Field(default=0, ge=0)
    parries: int = Field(default=0, ge=0)
    blocks: int = Field(default=0, ge=0)
    total_damage: float = 0.0
    total_threat: float = 0.0
    total_healing: float = 0.0
    total_shielding: float = 0.0
    total_cast_time: float = Field(default=0.0, ge=0)

    def to_spell_metrics(self) -> SpellMetrics:
        return SpellMetrics(**self.model_dump())


class IterationStartEvent(BaseModel):
    type: Literal["iteration_start"] = "iteration_start"


class IterationEndEvent(BaseModel):
    type: Literal["iteration_end"] = "iteration_end"
    duration_seconds: float = Field(..., gt=0)
    seed: int
    current_mana: dict[str, float] = Field(default_factory=dict)


class AbilityEvent(BaseModel):
    type: Literal["ability"] = "ability"
    actor: str
    action: ActionIDModel
    outcomes: list[OutcomeModel]
    targets: list[str] | None = Field(
        default=None,
        description="Target unit names; defaults to the actor's opponents",
    )
    is_melee: bool = False


class ResourceEvent(BaseModel):
    type: Literal["resource"] = "resource"
    unit: str
    action: ActionIDModel
    resource_type: ResourceType
    gain: float
    actual_gain: float


class AuraEvent(BaseModel):
    type: Literal["aura"] = "aura"
    unit: str
    action: ActionIDModel
    uptime: float = Field(default=0.0, ge=0)
    procs: int = Field(default=0, ge=0)


class DamageTakenEvent(BaseModel):
    type: Literal["damage_taken"] = "damage_taken"
    unit: str
    timestamp: float = Field(..., ge=0)
    amount: float


class DpaspEvent(BaseModel):
    type: Literal["dpasp"] = "dpasp"
    unit: str
    dpsp_seconds: float


class DiedEvent(BaseModel):
    type: Literal["died"] = "died"
    unit: str


class OomEvent(BaseModel):
    type: Literal["oom"] = "oom"
    unit: str
    timestamp: float = Field(..., ge=0)


class OomTimeEvent(BaseModel):
    type: Literal["oom_time"] = "oom_time"
    unit: str
    timestamp: float = Field(..., ge=0)
    seconds: float = Field(..., ge=0)


ReplayEvent = Annotated[
    Union[
        IterationStartEvent,
        IterationEndEvent,
        AbilityEvent,
        ResourceEvent,
        AuraEvent,
        DamageTakenEvent,
        DpaspEvent,
        DiedEvent,
        OomEvent,
        OomTimeEvent,
    ],
    Field(discriminator="type"),
]

_event_adapter: TypeAdapter[ReplayEvent] = TypeAdapter(ReplayEvent)


# ============================================================================
# Parsing and Application
# ============================================================================

def parse_events(lines: Iterable[str]) -> Iterator[tuple[int, ReplayEvent]]:
    """Parse JSON lines into events, yielding (line_number, event).

    Raises:
        ReplayError: On invalid JSON or an event that fails validation.
    """
    for line_number, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            yield line_number, _event_adapter.validate_python(json.loads(line))
        except json.JSONDecodeError as e:
            raise ReplayError(line_number, f"invalid JSON: {e.msg}") from e
        except ValidationError as e:
            raise ReplayError(line_number, f"invalid event: {e}") from e


def apply_event(metrics: EncounterMetrics, event: ReplayEvent) -> None:
    """Drive the matching ``EncounterMetrics`` call for one event."""
    if isinstance(event, IterationStartEvent):
        metrics.iteration_start()
    elif isinstance(event, IterationEndEvent):
        metrics.iteration_end(event.duration_seconds, event.seed, event.current_mana)
    elif isinstance(event, AbilityEvent):
        metrics.record_ability_outcome(
            event.actor,
            event.action.to_action_id(),
            [outcome.to_spell_metrics() for outcome in event.outcomes],
            targets=event.targets,
            is_melee=event.is_melee,
        )
    elif isinstance(event, ResourceEvent):
        metrics.record_resource_event(
            event.unit,
            event.action.to_action_id(),
            event.resource_type,
            event.gain,
            event.actual_gain,
        )
    elif isinstance(event, AuraEvent):
        metrics.record_aura_tick(
            event.unit, event.action.to_action_id(), event.uptime, event.procs
        )
    elif isinstance(event, DamageTakenEvent):
        metrics.record_damage_taken(event.unit, event.timestamp, event.amount)
    elif isinstance(event, DpaspEvent):
        metrics.record_dpasp(event.unit, event.dpsp_seconds)
    elif isinstance(event, DiedEvent):
        metrics.mark_died(event.unit)
    elif isinstance(event, OomEvent):
        metrics.mark_resource_exhausted(event.unit, event.timestamp)
    elif isinstance(event, OomTimeEvent):
        metrics.add_oom_time(event.unit, event.timestamp, event.seconds)
    else:
        raise TypeError(f"Unhandled event type: {type(event).__name__}")


def replay_events(metrics: EncounterMetrics, lines: Iterable[str]) -> int:
    """Replay an event stream; returns the number of events applied.

    Raises:
        ReplayError: If a line is malformed or the event is rejected by
            ``EncounterMetrics`` (unknown unit, bad iteration state, ...).
    """
    applied = 0
    for line_number, event in parse_events(lines):
        try:
            apply_event(metrics, event)
        except (MetricsError, ValueError) as e:
            raise ReplayError(line_number, str(e)) from e
        applied += 1
    return applied


def replay_file(metrics: EncounterMetrics, path: str | Path) -> int:
    """Replay a JSON-lines event log from disk."""
    with open(path) as f:
        return replay_events(metrics, f)
