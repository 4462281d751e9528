"""Iteration-folding metrics for Monte Carlo combat simulation.

Key components:
- OnlineAggregator: Welford running mean/variance
- DistributionMetrics: per-iteration rate with extremes, seeds and histogram
- ActionMetrics / TargetedActionMetrics / SpellMetrics: per-ability outcomes
- ResourceMetrics: resource events with per-iteration checkpoints
- AuraMetrics: aura uptime and procs
- UnitMetrics: everything for one combatant, plus the iteration lifecycle
- calculate_tmi: burst-damage risk index
"""

from __future__ import annotations

from combat_simulator.metrics.actions import (
    ActionID,
    ActionMetrics,
    SpellMetrics,
    TargetedActionMetrics,
)
from combat_simulator.metrics.aggregator import OnlineAggregator
from combat_simulator.metrics.auras import AuraMetrics
from combat_simulator.metrics.distribution import DistributionMetrics, histogram_bucket
from combat_simulator.metrics.report import (
    ActionReport,
    AuraReport,
    DistributionReport,
    EncounterReport,
    ResourceReport,
    TargetedActionReport,
    UnitReport,
)
from combat_simulator.metrics.resources import ResourceMetrics, ResourceType
from combat_simulator.metrics.tmi import TMIEvent, calculate_tmi
from combat_simulator.metrics.unit_metrics import (
    IterationScratch,
    TargetRef,
    UnitMetrics,
    estimate_time_to_oom,
)

__all__ = [
    "ActionID",
    "ActionMetrics",
    "ActionReport",
    "AuraMetrics",
    "AuraReport",
    "DistributionMetrics",
    "DistributionReport",
    "EncounterReport",
    "IterationScratch",
    "OnlineAggregator",
    "ResourceMetrics",
    "ResourceReport",
    "ResourceType",
    "SpellMetrics",
    "TMIEvent",
    "TargetRef",
    "TargetedActionMetrics",
    "TargetedActionReport",
    "UnitMetrics",
    "UnitReport",
    "calculate_tmi",
    "estimate_time_to_oom",
    "histogram_bucket",
]
