"""Combat Simulator - statistics aggregation for Monte Carlo encounters."""

from __future__ import annotations

from combat_simulator.encounter import EncounterMetrics
from combat_simulator.metrics import ActionID, ResourceType, SpellMetrics

__version__ = "0.1.0"

__all__ = [
    "ActionID",
    "EncounterMetrics",
    "ResourceType",
    "SpellMetrics",
    "__version__",
]
