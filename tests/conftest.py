"""
Pytest configuration and shared fixtures.

Provides:
- A small encounter roster (tank, healer, rogue + pet, boss)
- Helpers to write YAML configs and JSON-lines event logs to tmp_path
"""

import json
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from combat_simulator.encounter import EncounterMetrics
from combat_simulator.metrics import SpellMetrics


@pytest.fixture
def encounter() -> EncounterMetrics:
    """Four-unit raid against one boss; the rogue has a pet."""
    metrics = EncounterMetrics()
    metrics.add_unit("tank", team="raid", is_tanking=True, tmi_bin_seconds=6, reference_health=1000.0)
    metrics.add_unit("healer", team="raid", has_mana_bar=True)
    metrics.add_unit("rogue", team="raid")
    metrics.add_unit("boss", team="enemy")
    metrics.add_pet("rogue", "wolf")
    return metrics


@pytest.fixture
def hit() -> Callable[..., SpellMetrics]:
    """Factory for a single landed hit."""

    def _hit(damage: float = 0.0, threat: float = 0.0, healing: float = 0.0, crit: bool = False) -> SpellMetrics:
        return SpellMetrics(
            casts=1,
            hits=0 if crit else 1,
            crits=1 if crit else 0,
            total_damage=damage,
            total_threat=threat,
            total_healing=healing,
        )

    return _hit


@pytest.fixture
def config_dict() -> dict[str, Any]:
    return {
        "run": {"iterations": 2, "save_all_values": False},
        "units": [
            {"name": "tank", "team": "raid", "is_tanking": True, "reference_health": 1000},
            {"name": "healer", "team": "raid", "has_mana_bar": True},
            {"name": "boss", "team": "enemy"},
        ],
    }


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[[Any], Path]:
    """Write a config mapping (or raw text) to a YAML file."""

    def _write(data: Any, name: str = "config.yaml") -> Path:
        path = tmp_path / name
        path.write_text(data if isinstance(data, str) else yaml.safe_dump(data))
        return path

    return _write


@pytest.fixture
def write_events(tmp_path: Path) -> Callable[[list[Any]], Path]:
    """Write events (dicts or raw strings) as a JSON-lines file."""

    def _write(events: list[Any], name: str = "events.jsonl") -> Path:
        path = tmp_path / name
        lines = [e if isinstance(e, str) else json.dumps(e) for e in events]
        path.write_text("\n".join(lines) + "\n")
        return path

    return _write


@pytest.fixture
def two_iteration_events() -> list[dict[str, Any]]:
    """Boss hits the tank, the healer heals, across two iterations."""
    events: list[dict[str, Any]] = []
    for seed, damage in ((11, 600.0), (12, 1200.0)):
        events.extend(
            [
                {"type": "iteration_start"},
                {
                    "type": "ability",
                    "actor": "boss",
                    "action": {"other_id": 1},
                    "targets": ["tank"],
                    "outcomes": [{"casts": 1, "hits": 1, "total_damage": damage, "total_threat": 0}],
                    "is_melee": True,
                },
                {"type": "damage_taken", "unit": "tank", "timestamp": 3.0, "amount": damage},
                {
                    "type": "ability",
                    "actor": "healer",
                    "action": {"spell_id": 2061},
                    "targets": ["tank"],
                    "outcomes": [{"casts": 1, "hits": 1, "total_healing": 300}],
                },
                {
                    "type": "resource",
                    "unit": "healer",
                    "action": {"spell_id": 2061},
                    "resource_type": "mana",
                    "gain": -100,
                    "actual_gain": -100,
                },
                {"type": "iteration_end", "duration_seconds": 30, "seed": seed, "current_mana": {"healer": 900}},
            ]
        )
    return events
