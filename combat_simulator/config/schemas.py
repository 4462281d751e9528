"""Pydantic schemas for encounter metrics configuration."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, model_validator

from combat_simulator.metrics.tmi import DEFAULT_TMI_BIN_SECONDS


class RunSettings(BaseModel):
    """Options for the whole Monte Carlo run."""

    iterations: int = Field(
        default=1000,
        ge=1,
        description="Number of iterations the scheduler is expected to run",
    )
    save_all_values: bool = Field(
        default=False,
        description="Keep every per-iteration value in the report",
    )


class UnitConfig(BaseModel):
    """One combatant of the encounter.

    Example:
        >>> tank = UnitConfig(name="tank", team="raid", is_tanking=True, reference_health=20000)
        >>> tank.tmi_bin_seconds
        6
    """

    name: str = Field(..., min_length=1, description="Unique unit name")
    team: str = Field(..., min_length=1, description="Units on other teams are opponents")
    has_mana_bar: bool = Field(default=False, description="Track time to OOM")
    is_tanking: bool = Field(default=False, description="Compute the TMI")
    tmi_bin_seconds: int = Field(
        default=DEFAULT_TMI_BIN_SECONDS,
        ge=0,
        description="TMI window width in seconds (0 disables the index)",
    )
    reference_health: float = Field(
        default=1.0,
        gt=0,
        description="Health pool damage taken is weighted against for the TMI",
    )


class PetConfig(BaseModel):
    """A pet whose damage is credited to its owner."""

    owner: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)


class MetricsConfig(BaseModel):
    """Complete configuration of an encounter's metrics."""

    run: RunSettings = Field(default_factory=RunSettings)
    units: list[UnitConfig] = Field(..., min_length=1)
    pets: list[PetConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_roster(self) -> MetricsConfig:
        """Validate unit names are unique and every pet is owned by a unit."""
        unit_names = [unit.name for unit in self.units]
        names = list(unit_names)
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate unit names: {duplicates}")

        for pet in self.pets:
            if pet.owner not in unit_names:
                if pet.owner in names:
                    raise ValueError(f"Pet {pet.name!r} is owned by pet {pet.owner!r}")
                raise ValueError(f"Pet {pet.name!r} has unknown owner {pet.owner!r}")
            if pet.name in names:
                raise ValueError(f"Pet name {pet.name!r} clashes with a unit name")
            names.append(pet.name)
        return self

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MetricsConfig:
        return cls.model_validate(data)
