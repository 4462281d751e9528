"""Configuration module for Combat Simulator metrics."""
from pydantic import ValidationError

from .loader import load_config
from .schemas import MetricsConfig, PetConfig, RunSettings, UnitConfig

__all__ = [
    "MetricsConfig",
    "PetConfig",
    "RunSettings",
    "UnitConfig",
    "ValidationError",
    "load_config",
]
