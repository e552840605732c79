"""Scenario configuration: pydantic schema and YAML loader."""

from .loader import config_from_dict, load_config, save_config
from .schema import (
    AccountSettings,
    Config,
    Expectation,
    PoolSettings,
    ScenarioStep,
    SimulationSettings,
)

__all__ = [
    "AccountSettings",
    "Config",
    "Expectation",
    "PoolSettings",
    "ScenarioStep",
    "SimulationSettings",
    "config_from_dict",
    "load_config",
    "save_config",
]
