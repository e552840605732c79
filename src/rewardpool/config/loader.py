"""Configuration loading and saving (YAML)."""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .schema import Config

CONFIG_ENV_VAR = "REWARDPOOL_CONFIG"
DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def load_config(yaml_path: Optional[Union[str, Path]] = None) -> Config:
    """
    Load a scenario configuration from YAML.

    Resolution order: explicit path, then $REWARDPOOL_CONFIG, then the
    bundled defaults.yaml (the worked three-staker scenario).

    Args:
        yaml_path: Path to YAML file

    Returns:
        Validated Config
    """
    if yaml_path is None:
        yaml_path = os.environ.get(CONFIG_ENV_VAR) or DEFAULTS_PATH

    with open(yaml_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    return Config.from_dict(data)


def save_config(config: Config, yaml_path: Union[str, Path]) -> None:
    """Write `config` as YAML, preserving field order."""
    with open(yaml_path, 'w') as f:
        yaml.safe_dump(config.to_dict(), f, sort_keys=False)


def config_from_dict(data: Dict[str, Any]) -> Config:
    """Create config from a plain dictionary (e.g. parsed JSON)."""
    return Config.from_dict(data)
