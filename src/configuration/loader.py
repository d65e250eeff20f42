"""
Configuration - YAML Loader
============================
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import yaml
from loguru import logger
from pydantic import ValidationError

from simulation import ConfigurationError

from .models import RobotConfig


PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "default_robot.yaml"


def load_config(path: Optional[Union[str, Path]] = None) -> RobotConfig:
    """
    Load a robot configuration from YAML.

    A missing file is not an error: the built-in defaults are used.

    Args:
        path: Path to configuration YAML file (default: config/default_robot.yaml)

    Returns:
        Validated configuration

    Raises:
        ConfigurationError: If the file cannot be parsed or fails validation
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        logger.warning(f"Config file not found: {config_path}, using defaults")
        return RobotConfig()

    try:
        with open(config_path, 'r') as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Top level of {config_path} must be a mapping")

    try:
        config = RobotConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {config_path}:\n{e}") from e

    logger.info(f"Configuration loaded from {config_path}")
    return config
