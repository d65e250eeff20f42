"""
Configuration Package
======================
Typed robot configuration, loaded from YAML.
"""

from .models import (
    DrivetrainConfig,
    MotorConfig,
    SimulationConfig,
    LoggingConfig,
    RobotConfig,
)
from .loader import (
    CONFIG_DIR,
    DEFAULT_CONFIG_PATH,
    load_config,
)

__all__ = [
    "DrivetrainConfig",
    "MotorConfig",
    "SimulationConfig",
    "LoggingConfig",
    "RobotConfig",
    "CONFIG_DIR",
    "DEFAULT_CONFIG_PATH",
    "load_config",
]
