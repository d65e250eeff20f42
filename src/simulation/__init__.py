"""
Simulation Package
===================
Fixed-timestep dynamics of a motor-driven differential-drive robot.
"""

__version__ = "1.0.0"

from .exceptions import ConfigurationError
from .signal_blocks import Integrator, Differentiator
from .dynamics import (
    LR,
    Vels,
    DDMRParams,
    DCMotorParams,
    DDMRModel,
    ActuatedDDMRModel,
)
from .drive_simulator import DriveState, DriveSimulator
from .validation import ContinuousModelValidator

__all__ = [
    "ConfigurationError",
    "Integrator",
    "Differentiator",
    "LR",
    "Vels",
    "DDMRParams",
    "DCMotorParams",
    "DDMRModel",
    "ActuatedDDMRModel",
    "DriveState",
    "DriveSimulator",
    "ContinuousModelValidator",
]
