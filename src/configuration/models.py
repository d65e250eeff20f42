"""
Configuration - Data Models
============================
Pydantic models for robot and simulation configuration.

Values are plain floats in SI units, named with a unit suffix. The
``to_params`` methods attach units and hand over to the simulation's own
parameter validation.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from simulation import DCMotorParams, DDMRParams
from units.si import H, KG, KGM2, M, NM, OHM, A, S, V


# Reference robot: 6" wheels, 32.5 kg, four-CIM style drivetrain
WHEEL_MASS_KG = 4.53592
WHEEL_INERTIA_KG_M2 = 0.00063651 * 3.


class DrivetrainConfig(BaseModel):
    """Drivetrain geometry and mass properties."""
    wheel_radius_m: float = Field(0.1524 / 2., gt=0, description="Wheel radius R")
    total_mass_kg: float = Field(32.5, gt=0, description="Total mass m")
    chassis_mass_kg: float = Field(32.5 - WHEEL_MASS_KG, ge=0, description="Chassis-only mass m_c")
    com_offset_m: float = Field(0.06, description="Centre of mass behind the wheel axis d")
    half_wheelbase_m: float = Field(0.63684 / 2., gt=0, description="Half wheelbase L")
    robot_inertia_kg_m2: float = Field(4.29, gt=0, description="Robot inertia about turning centre I")
    wheel_inertia_kg_m2: float = Field(WHEEL_INERTIA_KG_M2, ge=0, description="Per-wheel inertia I_w")

    @model_validator(mode="after")
    def check_masses(self) -> DrivetrainConfig:
        if self.chassis_mass_kg > self.total_mass_kg:
            raise ValueError("chassis_mass_kg must not exceed total_mass_kg")
        return self

    def to_params(self) -> DDMRParams:
        return DDMRParams(
            wheel_radius=self.wheel_radius_m * M,
            mass=self.total_mass_kg * KG,
            chassis_mass=self.chassis_mass_kg * KG,
            com_offset=self.com_offset_m * M,
            half_wheelbase=self.half_wheelbase_m * M,
            inertia=self.robot_inertia_kg_m2 * KGM2,
            wheel_inertia=self.wheel_inertia_kg_m2 * KGM2,
        )


class MotorConfig(BaseModel):
    """DC gear motor parameters, shared by both sides."""
    armature_resistance_ohm: float = Field(12. / 133., gt=0)
    armature_inductance_h: float = Field(0.0, ge=0)
    gear_ratio: float = Field(5.10, gt=0)
    back_emf_constant_v_s: float = Field(2.11e-2, ge=0)
    torque_constant_nm_per_a: float = Field(2.4 / 133., gt=0)

    def to_params(self) -> DCMotorParams:
        return DCMotorParams(
            armature_resistance=self.armature_resistance_ohm * OHM,
            armature_inductance=self.armature_inductance_h * H,
            gear_ratio=self.gear_ratio,
            back_emf_constant=self.back_emf_constant_v_s * V * S,
            torque_constant=self.torque_constant_nm_per_a * NM / A,
        )


class SimulationConfig(BaseModel):
    """Run settings."""
    dt_s: float = Field(0.005, gt=0, description="Fixed timestep (200 Hz)")
    duration_s: float = Field(10.0, gt=0)
    supply_voltage_v: float = Field(12.0, gt=0)


class LoggingConfig(BaseModel):
    """Log sinks."""
    level: str = "INFO"
    log_dir: Optional[Path] = None
    rotation: str = "10 MB"
    retention: str = "7 days"


class RobotConfig(BaseModel):
    """Complete configuration for one simulated robot."""
    name: str = "default"
    drivetrain: DrivetrainConfig = Field(default_factory=DrivetrainConfig)
    motor: MotorConfig = Field(default_factory=MotorConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
