"""
Differential-Drive Robot Dynamics
==================================
Rigid-body and DC-motor model of a differential-drive mobile robot (DDMR).

Mathematical Model:
-------------------
The chassis has its centre of mass a distance ``d`` behind the wheel axis.
With wheel torques τ_l, τ_r the Lagrange / Newton-Euler equations of motion
reduce to

    v̇ = [ (τ_r + τ_l)/R + m_c·d·ω² ] / (m + 2·I_w/R²)
    ω̇ = [ (τ_r − τ_l)·L/R − m_c·d·ω·v ] / (I + 2·L²·I_w/R²)

Each wheel is driven through a gearbox by a DC motor whose armature current
is solved from the voltage balance

    i_a = (v_a − K_b·N·ϕ̇ − L_a·di_a/dt) / R_a,     τ = K_t·i_a

where di_a/dt is the backward difference of the previous current
estimates. Both sides are evaluated from the same pre-update state and
integrated with explicit Euler at a fixed timestep.

Based on:
"Dynamic Modelling of Differential-Drive Mobile Robots using Lagrange and
Newton-Euler Methodologies: A Unified Framework" - Dhaouadi & Abu Hatab
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from typing import Callable, Generic, Optional, TypeVar

from loguru import logger

from units import Dimension, DimensionError, Quantity
from units.si import (
    A,
    ANGULAR_VELOCITY,
    BACK_EMF_CONSTANT,
    HZ,
    INDUCTANCE,
    LENGTH,
    MASS,
    MOMENT_OF_INERTIA,
    MPS,
    RESISTANCE,
    S,
    TORQUE_CONSTANT,
    VELOCITY,
)

from .exceptions import ConfigurationError
from .signal_blocks import Differentiator, Integrator


T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class LR(Generic[T]):
    """A left/right pair of per-wheel values."""
    left: T
    right: T

    def map(self, fn: Callable[[T], U]) -> LR[U]:
        return LR(left=fn(self.left), right=fn(self.right))


@dataclass(frozen=True)
class Vels:
    """
    Body velocities of the robot.

    Angular velocity is in rad/s; radians are dimensionless so it shares
    the dimension of frequency.
    """
    lin: Quantity = field(default_factory=lambda: 0.0 * MPS)
    ang: Quantity = field(default_factory=lambda: 0.0 * HZ)

    def __post_init__(self):
        _check_dimension("lin", self.lin, VELOCITY)
        _check_dimension("ang", self.ang, ANGULAR_VELOCITY)


def _check_dimension(name: str, value: Quantity, expected: Dimension) -> None:
    if not isinstance(value, Quantity) or value.dimension != expected:
        raise DimensionError(
            f"{name} must have dimension [{expected.symbol}], got {value!r}"
        )


def _check_finite(name: str, value: Quantity) -> None:
    if not value.is_finite():
        raise ConfigurationError(f"{name} must be finite, got {value!r}")


@dataclass(frozen=True)
class DDMRParams:
    """
    Physical parameters of the drivetrain.

    Attributes:
        wheel_radius: R, wheel radius (m)
        mass: m, total mass including wheels and actuators (kg)
        chassis_mass: m_c, mass without wheels and actuators (kg)
        com_offset: d, distance of the centre of mass behind the wheel axis (m)
        half_wheelbase: L, half the distance between the wheels (m)
        inertia: I, moment of inertia of the whole robot about its centre
            of rotation (kg·m²)
        wheel_inertia: I_w, moment of inertia of each wheel about its axle (kg·m²)
    """
    wheel_radius: Quantity
    mass: Quantity
    chassis_mass: Quantity
    com_offset: Quantity
    half_wheelbase: Quantity
    inertia: Quantity
    wheel_inertia: Quantity

    _DIMENSIONS = {
        "wheel_radius": LENGTH,
        "mass": MASS,
        "chassis_mass": MASS,
        "com_offset": LENGTH,
        "half_wheelbase": LENGTH,
        "inertia": MOMENT_OF_INERTIA,
        "wheel_inertia": MOMENT_OF_INERTIA,
    }

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            _check_dimension(f.name, value, self._DIMENSIONS[f.name])
            _check_finite(f.name, value)

        for name in ("wheel_radius", "mass", "half_wheelbase", "inertia"):
            if getattr(self, name).value <= 0.0:
                raise ConfigurationError(f"{name} must be positive, got {getattr(self, name)!r}")
        if self.chassis_mass.value < 0.0:
            raise ConfigurationError(f"chassis_mass must be non-negative, got {self.chassis_mass!r}")
        if self.wheel_inertia.value < 0.0:
            raise ConfigurationError(f"wheel_inertia must be non-negative, got {self.wheel_inertia!r}")
        if self.chassis_mass > self.mass:
            raise ConfigurationError(
                f"chassis_mass ({self.chassis_mass!r}) exceeds total mass ({self.mass!r})"
            )

    @property
    def linear_inertia(self) -> Quantity:
        """Effective mass seen by the linear channel: m + 2·I_w/R²."""
        return self.mass + 2. * self.wheel_inertia / self.wheel_radius ** 2

    @property
    def angular_inertia(self) -> Quantity:
        """Effective inertia seen by the angular channel: I + 2·L²·I_w/R²."""
        return self.inertia + 2. * self.half_wheelbase ** 2 * self.wheel_inertia / self.wheel_radius ** 2


@dataclass(frozen=True)
class DCMotorParams:
    """
    Electrical and gearing parameters of one drive motor.

    Attributes:
        armature_resistance: R_a (Ω)
        armature_inductance: L_a (H)
        gear_ratio: N, such that rotor speed = N · wheel speed
        back_emf_constant: K_b, such that e_a = K_b · ω_m (V·s)
        torque_constant: K_t, such that τ = K_t · i_a (N·m/A)
    """
    armature_resistance: Quantity
    armature_inductance: Quantity
    gear_ratio: float
    back_emf_constant: Quantity
    torque_constant: Quantity

    def __post_init__(self):
        _check_dimension("armature_resistance", self.armature_resistance, RESISTANCE)
        _check_dimension("armature_inductance", self.armature_inductance, INDUCTANCE)
        _check_dimension("back_emf_constant", self.back_emf_constant, BACK_EMF_CONSTANT)
        _check_dimension("torque_constant", self.torque_constant, TORQUE_CONSTANT)
        if isinstance(self.gear_ratio, Quantity) or not isinstance(self.gear_ratio, (int, float)):
            raise DimensionError(f"gear_ratio must be a raw number, got {self.gear_ratio!r}")

        for name in ("armature_resistance", "armature_inductance", "back_emf_constant", "torque_constant"):
            _check_finite(name, getattr(self, name))
        if not math.isfinite(self.gear_ratio) or self.gear_ratio <= 0.0:
            raise ConfigurationError(f"gear_ratio must be positive, got {self.gear_ratio!r}")
        if self.armature_resistance.value <= 0.0:
            raise ConfigurationError(f"armature_resistance must be positive, got {self.armature_resistance!r}")
        if self.torque_constant.value <= 0.0:
            raise ConfigurationError(f"torque_constant must be positive, got {self.torque_constant!r}")
        if self.armature_inductance.value < 0.0:
            raise ConfigurationError(f"armature_inductance must be non-negative, got {self.armature_inductance!r}")
        if self.back_emf_constant.value < 0.0:
            raise ConfigurationError(f"back_emf_constant must be non-negative, got {self.back_emf_constant!r}")


class DDMRModel:
    """
    Unactuated drivetrain dynamics.

    Integrates linear and angular velocity from a pair of wheel torques.

    Usage:
        model = DDMRModel(0.005 * S, params)
        vels = model.observe(LR(left=1.0 * NM, right=1.0 * NM))
    """

    def __init__(self, dt: Quantity, params: DDMRParams, initial: Optional[Vels] = None):
        """
        Args:
            dt: Fixed simulation timestep
            params: Drivetrain parameters
            initial: Velocities at time zero (default: at rest)
        """
        initial = initial or Vels()
        self._params = params
        self._linv = Integrator(dt, initial.lin)
        self._angv = Integrator(dt, initial.ang)

        # Constant for the model's lifetime
        self._linear_inertia = params.linear_inertia
        self._angular_inertia = params.angular_inertia

        logger.debug(f"DDMR model initialized with dt={dt.value_in(S)} s")

    @property
    def params(self) -> DDMRParams:
        return self._params

    @property
    def dt(self) -> Quantity:
        return self._linv.dt

    def vel(self) -> Vels:
        return Vels(lin=self._linv.get(), ang=self._angv.get())

    def observe(self, tau: LR[Quantity]) -> Vels:
        """
        Advance the drivetrain by one timestep.

        Both accelerations are computed from the velocities before this
        call, then each channel is integrated forward.

        Args:
            tau: Left/right wheel torques (N·m)

        Returns:
            Velocities after the update
        """
        p = self._params
        R, L = p.wheel_radius, p.half_wheelbase
        v, w = self._linv.get(), self._angv.get()
        coupling = p.chassis_mass * p.com_offset

        vdot = ((tau.right + tau.left) / R + coupling * w * w) / self._linear_inertia
        wdot = ((tau.right - tau.left) * L / R - coupling * w * v) / self._angular_inertia

        return Vels(lin=self._linv.add(vdot), ang=self._angv.add(wdot))

    def vels_to_wheel(self, v: Vels) -> LR[Quantity]:
        """
        Map body velocities to wheel angular rates (no-slip kinematics).

        Args:
            v: Body velocities

        Returns:
            Left/right wheel angular rates (rad/s)
        """
        R, L = self._params.wheel_radius, self._params.half_wheelbase
        return LR(
            left=(v.lin - L * v.ang) / R,
            right=(v.lin + L * v.ang) / R,
        )

    def wheels_to_vels(self, wheels: LR[Quantity]) -> Vels:
        """Inverse of ``vels_to_wheel``."""
        R, L = self._params.wheel_radius, self._params.half_wheelbase
        return Vels(
            lin=R * (wheels.right + wheels.left) / 2.,
            ang=R * (wheels.right - wheels.left) / (2. * L),
        )

    def wheels(self) -> LR[Quantity]:
        return self.vels_to_wheel(self.vel())


class ActuatedDDMRModel:
    """
    Drivetrain driven by two DC gear motors.

    Converts armature voltages into currents, currents into wheel torques,
    and advances the owned ``DDMRModel``. The inductive term uses the
    derivative of the previous current estimates, so each step is an
    explicit, non-iterative solve.
    """

    def __init__(
        self,
        dt: Quantity,
        ddmr_params: DDMRParams,
        motor_params: DCMotorParams,
        initial: Optional[Vels] = None
    ):
        """
        Args:
            dt: Fixed simulation timestep
            ddmr_params: Drivetrain parameters
            motor_params: Motor parameters, shared by both sides
            initial: Velocities at time zero (default: at rest)
        """
        self._ddmr = DDMRModel(dt, ddmr_params, initial)
        self._motor = motor_params
        self._di: LR[Differentiator] = LR(
            left=Differentiator(dt, 0. * A),
            right=Differentiator(dt, 0. * A),
        )

        lag_gain = float(motor_params.armature_inductance / (motor_params.armature_resistance * dt))
        if lag_gain >= 0.5:
            logger.warning(
                f"La/(Ra·dt) = {lag_gain:.3f} >= 0.5: the lagged inductance term "
                "will oscillate with growing amplitude at this timestep"
            )

        logger.info(
            f"Actuated DDMR model initialized: dt={dt.value_in(S)} s, "
            f"gear ratio={motor_params.gear_ratio}"
        )

    @property
    def drivetrain(self) -> DDMRModel:
        return self._ddmr

    @property
    def motor_params(self) -> DCMotorParams:
        return self._motor

    def vel(self) -> Vels:
        return self._ddmr.vel()

    def wheels(self) -> LR[Quantity]:
        return self._ddmr.wheels()

    def currents(self) -> LR[Quantity]:
        """Armature currents solved in the most recent step."""
        return LR(left=self._di.left.last, right=self._di.right.last)

    def torques(self) -> LR[Quantity]:
        """Wheel torques applied in the most recent step."""
        return self.currents().map(lambda i: i * self._motor.torque_constant)

    def observe(self, voltages: LR[Quantity]) -> Vels:
        """
        Advance motors and drivetrain by one timestep.

        Args:
            voltages: Left/right armature voltages (V)

        Returns:
            Velocities after the update
        """
        p = self._motor
        phidot = self._ddmr.wheels()
        emf_gain = p.back_emf_constant * p.gear_ratio

        i_left = (
            voltages.left - emf_gain * phidot.left - p.armature_inductance * self._di.left.get()
        ) / p.armature_resistance
        i_right = (
            voltages.right - emf_gain * phidot.right - p.armature_inductance * self._di.right.get()
        ) / p.armature_resistance

        self._di.left.add(i_left)
        self._di.right.add(i_right)

        return self._ddmr.observe(LR(
            left=i_left * p.torque_constant,
            right=i_right * p.torque_constant,
        ))
