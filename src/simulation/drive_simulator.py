"""
Drive Simulator
================
Fixed-cadence runner around the actuated DDMR model.

Holds the commanded voltage pair, advances the model once per tick and
dead-reckons the robot's planar pose in the world frame:

    x += v·cos(θ)·dt
    y += v·sin(θ)·dt
    θ += ω·dt              (wrapped to [-π, π])
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Any

import numpy as np
from numpy.typing import NDArray
from loguru import logger

from units import DimensionError, Quantity
from units.si import A, HZ, M, MPS, S, V, VOLTAGE, TIME

from .dynamics import ActuatedDDMRModel, DCMotorParams, DDMRParams, LR, Vels
from .exceptions import ConfigurationError
from .signal_blocks import Integrator

if TYPE_CHECKING:
    from configuration import RobotConfig


@dataclass
class DriveState:
    """
    Snapshot of the simulated robot after a tick.

    All values are plain floats in SI units (angles in radians).
    """
    time: float = 0.0

    # World-frame pose
    x: float = 0.0  # m
    y: float = 0.0  # m
    heading: float = 0.0  # rad, 0 = +X, CCW positive

    # Body velocities
    linear_velocity: float = 0.0  # m/s
    angular_velocity: float = 0.0  # rad/s

    # Per-wheel
    left_wheel_rate: float = 0.0  # rad/s
    right_wheel_rate: float = 0.0  # rad/s
    left_voltage: float = 0.0  # V
    right_voltage: float = 0.0  # V
    left_current: float = 0.0  # A
    right_current: float = 0.0  # A

    def to_array(self) -> NDArray:
        """Convert pose and velocities to a numpy array [x, y, θ, v, ω]."""
        return np.array([
            self.x, self.y, self.heading,
            self.linear_velocity, self.angular_velocity
        ])


class DriveSimulator:
    """
    Main drive simulator.

    Usage:
        sim = DriveSimulator(0.005 * S, ddmr_params, motor_params)
        sim.set_voltages(12. * V, 12. * V)

        for state in sim.simulate(2.0 * S):
            print(f"t={state.time:.3f}, v={state.linear_velocity:.3f}")
    """

    def __init__(
        self,
        dt: Quantity,
        ddmr_params: DDMRParams,
        motor_params: DCMotorParams,
        supply_voltage: Optional[Quantity] = None
    ):
        """
        Initialize drive simulator.

        Args:
            dt: Fixed simulation timestep
            ddmr_params: Drivetrain parameters
            motor_params: Motor parameters
            supply_voltage: Largest commandable voltage magnitude (unbounded if None)
        """
        if supply_voltage is not None and not supply_voltage.has_dimension(VOLTAGE):
            raise DimensionError(f"supply_voltage must be a voltage, got {supply_voltage!r}")

        self.dt = dt
        self.model = ActuatedDDMRModel(dt, ddmr_params, motor_params)
        self.supply_voltage = supply_voltage
        self.state = DriveState()

        self._voltages: LR[Quantity] = LR(left=0. * V, right=0. * V)
        self._heading = Integrator(dt, 0. * HZ * S)
        self._x = Integrator(dt, 0. * M)
        self._y = Integrator(dt, 0. * M)
        self._history: List[DriveState] = []

        logger.info(f"Drive simulator initialized at {1.0 / dt.value_in(S):.0f} Hz")

    @classmethod
    def from_config(cls, config: RobotConfig) -> DriveSimulator:
        """Build a simulator from a loaded robot configuration."""
        return cls(
            config.simulation.dt_s * S,
            config.drivetrain.to_params(),
            config.motor.to_params(),
            supply_voltage=config.simulation.supply_voltage_v * V,
        )

    @property
    def voltages(self) -> LR[Quantity]:
        return self._voltages

    @property
    def history(self) -> List[DriveState]:
        return list(self._history)

    def set_voltages(self, left: Quantity, right: Quantity) -> None:
        """
        Set the armature voltages applied on subsequent ticks.

        Args:
            left: Left motor voltage
            right: Right motor voltage
        """
        for name, value in (("left", left), ("right", right)):
            if not isinstance(value, Quantity) or not value.has_dimension(VOLTAGE):
                raise DimensionError(f"{name} voltage must be a voltage, got {value!r}")
            if self.supply_voltage is not None and abs(value) > self.supply_voltage:
                raise ConfigurationError(
                    f"{name} voltage {value.value_in(V):.2f} V exceeds supply "
                    f"of {self.supply_voltage.value_in(V):.2f} V"
                )

        self._voltages = LR(left=left, right=right)
        logger.debug(f"Voltages set: left={left.value_in(V):.2f} V, right={right.value_in(V):.2f} V")

    def emergency_stop(self) -> None:
        """Remove drive voltage from both motors."""
        logger.warning("Emergency stop: zeroing motor voltages")
        self._voltages = LR(left=0. * V, right=0. * V)

    def step(self) -> DriveState:
        """
        Advance simulation by one timestep.

        Returns:
            Updated state
        """
        vels = self.model.observe(self._voltages)
        self._update_pose(vels)

        wheels = self.model.wheels()
        currents = self.model.currents()
        heading = float(self._heading.get())

        self.state = DriveState(
            time=self.state.time + self.dt.value_in(S),
            x=self._x.get().value_in(M),
            y=self._y.get().value_in(M),
            heading=float(np.arctan2(np.sin(heading), np.cos(heading))),
            linear_velocity=vels.lin.value_in(MPS),
            angular_velocity=vels.ang.value_in(HZ),
            left_wheel_rate=wheels.left.value_in(HZ),
            right_wheel_rate=wheels.right.value_in(HZ),
            left_voltage=self._voltages.left.value_in(V),
            right_voltage=self._voltages.right.value_in(V),
            left_current=currents.left.value_in(A),
            right_current=currents.right.value_in(A),
        )
        self._history.append(self.state)
        return self.state

    def _update_pose(self, vels: Vels) -> None:
        """Dead-reckon the world pose from the post-update velocities."""
        heading = float(self._heading.get())
        self._x.add(vels.lin * float(np.cos(heading)))
        self._y.add(vels.lin * float(np.sin(heading)))
        self._heading.add(vels.ang)

    def simulate(
        self,
        duration: Quantity,
        callback: Optional[Callable[[DriveState], None]] = None
    ) -> List[DriveState]:
        """
        Run simulation for specified duration.

        Args:
            duration: Simulation duration
            callback: Optional callback called each step

        Returns:
            State at each timestep
        """
        if not duration.has_dimension(TIME):
            raise DimensionError(f"duration must be a time, got {duration!r}")

        states = []
        n_steps = int(round(float(duration / self.dt)))

        for _ in range(n_steps):
            state = self.step()
            states.append(state)

            if callback:
                callback(state)

        logger.info(
            f"Simulated {n_steps} steps: v={self.state.linear_velocity:.3f} m/s, "
            f"ω={self.state.angular_velocity:.3f} rad/s"
        )
        return states

    def get_summary(self) -> Dict[str, Any]:
        """
        Summarize the recorded history.

        Returns:
            Dictionary with run statistics
        """
        if not self._history:
            return {"samples": 0}

        data = np.array([
            [s.linear_velocity, s.angular_velocity, s.left_current, s.right_current, s.x, s.y]
            for s in self._history
        ])
        speed = np.abs(data[:, 0])
        currents = np.abs(data[:, 2:4])
        path = np.concatenate([[[0.0, 0.0]], data[:, 4:6]])

        return {
            "samples": len(self._history),
            "duration_s": self.state.time,
            "final_linear_velocity_m_s": self.state.linear_velocity,
            "final_angular_velocity_rad_s": self.state.angular_velocity,
            "mean_speed_m_s": float(np.mean(speed)),
            "max_speed_m_s": float(np.max(speed)),
            "distance_travelled_m": float(np.sum(np.linalg.norm(np.diff(path, axis=0), axis=1))),
            "final_position_m": [self.state.x, self.state.y],
            "final_heading_rad": self.state.heading,
            "peak_current_a": float(np.max(currents)),
            "mean_current_a": float(np.mean(currents)),
        }
