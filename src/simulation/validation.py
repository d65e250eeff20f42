"""
Continuous-Time Reference
==========================
Cross-checks the fixed-step model against a high-accuracy ODE solution.

The same drivetrain and motor equations are integrated with
``scipy.integrate.solve_ivp``. With zero armature inductance the currents
are algebraic; otherwise they are carried as state variables:

    L_a·di/dt = v_a − K_b·N·ϕ̇ − R_a·i
"""

from __future__ import annotations

from typing import Dict, Optional

import numpy as np
from numpy.typing import NDArray
from scipy.integrate import solve_ivp
from loguru import logger

from units import Quantity
from units.si import HZ, MPS, S, V

from .dynamics import ActuatedDDMRModel, DCMotorParams, DDMRParams, LR
from .exceptions import ConfigurationError


class ContinuousModelValidator:
    """
    Compares the discrete simulation with a continuous reference solution.

    Usage:
        validator = ContinuousModelValidator(ddmr_params, motor_params)
        report = validator.compare(0.005 * S, 2.0 * S, LR(left=12. * V, right=6. * V))
    """

    def __init__(self, ddmr_params: DDMRParams, motor_params: DCMotorParams):
        self.ddmr_params = ddmr_params
        self.motor_params = motor_params

        # Raw SI magnitudes for the ODE right-hand side
        p, mp = ddmr_params, motor_params
        self._R = p.wheel_radius.value
        self._L = p.half_wheelbase.value
        self._coupling = (p.chassis_mass * p.com_offset).value
        self._m_eff = p.linear_inertia.value
        self._i_eff = p.angular_inertia.value
        self._Ra = mp.armature_resistance.value
        self._La = mp.armature_inductance.value
        self._emf_gain = mp.back_emf_constant.value * mp.gear_ratio
        self._Kt = mp.torque_constant.value

    @property
    def has_inductance(self) -> bool:
        return self._La > 0.0

    def _derivatives(self, t: float, y: NDArray, v_left: float, v_right: float) -> NDArray:
        v, w = y[0], y[1]
        phi_left = (v - self._L * w) / self._R
        phi_right = (v + self._L * w) / self._R

        if self.has_inductance:
            i_left, i_right = y[2], y[3]
        else:
            i_left = (v_left - self._emf_gain * phi_left) / self._Ra
            i_right = (v_right - self._emf_gain * phi_right) / self._Ra

        tau_left = self._Kt * i_left
        tau_right = self._Kt * i_right

        vdot = ((tau_right + tau_left) / self._R + self._coupling * w * w) / self._m_eff
        wdot = ((tau_right - tau_left) * self._L / self._R - self._coupling * w * v) / self._i_eff

        if not self.has_inductance:
            return np.array([vdot, wdot])

        di_left = (v_left - self._emf_gain * phi_left - self._Ra * i_left) / self._La
        di_right = (v_right - self._emf_gain * phi_right - self._Ra * i_right) / self._La
        return np.array([vdot, wdot, di_left, di_right])

    def reference_solution(
        self,
        times: NDArray,
        voltages: LR[Quantity],
        method: Optional[str] = None
    ) -> NDArray:
        """
        Solve the continuous model from rest under constant voltages.

        Args:
            times: Sample times (s), increasing
            voltages: Constant left/right armature voltages
            method: solve_ivp method (default: RK45, or Radau with inductance)

        Returns:
            Array of shape (len(times), 2) with columns [v, ω]
        """
        v_left = voltages.left.value_in(V)
        v_right = voltages.right.value_in(V)
        y0 = np.zeros(4 if self.has_inductance else 2)
        method = method or ("Radau" if self.has_inductance else "RK45")

        solution = solve_ivp(
            self._derivatives,
            (0.0, float(times[-1])),
            y0,
            method=method,
            t_eval=times,
            args=(v_left, v_right),
            rtol=1e-9,
            atol=1e-12,
        )
        if not solution.success:
            raise RuntimeError(f"Reference integration failed: {solution.message}")

        return solution.y[:2].T

    def compare(
        self,
        dt: Quantity,
        duration: Quantity,
        voltages: LR[Quantity]
    ) -> Dict[str, float]:
        """
        Run both models and report the discrepancy.

        Args:
            dt: Timestep of the fixed-step model
            duration: Comparison horizon
            voltages: Constant left/right armature voltages

        Returns:
            Comparison statistics
        """
        model = ActuatedDDMRModel(dt, self.ddmr_params, self.motor_params)
        n_steps = int(round(float(duration / dt)))
        if n_steps < 1:
            raise ConfigurationError(
                f"comparison horizon {duration!r} is shorter than one timestep {dt!r}"
            )
        times = dt.value_in(S) * np.arange(1, n_steps + 1)

        simulated = np.empty((n_steps, 2))
        for k in range(n_steps):
            vels = model.observe(voltages)
            simulated[k] = (vels.lin.value_in(MPS), vels.ang.value_in(HZ))

        reference = self.reference_solution(times, voltages)
        error = simulated - reference

        report = {
            "samples": n_steps,
            "rmse_linear_m_s": float(np.sqrt(np.mean(error[:, 0] ** 2))),
            "rmse_angular_rad_s": float(np.sqrt(np.mean(error[:, 1] ** 2))),
            "max_linear_error_m_s": float(np.max(np.abs(error[:, 0]))),
            "max_angular_error_rad_s": float(np.max(np.abs(error[:, 1]))),
            "final_linear_reference_m_s": float(reference[-1, 0]),
            "final_linear_simulated_m_s": float(simulated[-1, 0]),
            "final_angular_reference_rad_s": float(reference[-1, 1]),
            "final_angular_simulated_rad_s": float(simulated[-1, 1]),
        }

        logger.info(
            f"Validation over {n_steps} steps: "
            f"RMSE v={report['rmse_linear_m_s']:.2e} m/s, ω={report['rmse_angular_rad_s']:.2e} rad/s"
        )
        return report
