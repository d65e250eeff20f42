"""
Fixed-Step Signal Blocks
=========================
Discrete integrator and differentiator over dimensioned quantities.

Both blocks fix their timestep at construction. Callers advance them once
per simulation tick; no wall clock is consulted.

    Integrator:      acc_k = acc_{k-1} + rate_k · dt        (explicit Euler)
    Differentiator:  ẋ_k   = (x_k - x_{k-1}) / dt           (backward difference)
"""

from __future__ import annotations

import math

from units import Dimension, DimensionError, Quantity
from units.si import TIME

from .exceptions import ConfigurationError


def _validate_timestep(dt: Quantity) -> Quantity:
    if not isinstance(dt, Quantity) or not dt.has_dimension(TIME):
        raise DimensionError(f"timestep must be a time quantity, got {dt!r}")
    if not math.isfinite(dt.value) or dt.value <= 0.0:
        raise ConfigurationError(f"timestep must be positive and finite, got {dt!r}")
    return dt


class Integrator:
    """
    Accumulates a rate quantity into a position-like quantity.

    The accumulator has dimension ``D·time`` where ``D`` is the dimension of
    the rates passed to ``add``; it is inferred from the initial value.

    Usage:
        i = Integrator(0.005 * S, 0. * M)
        i.add(1.0 * MPS)
        i.get()  # 0.005 m
    """

    def __init__(self, dt: Quantity, initial: Quantity):
        """
        Args:
            dt: Fixed timestep
            initial: Accumulated value at time zero (dimension D·time)
        """
        self._dt = _validate_timestep(dt)
        self._acc = initial
        self._rate_dimension: Dimension = initial.dimension.divide(TIME)

    @property
    def dt(self) -> Quantity:
        return self._dt

    @property
    def rate_dimension(self) -> Dimension:
        return self._rate_dimension

    def get(self) -> Quantity:
        return self._acc

    def add(self, rate: Quantity) -> Quantity:
        """
        Integrate one sample of ``rate`` over ``dt``.

        Args:
            rate: Rate sample for this step (dimension D)

        Returns:
            Updated accumulated value
        """
        if not isinstance(rate, Quantity):
            raise DimensionError(f"rate must be a quantity, got {rate!r}")
        self._acc = self._acc + rate * self._dt
        return self._acc


class Differentiator:
    """
    Two-point backward-difference derivative estimator.

    Both history slots are seeded with the initial sample, so the estimate
    is exactly zero until the first ``add``.
    """

    def __init__(self, dt: Quantity, initial: Quantity):
        self._dt = _validate_timestep(dt)
        self._last = initial
        self._two_ago = initial

    @property
    def dt(self) -> Quantity:
        return self._dt

    @property
    def last(self) -> Quantity:
        """Most recent sample."""
        return self._last

    def get(self) -> Quantity:
        return (self._last - self._two_ago) / self._dt

    def add(self, value: Quantity) -> Quantity:
        """
        Push a new sample and return the updated derivative estimate.

        Args:
            value: New sample (same dimension as the initial value)

        Returns:
            (value - previous sample) / dt
        """
        if not isinstance(value, Quantity) or value.dimension != self._last.dimension:
            raise DimensionError(
                f"expected a sample of dimension [{self._last.dimension.symbol}], got {value!r}"
            )
        self._two_ago = self._last
        self._last = value
        return self.get()
