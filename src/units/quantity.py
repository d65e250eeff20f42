"""
Dimensional Quantities
=======================
Scalar physical quantities tagged with their SI dimension.

Every ``Quantity`` carries a ``Dimension``: the exponents of the seven SI
base dimensions (length, mass, time, current, temperature, amount,
luminosity). Arithmetic is checked when the expression is evaluated:

- ``+``, ``-`` and ordering comparisons require identical dimensions
- ``*`` and ``/`` add or subtract the exponent vectors
- a raw number may scale a quantity, but never be added to one

Python has no compile-time dimensional generics, so an invalid combination
raises ``DimensionError`` at the offending expression instead of failing
to build.
"""

from __future__ import annotations

import math
from typing import NamedTuple, Union


Number = Union[int, float]

_BASE_SYMBOLS = ("m", "kg", "s", "A", "K", "mol", "cd")


class DimensionError(TypeError):
    """Raised when an operation combines incompatible physical dimensions."""


class Dimension(NamedTuple):
    """Exponents over the SI base dimensions."""
    length: int = 0
    mass: int = 0
    time: int = 0
    current: int = 0
    temperature: int = 0
    amount: int = 0
    luminosity: int = 0

    def multiply(self, other: Dimension) -> Dimension:
        return Dimension(*(a + b for a, b in zip(self, other)))

    def divide(self, other: Dimension) -> Dimension:
        return Dimension(*(a - b for a, b in zip(self, other)))

    def power(self, exponent: int) -> Dimension:
        return Dimension(*(a * exponent for a in self))

    @property
    def is_dimensionless(self) -> bool:
        return not any(self)

    @property
    def symbol(self) -> str:
        """Human-readable unit symbol, e.g. ``m·s^-1``."""
        parts = []
        for name, exp in zip(_BASE_SYMBOLS, self):
            if exp == 1:
                parts.append(name)
            elif exp:
                parts.append(f"{name}^{exp}")
        return "·".join(parts) if parts else "1"


DIMENSIONLESS = Dimension()


def _require_same(op: str, a: Dimension, b: Dimension) -> None:
    if a != b:
        raise DimensionError(
            f"cannot {op} quantities of dimension [{a.symbol}] and [{b.symbol}]"
        )


class Quantity:
    """
    A scalar value with an SI dimension.

    The magnitude is always stored in coherent SI units. Build quantities
    by scaling a unit literal (``0.005 * S``) or explicitly with
    ``Quantity(value, dimension)``.

    Attributes:
        value: Magnitude in coherent SI units
        dimension: Exponent vector over the SI base dimensions
    """

    __slots__ = ("_value", "_dimension")

    def __init__(self, value: Number, dimension: Dimension):
        if isinstance(value, Quantity):
            raise DimensionError("Quantity value must be a raw number")
        if not isinstance(dimension, Dimension):
            raise TypeError(f"expected a Dimension, got {type(dimension).__name__}")
        self._value = float(value)
        self._dimension = dimension

    @property
    def value(self) -> float:
        return self._value

    @property
    def dimension(self) -> Dimension:
        return self._dimension

    def value_in(self, unit: Quantity) -> float:
        """
        Express this quantity as a raw number of ``unit``.

        Args:
            unit: Unit literal of the same dimension (e.g. ``MPS``)

        Returns:
            Magnitude in multiples of ``unit``
        """
        _require_same("convert", self._dimension, unit.dimension)
        return self._value / unit.value

    def is_finite(self) -> bool:
        return math.isfinite(self._value)

    def has_dimension(self, dimension: Dimension) -> bool:
        return self._dimension == dimension

    # ------------------------------------------------------------------
    # Additive operators
    # ------------------------------------------------------------------

    def _additive_operand(self, op: str, other: object) -> Quantity:
        if isinstance(other, Quantity):
            _require_same(op, self._dimension, other._dimension)
            return other
        if isinstance(other, (int, float)):
            raise DimensionError(
                f"cannot {op} a raw number and a quantity of dimension "
                f"[{self._dimension.symbol}]; attach a unit first"
            )
        return NotImplemented

    def __add__(self, other: Quantity) -> Quantity:
        other = self._additive_operand("add", other)
        if other is NotImplemented:
            return NotImplemented
        return Quantity(self._value + other._value, self._dimension)

    __radd__ = __add__

    def __sub__(self, other: Quantity) -> Quantity:
        other = self._additive_operand("subtract", other)
        if other is NotImplemented:
            return NotImplemented
        return Quantity(self._value - other._value, self._dimension)

    def __rsub__(self, other: Quantity) -> Quantity:
        other = self._additive_operand("subtract", other)
        if other is NotImplemented:
            return NotImplemented
        return Quantity(other._value - self._value, self._dimension)

    # ------------------------------------------------------------------
    # Multiplicative operators
    # ------------------------------------------------------------------

    def __mul__(self, other: Union[Quantity, Number]) -> Quantity:
        if isinstance(other, Quantity):
            return Quantity(
                self._value * other._value,
                self._dimension.multiply(other._dimension),
            )
        if isinstance(other, (int, float)):
            return Quantity(self._value * other, self._dimension)
        return NotImplemented

    __rmul__ = __mul__

    def __truediv__(self, other: Union[Quantity, Number]) -> Quantity:
        if isinstance(other, Quantity):
            return Quantity(
                self._value / other._value,
                self._dimension.divide(other._dimension),
            )
        if isinstance(other, (int, float)):
            return Quantity(self._value / other, self._dimension)
        return NotImplemented

    def __rtruediv__(self, other: Number) -> Quantity:
        if isinstance(other, (int, float)):
            return Quantity(other / self._value, DIMENSIONLESS.divide(self._dimension))
        return NotImplemented

    def __pow__(self, exponent: int) -> Quantity:
        if not isinstance(exponent, int) or isinstance(exponent, bool):
            raise DimensionError("quantities may only be raised to integer powers")
        return Quantity(self._value ** exponent, self._dimension.power(exponent))

    def __neg__(self) -> Quantity:
        return Quantity(-self._value, self._dimension)

    def __pos__(self) -> Quantity:
        return Quantity(self._value, self._dimension)

    def __abs__(self) -> Quantity:
        return Quantity(abs(self._value), self._dimension)

    def __float__(self) -> float:
        if not self._dimension.is_dimensionless:
            raise DimensionError(
                f"cannot convert a quantity of dimension [{self._dimension.symbol}] "
                "to a raw number; use value_in(unit)"
            )
        return self._value

    # ------------------------------------------------------------------
    # Comparisons
    # ------------------------------------------------------------------

    def _comparable(self, op: str, other: object) -> float:
        if isinstance(other, Quantity):
            _require_same(op, self._dimension, other._dimension)
            return other._value
        raise DimensionError(
            f"cannot {op} a quantity of dimension [{self._dimension.symbol}] "
            f"with {type(other).__name__}"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, (Quantity, int, float)):
            return NotImplemented
        return self._value == self._comparable("compare", other)

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __lt__(self, other: Quantity) -> bool:
        return self._value < self._comparable("compare", other)

    def __le__(self, other: Quantity) -> bool:
        return self._value <= self._comparable("compare", other)

    def __gt__(self, other: Quantity) -> bool:
        return self._value > self._comparable("compare", other)

    def __ge__(self, other: Quantity) -> bool:
        return self._value >= self._comparable("compare", other)

    def __hash__(self) -> int:
        return hash((self._value, self._dimension))

    def __repr__(self) -> str:
        return f"Quantity({self._value!r}, {self._dimension.symbol})"

    def __format__(self, spec: str) -> str:
        return f"{format(self._value, spec)} {self._dimension.symbol}"


def isclose(a: Quantity, b: Quantity, abs_tol: Quantity, rel_tol: float = 1e-9) -> bool:
    """
    Dimension-checked ``math.isclose``.

    Args:
        a, b: Quantities to compare
        abs_tol: Absolute tolerance, same dimension as ``a`` and ``b``
        rel_tol: Relative tolerance (dimensionless)

    Returns:
        True if ``a`` and ``b`` agree within tolerance
    """
    _require_same("compare", a.dimension, b.dimension)
    _require_same("compare", a.dimension, abs_tol.dimension)
    return math.isclose(a.value, b.value, rel_tol=rel_tol, abs_tol=abs_tol.value)
