"""
Units Package
==============
Runtime-checked physical quantities for the drive simulator.
"""

from .quantity import (
    DIMENSIONLESS,
    Dimension,
    DimensionError,
    Quantity,
    isclose,
)
from . import si

__all__ = [
    "DIMENSIONLESS",
    "Dimension",
    "DimensionError",
    "Quantity",
    "isclose",
    "si",
]
