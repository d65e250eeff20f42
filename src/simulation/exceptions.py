"""
Simulation Exceptions
======================
"""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when model parameters are physically invalid or degenerate."""
