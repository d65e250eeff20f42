"""
Data Pipeline Package
======================
Telemetry collection, recording and export.
"""

from .data_manager import (
    DataStreamConfig,
    TickSnapshot,
    StateManager,
    ExperimentRecorder,
)

__all__ = [
    "DataStreamConfig",
    "TickSnapshot",
    "StateManager",
    "ExperimentRecorder",
]
