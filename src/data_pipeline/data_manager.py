"""
Data Pipeline - Telemetry Manager
==================================
Collects per-tick simulator state for inspection and export.

Responsibilities:
- Hold the latest snapshot and a bounded history
- Fan updates out to subscribers
- Record named runs and export them to CSV or JSON
"""

from __future__ import annotations

import csv
import json
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Dict, List, Any, Callable

import numpy as np
from loguru import logger
from pydantic import BaseModel, Field

from simulation import DriveState


@dataclass
class DataStreamConfig:
    """Configuration for telemetry buffering."""
    buffer_size: int = 10000


class TickSnapshot(BaseModel):
    """
    Robot state after one simulation tick, in SI units.
    """
    timestamp: datetime = Field(default_factory=datetime.now)
    sim_time_s: float = 0.0

    # Pose
    x_m: float = 0.0
    y_m: float = 0.0
    heading_rad: float = 0.0

    # Body velocities
    linear_velocity_m_s: float = 0.0
    angular_velocity_rad_s: float = 0.0

    # Per-wheel
    left_wheel_rad_s: float = 0.0
    right_wheel_rad_s: float = 0.0
    left_voltage_v: float = 0.0
    right_voltage_v: float = 0.0
    left_current_a: float = 0.0
    right_current_a: float = 0.0

    @classmethod
    def from_state(cls, state: DriveState) -> TickSnapshot:
        return cls(
            sim_time_s=state.time,
            x_m=state.x,
            y_m=state.y,
            heading_rad=state.heading,
            linear_velocity_m_s=state.linear_velocity,
            angular_velocity_rad_s=state.angular_velocity,
            left_wheel_rad_s=state.left_wheel_rate,
            right_wheel_rad_s=state.right_wheel_rate,
            left_voltage_v=state.left_voltage,
            right_voltage_v=state.right_voltage,
            left_current_a=state.left_current,
            right_current_a=state.right_current,
        )

    @property
    def electrical_power_w(self) -> float:
        """Total electrical power drawn by both motors."""
        return (
            self.left_voltage_v * self.left_current_a
            + self.right_voltage_v * self.right_current_a
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return self.model_dump()


class StateManager:
    """
    Holds the current telemetry snapshot and its history.
    """

    def __init__(self, config: Optional[DataStreamConfig] = None):
        self.config = config or DataStreamConfig()

        self._current_state = TickSnapshot()
        self._state_lock = threading.RLock()
        self._history: deque = deque(maxlen=self.config.buffer_size)
        self._subscribers: List[Callable[[TickSnapshot], None]] = []
        self._update_count = 0

        logger.info("StateManager initialized")

    @property
    def current_state(self) -> TickSnapshot:
        with self._state_lock:
            return self._current_state

    def update_from_simulation(self, state: DriveState) -> None:
        """
        Record a simulator tick.

        Args:
            state: State returned by ``DriveSimulator.step``
        """
        snapshot = TickSnapshot.from_state(state)
        with self._state_lock:
            self._current_state = snapshot
            self._history.append(snapshot)
            self._update_count += 1

        # Notify subscribers (outside lock)
        self._notify_subscribers(snapshot)

    def subscribe(self, callback: Callable[[TickSnapshot], None]) -> None:
        """
        Subscribe to state updates.

        Args:
            callback: Function to call on state update
        """
        self._subscribers.append(callback)
        logger.debug(f"Added state subscriber, total: {len(self._subscribers)}")

    def unsubscribe(self, callback: Callable) -> None:
        """Remove a subscriber."""
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _notify_subscribers(self, snapshot: TickSnapshot) -> None:
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(f"Subscriber callback error: {e}")

    def get_history(self, max_samples: Optional[int] = None) -> List[TickSnapshot]:
        """
        Get state history.

        Args:
            max_samples: Maximum number of most recent samples

        Returns:
            List of historical snapshots, oldest first
        """
        with self._state_lock:
            history = list(self._history)

        if max_samples:
            history = history[-max_samples:]

        return history

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "update_count": self._update_count,
            "history_size": len(self._history),
            "subscriber_count": len(self._subscribers),
            "sim_time_s": self._current_state.sim_time_s,
        }


class ExperimentRecorder:
    """
    Records a named simulation run and exports it.
    """

    CSV_FIELDS = [
        "sim_time_s",
        "x_m",
        "y_m",
        "heading_rad",
        "linear_velocity_m_s",
        "angular_velocity_rad_s",
        "left_wheel_rad_s",
        "right_wheel_rad_s",
        "left_voltage_v",
        "right_voltage_v",
        "left_current_a",
        "right_current_a",
    ]

    def __init__(self, state_manager: StateManager):
        self.state_manager = state_manager

        self._recording = False
        self._experiment_id: Optional[str] = None
        self._recorded_states: List[TickSnapshot] = []
        self._metadata: Dict[str, Any] = {}

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def samples(self) -> List[TickSnapshot]:
        return list(self._recorded_states)

    def start_recording(
        self,
        experiment_name: str,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Start recording a run.

        Args:
            experiment_name: Name of the run
            description: Optional description
            metadata: Additional metadata

        Returns:
            Experiment ID
        """
        if self._recording:
            raise RuntimeError("Already recording")

        start_time = datetime.now()
        self._experiment_id = f"run_{start_time.strftime('%Y%m%d_%H%M%S')}"
        self._recorded_states = []
        self._metadata = {
            "id": self._experiment_id,
            "name": experiment_name,
            "description": description,
            "start_time": start_time.isoformat(),
            **(metadata or {})
        }

        self.state_manager.subscribe(self._on_state_update)
        self._recording = True

        logger.info(f"Started recording: {experiment_name}")
        return self._experiment_id

    def stop_recording(self) -> Dict[str, Any]:
        """
        Stop recording and return summary.

        Returns:
            Run summary dictionary
        """
        if not self._recording:
            raise RuntimeError("Not recording")

        self._recording = False
        self.state_manager.unsubscribe(self._on_state_update)

        samples = self._recorded_states
        speeds = np.array([abs(s.linear_velocity_m_s) for s in samples])
        power = np.array([s.electrical_power_w for s in samples])
        sim_duration = samples[-1].sim_time_s - samples[0].sim_time_s if samples else 0.0

        summary = {
            **self._metadata,
            "end_time": datetime.now().isoformat(),
            "sample_count": len(samples),
            "sim_duration_s": sim_duration,
            "mean_speed_m_s": float(np.mean(speeds)) if samples else None,
            "max_speed_m_s": float(np.max(speeds)) if samples else None,
            "mean_power_w": float(np.mean(power)) if samples else None,
            "peak_power_w": float(np.max(power)) if samples else None,
        }

        logger.info(f"Stopped recording. Samples: {len(samples)}")
        return summary

    def _on_state_update(self, snapshot: TickSnapshot) -> None:
        if self._recording:
            self._recorded_states.append(snapshot)

    def export_to_csv(self, filepath: str) -> None:
        """
        Export recorded data to CSV.

        Args:
            filepath: Output file path
        """
        if not self._recorded_states:
            logger.warning("No data to export")
            return

        with open(filepath, 'w', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=["timestamp"] + self.CSV_FIELDS)
            writer.writeheader()

            for state in self._recorded_states:
                row = {name: getattr(state, name) for name in self.CSV_FIELDS}
                row["timestamp"] = state.timestamp.isoformat()
                writer.writerow(row)

        logger.info(f"Exported {len(self._recorded_states)} samples to {filepath}")

    def export_to_json(self, filepath: str) -> None:
        """
        Export recorded data to JSON.

        Args:
            filepath: Output file path
        """
        data = {
            "metadata": self._metadata,
            "data": [s.to_dict() for s in self._recorded_states]
        }

        with open(filepath, 'w') as f:
            json.dump(data, f, indent=2, default=str)

        logger.info(f"Exported run to {filepath}")
