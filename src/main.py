"""
DDMR Drive Simulator - Main Application Entry Point
====================================================
Command-line runner for the differential-drive robot simulator.

Loads a robot configuration, drives both motors with constant voltages for
a fixed duration, prints a summary and optionally exports the recorded run.

Usage:
    python src/main.py --left 12 --right 6 --duration 5 --export run.csv
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

# Add src to path for imports
SRC_DIR = Path(__file__).parent
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from configuration import LoggingConfig, RobotConfig, load_config
from data_pipeline import ExperimentRecorder, StateManager
from simulation import ConfigurationError, DriveSimulator, __version__
from units.si import S, V


class DriveSimApplication:
    """
    Wires configuration, simulator and telemetry together.
    """

    VERSION = __version__

    def __init__(self, config_path: Optional[Path] = None, config: Optional[RobotConfig] = None):
        """
        Args:
            config_path: Path to configuration YAML file
            config: Already-loaded configuration (takes precedence)
        """
        self.config = config if config is not None else load_config(config_path)
        self.simulator = DriveSimulator.from_config(self.config)
        self.state_manager = StateManager()
        self.recorder = ExperimentRecorder(self.state_manager)

        logger.info(f"DDMR Drive Simulator v{self.VERSION} initialized for '{self.config.name}'")

    def run_simulation(
        self,
        left_v: float,
        right_v: float,
        duration_s: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Run the simulator under constant motor voltages.

        Args:
            left_v: Left motor voltage (V)
            right_v: Right motor voltage (V)
            duration_s: Run length (default: from configuration)

        Returns:
            Dictionary with run statistics
        """
        if duration_s is None:
            duration_s = self.config.simulation.duration_s

        self.simulator.set_voltages(left_v * V, right_v * V)
        self.recorder.start_recording(
            self.config.name,
            metadata={"left_v": left_v, "right_v": right_v, "dt_s": self.config.simulation.dt_s},
        )

        logger.info(f"Running simulation: {duration_s}s at {left_v}/{right_v} V")
        self.simulator.simulate(duration_s * S, callback=self.state_manager.update_from_simulation)

        self.recorder.stop_recording()
        return self.simulator.get_summary()

    def export_data(self, filepath: Path) -> None:
        """
        Export the recorded run; format is chosen by file suffix.

        Args:
            filepath: Output file path (.csv or .json)
        """
        suffix = filepath.suffix.lower()
        if suffix == ".csv":
            self.recorder.export_to_csv(str(filepath))
        elif suffix == ".json":
            self.recorder.export_to_json(str(filepath))
        else:
            raise ValueError(f"Unknown export format: {suffix}")


def setup_logging(verbose: bool = False, config: Optional[LoggingConfig] = None) -> None:
    """Configure logging."""
    config = config or LoggingConfig()
    logger.remove()  # Remove default handler

    level = "DEBUG" if verbose else config.level

    # Console handler with custom format
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=level,
        colorize=True
    )

    # File handler for debug logs
    if config.log_dir is not None:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            config.log_dir / "ddmr_sim_{time}.log",
            rotation=config.rotation,
            retention=config.retention,
            level="DEBUG"
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="DDMR Drive Simulator - differential-drive robot with DC gear motors"
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to configuration file"
    )
    parser.add_argument(
        "--left",
        type=float,
        default=None,
        help="Left motor voltage (default: supply voltage)"
    )
    parser.add_argument(
        "--right",
        type=float,
        default=None,
        help="Right motor voltage (default: supply voltage)"
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Simulation duration in seconds"
    )
    parser.add_argument(
        "--export", "-o",
        type=Path,
        default=None,
        help="Write the recorded run to a .csv or .json file"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )
    return parser


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        setup_logging(args.verbose)
        logger.error(str(e))
        return 2

    setup_logging(args.verbose, config.logging)

    supply = config.simulation.supply_voltage_v
    left = supply if args.left is None else args.left
    right = supply if args.right is None else args.right

    try:
        app = DriveSimApplication(config=config)
        results = app.run_simulation(left, right, args.duration)
    except ConfigurationError as e:
        logger.error(str(e))
        return 2

    print("\n=== Simulation Results ===")
    for key, value in results.items():
        if isinstance(value, float):
            print(f"  {key}: {value:.6f}")
        else:
            print(f"  {key}: {value}")

    if args.export:
        app.export_data(args.export)

    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
