"""
Configuration defaults and parsing for locationteller.
"""

import argparse
import math
from dataclasses import dataclass
from typing import Optional


class ConfigurationError(ValueError):
    """Raised when tracking settings are invalid or inconsistent."""


@dataclass(frozen=True)
class TrackingConfig:
    """
    Immutable tracking settings.

    Intervals are in seconds, change_threshold_m in meters.
    Validated on construction; an invalid instance cannot exist.
    """

    min_interval: int = 60
    max_interval: int = 900
    idle_increment: int = 120
    location_validity: int = 14400
    retry_initial_interval: int = 30
    gps_timeout: float = 45.0
    change_threshold_m: float = 25.0

    def __post_init__(self) -> None:
        for name in (
            "min_interval",
            "max_interval",
            "idle_increment",
            "location_validity",
            "retry_initial_interval",
            "gps_timeout",
            "change_threshold_m",
        ):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise ConfigurationError("%s must be finite and not negative" % name)
        if self.min_interval > self.max_interval:
            raise ConfigurationError(
                "min_interval (%d) exceeds max_interval (%d)"
                % (self.min_interval, self.max_interval)
            )
        if self.retry_initial_interval > self.max_interval:
            raise ConfigurationError(
                "retry_initial_interval (%d) exceeds max_interval (%d)"
                % (self.retry_initial_interval, self.max_interval)
            )


@dataclass
class Config:
    """Runtime configuration."""

    source: str = "gpsd"
    gpsd_host: str = "127.0.0.1"
    gpsd_port: int = 2947
    remote_host: str = "0.0.0.0"
    remote_port: int = 2949
    store_dir: str = "locations"
    stats_file: Optional[str] = None
    min_interval: int = 60
    max_interval: int = 900
    idle_increment: int = 120
    location_validity: int = 14400
    retry_interval: int = 30
    gps_timeout: float = 45.0
    change_threshold: float = 25.0
    debug: bool = False

    def tracking_config(self) -> TrackingConfig:
        """Build the validated TrackingConfig. Raises ConfigurationError."""
        return TrackingConfig(
            min_interval=self.min_interval,
            max_interval=self.max_interval,
            idle_increment=self.idle_increment,
            location_validity=self.location_validity,
            retry_initial_interval=self.retry_interval,
            gps_timeout=self.gps_timeout,
            change_threshold_m=self.change_threshold,
        )


def parse_args(args: Optional[list] = None) -> Config:
    """Parse command-line arguments into Config."""
    parser = argparse.ArgumentParser(
        description="Track the device position and publish it with adaptive polling."
    )
    parser.add_argument(
        "--source",
        choices=("gpsd", "remote"),
        default="gpsd",
        help="Position source: gpsd or remote (TCP JSON lines) (default: gpsd)",
    )
    parser.add_argument(
        "--gpsd-host",
        default="127.0.0.1",
        help="gpsd host (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--gpsd-port",
        type=int,
        default=2947,
        help="gpsd port (default: 2947)",
    )
    parser.add_argument(
        "--remote-host",
        default="0.0.0.0",
        help="Bind address for remote source (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--remote-port",
        type=int,
        default=2949,
        help="Port for remote source (default: 2949)",
    )
    parser.add_argument(
        "--store-dir",
        default="locations",
        help="Directory receiving one JSON file per location (default: locations)",
    )
    parser.add_argument(
        "--stats-file",
        default=None,
        help="Persist check/update/error counters to this JSON file (optional)",
    )
    parser.add_argument(
        "--min-interval",
        type=int,
        default=60,
        help="Poll interval in seconds while moving (default: 60)",
    )
    parser.add_argument(
        "--max-interval",
        type=int,
        default=900,
        help="Upper bound for poll and retry intervals in seconds (default: 900)",
    )
    parser.add_argument(
        "--idle-increment",
        type=int,
        default=120,
        help="Seconds added to the interval per idle cycle (default: 120)",
    )
    parser.add_argument(
        "--location-validity",
        type=int,
        default=14400,
        help="Seconds a location stays in the store (default: 14400)",
    )
    parser.add_argument(
        "--retry-interval",
        type=int,
        default=30,
        help="First retry delay in seconds after a failure (default: 30)",
    )
    parser.add_argument(
        "--gps-timeout",
        type=float,
        default=45.0,
        help="Seconds to wait for a position fix (default: 45)",
    )
    parser.add_argument(
        "--change-threshold",
        type=float,
        default=25.0,
        help="Distance in meters that counts as movement (default: 25)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parsed = parser.parse_args(args)
    return Config(
        source=parsed.source,
        gpsd_host=parsed.gpsd_host,
        gpsd_port=parsed.gpsd_port,
        remote_host=parsed.remote_host,
        remote_port=parsed.remote_port,
        store_dir=parsed.store_dir,
        stats_file=parsed.stats_file,
        min_interval=parsed.min_interval,
        max_interval=parsed.max_interval,
        idle_increment=parsed.idle_increment,
        location_validity=parsed.location_validity,
        retry_interval=parsed.retry_interval,
        gps_timeout=parsed.gps_timeout,
        change_threshold=parsed.change_threshold,
        debug=parsed.debug,
    )
