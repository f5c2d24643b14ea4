"""
Tracking statistics: counters for checks, published updates, and errors.

The updater reports every decision here. Recording never raises; a failing
recorder must not change scheduling.
"""

import json
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def _to_float(value: object) -> Optional[float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return None


def _to_count(value: object) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return 0


class TrackStats:
    """
    Mutable counters and timestamps (epoch seconds) of tracking activity.

    A successful update clears last_error.
    """

    __slots__ = (
        "check_count",
        "update_count",
        "error_count",
        "total_distance_m",
        "last_check",
        "last_update",
        "last_error",
    )

    def __init__(self) -> None:
        self.check_count = 0
        self.update_count = 0
        self.error_count = 0
        self.total_distance_m = 0.0
        self.last_check: Optional[float] = None
        self.last_update: Optional[float] = None
        self.last_error: Optional[float] = None

    def to_dict(self) -> dict:
        """Serialise to a JSON-suitable dict."""
        return {name: getattr(self, name) for name in self.__slots__}

    @classmethod
    def from_dict(cls, data: object) -> "TrackStats":
        """Build from dict (e.g. JSON load). Unknown or invalid keys ignored."""
        stats = cls()
        if not isinstance(data, dict):
            return stats
        stats.check_count = _to_count(data.get("check_count"))
        stats.update_count = _to_count(data.get("update_count"))
        stats.error_count = _to_count(data.get("error_count"))
        stats.total_distance_m = _to_float(data.get("total_distance_m")) or 0.0
        stats.last_check = _to_float(data.get("last_check"))
        stats.last_update = _to_float(data.get("last_update"))
        stats.last_error = _to_float(data.get("last_error"))
        return stats


class StatsRecorder:
    """Receives the outcome of each tracking cycle."""

    def record_check(self, at: float) -> None:
        raise NotImplementedError

    def record_update(self, at: float, distance_m: float) -> None:
        raise NotImplementedError

    def record_error(self, at: float) -> None:
        raise NotImplementedError


class MemoryStatsRecorder(StatsRecorder):
    """Keeps TrackStats in memory only."""

    def __init__(self, stats: Optional[TrackStats] = None) -> None:
        self.stats = stats or TrackStats()

    def record_check(self, at: float) -> None:
        self.stats.check_count += 1
        self.stats.last_check = at
        self._changed()

    def record_update(self, at: float, distance_m: float) -> None:
        self.stats.update_count += 1
        self.stats.total_distance_m += distance_m
        self.stats.last_update = at
        self.stats.last_error = None
        self._changed()

    def record_error(self, at: float) -> None:
        self.stats.error_count += 1
        self.stats.last_error = at
        self._changed()

    def _changed(self) -> None:
        pass


class FileStatsRecorder(MemoryStatsRecorder):
    """TrackStats persisted to a JSON file after every change."""

    def __init__(self, path: Path) -> None:
        super().__init__(load_stats(path))
        self._path = path

    def _changed(self) -> None:
        save_stats(self._path, self.stats)


def load_stats(path: Optional[Path]) -> TrackStats:
    """Load stats from a JSON file. Missing/invalid file returns empty stats."""
    if not path or not path.exists():
        return TrackStats()
    try:
        return TrackStats.from_dict(json.loads(path.read_text()))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Stats load failed %s: %s", path, e)
        return TrackStats()


def save_stats(path: Path, stats: TrackStats) -> bool:
    """Write stats to JSON file. Returns True on success."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(stats.to_dict(), indent=2) + "\n")
        return True
    except OSError as e:
        logger.warning("Stats save failed %s: %s", path, e)
        return False
