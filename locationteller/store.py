"""
Record stores receiving published positions.

The updater is the only caller of add() and remove_older_than(); stores do
not need to be thread-safe.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional

from locationteller.gps_reader import Fix

logger = logging.getLogger(__name__)


class RemoteStore:
    """Destination for position records."""

    def add(self, fix: Fix) -> bool:
        """Store one record. Return True if accepted."""
        raise NotImplementedError

    def remove_older_than(self, timestamp: float) -> None:
        """
        Delete records captured before timestamp (epoch seconds).

        Best effort: failures are logged, not raised.
        """
        raise NotImplementedError


def _record_name(timestamp: float) -> str:
    return "%013d.json" % int(round(timestamp * 1000))


def _record_time(path: Path) -> Optional[float]:
    """Capture time encoded in a record file name, or None if not a record."""
    if path.suffix != ".json" or not path.stem.isdigit():
        return None
    return int(path.stem) / 1000.0


class DirectoryStore(RemoteStore):
    """
    One JSON file per record in a directory.

    Files are named by capture time in milliseconds, so lexical order is
    time order.
    """

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def add(self, fix: Fix) -> bool:
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            path = self._root / _record_name(fix.time)
            path.write_text(json.dumps(fix.to_dict()) + "\n")
            logger.debug("Stored location %s", path.name)
            return True
        except OSError as e:
            logger.warning("Storing location failed in %s: %s", self._root, e)
            return False

    def remove_older_than(self, timestamp: float) -> None:
        if not self._root.is_dir():
            return
        removed = 0
        for path in sorted(self._root.iterdir()):
            t = _record_time(path)
            if t is None or t >= timestamp:
                continue
            try:
                path.unlink()
                removed += 1
            except OSError as e:
                logger.warning("Removing outdated location %s failed: %s", path, e)
        if removed:
            logger.info("Removed %d outdated location(s)", removed)

    def records(self) -> List[Fix]:
        """All readable records, oldest first."""
        if not self._root.is_dir():
            return []
        result = []
        for path in sorted(self._root.iterdir()):
            if _record_time(path) is None:
                continue
            try:
                fix = Fix.from_dict(json.loads(path.read_text()))
            except (OSError, json.JSONDecodeError) as e:
                logger.debug("Skipping unreadable record %s: %s", path, e)
                continue
            if fix is not None:
                result.append(fix)
        return result
