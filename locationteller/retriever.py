"""
One polling cycle: fetch a fix, hand it to the updater, return the next delay.
"""

import logging
import time
from typing import Callable, Optional

from locationteller.config import TrackingConfig
from locationteller.gps_reader import Fix
from locationteller.sources.base import PositionSource
from locationteller.updater import LocationUpdater

logger = logging.getLogger(__name__)


class LocationRetriever:
    """
    Retrieves the current position and reports it via the location updater.

    The caller waits the returned number of seconds and calls run_cycle()
    again, or stops when tracking is disabled.
    """

    def __init__(
        self,
        source: PositionSource,
        updater: LocationUpdater,
        config: TrackingConfig,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._source = source
        self._updater = updater
        self._config = config
        self._clock = clock

    def run_cycle(self) -> int:
        """
        Run one update cycle; return the delay in seconds until the next one.

        Raises UpdaterClosedError if the updater has been closed.
        """
        logger.info("Triggering location update")
        fix = self._fetch_fix()
        result = self._updater.submit(fix, self._clock())
        return result.result()

    def _fetch_fix(self) -> Optional[Fix]:
        """Fix from the source, or None on timeout or source failure."""
        try:
            return self._source.await_fix(self._config.gps_timeout)
        except Exception as e:
            logger.warning("Position source failed: %s", e)
            return None
