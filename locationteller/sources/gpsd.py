"""
gpsd position source.

gpsd is polled, not pushed, so a poll thread runs while at least one
listener is registered and stops when the last one is removed.
"""

import logging
import threading
from typing import List, Optional

from locationteller.gps_reader import connect_gpsd, get_current_fix
from locationteller.sources.base import FixListener, PositionSource

logger = logging.getLogger(__name__)


class GpsdPositionSource(PositionSource):
    """Position fixes from gpsd (gpsd-py3 module)."""

    def __init__(self, gpsd_module: Optional[object], poll_interval: float = 1.0) -> None:
        super().__init__()
        self._gpsd = gpsd_module
        self._poll_interval = poll_interval
        self._lock = threading.Lock()
        self._listeners: List[FixListener] = []
        self._thread: Optional[threading.Thread] = None
        self._wakeup = threading.Event()

    @property
    def polling(self) -> bool:
        """True while the poll thread is running."""
        with self._lock:
            return self._thread is not None

    def request_updates(self, listener: FixListener) -> None:
        with self._lock:
            self._listeners.append(listener)
            self._wakeup.clear()
            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._poll_loop, name="gpsd-poll", daemon=True
                )
                self._thread.start()
                logger.debug("Started gpsd polling")

    def remove_updates(self, listener: FixListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)
            if not self._listeners:
                self._wakeup.set()

    def _poll_loop(self) -> None:
        while True:
            with self._lock:
                if not self._listeners:
                    self._thread = None
                    logger.debug("Stopped gpsd polling")
                    return
                listeners = list(self._listeners)
            fix = get_current_fix(self._gpsd)
            if fix is not None:
                for listener in listeners:
                    listener(fix)
            self._wakeup.wait(self._poll_interval)


def create_gpsd_source(host: str, port: int) -> Optional[GpsdPositionSource]:
    """Connect to gpsd and create the source. Returns None if gpsd is unavailable."""
    gpsd = connect_gpsd(host, port)
    if gpsd is None:
        return None
    logger.info("Using gpsd at %s:%s", host, port)
    return GpsdPositionSource(gpsd)
