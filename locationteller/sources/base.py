"""
Abstract interface for position sources.
"""

import logging
import threading
from typing import Callable, Optional, Set

from locationteller.gps_reader import Fix

logger = logging.getLogger(__name__)

FixListener = Callable[[Fix], None]


class FixRequest:
    """
    One-shot slot for a single fix.

    The first delivered fix wins; later deliveries are ignored. cancel()
    releases a waiter with None.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        # Reentrant: cancel() may run from a signal handler on the waiting thread.
        self._lock = threading.RLock()
        self._fix: Optional[Fix] = None

    def deliver(self, fix: Fix) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._fix = fix
            self._event.set()

    def cancel(self) -> None:
        with self._lock:
            self._event.set()

    def wait(self, timeout: float) -> Optional[Fix]:
        """Block up to timeout seconds; return the fix or None."""
        self._event.wait(timeout)
        with self._lock:
            self._event.set()
            return self._fix


class PositionSource:
    """Source of position fixes, delivered to registered listeners."""

    def __init__(self) -> None:
        self._pending: Set[FixRequest] = set()
        self._pending_lock = threading.RLock()

    def request_updates(self, listener: FixListener) -> None:
        """Register listener; it is called with each new fix until removed."""
        raise NotImplementedError

    def remove_updates(self, listener: FixListener) -> None:
        """Unregister listener. Unknown listeners are ignored."""
        raise NotImplementedError

    def await_fix(self, timeout: float) -> Optional[Fix]:
        """
        Wait up to timeout seconds for the next fix.

        Registers exactly one listener per call and always removes it again,
        whether a fix arrived, the wait timed out or was cancelled, or
        registration failed. Returns None when no fix arrived.
        """
        request = FixRequest()
        with self._pending_lock:
            self._pending.add(request)
        try:
            self.request_updates(request.deliver)
            fix = request.wait(timeout)
        finally:
            self.remove_updates(request.deliver)
            with self._pending_lock:
                self._pending.discard(request)
        if fix is None:
            logger.info("No position fix within %.1f s", timeout)
        return fix

    def cancel_pending(self) -> None:
        """Release every await_fix() currently waiting with None."""
        with self._pending_lock:
            pending = list(self._pending)
        for request in pending:
            request.cancel()
