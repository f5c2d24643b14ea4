"""
Location updater: a single worker thread that serializes location updates.

The store is not safe for concurrent mutation, so all updates go through
one mailbox and are processed one at a time, store calls included. The
worker owns the scheduling state (last fix, current interval, retry delay)
and answers each request with the delay until the next poll.
"""

import logging
import queue
import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Optional

from locationteller.change_detector import classify
from locationteller.config import TrackingConfig
from locationteller.gps_reader import Fix
from locationteller.interval_policy import ERROR, IDLE, SUCCESS, next_intervals
from locationteller.stats import StatsRecorder
from locationteller.store import RemoteStore

logger = logging.getLogger(__name__)


class UpdaterClosedError(RuntimeError):
    """The updater's mailbox is closed; tracking has stopped."""


@dataclass
class UpdateRequest:
    """A fix to report (None if unavailable) and the slot for the next delay."""

    fix: Optional[Fix]
    timestamp: float
    result: "Future[int]" = field(default_factory=Future)


class SchedulerState:
    """Mutable scheduling state. Only touched by the updater's worker thread."""

    __slots__ = ("last_fix", "current_interval", "current_retry_delay")

    def __init__(self, config: TrackingConfig) -> None:
        self.last_fix: Optional[Fix] = None
        self.current_interval = config.min_interval
        self.current_retry_delay = config.retry_initial_interval


class LocationUpdater:
    """
    Actor guarding the store and the scheduling state.

    submit() may be called from any thread; the returned future resolves to
    the next poll delay in seconds. Every accepted request is answered
    exactly once, also when no fix was available or the store rejected it.
    After close(), submit() raises UpdaterClosedError and requests still
    waiting in the mailbox fail with it instead of blocking forever.
    """

    def __init__(
        self,
        config: TrackingConfig,
        store: RemoteStore,
        stats: Optional[StatsRecorder] = None,
    ) -> None:
        self._config = config
        self._store = store
        self._stats = stats
        self._state = SchedulerState(config)
        self._mailbox: "queue.Queue[Optional[UpdateRequest]]" = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False
        self._thread: Optional[threading.Thread] = None

    def __enter__(self) -> "LocationUpdater":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
        self.join(timeout=2.0)

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Start the worker thread. Calling it again has no effect."""
        with self._lock:
            self._start_locked()

    def _start_locked(self) -> None:
        if self._thread is None and not self._closed:
            self._thread = threading.Thread(
                target=self._run, name="location-updater", daemon=True
            )
            self._thread.start()

    def submit(self, fix: Optional[Fix], timestamp: float) -> "Future[int]":
        """Queue an update; return the future for the next delay in seconds."""
        request = UpdateRequest(fix, timestamp)
        with self._lock:
            if self._closed:
                raise UpdaterClosedError("location updater is closed")
            self._start_locked()
            self._mailbox.put(request)
        return request.result

    def close(self) -> None:
        """Close the mailbox. The update in progress, if any, still completes."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._mailbox.put(None)

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the worker thread to exit after close()."""
        if self._thread:
            self._thread.join(timeout=timeout)

    def _run(self) -> None:
        while True:
            item = self._mailbox.get()
            if item is None:
                break
            if not item.result.set_running_or_notify_cancel():
                logger.debug("Skipping cancelled location update")
                continue
            if self._closed:
                item.result.set_exception(
                    UpdaterClosedError("location updater closed before update")
                )
                continue
            self._handle(item)
        logger.debug("Location updater stopped")

    def _handle(self, request: UpdateRequest) -> None:
        try:
            delay = self._process(request)
        except Exception:
            logger.exception("Location update failed unexpectedly")
            delay = self._schedule(ERROR)
        request.result.set_result(delay)

    def _process(self, request: UpdateRequest) -> int:
        state = self._state
        self._record("record_check", request.timestamp)
        if request.fix is None:
            logger.info("No position available")
            self._record("record_error", request.timestamp)
            return self._schedule(ERROR)

        change = classify(state.last_fix, request.fix, self._config.change_threshold_m)
        if not change.changed:
            logger.debug("Position unchanged")
            return self._schedule(IDLE)

        distance = change.distance_m or 0.0
        outcome = self._publish(request.fix, request.timestamp, distance)
        state.last_fix = request.fix
        return self._schedule(outcome)

    def _publish(self, fix: Fix, timestamp: float, distance: float) -> str:
        """Remove outdated records, add the new one; return SUCCESS or ERROR."""
        try:
            self._store.remove_older_than(timestamp - self._config.location_validity)
        except Exception as e:
            logger.warning("Removing outdated locations failed: %s", e)
        try:
            accepted = bool(self._store.add(fix))
        except Exception as e:
            logger.warning("Publishing location failed: %s", e)
            accepted = False
        if accepted:
            logger.info("Published location (moved %.0f m)", distance)
            self._record("record_update", timestamp, distance)
            return SUCCESS
        logger.warning("Location was not accepted by the store")
        self._record("record_error", timestamp)
        return ERROR

    def _schedule(self, outcome: str) -> int:
        state = self._state
        state.current_interval, state.current_retry_delay = next_intervals(
            self._config, state.current_interval, state.current_retry_delay, outcome
        )
        logger.info(
            "Next location update in %d s (%s, retry delay %d s)",
            state.current_interval,
            outcome,
            state.current_retry_delay,
        )
        return state.current_interval

    def _record(self, method: str, *args: float) -> None:
        if self._stats is None:
            return
        try:
            getattr(self._stats, method)(*args)
        except Exception as e:
            logger.warning("Recording statistics failed: %s", e)
