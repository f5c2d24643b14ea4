"""
Unit tests for LocationUpdater: scheduling decisions, store calls, and mailbox lifecycle.
"""

import threading
from typing import List, Optional

import pytest

from locationteller.config import TrackingConfig
from locationteller.gps_reader import Fix
from locationteller.stats import MemoryStatsRecorder, StatsRecorder
from locationteller.store import RemoteStore
from locationteller.updater import LocationUpdater, UpdaterClosedError

METERS_PER_DEGREE_LAT = 111_194.93

A = Fix(lat=52.52, lon=13.405, time=1000.0)


def north_of(fix: Fix, meters: float) -> Fix:
    return Fix(lat=fix.lat + meters / METERS_PER_DEGREE_LAT, lon=fix.lon, time=fix.time)


class RecordingStore(RemoteStore):
    """Records calls; accepts or rejects every add."""

    def __init__(self, accept: bool = True) -> None:
        self.accept = accept
        self.added: List[Fix] = []
        self.removed: List[float] = []

    def add(self, fix: Fix) -> bool:
        self.added.append(fix)
        return self.accept

    def remove_older_than(self, timestamp: float) -> None:
        self.removed.append(timestamp)


class RaisingStore(RemoteStore):
    """Every call fails with an exception."""

    def add(self, fix: Fix) -> bool:
        raise OSError("store offline")

    def remove_older_than(self, timestamp: float) -> None:
        raise OSError("store offline")


class BlockingStore(RecordingStore):
    """add() blocks until released."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def add(self, fix: Fix) -> bool:
        self.entered.set()
        self.release.wait(5.0)
        return super().add(fix)


class RaisingStats(StatsRecorder):
    def record_check(self, at: float) -> None:
        raise RuntimeError("disk full")

    def record_update(self, at: float, distance_m: float) -> None:
        raise RuntimeError("disk full")

    def record_error(self, at: float) -> None:
        raise RuntimeError("disk full")


@pytest.fixture
def config() -> TrackingConfig:
    return TrackingConfig(
        min_interval=10,
        max_interval=300,
        idle_increment=30,
        location_validity=600,
        retry_initial_interval=20,
        change_threshold_m=20.0,
    )


def update(updater: LocationUpdater, fix: Optional[Fix], timestamp: float = 1000.0) -> int:
    return updater.submit(fix, timestamp).result(timeout=5.0)


class TestScheduling:
    """Delays returned for sequences of fixes."""

    def test_moving_then_idle_then_moving(self, config: TrackingConfig) -> None:
        store = RecordingStore()
        with LocationUpdater(config, store) as updater:
            assert update(updater, A, 1000.0) == 10
            assert update(updater, A, 1010.0) == 40
            assert update(updater, A, 1050.0) == 70
            assert update(updater, north_of(A, 50.0), 1120.0) == 10
        assert store.added == [A, north_of(A, 50.0)]

    def test_first_fix_is_published(self, config: TrackingConfig) -> None:
        store = RecordingStore()
        with LocationUpdater(config, store) as updater:
            assert update(updater, A) == config.min_interval
        assert store.added == [A]

    def test_idle_does_not_touch_store(self, config: TrackingConfig) -> None:
        store = RecordingStore()
        with LocationUpdater(config, store) as updater:
            update(updater, A)
            update(updater, north_of(A, 5.0))
        assert store.added == [A]
        assert len(store.removed) == 1

    def test_idle_capped_at_max(self, config: TrackingConfig) -> None:
        store = RecordingStore()
        with LocationUpdater(config, store) as updater:
            update(updater, A)
            delays = [update(updater, A) for _ in range(15)]
        assert delays == sorted(delays)
        assert delays[-1] == 300
        assert delays[-2] == 300

    def test_outdated_records_removed_before_add(self, config: TrackingConfig) -> None:
        store = RecordingStore()
        with LocationUpdater(config, store) as updater:
            update(updater, A, 5000.0)
        assert store.removed == [5000.0 - 600]


class TestErrors:
    """Missing fixes and rejected publishes back off."""

    def test_three_missing_fixes(self, config: TrackingConfig) -> None:
        store = RecordingStore()
        with LocationUpdater(config, store) as updater:
            delays = [update(updater, None) for _ in range(3)]
        assert delays == [20, 40, 80]
        assert store.added == []
        assert store.removed == []

    def test_three_rejected_publishes(self, config: TrackingConfig) -> None:
        store = RecordingStore(accept=False)
        fixes = [A, north_of(A, 50.0), north_of(A, 100.0)]
        with LocationUpdater(config, store) as updater:
            delays = [update(updater, fix) for fix in fixes]
        assert delays == [20, 40, 80]
        assert store.added == fixes

    def test_backoff_capped_at_max(self, config: TrackingConfig) -> None:
        store = RecordingStore()
        with LocationUpdater(config, store) as updater:
            delays = [update(updater, None) for _ in range(7)]
        assert delays == [20, 40, 80, 160, 300, 300, 300]

    def test_success_resets_backoff(self, config: TrackingConfig) -> None:
        store = RecordingStore()
        with LocationUpdater(config, store) as updater:
            assert update(updater, None) == 20
            assert update(updater, None) == 40
            assert update(updater, A) == 10
            assert update(updater, None) == 20

    def test_rejected_publish_advances_last_fix(self, config: TrackingConfig) -> None:
        store = RecordingStore(accept=False)
        with LocationUpdater(config, store) as updater:
            assert update(updater, A) == 20
            store.accept = True
            # Compared against A, which was not accepted but is where we are.
            assert update(updater, A) == 50
        assert store.added == [A]

    def test_missing_fix_keeps_last_fix(self, config: TrackingConfig) -> None:
        store = RecordingStore()
        with LocationUpdater(config, store) as updater:
            update(updater, A)
            update(updater, None)
            update(updater, A)
        assert store.added == [A]

    def test_store_exception_counts_as_rejection(self, config: TrackingConfig) -> None:
        with LocationUpdater(config, RaisingStore()) as updater:
            assert update(updater, A) == 20
            assert update(updater, north_of(A, 50.0)) == 40

    def test_stats_failure_does_not_change_scheduling(self, config: TrackingConfig) -> None:
        with LocationUpdater(config, RecordingStore(), RaisingStats()) as updater:
            assert update(updater, A) == 10
            assert update(updater, None) == 20


class TestStatistics:
    """Checks, updates, and errors are reported to the recorder."""

    def test_counters(self, config: TrackingConfig) -> None:
        stats = MemoryStatsRecorder()
        with LocationUpdater(config, RecordingStore(), stats) as updater:
            update(updater, A, 1000.0)
            update(updater, A, 1010.0)
            update(updater, None, 1020.0)
            update(updater, north_of(A, 50.0), 1030.0)
        s = stats.stats
        assert s.check_count == 4
        assert s.update_count == 2
        assert s.error_count == 1
        assert s.last_check == 1030.0
        assert s.last_update == 1030.0
        assert s.last_error is None
        assert s.total_distance_m == pytest.approx(50.0, abs=0.5)

    def test_rejected_publish_records_error(self, config: TrackingConfig) -> None:
        stats = MemoryStatsRecorder()
        with LocationUpdater(config, RecordingStore(accept=False), stats) as updater:
            update(updater, A, 1000.0)
        assert stats.stats.error_count == 1
        assert stats.stats.update_count == 0
        assert stats.stats.last_error == 1000.0


class TestConcurrency:
    """Requests from many threads are each answered exactly once."""

    def test_concurrent_submitters(self, config: TrackingConfig) -> None:
        store = RecordingStore()
        results: List[int] = []
        lock = threading.Lock()

        def worker(i: int) -> None:
            fix = north_of(A, 100.0 * i) if i % 2 else None
            delay = update(updater, fix, 1000.0 + i)
            with lock:
                results.append(delay)

        with LocationUpdater(config, store) as updater:
            threads = [threading.Thread(target=worker, args=(i,)) for i in range(20)]
            for t in threads:
                t.start()
            for t in threads:
                t.join(timeout=10.0)
        assert len(results) == 20
        assert all(10 <= d <= 300 for d in results)
        assert len(store.added) == 10

    def test_cancelled_request_is_skipped(self, config: TrackingConfig) -> None:
        store = BlockingStore()
        stats = MemoryStatsRecorder()
        with LocationUpdater(config, store, stats) as updater:
            first = updater.submit(A, 1000.0)
            assert store.entered.wait(5.0)
            cancelled = updater.submit(None, 1005.0)
            assert cancelled.cancel() is True
            third = updater.submit(north_of(A, 50.0), 1010.0)
            store.release.set()
            assert first.result(timeout=5.0) == 10
            assert third.result(timeout=5.0) == 10
            assert update(updater, None, 1020.0) == 20
        assert cancelled.cancelled() is True
        assert stats.stats.check_count == 3
        assert stats.stats.error_count == 1

    def test_submit_starts_worker(self, config: TrackingConfig) -> None:
        updater = LocationUpdater(config, RecordingStore())
        try:
            assert update(updater, A) == 10
        finally:
            updater.close()
            updater.join(timeout=2.0)


class TestClose:
    """Closing the mailbox."""

    def test_submit_after_close_raises(self, config: TrackingConfig) -> None:
        updater = LocationUpdater(config, RecordingStore())
        updater.start()
        updater.close()
        updater.join(timeout=2.0)
        assert updater.closed is True
        with pytest.raises(UpdaterClosedError):
            updater.submit(A, 1000.0)

    def test_close_twice(self, config: TrackingConfig) -> None:
        updater = LocationUpdater(config, RecordingStore())
        updater.close()
        updater.close()
        assert updater.closed is True

    def test_queued_request_fails_in_progress_completes(
        self, config: TrackingConfig
    ) -> None:
        store = BlockingStore()
        updater = LocationUpdater(config, store)
        first = updater.submit(A, 1000.0)
        assert store.entered.wait(5.0)
        second = updater.submit(north_of(A, 50.0), 1010.0)
        updater.close()
        store.release.set()
        assert first.result(timeout=5.0) == 10
        with pytest.raises(UpdaterClosedError):
            second.result(timeout=5.0)
        updater.join(timeout=2.0)
        assert store.added == [A]

    def test_context_manager_closes(self, config: TrackingConfig) -> None:
        with LocationUpdater(config, RecordingStore()) as updater:
            update(updater, A)
        assert updater.closed is True
