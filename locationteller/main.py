"""
Main loop: poll the position source and publish locations with adaptive intervals.
"""

import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

from locationteller.config import Config, ConfigurationError, parse_args
from locationteller.retriever import LocationRetriever
from locationteller.sources import create_gpsd_source, create_remote_source
from locationteller.sources.base import PositionSource
from locationteller.sources.remote import RemoteSource
from locationteller.stats import FileStatsRecorder, MemoryStatsRecorder, StatsRecorder
from locationteller.store import DirectoryStore
from locationteller.updater import LocationUpdater, UpdaterClosedError

logger = logging.getLogger(__name__)


def _create_source(config: Config) -> Optional[PositionSource]:
    if config.source == "remote":
        return create_remote_source(config.remote_host, config.remote_port)
    return create_gpsd_source(config.gpsd_host, config.gpsd_port)


def run(config: Config) -> int:
    """
    Run the tracking loop until SIGINT/SIGTERM.

    Returns exit code (0 = success).
    """
    log_level = logging.DEBUG if config.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        tracking = config.tracking_config()
    except ConfigurationError as e:
        logger.error("Invalid tracking configuration: %s", e)
        return 1

    source = _create_source(config)
    if source is None:
        logger.error("Position source %r not available", config.source)
        return 1

    shutdown = threading.Event()

    def _signal_handler(signum: int, frame: Optional[object]) -> None:
        shutdown.set()
        source.cancel_pending()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    stats: StatsRecorder
    if config.stats_file:
        stats = FileStatsRecorder(Path(config.stats_file))
    else:
        stats = MemoryStatsRecorder()
    store = DirectoryStore(Path(config.store_dir))
    updater = LocationUpdater(tracking, store, stats)
    retriever = LocationRetriever(source, updater, tracking)

    try:
        with updater:
            while not shutdown.is_set():
                delay = retriever.run_cycle()
                logger.info("Scheduling next location update in %d s", delay)
                shutdown.wait(delay)
    except UpdaterClosedError:
        logger.info("Location updater stopped")
    except KeyboardInterrupt:
        pass
    finally:
        if isinstance(source, RemoteSource):
            source.stop()

    logger.info("Tracking stopped")
    return 0


def main() -> None:
    """Entry point for the locationteller script."""
    config = parse_args()
    sys.exit(run(config))


if __name__ == "__main__":
    main()
