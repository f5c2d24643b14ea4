"""
Polling interval policy: next poll delay and retry delay from one cycle's outcome.

Pure functions; all state is passed in and returned.
"""

from typing import Tuple

from locationteller.config import TrackingConfig

IDLE = "idle"
SUCCESS = "success"
ERROR = "error"

OUTCOMES = (IDLE, SUCCESS, ERROR)


def next_intervals(
    config: TrackingConfig,
    current_interval: int,
    current_retry_delay: int,
    outcome: str,
) -> Tuple[int, int]:
    """
    Return (next_interval, next_retry_delay) in seconds.

    IDLE grows the interval by idle_increment up to max_interval.
    SUCCESS resets to min_interval. ERROR uses the current retry delay and
    doubles it for the next failure, capped at max_interval. Both IDLE and
    SUCCESS reset the retry delay to retry_initial_interval.
    """
    if outcome == IDLE:
        interval = min(current_interval + config.idle_increment, config.max_interval)
        return interval, config.retry_initial_interval
    if outcome == SUCCESS:
        return config.min_interval, config.retry_initial_interval
    if outcome == ERROR:
        retry = min(current_retry_delay * 2, config.max_interval)
        return current_retry_delay, retry
    raise ValueError("unknown outcome: %r" % (outcome,))
