#!/usr/bin/env python3
"""
LibFuzzer harness for the interval policy (next_intervals).

Derives a TrackingConfig and a sequence of outcomes from the input bytes and
checks the scheduling bounds after every step: intervals never exceed
max_interval, successes reset to min_interval, and retry delays never shrink
while failures continue.
Run: python fuzz/fuzz_interval_policy.py fuzz/corpus/interval_policy/ [options]
"""

import sys

try:
    import atheris
except ImportError:
    print("Install atheris: pip install atheris")
    sys.exit(1)

with atheris.instrument_imports():
    from locationteller.config import ConfigurationError, TrackingConfig
    from locationteller.interval_policy import ERROR, IDLE, OUTCOMES, SUCCESS, next_intervals


def test_one_input(data: bytes) -> None:
    """Single fuzz iteration: build config, replay outcomes, check bounds."""
    fdp = atheris.FuzzedDataProvider(data)
    try:
        config = TrackingConfig(
            min_interval=fdp.ConsumeIntInRange(0, 3600),
            max_interval=fdp.ConsumeIntInRange(0, 86400),
            idle_increment=fdp.ConsumeIntInRange(0, 3600),
            retry_initial_interval=fdp.ConsumeIntInRange(0, 3600),
        )
    except ConfigurationError:
        return
    interval = config.min_interval
    retry = config.retry_initial_interval
    previous = None
    for _ in range(fdp.ConsumeIntInRange(0, 64)):
        outcome = OUTCOMES[fdp.ConsumeIntInRange(0, len(OUTCOMES) - 1)]
        last_retry = retry
        interval, retry = next_intervals(config, interval, retry, outcome)
        assert 0 <= interval <= config.max_interval
        assert retry <= config.max_interval
        if outcome == SUCCESS:
            assert interval == config.min_interval
        if outcome in (SUCCESS, IDLE):
            assert retry == config.retry_initial_interval
        if outcome == ERROR:
            assert interval == last_retry
            if previous == ERROR:
                assert retry >= last_retry
        previous = outcome


def main() -> None:
    atheris.Setup(sys.argv, test_one_input)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
