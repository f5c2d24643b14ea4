#!/usr/bin/env python3
"""
LibFuzzer harness for remote protocol JSON parsing (RemoteSource._parse_line).

Feed raw bytes (UTF-8). Fuzzer exercises JSON parsing, Fix.from_dict coercion
and range checks.
Run: python fuzz/fuzz_remote_parse.py fuzz/corpus/remote_parse/ [options]
"""

import sys

try:
    import atheris
except ImportError:
    print("Install atheris: pip install atheris")
    sys.exit(1)

with atheris.instrument_imports():
    from locationteller.sources.remote import RemoteSource


def test_one_input(data: bytes) -> None:
    """Single fuzz iteration: decode data as UTF-8 and parse as remote protocol line."""
    try:
        line = data.decode("utf-8").strip()
    except UnicodeDecodeError:
        return
    source = RemoteSource(host="127.0.0.1", port=0)
    received = []
    source.request_updates(received.append)
    source._parse_line(line)
    fix = source.get_fix()
    if fix is not None:
        assert -90.0 <= fix.lat <= 90.0
        assert -180.0 <= fix.lon <= 180.0
        assert received == [fix]
    else:
        assert received == []


def main() -> None:
    atheris.Setup(sys.argv, test_one_input)
    atheris.Fuzz()


if __name__ == "__main__":
    main()
