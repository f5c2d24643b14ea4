"""
Pluggable position sources.

- gpsd: polls a local gpsd daemon
- remote: TCP server accepting JSON fixes from Android/iOS or other clients
"""

from locationteller.sources.base import FixRequest, PositionSource
from locationteller.sources.gpsd import GpsdPositionSource, create_gpsd_source
from locationteller.sources.remote import RemoteSource, create_remote_source

__all__ = [
    "FixRequest",
    "GpsdPositionSource",
    "PositionSource",
    "RemoteSource",
    "create_gpsd_source",
    "create_remote_source",
]
