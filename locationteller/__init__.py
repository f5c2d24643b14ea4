"""
locationteller: adaptive location tracking daemon.

Samples the device position (gpsd or a remote TCP client) and publishes it
to a record store. Polls faster while moving, backs off while stationary,
and retries with exponential backoff when publishing fails.
"""

__version__ = "0.1.0"
