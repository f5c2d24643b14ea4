"""
Position fixes and gpsd access.
"""

import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fix:
    """A geographic position (degrees) with its capture time (epoch seconds)."""

    lat: float
    lon: float
    time: float

    def to_dict(self) -> dict:
        """Serialise to a JSON-suitable dict."""
        return {"lat": self.lat, "lon": self.lon, "time": self.time}

    @classmethod
    def from_dict(cls, data: object) -> Optional["Fix"]:
        """Build from dict (e.g. JSON load). Returns None if lat/lon missing or invalid."""
        if not isinstance(data, dict) or "lat" not in data or "lon" not in data:
            return None
        try:
            lat = float(data["lat"])
            lon = float(data["lon"])
            t = data.get("time")
            timestamp = float(t) if isinstance(t, (int, float)) else time.time()
        except (TypeError, ValueError, OverflowError):
            return None
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
            return None
        if not math.isfinite(timestamp):
            return None
        return cls(lat=lat, lon=lon, time=timestamp)


def connect_gpsd(host: str = "127.0.0.1", port: int = 2947) -> Optional[object]:
    """
    Connect to gpsd and return a gpsd connection object.

    Returns None on failure. Caller should use gpsd-py3: gpsd.connect(host, port).
    """
    try:
        import gpsd  # type: ignore[import-untyped]

        gpsd.connect(host=host, port=port)
        return gpsd  # type: ignore[no-any-return]
    except Exception as e:
        logger.error("gpsd connect failed: %s", e)
        return None


def _packet_time(packet: object) -> float:
    """Capture time of a gpsd packet in epoch seconds; now if it carries none."""
    t = getattr(packet, "time", None)
    if isinstance(t, (int, float)) and not isinstance(t, bool) and math.isfinite(t):
        return float(t)
    if isinstance(t, str) and t:
        try:
            parsed = datetime.fromisoformat(t.replace("Z", "+00:00"))
        except ValueError:
            logger.debug("Unparseable gpsd time %r", t)
        else:
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed.timestamp()
    return time.time()


def get_current_fix(gpsd_module: Optional[object]) -> Optional[Fix]:
    """
    Get current fix from gpsd.

    Returns a Fix, or None if gpsd has no 2D/3D fix or reports an error.
    A missing fix is never turned into a (0, 0) position.
    """
    if gpsd_module is None:
        return None
    try:
        packet = gpsd_module.get_current()  # type: ignore[attr-defined]
        if packet is None or packet.mode < 2:
            return None
        lat, lon = packet.position()
        return Fix(lat=float(lat), lon=float(lon), time=_packet_time(packet))
    except Exception as e:
        logger.debug("get_current_fix error: %s", e)
        return None
