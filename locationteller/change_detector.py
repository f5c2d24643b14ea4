"""
Change detection between consecutive fixes.

A sample is UNKNOWN when there is nothing to compare (no previous fix, or
no new fix), MOVED when the distance reaches the threshold, IDLE otherwise.
"""

import math
from dataclasses import dataclass
from typing import Optional

from locationteller.gps_reader import Fix

EARTH_RADIUS_M = 6_371_000.0

UNKNOWN = "unknown"
IDLE = "idle"
MOVED = "moved"


@dataclass(frozen=True)
class Classification:
    """Result of comparing two fixes. distance_m is only set for MOVED."""

    kind: str
    distance_m: Optional[float] = None

    @property
    def changed(self) -> bool:
        """True for UNKNOWN and MOVED; only IDLE counts as no change."""
        return self.kind != IDLE


def distance_m(a: Fix, b: Fix) -> float:
    """Great-circle (haversine) distance between two fixes in meters."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    d_phi = math.radians(b.lat - a.lat)
    d_lambda = math.radians(b.lon - a.lon)
    h = (
        math.sin(d_phi / 2.0) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    )
    return 2.0 * EARTH_RADIUS_M * math.atan2(math.sqrt(h), math.sqrt(1.0 - h))


def classify(
    previous: Optional[Fix], current: Optional[Fix], threshold_m: float
) -> Classification:
    """Classify current against previous using a movement threshold in meters."""
    if previous is None or current is None:
        return Classification(UNKNOWN)
    distance = distance_m(previous, current)
    if distance >= threshold_m:
        return Classification(MOVED, distance)
    return Classification(IDLE)
