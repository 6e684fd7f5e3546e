"""
Visibility Classifier

An object is observationally visible when it is at least the minimum
altitude up and its sub-satellite point lies within a great-circle range of
the observer on a spherical Earth.
"""

import math
from enum import Enum

from orbit_engine.constants import (
    DEG2RAD,
    MEAN_EARTH_RADIUS_KM,
    MIN_VISIBLE_ALTITUDE_KM,
    VISIBILITY_RANGE_KM,
)
from orbit_engine.models import GeodeticPosition, Observer


class VisibilityPolicy(Enum):
    """How the engine sets ``PositionSample.visible``."""

    CLASSIFIER = "classifier"
    ALWAYS_VISIBLE = "always"


def haversine_km(lat1, lon1, lat2, lon2, radius=MEAN_EARTH_RADIUS_KM):
    """Great-circle distance between two points given in degrees."""
    phi1 = lat1 * DEG2RAD
    phi2 = lat2 * DEG2RAD
    dphi = (lat2 - lat1) * DEG2RAD
    dlam = (lon2 - lon1) * DEG2RAD
    a = math.sin(dphi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2.0) ** 2
    a = min(1.0, max(0.0, a))
    return 2.0 * radius * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))


def classify(
    position: GeodeticPosition,
    observer: Observer,
    min_altitude_km: float = MIN_VISIBLE_ALTITUDE_KM,
    max_range_km: float = VISIBILITY_RANGE_KM,
) -> bool:
    """
    Return True if ``position`` is visible from ``observer``.

    Objects below ``min_altitude_km`` are never visible; exactly at the
    threshold they are classified by range.
    """
    if position.alt_km < min_altitude_km:
        return False
    distance = haversine_km(observer.lat_deg, observer.lon_deg, position.lat_deg, position.lon_deg)
    return distance < max_range_km


class VisibilityClassifier:
    """Callable classifier bound to a policy and thresholds."""

    def __init__(
        self,
        policy: VisibilityPolicy = VisibilityPolicy.CLASSIFIER,
        min_altitude_km: float = MIN_VISIBLE_ALTITUDE_KM,
        max_range_km: float = VISIBILITY_RANGE_KM,
    ):
        self.policy = VisibilityPolicy(policy)
        self.min_altitude_km = min_altitude_km
        self.max_range_km = max_range_km

    def __call__(self, position: GeodeticPosition, observer: Observer) -> bool:
        if self.policy is VisibilityPolicy.ALWAYS_VISIBLE:
            return True
        return classify(position, observer, self.min_altitude_km, self.max_range_km)
