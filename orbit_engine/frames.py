"""
Frame Transform Pipeline

TEME (inertial) -> Earth-fixed -> WGS-84 geodetic.

The Earth-fixed rotation uses Greenwich mean sidereal time (IAU-82) and is
applied to position and velocity alike. The geodetic inversion runs a fixed
number of latitude refinements with no convergence exit, so the cost per
object is constant.
"""

import math
from datetime import datetime, timezone
from typing import NamedTuple, Sequence, Tuple

from orbit_engine.constants import (
    GEODETIC_ITERATIONS,
    RAD2DEG,
    WGS84_A_KM,
    WGS84_B_KM,
    WGS84_E2,
)
from orbit_engine.exceptions import TransformError
from orbit_engine.models import GeodeticPosition, Vector3
from orbit_engine.sgp4_propagator import gstime

__all__ = [
    "EarthFixedState",
    "julian_date",
    "gstime",
    "eci_to_ecf",
    "ecef_to_geodetic",
    "normalize_longitude",
    "to_geodetic",
]


class EarthFixedState(NamedTuple):
    """Earth-fixed position (km) and velocity (km/s) at an instant."""

    position: Vector3
    velocity: Vector3
    instant: datetime


def julian_date(instant: datetime) -> Tuple[float, float]:
    """
    Split Julian date of a datetime.

    Naive datetimes are taken as UTC.

    Returns:
        Tuple of (julian_day, fraction) where julian_day ends in .5
    """
    if instant.tzinfo is not None:
        instant = instant.astimezone(timezone.utc)

    year, month, day = instant.year, instant.month, instant.day
    if month <= 2:
        year -= 1
        month += 12

    a = int(year / 100)
    b = 2 - a + int(a / 4)
    jd = int(365.25 * (year + 4716)) + int(30.6001 * (month + 1)) + day + b - 1524.5

    seconds = (
        instant.hour * 3600.0
        + instant.minute * 60.0
        + instant.second
        + instant.microsecond / 1e6
    )
    return jd, seconds / 86400.0


def eci_to_ecf(vector: Sequence[float], gmst: float) -> Vector3:
    """Rotate an inertial vector about the polar axis by ``gmst`` radians."""
    cos_g = math.cos(gmst)
    sin_g = math.sin(gmst)
    x, y, z = vector
    return (cos_g * x + sin_g * y, -sin_g * x + cos_g * y, z)


def _refine_latitude(lat: float, p: float, z: float) -> float:
    sin_lat = math.sin(lat)
    n = WGS84_A_KM / math.sqrt(1.0 - WGS84_E2 * sin_lat * sin_lat)
    h = p / math.cos(lat) - n
    return math.atan2(z, p * (1.0 - WGS84_E2 * n / (n + h)))


def ecef_to_geodetic(x: float, y: float, z: float) -> Tuple[float, float, float]:
    """
    Convert Earth-fixed coordinates to WGS-84 geodetic.

    Args:
        x, y, z: Earth-fixed position (km)

    Returns:
        Tuple of (latitude_deg, longitude_deg, altitude_km); longitude is
        not yet normalized
    """
    lon = math.atan2(y, x)
    p = math.sqrt(x * x + y * y)

    # On the polar axis
    if p < 1e-10:
        return (90.0 if z >= 0 else -90.0), lon * RAD2DEG, abs(z) - WGS84_B_KM

    lat = math.atan2(z, p * (1.0 - WGS84_E2))
    for _ in range(GEODETIC_ITERATIONS):
        lat = _refine_latitude(lat, p, z)

    sin_lat = math.sin(lat)
    n = WGS84_A_KM / math.sqrt(1.0 - WGS84_E2 * sin_lat * sin_lat)
    alt = p / math.cos(lat) - n

    return lat * RAD2DEG, lon * RAD2DEG, alt


def normalize_longitude(lon_deg: float) -> float:
    """Map a longitude in degrees onto [-180, 180)."""
    lon = ((lon_deg + 180.0) % 360.0) - 180.0
    # Floating rounding can land exactly on +180
    if lon >= 180.0:
        lon -= 360.0
    return lon


def to_geodetic(inertial, identity=None) -> Tuple[EarthFixedState, GeodeticPosition]:
    """
    Rotate an ``InertialState`` into the Earth-fixed frame and invert to
    geodetic coordinates.

    Raises:
        TransformError: on a non-finite or out-of-range result
    """
    jd, fr = julian_date(inertial.instant)
    gmst = gstime(jd + fr)

    try:
        r_ecf = eci_to_ecf(inertial.position, gmst)
        v_ecf = eci_to_ecf(inertial.velocity, gmst)
        lat, lon, alt = ecef_to_geodetic(*r_ecf)
    except (ValueError, ZeroDivisionError, OverflowError) as e:
        raise TransformError(f"geodetic conversion failed: {e}", identity) from e

    if not (math.isfinite(lat) and math.isfinite(lon) and math.isfinite(alt)):
        raise TransformError("non-finite geodetic coordinates", identity)

    lon = normalize_longitude(lon)
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon < 180.0):
        raise TransformError(f"geodetic coordinates out of range ({lat}, {lon})", identity)

    earth_fixed = EarthFixedState(r_ecf, v_ecf, inertial.instant)
    return earth_fixed, GeodeticPosition(lat_deg=lat, lon_deg=lon, alt_km=alt)
