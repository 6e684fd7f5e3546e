"""
Physical Constants

WGS-72 gravitational constants for SGP4 (Vallado et al. 2006, AAS 06-675),
the WGS-84 ellipsoid for geodetic conversion, and the thresholds used by the
visibility classifier.
"""

import math

TWOPI = 2.0 * math.pi
DEG2RAD = math.pi / 180.0
RAD2DEG = 180.0 / math.pi
MINUTES_PER_DAY = 1440.0
XPDOTP = MINUTES_PER_DAY / TWOPI  # rev/day -> rad/min

# WGS-72 (SGP4 gravity model)
MU = 398600.8  # km^3/s^2
RADIUS_EARTH_KM = 6378.135
XKE = 60.0 / math.sqrt(RADIUS_EARTH_KM ** 3 / MU)
TUMIN = 1.0 / XKE
J2 = 0.001082616
J3 = -0.00000253881
J4 = -0.00000165597
J3OJ2 = J3 / J2

# Period (minutes) at or above which the deep-space branch is used
DEEP_SPACE_PERIOD_MIN = 225.0

# WGS-84 ellipsoid
WGS84_A_KM = 6378.137
WGS84_F = 1.0 / 298.257223563
WGS84_E2 = WGS84_F * (2.0 - WGS84_F)
WGS84_B_KM = WGS84_A_KM * (1.0 - WGS84_F)

# Fixed iteration count of the geodetic inversion
GEODETIC_ITERATIONS = 5

# Visibility classifier
MEAN_EARTH_RADIUS_KM = 6371.0
MIN_VISIBLE_ALTITUDE_KM = 200.0
VISIBILITY_RANGE_KM = 2000.0

# Julian date of 1949 December 31 00:00 UT, the SGP4 epoch origin
JD_1950 = 2433281.5
