"""
Unit Tests for the Visibility Classifier

Run with:
    python -m pytest tests/test_visibility.py -v
"""

import math
import unittest

from orbit_engine.models import GeodeticPosition, Observer
from orbit_engine.visibility import (
    VisibilityClassifier,
    VisibilityPolicy,
    classify,
    haversine_km,
)

EARTH_RADIUS_KM = 6371.0


def point_east_of(observer, distance_km, alt_km):
    """Position on the observer's parallel (equator only) at a surface distance."""
    dlon = math.degrees(distance_km / EARTH_RADIUS_KM)
    return GeodeticPosition(lat_deg=observer.lat_deg, lon_deg=observer.lon_deg + dlon, alt_km=alt_km)


class TestHaversine(unittest.TestCase):

    def test_zero_distance(self):
        self.assertEqual(haversine_km(12.0, 34.0, 12.0, 34.0), 0.0)

    def test_one_degree_of_longitude_at_equator(self):
        self.assertAlmostEqual(haversine_km(0.0, 0.0, 0.0, 1.0), EARTH_RADIUS_KM * math.pi / 180.0, places=9)

    def test_antipodes(self):
        self.assertAlmostEqual(haversine_km(0.0, 0.0, 0.0, 180.0), EARTH_RADIUS_KM * math.pi, places=6)

    def test_across_antimeridian(self):
        self.assertAlmostEqual(
            haversine_km(0.0, 179.5, 0.0, -179.5), haversine_km(0.0, 0.0, 0.0, 1.0), places=9
        )


class TestClassify(unittest.TestCase):

    def setUp(self):
        self.observer = Observer(lat_deg=0.0, lon_deg=0.0)

    def test_altitude_floor(self):
        below = GeodeticPosition(lat_deg=0.0, lon_deg=0.0, alt_km=199.999)
        at = GeodeticPosition(lat_deg=0.0, lon_deg=0.0, alt_km=200.0)
        self.assertFalse(classify(below, self.observer))
        self.assertTrue(classify(at, self.observer))

    def test_range_limit(self):
        self.assertTrue(classify(point_east_of(self.observer, 1990.0, 400.0), self.observer))
        self.assertFalse(classify(point_east_of(self.observer, 2010.0, 400.0), self.observer))

    def test_custom_thresholds(self):
        position = point_east_of(self.observer, 500.0, 150.0)
        self.assertFalse(classify(position, self.observer))
        self.assertTrue(classify(position, self.observer, min_altitude_km=100.0))
        self.assertFalse(classify(position, self.observer, min_altitude_km=100.0, max_range_km=400.0))

    def test_observer_altitude_ignored(self):
        position = GeodeticPosition(lat_deg=10.0, lon_deg=10.0, alt_km=400.0)
        high = Observer(lat_deg=10.0, lon_deg=10.0, alt_km=3.0)
        self.assertTrue(classify(position, high))


class TestVisibilityClassifier(unittest.TestCase):

    def test_default_policy_classifies(self):
        classifier = VisibilityClassifier()
        low = GeodeticPosition(lat_deg=0.0, lon_deg=0.0, alt_km=150.0)
        self.assertIs(classifier.policy, VisibilityPolicy.CLASSIFIER)
        self.assertFalse(classifier(low, Observer()))

    def test_always_visible_policy(self):
        classifier = VisibilityClassifier("always")
        far_and_low = GeodeticPosition(lat_deg=-60.0, lon_deg=170.0, alt_km=120.0)
        self.assertIs(classifier.policy, VisibilityPolicy.ALWAYS_VISIBLE)
        self.assertTrue(classifier(far_and_low, Observer(lat_deg=45.0, lon_deg=-75.0)))

    def test_unknown_policy(self):
        with self.assertRaises(ValueError):
            VisibilityClassifier("sometimes")


if __name__ == "__main__":
    unittest.main()
