"""
Unit Tests for the SGP4 Propagator and Backends

Compares the native implementation with the reference sgp4 library.

Run with:
    python -m pytest tests/test_sgp4_propagator.py -v
"""

import math
import unittest
from datetime import datetime, timedelta, timezone

from sgp4.api import Satrec

from orbit_engine.exceptions import PropagationError
from orbit_engine.models import CatalogEntry
from orbit_engine.propagator import (
    InertialState,
    LibraryPropagator,
    NativePropagator,
    make_propagator,
    minutes_since_epoch,
)
from orbit_engine.sgp4_propagator import SGP4_ERROR_CODES, SGP4Model, gstime
from orbit_engine.tle_parser import ElementCache, OrbitalElementRecord, parse_tle, with_checksum

ISS_LINE1 = "1 25544U 98067A   19343.69339541  .00001764  00000-0  38792-4 0  9991"
ISS_LINE2 = "2 25544  51.6439 211.2001 0007417  17.6667  85.6398 15.50103472202482"

# 12-hour Molniya orbit (half-day resonance)
MOLNIYA_LINE1 = "1 08195U 75081A   06176.33215444  .00000099  00000-0  11873-3 0   813"
MOLNIYA_LINE2 = "2 08195  64.1586 279.0717 6877146 264.7651  20.2257  2.00491383225656"

# Geosynchronous, near-zero inclination (synchronous resonance, Lyddane branch)
GEO_LINE1 = "1 33333U 08999A   23259.50000000  .00000000  00000-0  00000-0 0  9996"
GEO_LINE2 = "2 33333   0.0175 100.0000 0000100  90.0000 270.0000  1.00273791 99996"

# Instant and TEME state published with the sgp4 library for the ISS TLE above
ISS_INSTANT = datetime(2019, 12, 9, 20, 42, 9, 72000, tzinfo=timezone.utc)
ISS_POSITION = (-6102.445, -986.335, -2820.315)
ISS_VELOCITY = (-1.455, -5.525, 5.105)


class TestSGP4Model(unittest.TestCase):
    """Native SGP4/SDP4 model."""

    def setUp(self):
        self.iss = SGP4Model.from_elements(parse_tle(ISS_LINE1, ISS_LINE2))
        self.iss_ref = Satrec.twoline2rv(ISS_LINE1, ISS_LINE2)

    def test_gstime_at_j2000(self):
        self.assertAlmostEqual(gstime(2451545.0), math.radians(280.46061837), places=8)

    def test_near_earth_selected(self):
        self.assertFalse(self.iss.is_deep_space)
        self.assertEqual(self.iss.irez, 0)

    def test_deep_space_resonances(self):
        molniya = SGP4Model.from_elements(parse_tle(MOLNIYA_LINE1, MOLNIYA_LINE2))
        geo = SGP4Model.from_elements(parse_tle(GEO_LINE1, GEO_LINE2))

        self.assertTrue(molniya.is_deep_space)
        self.assertEqual(molniya.irez, 2)
        self.assertTrue(geo.is_deep_space)
        self.assertEqual(geo.irez, 1)

    def test_matches_library_over_a_day(self):
        for tsince in (0.0, 1.0, 90.0, 360.0, 720.0, 1440.0, -120.0):
            r, v = self.iss.propagate(tsince)
            error, r_ref, v_ref = self.iss_ref.sgp4(
                self.iss_ref.jdsatepoch, self.iss_ref.jdsatepochF + tsince / 1440.0
            )
            self.assertEqual(error, 0)
            for a, b in zip(r, r_ref):
                self.assertAlmostEqual(a, b, delta=1e-3, msg=f"position at {tsince} min")
            for a, b in zip(v, v_ref):
                self.assertAlmostEqual(a, b, delta=1e-6, msg=f"velocity at {tsince} min")

    def test_propagation_is_pure(self):
        molniya = SGP4Model.from_elements(parse_tle(MOLNIYA_LINE1, MOLNIYA_LINE2))
        first = molniya.propagate(4000.0)
        molniya.propagate(100.0)
        molniya.propagate(-3000.0)
        self.assertEqual(first, molniya.propagate(4000.0))

    def test_epoch_failure_is_kept_on_the_model(self):
        line1 = with_checksum("1 44445U 19999A   23259.50000000  .10000000  00000-0  50000-2 0  9990")
        line2 = with_checksum("2 44445  51.6400 100.0000 0005000  90.0000 270.0000 17.50000000 99990")
        model = SGP4Model.from_elements(parse_tle(line1, line2))

        self.assertEqual(self.iss.error, 0)
        self.assertEqual(model.error, 6)
        with self.assertRaises(PropagationError) as ctx:
            model.propagate(0.0)
        self.assertEqual(ctx.exception.code, 6)
        self.assertNotEqual(Satrec.twoline2rv(line1, line2).error, 0)

    def test_error_codes_documented(self):
        for code in (1, 2, 3, 4, 6):
            self.assertIn(code, SGP4_ERROR_CODES)

    def test_error_message_carries_code(self):
        error = PropagationError(6, SGP4_ERROR_CODES[6], "25544")
        self.assertEqual(error.code, 6)
        self.assertIn("SGP4 error 6", str(error))
        self.assertIn("25544", str(error))


class TestPropagatorBackends(unittest.TestCase):
    """Native and library backends behind the Propagator interface."""

    def _record(self, propagator, line1=ISS_LINE1, line2=ISS_LINE2):
        cache = ElementCache(propagator.initialize)
        return cache.get_or_parse(CatalogEntry(identity=line2[2:7], line1=line1, line2=line2))

    def test_minutes_since_epoch(self):
        elements = parse_tle(ISS_LINE1, ISS_LINE2)
        later = elements.epoch + timedelta(minutes=90)
        self.assertAlmostEqual(minutes_since_epoch(elements, later), 90.0, delta=1e-4)

    def test_published_iss_state(self):
        for propagator in (NativePropagator(), LibraryPropagator()):
            state = propagator.propagate(self._record(propagator), ISS_INSTANT)

            self.assertIsInstance(state, InertialState)
            self.assertEqual(state.instant, ISS_INSTANT)
            for a, b in zip(state.position, ISS_POSITION):
                self.assertAlmostEqual(a, b, delta=0.01, msg=propagator.name)
            for a, b in zip(state.velocity, ISS_VELOCITY):
                self.assertAlmostEqual(a, b, delta=0.01, msg=propagator.name)

    def test_backends_agree_on_deep_space(self):
        native, library = NativePropagator(), LibraryPropagator()
        native_record = self._record(native, MOLNIYA_LINE1, MOLNIYA_LINE2)
        library_record = self._record(library, MOLNIYA_LINE1, MOLNIYA_LINE2)
        instant = native_record.elements.epoch + timedelta(days=3)

        a = native.propagate(native_record, instant)
        b = library.propagate(library_record, instant)
        for x, y in zip(a.position, b.position):
            self.assertAlmostEqual(x, y, delta=1e-3)

    def test_non_finite_state_rejected(self):
        class NaNModel:
            def propagate(self, tsince):
                return (float("nan"), 0.0, 0.0), (0.0, 0.0, 0.0)

        elements = parse_tle(ISS_LINE1, ISS_LINE2)
        record = OrbitalElementRecord(
            identity="25544", key=("25544", ISS_LINE1, ISS_LINE2), elements=elements, model=NaNModel()
        )
        with self.assertRaises(PropagationError) as ctx:
            NativePropagator().propagate(record, ISS_INSTANT)
        self.assertEqual(ctx.exception.identity, "25544")

    def test_make_propagator(self):
        self.assertIsInstance(make_propagator("native"), NativePropagator)
        self.assertIsInstance(make_propagator("sgp4"), LibraryPropagator)
        with self.assertRaises(ValueError):
            make_propagator("torch")


if __name__ == "__main__":
    unittest.main()
