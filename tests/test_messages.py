"""
Unit Tests for the Message Protocol

Run with:
    python -m pytest tests/test_messages.py -v
"""

import unittest
from datetime import datetime, timezone

import numpy as np
from pydantic import ValidationError

from orbit_engine.messages import (
    Init,
    PositionsPacked,
    Propagate,
    Tick,
    parse_request,
    unpack_positions,
)
from orbit_engine.models import BatchDiagnostics, CatalogEntry, Observer

ISS_LINE1 = "1 25544U 98067A   19343.69339541  .00001764  00000-0  38792-4 0  9991"
ISS_LINE2 = "2 25544  51.6439 211.2001 0007417  17.6667  85.6398 15.50103472202482"


class TestParseRequest(unittest.TestCase):

    def test_propagate_from_dict(self):
        request = parse_request({
            "type": "PROPAGATE",
            "catalog": [{"identity": "25544", "category": "stations", "line1": ISS_LINE1, "line2": ISS_LINE2}],
            "instant": "2019-12-09T20:42:09Z",
            "observer": {"lat_deg": 40.0, "lon_deg": -75.0},
        })

        self.assertIsInstance(request, Propagate)
        self.assertEqual(request.catalog[0], CatalogEntry(identity="25544", category="stations", line1=ISS_LINE1, line2=ISS_LINE2))
        self.assertEqual(request.instant, datetime(2019, 12, 9, 20, 42, 9, tzinfo=timezone.utc))
        self.assertEqual(request.observer, Observer(lat_deg=40.0, lon_deg=-75.0, alt_km=0.0))

    def test_propagate_defaults(self):
        request = parse_request({"type": "PROPAGATE"})
        self.assertIsNone(request.catalog)
        self.assertIsNone(request.instant)
        self.assertEqual(request.observer, Observer())

    def test_tick_and_init(self):
        self.assertIsInstance(parse_request({"type": "TICK"}), Tick)
        self.assertIsInstance(parse_request({"type": "INIT"}), Init)

    def test_model_passthrough(self):
        tick = Tick(instant=datetime(2023, 1, 1, tzinfo=timezone.utc))
        self.assertIs(parse_request(tick), tick)

    def test_unknown_type(self):
        with self.assertRaises(ValidationError):
            parse_request({"type": "SHUTDOWN"})

    def test_missing_type(self):
        with self.assertRaises(ValidationError):
            parse_request({"catalog": []})

    def test_invalid_observer(self):
        with self.assertRaises(ValidationError):
            parse_request({"type": "PROPAGATE", "catalog": [], "observer": {"lat_deg": 95.0}})

    def test_messages_are_immutable(self):
        tick = Tick()
        with self.assertRaises(ValidationError):
            tick.instant = datetime.now(timezone.utc)


class TestPackedPositions(unittest.TestCase):

    def test_buffer_round_trip(self):
        positions = np.array([[51.5, -0.1, 420.0], [-33.9, 151.2, 35786.0]], dtype="<f4")
        message = PositionsPacked(
            buffer=positions.tobytes(),
            instant=datetime(2023, 9, 17, tzinfo=timezone.utc),
            count=2,
            diagnostics=BatchDiagnostics(total=2, parsed=2, propagated=2, transformed=2),
        )

        decoded = unpack_positions(message.buffer)
        self.assertEqual(message.type, "POSITIONS_F32")
        self.assertEqual(decoded.shape, (2, 3))
        np.testing.assert_array_equal(decoded, positions)

    def test_empty_buffer(self):
        self.assertEqual(unpack_positions(b"").shape, (0, 3))

    def test_truncated_buffer(self):
        with self.assertRaises(ValueError):
            unpack_positions(b"\x00" * 13)


if __name__ == "__main__":
    unittest.main()
