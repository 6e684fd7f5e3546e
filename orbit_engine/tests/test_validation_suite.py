"""
SGP4 Validation Suite

Cross-validates the native propagator against the reference sgp4 library
across near-Earth, deep-space, resonant and decaying element sets. At every
step both implementations must either agree on the TEME state or fail with
the same error code.

References:
    Vallado, D. A., Crawford, P., Hujsak, R., & Kelso, T. S. (2006).
    Revisiting Spacetrack Report #3. AIAA 2006-6753.
"""

import unittest

from sgp4.api import WGS72, Satrec

from orbit_engine.exceptions import PropagationError
from orbit_engine.sgp4_propagator import SGP4Model
from orbit_engine.tle_parser import parse_tle

POSITION_TOLERANCE_KM = 1e-3
VELOCITY_TOLERANCE_KM_S = 1e-6

CASES = {
    "00005": (  # Vanguard 1, e = 0.186
        "1 00005U 58002B   00179.78495062  .00000023  00000-0  28098-4 0  4753",
        "2 00005  34.2682 348.7242 1859667 331.7664  19.3264 10.82419157413667",
    ),
    "04632": (  # near Earth, normal drag
        "1 04632U 60007A   00179.90844189  .00000216  00000-0  10842-3 0  9210",
        "2 04632  58.0584  53.8479 0029762  74.2044 286.2570 14.83757089804037",
    ),
    "08195": (  # Molniya, half-day resonance
        "1 08195U 75081A   06176.33215444  .00000099  00000-0  11873-3 0   813",
        "2 08195  64.1586 279.0717 6877146 264.7651  20.2257  2.00491383225656",
    ),
    "11801": (  # no international designator, e = 0.73
        "1 11801U          80230.29629788  .00000096  00000-0  00000-0 0    14",
        "2 11801  46.7916 230.4354 7318036  47.4722  10.4117  2.28537848    13",
    ),
    "14128": (  # geosynchronous, 11 degree inclination
        "1 14128U 83058A   23259.50000000  .00000000  00000-0  00000-0 0  9996",
        "2 14128  11.4628 273.1101 0014642 108.4290 337.5765  1.00271276 99994",
    ),
    "33333": (  # geostationary, Lyddane branch
        "1 33333U 08999A   23259.50000000  .00000000  00000-0  00000-0 0  9996",
        "2 33333   0.0175 100.0000 0000100  90.0000 270.0000  1.00273791 99996",
    ),
    "40296": (  # half-day resonance, e = 0.7
        "1 40296U 14075A   23259.50000000 -.00000100  00000-0  00000-0 0  9996",
        "2 40296  62.8000 250.0000 7000000 270.0000  20.0000  2.00580000 99995",
    ),
    "43013": (  # sun-synchronous
        "1 43013U 17073A   23259.50000000  .00001000  00000-0  50000-4 0  9995",
        "2 43013  97.8650 320.0000 0001500  90.0000 270.1234 14.95000000299994",
    ),
}

DECAYING = (
    "1 44444U 19999A   23259.50000000  .10000000  00000-0  50000-2 0  9991",
    "2 44444  51.6400 100.0000 0005000  90.0000 270.0000 16.50000000 99990",
)

# tcppver.out, Vallado et al. (2006)
VANGUARD_REFERENCE = [
    (0.0, (7022.46529266, -1400.08296755, 0.03995155), (1.893841015, 6.405893759, 4.534807250)),
    (360.0, (-7154.03120202, -3783.17682504, -3536.19412294), (4.741887409, -4.151817765, -2.093935425)),
]


def reference_state(satrec, tsince):
    return satrec.sgp4(satrec.jdsatepoch, satrec.jdsatepochF + tsince / 1440.0)


class SGP4ValidationSuite(unittest.TestCase):
    """Native SGP4/SDP4 against the sgp4 library"""

    def assertStatesAgree(self, native, reference, label):
        (r, v), (r_ref, v_ref) = native, reference
        for a, b in zip(r, r_ref):
            self.assertAlmostEqual(a, b, delta=POSITION_TOLERANCE_KM, msg=f"{label} position")
        for a, b in zip(v, v_ref):
            self.assertAlmostEqual(a, b, delta=VELOCITY_TOLERANCE_KM_S, msg=f"{label} velocity")

    def cross_validate(self, line1, line2, tsinces):
        """
        Step both implementations through ``tsinces``.

        Returns:
            (tsince, code) of the first failure, or None
        """
        model = SGP4Model.from_elements(parse_tle(line1, line2))
        satrec = Satrec.twoline2rv(line1, line2, WGS72)

        for tsince in tsinces:
            error, r_ref, v_ref = reference_state(satrec, tsince)
            label = f"{line2[2:7]} at {tsince} min"
            if error != 0:
                with self.assertRaises(PropagationError, msg=label) as ctx:
                    model.propagate(tsince)
                self.assertEqual(ctx.exception.code, error, msg=label)
                return tsince, error
            self.assertStatesAgree(model.propagate(tsince), (r_ref, v_ref), label)
        return None

    def test_vanguard_published_states(self):
        line1, line2 = CASES["00005"]
        model = SGP4Model.from_elements(parse_tle(line1, line2))
        for tsince, r_ref, v_ref in VANGUARD_REFERENCE:
            r, v = model.propagate(tsince)
            for a, b in zip(r, r_ref):
                self.assertAlmostEqual(a, b, delta=1e-4)
            for a, b in zip(v, v_ref):
                self.assertAlmostEqual(a, b, delta=1e-6)

    def test_catalog_over_three_days(self):
        tsinces = [float(t) for t in range(-1440, 4321, 120)]
        for satnum, (line1, line2) in CASES.items():
            with self.subTest(satnum=satnum):
                self.assertIsNone(self.cross_validate(line1, line2, tsinces))

    def test_fine_steps_near_epoch(self):
        tsinces = [t * 0.5 for t in range(0, 200)]
        for satnum in ("04632", "08195", "33333"):
            with self.subTest(satnum=satnum):
                self.assertIsNone(self.cross_validate(*CASES[satnum], tsinces))

    def test_decay_detected_consistently(self):
        tsinces = [float(t) for t in range(0, 1441, 10)]
        failure = self.cross_validate(*DECAYING, tsinces)

        self.assertIsNotNone(failure)
        tsince, code = failure
        self.assertGreater(tsince, 0.0)
        self.assertIn(code, (1, 6))

    def test_deep_space_selection(self):
        for satnum, (line1, line2) in CASES.items():
            model = SGP4Model.from_elements(parse_tle(line1, line2))
            satrec = Satrec.twoline2rv(line1, line2, WGS72)
            self.assertEqual(model.is_deep_space, satrec.method == "d", msg=satnum)


if __name__ == "__main__":
    unittest.main()
