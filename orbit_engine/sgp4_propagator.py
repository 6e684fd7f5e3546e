"""
SGP4/SDP4 Analytic Propagator

Native implementation of the SGP4 theory as revised by Vallado et al. (2006)
"Revisiting Spacetrack Report #3" (AIAA 2006-6753), using WGS-72 constants
and the improved ('i') operation mode.

- Near-Earth orbits (period < 225 min): secular gravity and drag, long- and
  short-period periodics.
- Deep-space orbits (period >= 225 min): lunar-solar secular and periodic
  terms, and the 12-hour and geosynchronous resonance integrator.

Propagation is a pure function of the initialized model and the time since
epoch: the resonance integrator restarts from epoch on every call instead of
caching its last step, so concurrent or out-of-order calls return identical
results.

References:
- Vallado, D. A., et al. (2006). "Revisiting Spacetrack Report #3." AIAA 2006-6753
- Hoots, F. R., & Roehrich, R. L. (1980). "Spacetrack Report No. 3"
"""

import math

from orbit_engine.constants import (
    DEEP_SPACE_PERIOD_MIN,
    J2,
    J3OJ2,
    J4,
    JD_1950,
    RADIUS_EARTH_KM,
    TWOPI,
    XKE,
)
from orbit_engine.exceptions import PropagationError

X2O3 = 2.0 / 3.0
TEMP4 = 1.5e-12
VKMPERSEC = RADIUS_EARTH_KM * XKE / 60.0

# Lunar-solar constants
ZES = 0.01675
ZEL = 0.05490
ZNS = 1.19459e-5
ZNL = 1.5835218e-4
C1SS = 2.9864797e-6
C1L = 4.7968065e-7
ZSINIS = 0.39785416
ZCOSIS = 0.91744867
ZCOSGS = 0.1945905
ZSINGS = -0.98088458

# Resonance constants
Q22 = 1.7891679e-6
Q31 = 2.1460748e-6
Q33 = 2.2123015e-7
ROOT22 = 1.7891679e-6
ROOT44 = 7.3636953e-9
ROOT54 = 2.1765803e-9
ROOT32 = 3.7393792e-7
ROOT52 = 1.1428639e-7
RPTIM = 4.37526908801129966e-3  # Earth rotation, rad/min
FASX2 = 0.13130908
FASX4 = 2.8843198
FASX6 = 0.37448087
G22 = 5.7686396
G32 = 0.95240898
G44 = 1.8014998
G52 = 1.0508330
G54 = 4.4108898
STEPP = 720.0
STEPN = -720.0
STEP2 = 259200.0

# SGP4 error codes
SGP4_ERROR_CODES = {
    0: "No error",
    1: "Mean eccentricity >= 1.0 or < -0.001",
    2: "Mean motion <= 0.0",
    3: "Perturbed eccentricity < 0.0 or > 1.0",
    4: "Semi-latus rectum < 0.0",
    5: "Epoch elements are sub-orbital",
    6: "Satellite has decayed",
}


def gstime(jdut1):
    """Greenwich mean sidereal time (IAU-82), radians in [0, 2pi)."""
    tut1 = (jdut1 - 2451545.0) / 36525.0
    temp = (
        -6.2e-6 * tut1 * tut1 * tut1
        + 0.093104 * tut1 * tut1
        + (876600.0 * 3600.0 + 8640184.812866) * tut1
        + 67310.54841
    )
    temp = math.fmod(temp * (math.pi / 180.0) / 240.0, TWOPI)
    if temp < 0.0:
        temp += TWOPI
    return temp


class SGP4Model:
    """
    Initialized SGP4 constants for one element set.

    Build with ``SGP4Model.from_elements(elements)`` (any object exposing the
    Vallado field names: ``satnum, jdsatepoch, jdsatepochF, bstar, ecco,
    argpo, inclo, mo, no_kozai, nodeo``), then call ``propagate``.
    """

    def __init__(self, satnum, epoch, bstar, ecco, argpo, inclo, mo, no_kozai, nodeo):
        """
        Args:
            satnum: Catalog number (diagnostics only)
            epoch: Days since 1949 December 31 00:00 UT
            bstar: B* drag term (1/earth radii)
            ecco, argpo, inclo, mo, no_kozai, nodeo: Mean elements
                (radians, rad/min)
        """
        self.satnum = satnum
        self.bstar = bstar
        self.ecco = ecco
        self.argpo = argpo
        self.inclo = inclo
        self.mo = mo
        self.no_kozai = no_kozai
        self.nodeo = nodeo

        self.isimp = 0
        self.method = "n"
        self.irez = 0
        self.d2 = self.d3 = self.d4 = 0.0
        self.t3cof = self.t4cof = self.t5cof = 0.0

        self._sgp4init(epoch)

        # Epoch check, kept as the model's error code like Vallado's satrec.error;
        # propagate() raises again for the requested time
        self.error = 0
        try:
            self.propagate(0.0)
        except PropagationError as e:
            self.error = e.code

    @classmethod
    def from_elements(cls, elements):
        epoch = elements.jdsatepoch + elements.jdsatepochF - JD_1950
        return cls(
            elements.satnum,
            epoch,
            elements.bstar,
            elements.ecco,
            elements.argpo,
            elements.inclo,
            elements.mo,
            elements.no_kozai,
            elements.nodeo,
        )

    @property
    def is_deep_space(self):
        return self.method == "d"

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def _initl(self, epoch):
        """Un-Kozai the mean motion and compute basic quantities."""
        ecco = self.ecco
        eccsq = ecco * ecco
        omeosq = 1.0 - eccsq
        rteosq = math.sqrt(omeosq)
        cosio = math.cos(self.inclo)
        cosio2 = cosio * cosio

        ak = math.pow(XKE / self.no_kozai, X2O3)
        d1 = 0.75 * J2 * (3.0 * cosio2 - 1.0) / (rteosq * omeosq)
        del_ = d1 / (ak * ak)
        adel = ak * (1.0 - del_ * del_ - del_ * (1.0 / 3.0 + 134.0 * del_ * del_ / 81.0))
        del_ = d1 / (adel * adel)
        self.no_unkozai = self.no_kozai / (1.0 + del_)

        ao = math.pow(XKE / self.no_unkozai, X2O3)
        sinio = math.sin(self.inclo)
        po = ao * omeosq
        con42 = 1.0 - 5.0 * cosio2
        self.con41 = -con42 - cosio2 - cosio2
        posq = po * po
        rp = ao * (1.0 - ecco)
        self.gsto = gstime(epoch + JD_1950)

        return ao, con42, cosio, cosio2, eccsq, omeosq, posq, rp, rteosq, sinio

    def _sgp4init(self, epoch):
        ss = 78.0 / RADIUS_EARTH_KM + 1.0
        qzms2t = ((120.0 - 78.0) / RADIUS_EARTH_KM) ** 4

        (ao, con42, cosio, cosio2, eccsq, omeosq, posq, rp, rteosq, sinio) = self._initl(epoch)
        no = self.no_unkozai
        ecco = self.ecco
        bstar = self.bstar

        self.a = math.pow(no / XKE, -X2O3)
        self.alta = self.a * (1.0 + ecco) - 1.0
        self.altp = self.a * (1.0 - ecco) - 1.0

        if omeosq < 0.0 and no < 0.0:
            raise ValueError("mean elements are not initializable")

        if rp < 220.0 / RADIUS_EARTH_KM + 1.0:
            self.isimp = 1

        sfour = ss
        qzms24 = qzms2t
        perige = (rp - 1.0) * RADIUS_EARTH_KM

        # Perigee below 156 km: adjust s and qoms2t
        if perige < 156.0:
            sfour = perige - 78.0
            if perige < 98.0:
                sfour = 20.0
            qzms24 = ((120.0 - sfour) / RADIUS_EARTH_KM) ** 4
            sfour = sfour / RADIUS_EARTH_KM + 1.0

        pinvsq = 1.0 / posq
        tsi = 1.0 / (ao - sfour)
        self.eta = ao * ecco * tsi
        eta = self.eta
        etasq = eta * eta
        eeta = ecco * eta
        psisq = abs(1.0 - etasq)
        coef = qzms24 * tsi ** 4
        coef1 = coef / psisq ** 3.5
        cc2 = coef1 * no * (
            ao * (1.0 + 1.5 * etasq + eeta * (4.0 + etasq))
            + 0.375 * J2 * tsi / psisq * self.con41 * (8.0 + 3.0 * etasq * (8.0 + etasq))
        )
        self.cc1 = bstar * cc2
        cc3 = 0.0
        if ecco > 1.0e-4:
            cc3 = -2.0 * coef * tsi * J3OJ2 * no * sinio / ecco
        self.x1mth2 = 1.0 - cosio2
        self.cc4 = 2.0 * no * coef1 * ao * omeosq * (
            eta * (2.0 + 0.5 * etasq)
            + ecco * (0.5 + 2.0 * etasq)
            - J2 * tsi / (ao * psisq) * (
                -3.0 * self.con41 * (1.0 - 2.0 * eeta + etasq * (1.5 - 0.5 * eeta))
                + 0.75 * self.x1mth2 * (2.0 * etasq - eeta * (1.0 + etasq)) * math.cos(2.0 * self.argpo)
            )
        )
        self.cc5 = 2.0 * coef1 * ao * omeosq * (1.0 + 2.75 * (etasq + eeta) + eeta * etasq)

        cosio4 = cosio2 * cosio2
        temp1 = 1.5 * J2 * pinvsq * no
        temp2 = 0.5 * temp1 * J2 * pinvsq
        temp3 = -0.46875 * J4 * pinvsq * pinvsq * no
        self.mdot = (
            no
            + 0.5 * temp1 * rteosq * self.con41
            + 0.0625 * temp2 * rteosq * (13.0 - 78.0 * cosio2 + 137.0 * cosio4)
        )
        self.argpdot = (
            -0.5 * temp1 * con42
            + 0.0625 * temp2 * (7.0 - 114.0 * cosio2 + 395.0 * cosio4)
            + temp3 * (3.0 - 36.0 * cosio2 + 49.0 * cosio4)
        )
        xhdot1 = -temp1 * cosio
        self.nodedot = xhdot1 + (0.5 * temp2 * (4.0 - 19.0 * cosio2) + 2.0 * temp3 * (3.0 - 7.0 * cosio2)) * cosio
        xpidot = self.argpdot + self.nodedot
        self.omgcof = bstar * cc3 * math.cos(self.argpo)
        self.xmcof = 0.0
        if ecco > 1.0e-4:
            self.xmcof = -X2O3 * coef * bstar / eeta
        self.nodecf = 3.5 * omeosq * xhdot1 * self.cc1
        self.t2cof = 1.5 * self.cc1

        # Divide-by-zero guard for inclination near 180 degrees
        if abs(cosio + 1.0) > 1.5e-12:
            self.xlcof = -0.25 * J3OJ2 * sinio * (3.0 + 5.0 * cosio) / (1.0 + cosio)
        else:
            self.xlcof = -0.25 * J3OJ2 * sinio * (3.0 + 5.0 * cosio) / TEMP4
        self.aycof = -0.5 * J3OJ2 * sinio
        delmotemp = 1.0 + eta * math.cos(self.mo)
        self.delmo = delmotemp * delmotemp * delmotemp
        self.sinmao = math.sin(self.mo)
        self.x7thm1 = 7.0 * cosio2 - 1.0

        if TWOPI / no >= DEEP_SPACE_PERIOD_MIN:
            self.method = "d"
            self.isimp = 1
            self._deep_space_init(epoch, xpidot, eccsq)

        if self.isimp != 1:
            cc1 = self.cc1
            cc1sq = cc1 * cc1
            self.d2 = 4.0 * ao * tsi * cc1sq
            temp = self.d2 * tsi * cc1 / 3.0
            self.d3 = (17.0 * ao + sfour) * temp
            self.d4 = 0.5 * temp * ao * tsi * (221.0 * ao + 31.0 * sfour) * cc1
            self.t3cof = self.d2 + 2.0 * cc1sq
            self.t4cof = 0.25 * (3.0 * self.d3 + cc1 * (12.0 * self.d2 + 10.0 * cc1sq))
            self.t5cof = 0.2 * (
                3.0 * self.d4
                + 12.0 * cc1 * self.d3
                + 6.0 * self.d2 * self.d2
                + 15.0 * cc1sq * (2.0 * self.d2 + cc1sq)
            )

    def _deep_space_init(self, epoch, xpidot, eccsq):
        terms = _dscom(epoch, self.ecco, self.argpo, 0.0, self.inclo, self.nodeo, self.no_unkozai)

        # Lunar-solar periodic coefficients used by dpper
        for name in (
            "e3", "ee2", "peo", "pgho", "pho", "pinco", "plo",
            "se2", "se3", "sgh2", "sgh3", "sgh4", "sh2", "sh3", "si2", "si3",
            "sl2", "sl3", "sl4", "xgh2", "xgh3", "xgh4", "xh2", "xh3",
            "xi2", "xi3", "xl2", "xl3", "xl4", "zmol", "zmos",
        ):
            setattr(self, name, terms[name])

        # Epoch periodic offsets (peo, pinco, ...) stay zero in improved mode,
        # so the mean elements are not adjusted before dsinit.
        self._dsinit(terms, xpidot, eccsq)

    def _dsinit(self, terms, xpidot, eccsq):
        """Deep-space secular rates and resonance initialization."""
        cosim = terms["cosim"]
        sinim = terms["sinim"]
        emsq = terms["emsq"]
        em = terms["em"]
        nm = terms["nm"]
        inclm = self.inclo
        s1, s2, s3, s4, s5 = terms["s1"], terms["s2"], terms["s3"], terms["s4"], terms["s5"]
        ss1, ss2, ss3, ss4, ss5 = terms["ss1"], terms["ss2"], terms["ss3"], terms["ss4"], terms["ss5"]
        sz1, sz3, sz11, sz13 = terms["sz1"], terms["sz3"], terms["sz11"], terms["sz13"]
        sz21, sz23, sz31, sz33 = terms["sz21"], terms["sz23"], terms["sz31"], terms["sz33"]
        z1, z3, z11, z13 = terms["z1"], terms["z3"], terms["z11"], terms["z13"]
        z21, z23, z31, z33 = terms["z21"], terms["z23"], terms["z31"], terms["z33"]
        no = self.no_unkozai

        irez = 0
        if 0.0034906585 < nm < 0.0052359877:
            irez = 1
        if 8.26e-3 <= nm <= 9.24e-3 and em >= 0.5:
            irez = 2

        # Solar terms
        ses = ss1 * ZNS * ss5
        sis = ss2 * ZNS * (sz11 + sz13)
        sls = -ZNS * ss3 * (sz1 + sz3 - 14.0 - 6.0 * emsq)
        sghs = ss4 * ZNS * (sz31 + sz33 - 6.0)
        shs = -ZNS * ss2 * (sz21 + sz23)
        if inclm < 5.2359877e-2 or inclm > math.pi - 5.2359877e-2:
            shs = 0.0
        if sinim != 0.0:
            shs = shs / sinim
        sgs = sghs - cosim * shs

        # Lunar terms
        self.dedt = ses + s1 * ZNL * s5
        self.didt = sis + s2 * ZNL * (z11 + z13)
        self.dmdt = sls - ZNL * s3 * (z1 + z3 - 14.0 - 6.0 * emsq)
        sghl = s4 * ZNL * (z31 + z33 - 6.0)
        shll = -ZNL * s2 * (z21 + z23)
        if inclm < 5.2359877e-2 or inclm > math.pi - 5.2359877e-2:
            shll = 0.0
        self.domdt = sgs + sghl
        self.dnodt = shs
        if sinim != 0.0:
            self.domdt = self.domdt - cosim / sinim * shll
            self.dnodt = self.dnodt + shll / sinim

        self.irez = irez
        self.del1 = self.del2 = self.del3 = 0.0
        self.d2201 = self.d2211 = self.d3210 = self.d3222 = 0.0
        self.d4410 = self.d4422 = self.d5220 = self.d5232 = 0.0
        self.d5421 = self.d5433 = 0.0
        self.xfact = self.xlamo = 0.0

        if irez == 0:
            return

        theta = math.fmod(self.gsto, TWOPI)
        aonv = math.pow(nm / XKE, X2O3)

        # Geopotential resonance for 12 hour orbits
        if irez == 2:
            cosisq = cosim * cosim
            emo = em
            em = self.ecco
            emsqo = emsq
            emsq = eccsq
            eoc = em * emsq
            g201 = -0.306 - (em - 0.64) * 0.440

            if em <= 0.65:
                g211 = 3.616 - 13.2470 * em + 16.2900 * emsq
                g310 = -19.302 + 117.3900 * em - 228.4190 * emsq + 156.5910 * eoc
                g322 = -18.9068 + 109.7927 * em - 214.6334 * emsq + 146.5816 * eoc
                g410 = -41.122 + 242.6940 * em - 471.0940 * emsq + 313.9530 * eoc
                g422 = -146.407 + 841.8800 * em - 1629.014 * emsq + 1083.4350 * eoc
                g520 = -532.114 + 3017.977 * em - 5740.032 * emsq + 3708.2760 * eoc
            else:
                g211 = -72.099 + 331.819 * em - 508.738 * emsq + 266.724 * eoc
                g310 = -346.844 + 1582.851 * em - 2415.925 * emsq + 1246.113 * eoc
                g322 = -342.585 + 1554.908 * em - 2366.899 * emsq + 1215.972 * eoc
                g410 = -1052.797 + 4758.686 * em - 7193.992 * emsq + 3651.957 * eoc
                g422 = -3581.690 + 16178.110 * em - 24462.770 * emsq + 12422.520 * eoc
                if em > 0.715:
                    g520 = -5149.66 + 29936.92 * em - 54087.36 * emsq + 31324.56 * eoc
                else:
                    g520 = 1464.74 - 4664.75 * em + 3763.64 * emsq

            if em < 0.7:
                g533 = -919.22770 + 4988.6100 * em - 9064.7700 * emsq + 5542.21 * eoc
                g521 = -822.71072 + 4568.6173 * em - 8491.4146 * emsq + 5337.524 * eoc
                g532 = -853.66600 + 4690.2500 * em - 8624.7700 * emsq + 5341.4 * eoc
            else:
                g533 = -37995.780 + 161616.52 * em - 229838.20 * emsq + 109377.94 * eoc
                g521 = -51752.104 + 218913.95 * em - 309468.16 * emsq + 146349.42 * eoc
                g532 = -40023.880 + 170470.89 * em - 242699.48 * emsq + 115605.82 * eoc

            sini2 = sinim * sinim
            f220 = 0.75 * (1.0 + 2.0 * cosim + cosisq)
            f221 = 1.5 * sini2
            f321 = 1.875 * sinim * (1.0 - 2.0 * cosim - 3.0 * cosisq)
            f322 = -1.875 * sinim * (1.0 + 2.0 * cosim - 3.0 * cosisq)
            f441 = 35.0 * sini2 * f220
            f442 = 39.3750 * sini2 * sini2
            f522 = 9.84375 * sinim * (
                sini2 * (1.0 - 2.0 * cosim - 5.0 * cosisq)
                + 0.33333333 * (-2.0 + 4.0 * cosim + 6.0 * cosisq)
            )
            f523 = sinim * (
                4.92187512 * sini2 * (-2.0 - 4.0 * cosim + 10.0 * cosisq)
                + 6.56250012 * (1.0 + 2.0 * cosim - 3.0 * cosisq)
            )
            f542 = 29.53125 * sinim * (2.0 - 8.0 * cosim + cosisq * (-12.0 + 8.0 * cosim + 10.0 * cosisq))
            f543 = 29.53125 * sinim * (-2.0 - 8.0 * cosim + cosisq * (12.0 + 8.0 * cosim - 10.0 * cosisq))
            xno2 = nm * nm
            ainv2 = aonv * aonv
            temp1 = 3.0 * xno2 * ainv2
            temp = temp1 * ROOT22
            self.d2201 = temp * f220 * g201
            self.d2211 = temp * f221 * g211
            temp1 = temp1 * aonv
            temp = temp1 * ROOT32
            self.d3210 = temp * f321 * g310
            self.d3222 = temp * f322 * g322
            temp1 = temp1 * aonv
            temp = 2.0 * temp1 * ROOT44
            self.d4410 = temp * f441 * g410
            self.d4422 = temp * f442 * g422
            temp1 = temp1 * aonv
            temp = temp1 * ROOT52
            self.d5220 = temp * f522 * g520
            self.d5232 = temp * f523 * g532
            temp = 2.0 * temp1 * ROOT54
            self.d5421 = temp * f542 * g521
            self.d5433 = temp * f543 * g533
            self.xlamo = math.fmod(self.mo + self.nodeo + self.nodeo - theta - theta, TWOPI)
            self.xfact = self.mdot + self.dmdt + 2.0 * (self.nodedot + self.dnodt - RPTIM) - no
            em = emo
            emsq = emsqo

        # Synchronous resonance terms
        if irez == 1:
            g200 = 1.0 + emsq * (-2.5 + 0.8125 * emsq)
            g310 = 1.0 + 2.0 * emsq
            g300 = 1.0 + emsq * (-6.0 + 6.60937 * emsq)
            f220 = 0.75 * (1.0 + cosim) * (1.0 + cosim)
            f311 = 0.9375 * sinim * sinim * (1.0 + 3.0 * cosim) - 0.75 * (1.0 + cosim)
            f330 = 1.0 + cosim
            f330 = 1.875 * f330 * f330 * f330
            del1 = 3.0 * nm * nm * aonv * aonv
            self.del2 = 2.0 * del1 * f220 * g200 * Q22
            self.del3 = 3.0 * del1 * f330 * g300 * Q33 * aonv
            self.del1 = del1 * f311 * g310 * Q31 * aonv
            self.xlamo = math.fmod(self.mo + self.nodeo + self.argpo - theta, TWOPI)
            self.xfact = self.mdot + xpidot - RPTIM + self.dmdt + self.domdt + self.dnodt - no

    # ------------------------------------------------------------------
    # Propagation
    # ------------------------------------------------------------------

    def propagate(self, tsince):
        """
        Propagate to ``tsince`` minutes from epoch.

        Args:
            tsince: Time since epoch (minutes)

        Returns:
            Tuple of (position_km, velocity_km_s) in the TEME frame

        Raises:
            PropagationError: with the SGP4 error code on failure
        """
        t = tsince

        # Secular gravity and atmospheric drag
        xmdf = self.mo + self.mdot * t
        argpdf = self.argpo + self.argpdot * t
        nodedf = self.nodeo + self.nodedot * t
        argpm = argpdf
        mm = xmdf
        t2 = t * t
        nodem = nodedf + self.nodecf * t2
        tempa = 1.0 - self.cc1 * t
        tempe = self.bstar * self.cc4 * t
        templ = self.t2cof * t2

        if self.isimp != 1:
            delomg = self.omgcof * t
            delmtemp = 1.0 + self.eta * math.cos(xmdf)
            delm = self.xmcof * (delmtemp * delmtemp * delmtemp - self.delmo)
            temp = delomg + delm
            mm = xmdf + temp
            argpm = argpdf - temp
            t3 = t2 * t
            t4 = t3 * t
            tempa = tempa - self.d2 * t2 - self.d3 * t3 - self.d4 * t4
            tempe = tempe + self.bstar * self.cc5 * (math.sin(mm) - self.sinmao)
            templ = templ + self.t3cof * t3 + t4 * (self.t4cof + t * self.t5cof)

        nm = self.no_unkozai
        em = self.ecco
        inclm = self.inclo
        if self.method == "d":
            em, argpm, inclm, mm, nodem, nm = self._dspace(t, em, argpm, inclm, mm, nodem, nm)

        if nm <= 0.0:
            raise PropagationError(2, SGP4_ERROR_CODES[2])

        am = math.pow(XKE / nm, X2O3) * tempa * tempa
        nm = XKE / math.pow(am, 1.5)
        em = em - tempe

        if em >= 1.0 or em < -0.001:
            raise PropagationError(1, SGP4_ERROR_CODES[1])
        # Near-zero eccentricity clamp
        if em < 1.0e-6:
            em = 1.0e-6
        mm = mm + self.no_unkozai * templ
        xlm = mm + argpm + nodem

        nodem = math.fmod(nodem, TWOPI)
        argpm = math.fmod(argpm, TWOPI)
        xlm = math.fmod(xlm, TWOPI)
        mm = math.fmod(xlm - argpm - nodem, TWOPI)

        sinim = math.sin(inclm)
        cosim = math.cos(inclm)

        # Lunar-solar periodics
        ep = em
        xincp = inclm
        argpp = argpm
        nodep = nodem
        mp = mm
        sinip = sinim
        cosip = cosim
        if self.method == "d":
            ep, xincp, nodep, argpp, mp = self._dpper(t, ep, xincp, nodep, argpp, mp)
            if xincp < 0.0:
                xincp = -xincp
                nodep = nodep + math.pi
                argpp = argpp - math.pi
            if ep < 0.0 or ep > 1.0:
                raise PropagationError(3, SGP4_ERROR_CODES[3])

        # Long period periodics
        aycof = self.aycof
        xlcof = self.xlcof
        if self.method == "d":
            sinip = math.sin(xincp)
            cosip = math.cos(xincp)
            aycof = -0.5 * J3OJ2 * sinip
            if abs(cosip + 1.0) > 1.5e-12:
                xlcof = -0.25 * J3OJ2 * sinip * (3.0 + 5.0 * cosip) / (1.0 + cosip)
            else:
                xlcof = -0.25 * J3OJ2 * sinip * (3.0 + 5.0 * cosip) / TEMP4

        axnl = ep * math.cos(argpp)
        temp = 1.0 / (am * (1.0 - ep * ep))
        aynl = ep * math.sin(argpp) + temp * aycof
        xl = mp + argpp + nodep + temp * xlcof * axnl

        # Kepler's equation
        u = math.fmod(xl - nodep, TWOPI)
        eo1 = u
        tem5 = 9999.9
        ktr = 1
        sineo1 = coseo1 = 0.0
        while abs(tem5) >= 1.0e-12 and ktr <= 10:
            sineo1 = math.sin(eo1)
            coseo1 = math.cos(eo1)
            tem5 = 1.0 - coseo1 * axnl - sineo1 * aynl
            tem5 = (u - aynl * coseo1 + axnl * sineo1 - eo1) / tem5
            if abs(tem5) >= 0.95:
                tem5 = 0.95 if tem5 > 0.0 else -0.95
            eo1 = eo1 + tem5
            ktr += 1

        # Short period preliminary quantities
        ecose = axnl * coseo1 + aynl * sineo1
        esine = axnl * sineo1 - aynl * coseo1
        el2 = axnl * axnl + aynl * aynl
        pl = am * (1.0 - el2)
        if pl < 0.0:
            raise PropagationError(4, SGP4_ERROR_CODES[4])

        rl = am * (1.0 - ecose)
        rdotl = math.sqrt(am) * esine / rl
        rvdotl = math.sqrt(pl) / rl
        betal = math.sqrt(1.0 - el2)
        temp = esine / (1.0 + betal)
        sinu = am / rl * (sineo1 - aynl - axnl * temp)
        cosu = am / rl * (coseo1 - axnl + aynl * temp)
        su = math.atan2(sinu, cosu)
        sin2u = (cosu + cosu) * sinu
        cos2u = 1.0 - 2.0 * sinu * sinu
        temp = 1.0 / pl
        temp1 = 0.5 * J2 * temp
        temp2 = temp1 * temp

        con41 = self.con41
        x1mth2 = self.x1mth2
        x7thm1 = self.x7thm1
        if self.method == "d":
            cosisq = cosip * cosip
            con41 = 3.0 * cosisq - 1.0
            x1mth2 = 1.0 - cosisq
            x7thm1 = 7.0 * cosisq - 1.0

        # Short period periodics
        mrt = rl * (1.0 - 1.5 * temp2 * betal * con41) + 0.5 * temp1 * x1mth2 * cos2u
        su = su - 0.25 * temp2 * x7thm1 * sin2u
        xnode = nodep + 1.5 * temp2 * cosip * sin2u
        xinc = xincp + 1.5 * temp2 * cosip * sinip * cos2u
        mvt = rdotl - nm * temp1 * x1mth2 * sin2u / XKE
        rvdot = rvdotl + nm * temp1 * (x1mth2 * cos2u + 1.5 * con41) / XKE

        # Orientation vectors
        sinsu = math.sin(su)
        cossu = math.cos(su)
        snod = math.sin(xnode)
        cnod = math.cos(xnode)
        sini = math.sin(xinc)
        cosi = math.cos(xinc)
        xmx = -snod * cosi
        xmy = cnod * cosi
        ux = xmx * sinsu + cnod * cossu
        uy = xmy * sinsu + snod * cossu
        uz = sini * sinsu
        vx = xmx * cossu - cnod * sinsu
        vy = xmy * cossu - snod * sinsu
        vz = sini * cossu

        # Radius below one Earth radius: decayed
        if mrt < 1.0:
            raise PropagationError(6, SGP4_ERROR_CODES[6])

        mr = mrt * RADIUS_EARTH_KM
        position = (mr * ux, mr * uy, mr * uz)
        velocity = (
            (mvt * ux + rvdot * vx) * VKMPERSEC,
            (mvt * uy + rvdot * vy) * VKMPERSEC,
            (mvt * uz + rvdot * vz) * VKMPERSEC,
        )
        return position, velocity

    def _dpper(self, t, ep, inclp, nodep, argpp, mp):
        """Lunar-solar periodic perturbations at ``t`` minutes."""
        # Solar
        zm = self.zmos + ZNS * t
        zf = zm + 2.0 * ZES * math.sin(zm)
        sinzf = math.sin(zf)
        f2 = 0.5 * sinzf * sinzf - 0.25
        f3 = -0.5 * sinzf * math.cos(zf)
        ses = self.se2 * f2 + self.se3 * f3
        sis = self.si2 * f2 + self.si3 * f3
        sls = self.sl2 * f2 + self.sl3 * f3 + self.sl4 * sinzf
        sghs = self.sgh2 * f2 + self.sgh3 * f3 + self.sgh4 * sinzf
        shs = self.sh2 * f2 + self.sh3 * f3

        # Lunar
        zm = self.zmol + ZNL * t
        zf = zm + 2.0 * ZEL * math.sin(zm)
        sinzf = math.sin(zf)
        f2 = 0.5 * sinzf * sinzf - 0.25
        f3 = -0.5 * sinzf * math.cos(zf)
        sel = self.ee2 * f2 + self.e3 * f3
        sil = self.xi2 * f2 + self.xi3 * f3
        sll = self.xl2 * f2 + self.xl3 * f3 + self.xl4 * sinzf
        sghl = self.xgh2 * f2 + self.xgh3 * f3 + self.xgh4 * sinzf
        shll = self.xh2 * f2 + self.xh3 * f3

        pe = ses + sel - self.peo
        pinc = sis + sil - self.pinco
        pl = sls + sll - self.plo
        pgh = sghs + sghl - self.pgho
        ph = shs + shll - self.pho

        inclp = inclp + pinc
        ep = ep + pe
        sinip = math.sin(inclp)
        cosip = math.cos(inclp)

        if inclp >= 0.2:
            ph = ph / sinip
            pgh = pgh - cosip * ph
            argpp = argpp + pgh
            nodep = nodep + ph
            mp = mp + pl
        else:
            # Lyddane modification for low inclination
            sinop = math.sin(nodep)
            cosop = math.cos(nodep)
            alfdp = sinip * sinop
            betdp = sinip * cosop
            dalf = ph * cosop + pinc * cosip * sinop
            dbet = -ph * sinop + pinc * cosip * cosop
            alfdp = alfdp + dalf
            betdp = betdp + dbet
            nodep = math.fmod(nodep, TWOPI)
            xls = mp + argpp + cosip * nodep
            dls = pl + pgh - pinc * nodep * sinip
            xls = xls + dls
            xls = math.fmod(xls, TWOPI)
            xnoh = nodep
            nodep = math.atan2(alfdp, betdp)
            if abs(xnoh - nodep) > math.pi:
                if nodep < xnoh:
                    nodep = nodep + TWOPI
                else:
                    nodep = nodep - TWOPI
            mp = mp + pl
            argpp = xls - mp - cosip * nodep

        return ep, inclp, nodep, argpp, mp

    def _dspace(self, t, em, argpm, inclm, mm, nodem, nm):
        """Deep-space secular effects and resonance integration."""
        theta = math.fmod(self.gsto + t * RPTIM, TWOPI)
        em = em + self.dedt * t
        inclm = inclm + self.didt * t
        argpm = argpm + self.domdt * t
        nodem = nodem + self.dnodt * t
        mm = mm + self.dmdt * t

        if self.irez == 0:
            return em, argpm, inclm, mm, nodem, nm

        no = self.no_unkozai
        atime = 0.0
        xni = no
        xli = self.xlamo
        delt = STEPP if t > 0.0 else STEPN
        ft = 0.0

        while True:
            if self.irez != 2:
                # Near-synchronous resonance
                xndt = (
                    self.del1 * math.sin(xli - FASX2)
                    + self.del2 * math.sin(2.0 * (xli - FASX4))
                    + self.del3 * math.sin(3.0 * (xli - FASX6))
                )
                xldot = xni + self.xfact
                xnddt = (
                    self.del1 * math.cos(xli - FASX2)
                    + 2.0 * self.del2 * math.cos(2.0 * (xli - FASX4))
                    + 3.0 * self.del3 * math.cos(3.0 * (xli - FASX6))
                )
                xnddt = xnddt * xldot
            else:
                # Near half-day resonance
                xomi = self.argpo + self.argpdot * atime
                x2omi = xomi + xomi
                x2li = xli + xli
                xndt = (
                    self.d2201 * math.sin(x2omi + xli - G22)
                    + self.d2211 * math.sin(xli - G22)
                    + self.d3210 * math.sin(xomi + xli - G32)
                    + self.d3222 * math.sin(-xomi + xli - G32)
                    + self.d4410 * math.sin(x2omi + x2li - G44)
                    + self.d4422 * math.sin(x2li - G44)
                    + self.d5220 * math.sin(xomi + xli - G52)
                    + self.d5232 * math.sin(-xomi + xli - G52)
                    + self.d5421 * math.sin(xomi + x2li - G54)
                    + self.d5433 * math.sin(-xomi + x2li - G54)
                )
                xldot = xni + self.xfact
                xnddt = (
                    self.d2201 * math.cos(x2omi + xli - G22)
                    + self.d2211 * math.cos(xli - G22)
                    + self.d3210 * math.cos(xomi + xli - G32)
                    + self.d3222 * math.cos(-xomi + xli - G32)
                    + self.d5220 * math.cos(xomi + xli - G52)
                    + self.d5232 * math.cos(-xomi + xli - G52)
                    + 2.0 * (
                        self.d4410 * math.cos(x2omi + x2li - G44)
                        + self.d4422 * math.cos(x2li - G44)
                        + self.d5421 * math.cos(xomi + x2li - G54)
                        + self.d5433 * math.cos(-xomi + x2li - G54)
                    )
                )
                xnddt = xnddt * xldot

            if abs(t - atime) >= STEPP:
                xli = xli + xldot * delt + xndt * STEP2
                xni = xni + xndt * delt + xnddt * STEP2
                atime = atime + delt
            else:
                ft = t - atime
                break

        nm = xni + xndt * ft + xnddt * ft * ft * 0.5
        xl = xli + xldot * ft + xndt * ft * ft * 0.5
        if self.irez != 1:
            mm = xl - 2.0 * nodem + 2.0 * theta
        else:
            mm = xl - nodem - argpm + theta
        dndt = nm - no
        nm = no + dndt

        return em, argpm, inclm, mm, nodem, nm


def _dscom(epoch, ep, argpp, tc, inclp, nodep, np):
    """Deep-space common terms: lunar and solar coefficients at epoch."""
    nm = np
    em = ep
    snodm = math.sin(nodep)
    cnodm = math.cos(nodep)
    sinomm = math.sin(argpp)
    cosomm = math.cos(argpp)
    sinim = math.sin(inclp)
    cosim = math.cos(inclp)
    emsq = em * em
    betasq = 1.0 - emsq
    rtemsq = math.sqrt(betasq)

    # Lunar-solar periodics at epoch
    day = epoch + 18261.5 + tc / 1440.0
    xnodce = math.fmod(4.5236020 - 9.2422029e-4 * day, TWOPI)
    stem = math.sin(xnodce)
    ctem = math.cos(xnodce)
    zcosil = 0.91375164 - 0.03568096 * ctem
    zsinil = math.sqrt(1.0 - zcosil * zcosil)
    zsinhl = 0.089683511 * stem / zsinil
    zcoshl = math.sqrt(1.0 - zsinhl * zsinhl)
    gam = 5.8351514 + 0.0019443680 * day
    zx = 0.39785416 * stem / zsinil
    zy = zcoshl * ctem + 0.91744867 * zsinhl * stem
    zx = math.atan2(zx, zy)
    zx = gam + zx - xnodce
    zcosgl = math.cos(zx)
    zsingl = math.sin(zx)

    # Solar terms first, then lunar
    zcosg = ZCOSGS
    zsing = ZSINGS
    zcosi = ZCOSIS
    zsini = ZSINIS
    zcosh = cnodm
    zsinh = snodm
    cc = C1SS
    xnoi = 1.0 / nm

    out = {}
    for lsflg in (1, 2):
        a1 = zcosg * zcosh + zsing * zcosi * zsinh
        a3 = -zsing * zcosh + zcosg * zcosi * zsinh
        a7 = -zcosg * zsinh + zsing * zcosi * zcosh
        a8 = zsing * zsini
        a9 = zsing * zsinh + zcosg * zcosi * zcosh
        a10 = zcosg * zsini
        a2 = cosim * a7 + sinim * a8
        a4 = cosim * a9 + sinim * a10
        a5 = -sinim * a7 + cosim * a8
        a6 = -sinim * a9 + cosim * a10

        x1 = a1 * cosomm + a2 * sinomm
        x2 = a3 * cosomm + a4 * sinomm
        x3 = -a1 * sinomm + a2 * cosomm
        x4 = -a3 * sinomm + a4 * cosomm
        x5 = a5 * sinomm
        x6 = a6 * sinomm
        x7 = a5 * cosomm
        x8 = a6 * cosomm

        z31 = 12.0 * x1 * x1 - 3.0 * x3 * x3
        z32 = 24.0 * x1 * x2 - 6.0 * x3 * x4
        z33 = 12.0 * x2 * x2 - 3.0 * x4 * x4
        z1 = 3.0 * (a1 * a1 + a2 * a2) + z31 * emsq
        z2 = 6.0 * (a1 * a3 + a2 * a4) + z32 * emsq
        z3 = 3.0 * (a3 * a3 + a4 * a4) + z33 * emsq
        z11 = -6.0 * a1 * a5 + emsq * (-24.0 * x1 * x7 - 6.0 * x3 * x5)
        z12 = -6.0 * (a1 * a6 + a3 * a5) + emsq * (-24.0 * (x2 * x7 + x1 * x8) - 6.0 * (x3 * x6 + x4 * x5))
        z13 = -6.0 * a3 * a6 + emsq * (-24.0 * x2 * x8 - 6.0 * x4 * x6)
        z21 = 6.0 * a2 * a5 + emsq * (24.0 * x1 * x5 - 6.0 * x3 * x7)
        z22 = 6.0 * (a4 * a5 + a2 * a6) + emsq * (24.0 * (x2 * x5 + x1 * x6) - 6.0 * (x4 * x7 + x3 * x8))
        z23 = 6.0 * a4 * a6 + emsq * (24.0 * x2 * x6 - 6.0 * x4 * x8)
        z1 = z1 + z1 + betasq * z31
        z2 = z2 + z2 + betasq * z32
        z3 = z3 + z3 + betasq * z33
        s3 = cc * xnoi
        s2 = -0.5 * s3 / rtemsq
        s4 = s3 * rtemsq
        s1 = -15.0 * em * s4
        s5 = x1 * x3 + x2 * x4
        s6 = x2 * x3 + x1 * x4
        s7 = x2 * x4 - x1 * x3

        if lsflg == 1:
            out.update(
                ss1=s1, ss2=s2, ss3=s3, ss4=s4, ss5=s5, ss6=s6, ss7=s7,
                sz1=z1, sz2=z2, sz3=z3, sz11=z11, sz12=z12, sz13=z13,
                sz21=z21, sz22=z22, sz23=z23, sz31=z31, sz32=z32, sz33=z33,
            )
            zcosg = zcosgl
            zsing = zsingl
            zcosi = zcosil
            zsini = zsinil
            zcosh = zcoshl * cnodm + zsinhl * snodm
            zsinh = snodm * zcoshl - cnodm * zsinhl
            cc = C1L

    out.update(
        s1=s1, s2=s2, s3=s3, s4=s4, s5=s5, s6=s6, s7=s7,
        z1=z1, z2=z2, z3=z3, z11=z11, z12=z12, z13=z13,
        z21=z21, z22=z22, z23=z23, z31=z31, z32=z32, z33=z33,
    )

    zmol = math.fmod(4.7199672 + 0.22997150 * day - gam, TWOPI)
    zmos = math.fmod(6.2565837 + 0.017201977 * day, TWOPI)

    ss1, ss2, ss3, ss4 = out["ss1"], out["ss2"], out["ss3"], out["ss4"]
    ss6, ss7 = out["ss6"], out["ss7"]
    sz1, sz2, sz3 = out["sz1"], out["sz2"], out["sz3"]
    sz11, sz12, sz13 = out["sz11"], out["sz12"], out["sz13"]
    sz21, sz22, sz23 = out["sz21"], out["sz22"], out["sz23"]
    sz31, sz32, sz33 = out["sz31"], out["sz32"], out["sz33"]

    out.update(
        # Solar
        se2=2.0 * ss1 * ss6,
        se3=2.0 * ss1 * ss7,
        si2=2.0 * ss2 * sz12,
        si3=2.0 * ss2 * (sz13 - sz11),
        sl2=-2.0 * ss3 * sz2,
        sl3=-2.0 * ss3 * (sz3 - sz1),
        sl4=-2.0 * ss3 * (-21.0 - 9.0 * emsq) * ZES,
        sgh2=2.0 * ss4 * sz32,
        sgh3=2.0 * ss4 * (sz33 - sz31),
        sgh4=-18.0 * ss4 * ZES,
        sh2=-2.0 * ss2 * sz22,
        sh3=-2.0 * ss2 * (sz23 - sz21),
        # Lunar
        ee2=2.0 * s1 * s6,
        e3=2.0 * s1 * s7,
        xi2=2.0 * s2 * z12,
        xi3=2.0 * s2 * (z13 - z11),
        xl2=-2.0 * s3 * z2,
        xl3=-2.0 * s3 * (z3 - z1),
        xl4=-2.0 * s3 * (-21.0 - 9.0 * emsq) * ZEL,
        xgh2=2.0 * s4 * z32,
        xgh3=2.0 * s4 * (z33 - z31),
        xgh4=-18.0 * s4 * ZEL,
        xh2=-2.0 * s2 * z22,
        xh3=-2.0 * s2 * (z23 - z21),
        peo=0.0,
        pinco=0.0,
        plo=0.0,
        pgho=0.0,
        pho=0.0,
        zmol=zmol,
        zmos=zmos,
        em=em,
        emsq=emsq,
        nm=nm,
        sinim=sinim,
        cosim=cosim,
    )
    return out
