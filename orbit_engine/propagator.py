"""
Propagator backends.

A backend turns parsed elements into a propagation model (used as the
``ElementCache`` initializer) and propagates a cached record to an instant.

- ``NativePropagator``: this package's SGP4/SDP4 implementation.
- ``LibraryPropagator``: the ``sgp4`` package's compiled ``Satrec``.

Both report failures as ``PropagationError`` carrying the SGP4 error code.
"""

import logging
import math
from datetime import datetime
from typing import Any, NamedTuple

from sgp4.api import WGS72, Satrec

from orbit_engine.constants import MINUTES_PER_DAY
from orbit_engine.exceptions import PropagationError
from orbit_engine.frames import julian_date
from orbit_engine.models import Vector3
from orbit_engine.sgp4_propagator import SGP4_ERROR_CODES, SGP4Model
from orbit_engine.tle_parser import OrbitalElementRecord, TLEElements

logger = logging.getLogger(__name__)

# Error code used for a state vector containing NaN or infinity
NON_FINITE_STATE = 7


class InertialState(NamedTuple):
    """TEME position (km) and velocity (km/s) at an instant."""

    position: Vector3
    velocity: Vector3
    instant: datetime


def minutes_since_epoch(elements: TLEElements, instant: datetime) -> float:
    """Minutes from the element set epoch to ``instant`` (UTC)."""
    jd, fr = julian_date(instant)
    return ((jd - elements.jdsatepoch) + (fr - elements.jdsatepochF)) * MINUTES_PER_DAY


def _check_finite(record: OrbitalElementRecord, position, velocity) -> None:
    if not all(math.isfinite(c) for c in position) or not all(math.isfinite(c) for c in velocity):
        raise PropagationError(NON_FINITE_STATE, "Non-finite state vector", record.identity)


class Propagator:
    """Base class for propagation backends."""

    name = "base"

    def initialize(self, elements: TLEElements) -> Any:
        raise NotImplementedError

    def propagate(self, record: OrbitalElementRecord, instant: datetime) -> InertialState:
        raise NotImplementedError

    def __call__(self, elements: TLEElements) -> Any:
        return self.initialize(elements)


class NativePropagator(Propagator):
    """SGP4/SDP4 implemented in ``orbit_engine.sgp4_propagator``."""

    name = "native"

    def initialize(self, elements: TLEElements) -> SGP4Model:
        model = SGP4Model.from_elements(elements)
        if model.error != 0:
            logger.debug(f"Satellite {model.satnum} fails at epoch with SGP4 error {model.error}")
        return model

    def propagate(self, record: OrbitalElementRecord, instant: datetime) -> InertialState:
        tsince = minutes_since_epoch(record.elements, instant)
        try:
            position, velocity = record.model.propagate(tsince)
        except PropagationError as e:
            raise PropagationError(e.code, SGP4_ERROR_CODES.get(e.code, "unknown"), record.identity) from e
        except (ValueError, ZeroDivisionError, OverflowError) as e:
            raise PropagationError(0, f"math error: {e}", record.identity) from e
        _check_finite(record, position, velocity)
        return InertialState(position, velocity, instant)


class LibraryPropagator(Propagator):
    """The ``sgp4`` library's ``Satrec`` (WGS-72, improved mode)."""

    name = "sgp4"

    def initialize(self, elements: TLEElements) -> Satrec:
        satrec = Satrec.twoline2rv(elements.line1, elements.line2, WGS72)
        if satrec.error != 0:
            logger.debug(f"Satellite {satrec.satnum} fails at epoch with SGP4 error {satrec.error}")
        return satrec

    def propagate(self, record: OrbitalElementRecord, instant: datetime) -> InertialState:
        jd, fr = julian_date(instant)
        error, position, velocity = record.model.sgp4(jd, fr)
        if error != 0:
            raise PropagationError(error, SGP4_ERROR_CODES.get(error, "unknown"), record.identity)
        _check_finite(record, position, velocity)
        return InertialState(tuple(position), tuple(velocity), instant)


_BACKENDS = {
    NativePropagator.name: NativePropagator,
    LibraryPropagator.name: LibraryPropagator,
}


def make_propagator(backend: str = "native") -> Propagator:
    """Return a propagator for ``backend`` ('native' or 'sgp4')."""
    try:
        return _BACKENDS[backend]()
    except KeyError:
        raise ValueError(f"Unknown propagator backend {backend!r}; expected one of {sorted(_BACKENDS)}")
