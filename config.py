"""
Engine Configuration and Constants

This module contains the runtime configuration of the position engine, the
fallback ISS TLE used when no catalog is supplied, and re-exports of the
physical constants used throughout the project.

Environment variables (all optional):
    ORBIT_ENGINE_TICK_INTERVAL_MS      Tick cadence in milliseconds (1000)
    ORBIT_ENGINE_MIN_VISIBLE_ALT_KM    Minimum visible altitude (200)
    ORBIT_ENGINE_VISIBILITY_RANGE_KM   Maximum surface range (2000)
    ORBIT_ENGINE_VISIBILITY_POLICY     'classifier' or 'always'
    ORBIT_ENGINE_CACHE_MAX_ENTRIES     Element cache bound (50000)
    ORBIT_ENGINE_PACKED_OUTPUT         'true' for float32 buffers
    ORBIT_ENGINE_VERIFY_CHECKSUM       'false' to accept bad checksums
    ORBIT_ENGINE_PROPAGATOR            'native' or 'sgp4'

Fallback TLE Data:
    ISS TLE for demonstrations and testing when no catalog file is given.
    TLE accuracy degrades with age; LEO element sets should be refreshed
    weekly from CelesTrak.org or Space-Track.org.

References:
    Vallado, D. A., Crawford, P., Hujsak, R., & Kelso, T. S. (2006).
    Revisiting Spacetrack Report #3. AIAA 2006-6753.
"""

import os
from typing import Any, Dict, Literal, Mapping, Optional

from pydantic import BaseModel, Field

from orbit_engine.constants import J2, J3, J4, MU, RADIUS_EARTH_KM  # noqa: F401
from orbit_engine.engine import PositionEngine
from orbit_engine.propagator import make_propagator
from orbit_engine.tle_parser import DEFAULT_CACHE_SIZE, ElementCache
from orbit_engine.visibility import VisibilityClassifier, VisibilityPolicy
from orbit_engine.worker import EngineWorker, Outbox

# WGS-72 Gravitational Constants (per Vallado et al. 2006, AAS 06-675)
EARTH_RADIUS_KM: float = RADIUS_EARTH_KM
GRAVITATIONAL_PARAMETER: float = MU

# Fallback ISS TLE for demonstrations and testing
FALLBACK_ISS_TLE: Dict[str, Any] = {
    'name': 'ISS (ZARYA)',
    'norad_id': 25544,
    'line1': '1 25544U 98067A   19343.69339541  .00001764  00000-0  38792-4 0  9991',
    'line2': '2 25544  51.6439 211.2001 0007417  17.6667  85.6398 15.50103472202482',
    'epoch': '2019-12-09T16:38:29Z',
    'mean_motion': 15.50103472,
    'inclination': 51.6439,
    'eccentricity': 0.0007417
}

ENV_PREFIX = "ORBIT_ENGINE_"


class EngineConfig(BaseModel):
    """Runtime settings for the engine and its worker."""

    tick_interval_ms: float = Field(default=1000.0, gt=0)
    min_visible_altitude_km: float = 200.0
    visibility_range_km: float = Field(default=2000.0, gt=0)
    visibility_policy: VisibilityPolicy = VisibilityPolicy.CLASSIFIER
    cache_max_entries: int = Field(default=DEFAULT_CACHE_SIZE, ge=1)
    packed_output: bool = False
    verify_checksum: bool = True
    propagator_backend: Literal["native", "sgp4"] = "native"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """Build a config from ``ORBIT_ENGINE_*`` variables (default: os.environ)."""
        env = os.environ if environ is None else environ

        def get(name: str, default: str) -> str:
            return env.get(ENV_PREFIX + name, default)

        return cls(
            tick_interval_ms=float(get('TICK_INTERVAL_MS', '1000')),
            min_visible_altitude_km=float(get('MIN_VISIBLE_ALT_KM', '200')),
            visibility_range_km=float(get('VISIBILITY_RANGE_KM', '2000')),
            visibility_policy=get('VISIBILITY_POLICY', 'classifier').lower(),
            cache_max_entries=int(get('CACHE_MAX_ENTRIES', str(DEFAULT_CACHE_SIZE))),
            packed_output=get('PACKED_OUTPUT', 'false').lower() == 'true',
            verify_checksum=get('VERIFY_CHECKSUM', 'true').lower() == 'true',
            propagator_backend=get('PROPAGATOR', 'native').lower(),
        )


def build_engine(config: Optional[EngineConfig] = None) -> PositionEngine:
    """Wire the propagator backend, element cache and classifier."""
    config = config or EngineConfig()
    propagator = make_propagator(config.propagator_backend)
    cache = ElementCache(
        propagator.initialize,
        max_entries=config.cache_max_entries,
        verify_checksum=config.verify_checksum,
    )
    classifier = VisibilityClassifier(
        config.visibility_policy,
        min_altitude_km=config.min_visible_altitude_km,
        max_range_km=config.visibility_range_km,
    )
    return PositionEngine(propagator, cache, classifier)


def build_worker(config: Optional[EngineConfig], outbox: Outbox) -> EngineWorker:
    """Create an (unstarted) worker configured by ``config``."""
    config = config or EngineConfig()
    return EngineWorker(
        build_engine(config),
        outbox,
        tick_interval_ms=config.tick_interval_ms,
        packed=config.packed_output,
    )
