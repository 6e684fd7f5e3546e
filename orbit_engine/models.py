"""
Data models shared across the engine boundary.

Pydantic models with validation, in the style of the orbit service's
``SatelliteData``/``OrbitPosition`` models. All of them are immutable: a
catalog refresh is a new list of entries, never a patch.
"""

from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field

Vector3 = Tuple[float, float, float]


class CatalogEntry(BaseModel):
    """One object of the input catalog, as delivered by the catalog source."""

    model_config = ConfigDict(frozen=True)

    identity: str
    category: str = ""
    line1: str
    line2: str
    name: str = ""


class Observer(BaseModel):
    """Ground observer used by the visibility classifier."""

    model_config = ConfigDict(frozen=True)

    lat_deg: float = Field(default=0.0, ge=-90.0, le=90.0)
    lon_deg: float = 0.0
    alt_km: float = 0.0


class GeodeticPosition(BaseModel):
    """WGS-84 geodetic coordinates; longitude is always in [-180, 180)."""

    model_config = ConfigDict(frozen=True)

    lat_deg: float
    lon_deg: float
    alt_km: float


class PositionSample(BaseModel):
    """Propagated position of one catalog entry."""

    model_config = ConfigDict(frozen=True)

    identity: str
    name: str = ""
    category: str = ""
    position: GeodeticPosition
    velocity: Vector3  # km/s, Earth-fixed frame
    visible: bool


class BatchDiagnostics(BaseModel):
    """Per-batch counters; failures are tallied here instead of surfaced."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    parsed: int = 0
    propagated: int = 0
    transformed: int = 0
    parse_failures: int = 0
    propagation_failures: int = 0
    transform_failures: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    elapsed_ms: float = 0.0
