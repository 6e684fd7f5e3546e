"""
Message protocol between the consumer and the engine worker.

Requests are discriminated on ``type``; replies are immutable pydantic
models. ``PositionsPacked`` carries an independent ``bytes`` buffer of
little-endian float32 (lat, lon, alt) triples.
"""

from datetime import datetime
from typing import Annotated, Any, List, Literal, Optional, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from orbit_engine.models import BatchDiagnostics, CatalogEntry, Observer, PositionSample

PACKED_DTYPE = np.dtype("<f4")


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)


# Requests

class Init(Message):
    type: Literal["INIT"] = "INIT"


class Propagate(Message):
    type: Literal["PROPAGATE"] = "PROPAGATE"
    catalog: Optional[List[CatalogEntry]] = None
    instant: Optional[datetime] = None
    observer: Observer = Field(default_factory=Observer)


class Tick(Message):
    type: Literal["TICK"] = "TICK"
    instant: Optional[datetime] = None


Request = Annotated[Union[Init, Propagate, Tick], Field(discriminator="type")]

_request_adapter = TypeAdapter(Request)


# Replies

class Ready(Message):
    type: Literal["READY"] = "READY"


class Positions(Message):
    type: Literal["POSITIONS"] = "POSITIONS"
    samples: List[PositionSample]
    instant: datetime
    count: int
    diagnostics: BatchDiagnostics


class PositionsPacked(Message):
    type: Literal["POSITIONS_F32"] = "POSITIONS_F32"
    buffer: bytes
    instant: datetime
    count: int
    diagnostics: BatchDiagnostics


class Error(Message):
    type: Literal["ERROR"] = "ERROR"
    message: str


class Saturation(Message):
    type: Literal["SATURATION"] = "SATURATION"
    elapsed_ms: float
    interval_ms: float
    backlog: int


def parse_request(obj: Any) -> Union[Init, Propagate, Tick]:
    """
    Validate a request given as a model or a plain dict.

    Raises:
        pydantic.ValidationError: on an unknown ``type`` or invalid fields
    """
    if isinstance(obj, (Init, Propagate, Tick)):
        return obj
    if isinstance(obj, BaseModel):
        obj = obj.model_dump()
    return _request_adapter.validate_python(obj)


def unpack_positions(buffer: bytes) -> np.ndarray:
    """Decode a packed buffer into an (n, 3) float32 array of (lat, lon, alt)."""
    if len(buffer) % (3 * PACKED_DTYPE.itemsize) != 0:
        raise ValueError(f"Packed buffer length {len(buffer)} is not a multiple of 12 bytes")
    return np.frombuffer(buffer, dtype=PACKED_DTYPE).reshape(-1, 3)
