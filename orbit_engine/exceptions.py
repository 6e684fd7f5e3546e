"""
Error taxonomy for the position engine.

Per-entry errors (parse, propagation, transform) are recovered inside a
batch: the entry is dropped and counted. Structural errors abort the batch
and are reported to the consumer as a single error message.
"""

from typing import Optional


class OrbitEngineError(Exception):
    """Base exception for the position engine."""


class ParseError(OrbitEngineError):
    """Malformed or inconsistent two-line element text."""

    def __init__(self, reason: str, identity: Optional[str] = None):
        self.reason = reason
        self.identity = identity
        prefix = f"{identity}: " if identity else ""
        super().__init__(f"{prefix}{reason}")


class PropagationError(OrbitEngineError):
    """SGP4 failure, decayed orbit, or non-finite state vector."""

    def __init__(self, code: int, message: str, identity: Optional[str] = None):
        self.code = code
        self.identity = identity
        prefix = f"{identity}: " if identity else ""
        super().__init__(f"{prefix}SGP4 error {code}: {message}")


class TransformError(OrbitEngineError):
    """Non-finite or out-of-range geodetic result."""

    def __init__(self, reason: str, identity: Optional[str] = None):
        self.reason = reason
        self.identity = identity
        prefix = f"{identity}: " if identity else ""
        super().__init__(f"{prefix}{reason}")


class StructuralError(OrbitEngineError):
    """Missing or invalid batch input; reported once for the whole batch."""
