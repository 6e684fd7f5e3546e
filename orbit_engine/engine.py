"""
Batch pass over a catalog.

For each entry, in catalog order: fetch or parse the element record, then
propagate to the instant, transform to geodetic and classify visibility.
Per-entry failures drop the entry and are counted; they never abort the
batch. For a catalog of N entries with p parse, g propagation and t
transform failures, exactly N - p - g - t samples are produced.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence

import numpy as np

from orbit_engine.exceptions import ParseError, PropagationError, StructuralError, TransformError
from orbit_engine.frames import to_geodetic
from orbit_engine.models import BatchDiagnostics, CatalogEntry, Observer, PositionSample
from orbit_engine.propagator import NativePropagator, Propagator
from orbit_engine.tle_parser import ElementCache
from orbit_engine.visibility import VisibilityClassifier

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Samples of one pass, with the instant and its diagnostics."""

    samples: List[PositionSample]
    instant: datetime
    diagnostics: BatchDiagnostics = field(default_factory=BatchDiagnostics)

    @property
    def count(self) -> int:
        return len(self.samples)

    def packed(self) -> np.ndarray:
        """(count, 3) little-endian float32 array of (lat, lon, alt)."""
        packed = np.empty((len(self.samples), 3), dtype="<f4")
        for i, sample in enumerate(self.samples):
            p = sample.position
            packed[i] = (p.lat_deg, p.lon_deg, p.alt_km)
        return packed


class PositionEngine:
    """
    Computes position samples for a catalog at an instant.

    Owns the element cache; not thread-safe. Callers run it from a single
    worker thread.
    """

    def __init__(
        self,
        propagator: Optional[Propagator] = None,
        cache: Optional[ElementCache] = None,
        classifier: Optional[VisibilityClassifier] = None,
    ):
        self.propagator = propagator if propagator is not None else NativePropagator()
        self.cache = cache if cache is not None else ElementCache(self.propagator.initialize)
        self.classifier = classifier if classifier is not None else VisibilityClassifier()

    def run(
        self,
        catalog: Optional[Sequence[CatalogEntry]],
        instant: Optional[datetime] = None,
        observer: Optional[Observer] = None,
    ) -> BatchResult:
        """
        Run one pass.

        Args:
            catalog: Entries to propagate, in output order
            instant: Target instant (UTC); defaults to now
            observer: Observer for visibility; defaults to (0, 0, 0)

        Returns:
            BatchResult with one sample per surviving entry

        Raises:
            StructuralError: if ``catalog`` is missing
        """
        if catalog is None:
            raise StructuralError("No catalog supplied")
        if instant is None:
            instant = datetime.now(timezone.utc)
        if observer is None:
            observer = Observer()

        started = time.perf_counter()
        hits_before = self.cache.hits
        misses_before = self.cache.misses

        samples: List[PositionSample] = []
        parsed = propagated = 0
        parse_failures = propagation_failures = transform_failures = 0

        for entry in catalog:
            try:
                record = self.cache.get_or_parse(entry)
            except ParseError as e:
                parse_failures += 1
                self._log_failure("parse", parse_failures, e)
                continue
            parsed += 1

            try:
                inertial = self.propagator.propagate(record, instant)
            except PropagationError as e:
                propagation_failures += 1
                self._log_failure("propagation", propagation_failures, e)
                continue
            propagated += 1

            try:
                earth_fixed, position = to_geodetic(inertial, entry.identity)
            except TransformError as e:
                transform_failures += 1
                self._log_failure("transform", transform_failures, e)
                continue

            samples.append(
                PositionSample(
                    identity=entry.identity,
                    name=entry.name,
                    category=entry.category,
                    position=position,
                    velocity=earth_fixed.velocity,
                    visible=self.classifier(position, observer),
                )
            )

        diagnostics = BatchDiagnostics(
            total=len(catalog),
            parsed=parsed,
            propagated=propagated,
            transformed=len(samples),
            parse_failures=parse_failures,
            propagation_failures=propagation_failures,
            transform_failures=transform_failures,
            cache_hits=self.cache.hits - hits_before,
            cache_misses=self.cache.misses - misses_before,
            elapsed_ms=(time.perf_counter() - started) * 1000.0,
        )
        logger.debug(
            f"parsed={parsed}, propagated={propagated}, "
            f"geodetic={len(samples)}, positions={len(samples)}"
        )
        return BatchResult(samples=samples, instant=instant, diagnostics=diagnostics)

    @staticmethod
    def _log_failure(kind: str, count: int, error: Exception) -> None:
        if count == 1:
            logger.warning(f"First {kind} failure in batch: {error}")
        else:
            logger.debug(f"{kind.capitalize()} failure: {error}")
