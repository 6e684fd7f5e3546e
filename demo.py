"""
Orbital Position Engine Demonstration

This script demonstrates the position engine end to end:
- TLE catalog loading (3-line or 2-line files, or the fallback ISS)
- Worker startup and the READY handshake
- A PROPAGATE request followed by scheduled ticks
- Geodetic positions, visibility and batch diagnostics

Usage:
    python demo.py [--catalog FILE] [--category NAME] [--at ISO8601]
                   [--observer LAT,LON,ALT] [--ticks N] [--packed] [--verbose]

References:
    Vallado, D. A., Crawford, P., Hujsak, R., & Kelso, T. S. (2006).
    Revisiting Spacetrack Report #3. AIAA 2006-6753.
"""

import argparse
import logging
import queue
from datetime import datetime, timezone
from typing import List, Optional

from config import FALLBACK_ISS_TLE, EngineConfig, build_worker
from logging_config import configure_logging, get_logger
from orbit_engine.messages import (
    Error,
    Positions,
    PositionsPacked,
    Propagate,
    Ready,
    Saturation,
    unpack_positions,
)
from orbit_engine.models import CatalogEntry, Observer
from orbit_engine.tle_parser import catalog_number, load_catalog
from orbit_engine.worker import TickScheduler

logger = get_logger(__name__)

REPLY_TIMEOUT_S = 30.0


def load_entries(path: Optional[str], category: str) -> List[CatalogEntry]:
    """Read a TLE file, or fall back to the built-in ISS element set."""
    if path:
        with open(path, "r") as handle:
            entries = load_catalog(handle.read(), category)
        logger.info(f"Loaded {len(entries)} catalog entries from {path}")
        return entries

    logger.info("No catalog given, using fallback ISS TLE")
    line1, line2 = FALLBACK_ISS_TLE["line1"], FALLBACK_ISS_TLE["line2"]
    return [
        CatalogEntry(
            identity=catalog_number(line1, line2),
            category=category,
            line1=line1,
            line2=line2,
            name=FALLBACK_ISS_TLE["name"],
        )
    ]


def parse_observer(text: str) -> Observer:
    parts = [float(p) for p in text.split(",")]
    if len(parts) not in (2, 3):
        raise argparse.ArgumentTypeError("observer must be LAT,LON or LAT,LON,ALT")
    return Observer(lat_deg=parts[0], lon_deg=parts[1], alt_km=parts[2] if len(parts) == 3 else 0.0)


def parse_instant(text: str) -> datetime:
    instant = datetime.fromisoformat(text)
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant


def report(reply, limit: int = 5) -> None:
    """Log one reply from the worker."""
    if isinstance(reply, Positions):
        d = reply.diagnostics
        logger.info(
            f"{reply.instant.isoformat()}: {reply.count}/{d.total} positions "
            f"({d.parse_failures} parse, {d.propagation_failures} propagation, "
            f"{d.transform_failures} transform failures) in {d.elapsed_ms:.1f} ms"
        )
        for sample in reply.samples[:limit]:
            p = sample.position
            label = sample.name or sample.identity
            logger.info(
                f"  {label:<24} lat {p.lat_deg:8.3f}  lon {p.lon_deg:9.3f}  "
                f"alt {p.alt_km:9.2f} km  {'visible' if sample.visible else ''}"
            )
    elif isinstance(reply, PositionsPacked):
        positions = unpack_positions(reply.buffer)
        logger.info(f"{reply.instant.isoformat()}: {reply.count} packed positions ({len(reply.buffer)} bytes)")
        for lat, lon, alt in positions[:limit]:
            logger.info(f"  lat {lat:8.3f}  lon {lon:9.3f}  alt {alt:9.2f} km")
    elif isinstance(reply, Saturation):
        logger.warning(f"Saturated: {reply.elapsed_ms:.1f} ms > {reply.interval_ms:.0f} ms")
    elif isinstance(reply, Error):
        logger.error(f"Engine error: {reply.message}")


def main() -> None:
    """Main demonstration entry point."""
    parser = argparse.ArgumentParser(description="Orbital Position Engine Demonstration")
    parser.add_argument("--catalog", help="TLE file (2-line or 3-line format)")
    parser.add_argument("--category", default="demo", help="Category tag for loaded entries")
    parser.add_argument("--at", type=parse_instant, help="Instant for the first pass (ISO 8601)")
    parser.add_argument("--observer", type=parse_observer, default=Observer(), help="LAT,LON[,ALT]")
    parser.add_argument("--ticks", type=int, default=3, help="Number of scheduled ticks to run")
    parser.add_argument("--packed", action="store_true", help="Request float32 packed output")
    parser.add_argument("--verbose", action="store_true", help="Log per-pass engine diagnostics")
    parser.add_argument("--log-file", help="Also write the log to this file")

    args = parser.parse_args()

    configure_logging(log_file=args.log_file, engine_level=logging.DEBUG if args.verbose else None)

    logger.info("Orbital Position Engine Demonstration")
    logger.info("=" * 60)

    config = EngineConfig.from_env()
    if args.packed:
        config = config.model_copy(update={"packed_output": True})

    entries = load_entries(args.catalog, args.category)

    replies: "queue.Queue" = queue.Queue()
    worker = build_worker(config, replies)
    worker.start()

    ready = replies.get(timeout=REPLY_TIMEOUT_S)
    if not isinstance(ready, Ready):
        raise RuntimeError(f"Expected READY, got {ready.type}")

    worker.post(Propagate(catalog=entries, instant=args.at, observer=args.observer))

    scheduler = TickScheduler(worker, config.tick_interval_ms)
    scheduler.start()

    batches = 0
    try:
        while batches < args.ticks + 1:
            reply = replies.get(timeout=REPLY_TIMEOUT_S)
            report(reply)
            if isinstance(reply, (Positions, PositionsPacked, Error)):
                batches += 1
    finally:
        scheduler.stop()
        worker.stop(timeout=REPLY_TIMEOUT_S)

    logger.info("=" * 60)
    logger.info("Demonstration complete")


if __name__ == "__main__":
    main()
