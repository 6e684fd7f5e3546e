"""
Isolated worker boundary.

``EngineWorker`` owns a ``PositionEngine`` (and so its element cache) on a
dedicated thread. Requests arrive through a FIFO inbox and each one runs to
completion before the next is taken; replies leave through an outbox, which
may be a ``queue.Queue`` or any callable.

``TickScheduler`` is the external timer that posts a ``Tick`` at a fixed
cadence.
"""

import logging
import queue
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Union

from pydantic import ValidationError

from orbit_engine.engine import BatchResult, PositionEngine
from orbit_engine.exceptions import StructuralError
from orbit_engine.messages import (
    Error,
    Init,
    Message,
    Positions,
    PositionsPacked,
    Propagate,
    Ready,
    Saturation,
    Tick,
    parse_request,
)
from orbit_engine.models import CatalogEntry, Observer

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL_MS = 1000.0

_STOP = object()

Outbox = Union["queue.Queue[Message]", Callable[[Message], Any]]


class EngineWorker(threading.Thread):
    """
    Runs engine passes on its own thread.

    Emits ``Ready`` once when started. ``Propagate`` replaces the current
    catalog and observer and runs a pass; ``Tick`` runs a pass over the
    current catalog. A pass slower than the tick interval is reported with a
    ``Saturation`` message after its results.
    """

    def __init__(
        self,
        engine: PositionEngine,
        outbox: Outbox,
        tick_interval_ms: float = DEFAULT_TICK_INTERVAL_MS,
        packed: bool = False,
    ):
        super().__init__(name="orbit-engine-worker", daemon=True)
        self.engine = engine
        self.tick_interval_ms = tick_interval_ms
        self.packed = packed
        self.inbox: "queue.Queue[Any]" = queue.Queue()
        self._emit = outbox.put if hasattr(outbox, "put") else outbox
        self.catalog: Optional[List[CatalogEntry]] = None
        self.observer = Observer()

    def post(self, message: Any) -> None:
        """Queue a request for the worker thread."""
        self.inbox.put(message)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Finish queued requests, then exit the thread."""
        self.inbox.put(_STOP)
        if self.is_alive():
            self.join(timeout)

    def run(self) -> None:
        logger.info("Engine worker started")
        self._send(Ready())
        while True:
            message = self.inbox.get()
            if message is _STOP:
                break
            self.process(message)
        logger.info("Engine worker stopped")

    def process(self, message: Any) -> List[Message]:
        """
        Handle one request synchronously.

        Every request gets at least one reply; a failing pass is reported as
        an ``Error`` and the worker keeps serving.

        Returns:
            The replies emitted for this request, in order
        """
        try:
            request = parse_request(message)
        except ValidationError as e:
            logger.error(f"Rejected request: {e.error_count()} validation error(s)")
            return self._send_all([Error(message=f"Invalid request: {e}")])

        replies: List[Message] = []
        try:
            if isinstance(request, Init):
                replies.append(Ready())
            elif isinstance(request, Propagate):
                if request.catalog is None:
                    raise StructuralError("PROPAGATE request without a catalog")
                self.catalog = list(request.catalog)
                self.observer = request.observer
                replies.extend(self._run_pass(request.instant))
            elif isinstance(request, Tick):
                replies.extend(self._run_pass(request.instant))
        except StructuralError as e:
            logger.error(f"Batch aborted: {e}")
            replies = [Error(message=str(e))]
        except Exception as e:
            logger.exception(f"{request.type} pass failed")
            replies = [Error(message=f"{request.type} failed: {type(e).__name__}: {e}")]

        return self._send_all(replies)

    def _send_all(self, replies: List[Message]) -> List[Message]:
        for reply in replies:
            self._send(reply)
        return replies

    def _run_pass(self, instant: Optional[datetime]) -> List[Message]:
        started = time.perf_counter()
        if instant is None:
            instant = datetime.now(timezone.utc)
        result = self.engine.run(self.catalog or [], instant, self.observer)
        replies: List[Message] = [self._result_message(result)]

        elapsed_ms = (time.perf_counter() - started) * 1000.0
        if elapsed_ms > self.tick_interval_ms:
            backlog = self.inbox.qsize()
            logger.warning(
                f"Pass took {elapsed_ms:.1f} ms, over the {self.tick_interval_ms:.0f} ms "
                f"tick interval ({backlog} request(s) queued)"
            )
            replies.append(
                Saturation(elapsed_ms=elapsed_ms, interval_ms=self.tick_interval_ms, backlog=backlog)
            )
        return replies

    def _result_message(self, result: BatchResult) -> Message:
        if self.packed:
            return PositionsPacked(
                buffer=result.packed().tobytes(),
                instant=result.instant,
                count=result.count,
                diagnostics=result.diagnostics,
            )
        return Positions(
            samples=result.samples,
            instant=result.instant,
            count=result.count,
            diagnostics=result.diagnostics,
        )

    def _send(self, message: Message) -> None:
        self._emit(message)


class TickScheduler(threading.Thread):
    """Posts a ``Tick`` to a worker every ``interval_ms`` until stopped."""

    def __init__(self, worker: EngineWorker, interval_ms: float = DEFAULT_TICK_INTERVAL_MS):
        super().__init__(name="orbit-engine-ticker", daemon=True)
        self.worker = worker
        self.interval_ms = interval_ms
        self._stopped = threading.Event()
        self.ticks = 0

    def run(self) -> None:
        while not self._stopped.wait(self.interval_ms / 1000.0):
            self.worker.post(Tick())
            self.ticks += 1

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stopped.set()
        if self.is_alive():
            self.join(timeout)
