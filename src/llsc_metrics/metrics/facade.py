# src/llsc_metrics/metrics/facade.py
"""Metrics facade: the instrumentation surface called by the emulator.

The emulator reports raw events (a reservation was set, a conditional
store succeeded, a thread was preempted...). The facade turns them into
monotonic counters and derived values, such as the number of steps
between a reservation and the store that consumed it, and forwards them
to the configured recording engine.

The facade owns counters only; files, connections and threads belong to
the engine. It never raises into the emulator: engine failures are
logged and swallowed here.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import httpx
import structlog

from llsc_metrics.contracts.config import BackendConfig
from llsc_metrics.core.config import DEFAULT_BATCH_SIZE, DEFAULT_DEBUG_LOG_PATH, DEFAULT_FLUSH_INTERVAL_MS
from llsc_metrics.metrics.engines.debug import DebugMetricsEngine
from llsc_metrics.metrics.engines.influx import InfluxMetricsEngine
from llsc_metrics.metrics.engines.noop import NoopMetricsEngine
from llsc_metrics.metrics.line_protocol import LineProtocolClient
from llsc_metrics.metrics.protocols import RecordingEngineProtocol, ServiceProtocol

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CounterSnapshot:
    """Point-in-time copy of the facade's counters.

    Attributes:
        success_count: Successful conditional stores
        failure_count: Failed conditional stores
        invalidated_count: Reservations cleared by another actor
        overwritten_count: Reservations replaced by a newer reservation
        preemption_count: Step-driven preemptions
        forced_preemption_count: Scheduler-initiated preemptions
        wakeup_miss_count: Wakeup traversals that found no runnable thread
        last_reservation_step: Step of the most recent reservation, None if
            no reservation was ever set
        wakeup_traversal_active: A traversal is in progress
    """

    success_count: int
    failure_count: int
    invalidated_count: int
    overwritten_count: int
    preemption_count: int
    forced_preemption_count: int
    wakeup_miss_count: int
    last_reservation_step: int | None
    wakeup_traversal_active: bool


class Metrics:
    """Event-to-counter facade over a recording engine.

    Step-delta policy for track_conditional_success():
    - No reservation was ever set: the delta is reported as 0 and a
      warning is logged
    - step is before the last reservation step: the delta is clamped to 0
      and a warning is logged
    In both cases the success counter still increments.

    Thread Safety:
        All counter updates and the engine call they trigger happen under
        one lock, so the engine sees every counter's values in increasing
        order even with concurrent callers.

    Example:
        >>> metrics = new_noop_metrics()
        >>> metrics.track_reservation_set(100)
        >>> metrics.track_conditional_success(112)
        >>> metrics.snapshot().success_count
        1
    """

    def __init__(self, engine: RecordingEngineProtocol) -> None:
        self._engine = engine
        self._lock = threading.Lock()

        self._last_reservation_step: int | None = None
        self._success_count = 0
        self._failure_count = 0
        self._invalidated_count = 0
        self._overwritten_count = 0
        self._preemption_count = 0
        self._forced_preemption_count = 0
        self._wakeup_miss_count = 0
        self._wakeup_traversal_active = False

    @property
    def engine(self) -> RecordingEngineProtocol:
        """The recording engine counters are forwarded to."""
        return self._engine

    def _forward(self, record: Callable[..., None], *args: int) -> None:
        """Call an engine record method, isolating the emulator from failures."""
        try:
            record(*args)
        except Exception as e:
            logger.error(
                "engine_record_failed",
                engine=type(self._engine).__name__,
                record=getattr(record, "__name__", repr(record)),
                error=str(e),
            )

    # -------------------------------------------------------------------------
    # LL/SC tracking
    # -------------------------------------------------------------------------

    def track_reservation_set(self, step: int, overwrites_existing: bool = False) -> None:
        """Record a new reservation (load-linked) at ``step``.

        When the reservation replaces a pending one, the overwrite is
        reported before the stored step changes.
        """
        with self._lock:
            if overwrites_existing:
                self._overwritten_count += 1
                self._forward(self._engine.record_overwritten, self._overwritten_count)
            self._last_reservation_step = step

    def track_conditional_success(self, step: int) -> None:
        """Record a successful conditional store at ``step``."""
        with self._lock:
            self._success_count += 1
            last = self._last_reservation_step
            if last is None:
                logger.warning("conditional_success_without_reservation", step=step)
                total_steps = 0
            elif step < last:
                logger.warning("reservation_step_underflow", step=step, reservation_step=last)
                total_steps = 0
            else:
                total_steps = step - last
            self._forward(self._engine.record_success, self._success_count, total_steps)

    def track_conditional_failure(self) -> None:
        """Record a failed conditional store."""
        with self._lock:
            self._failure_count += 1
            self._forward(self._engine.record_failure, self._failure_count)

    def track_reservation_invalidated(self) -> None:
        """Record a reservation cleared by another actor before resolution."""
        with self._lock:
            self._invalidated_count += 1
            self._forward(self._engine.record_invalidated, self._invalidated_count)

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    def track_preemption(self, steps_since_last: int) -> None:
        """Record a step-driven preemption."""
        with self._lock:
            self._preemption_count += 1
            self._forward(self._engine.record_preemption, steps_since_last)

    def track_forced_preemption(self) -> None:
        """Record a scheduler-initiated preemption."""
        with self._lock:
            self._forced_preemption_count += 1
            self._forward(self._engine.record_forced_preemption, self._forced_preemption_count)

    def track_wakeup_traversal(self) -> None:
        """Mark the start of a scan for a thread to wake."""
        with self._lock:
            self._wakeup_traversal_active = True

    def track_wakeup_hit(self) -> None:
        """The scan found and woke a thread."""
        with self._lock:
            self._wakeup_traversal_active = False

    def track_wakeup_miss(self) -> None:
        """The scan found nothing. Counted only inside an active traversal."""
        with self._lock:
            if self._wakeup_traversal_active:
                self._wakeup_miss_count += 1
                self._forward(self._engine.record_wakeup_miss, self._wakeup_miss_count)
            self._wakeup_traversal_active = False

    # -------------------------------------------------------------------------
    # Lifecycle and inspection
    # -------------------------------------------------------------------------

    def snapshot(self) -> CounterSnapshot:
        """Return a consistent copy of all counters."""
        with self._lock:
            return CounterSnapshot(
                success_count=self._success_count,
                failure_count=self._failure_count,
                invalidated_count=self._invalidated_count,
                overwritten_count=self._overwritten_count,
                preemption_count=self._preemption_count,
                forced_preemption_count=self._forced_preemption_count,
                wakeup_miss_count=self._wakeup_miss_count,
                last_reservation_step=self._last_reservation_step,
                wakeup_traversal_active=self._wakeup_traversal_active,
            )

    def start(self) -> None:
        """Start the engine's background activity, if it has any."""
        if isinstance(self._engine, ServiceProtocol):
            self._engine.start()

    def stop(self) -> None:
        """Drain and stop the engine's background activity, if it has any."""
        if isinstance(self._engine, ServiceProtocol):
            self._engine.stop()

    def close(self) -> None:
        """Stop the engine and release its resources."""
        self.stop()
        try:
            self._engine.close()
        except Exception as e:
            logger.warning("engine_close_failed", engine=type(self._engine).__name__, error=str(e))


def new_noop_metrics() -> Metrics:
    """Metrics facade that records nothing."""
    return Metrics(NoopMetricsEngine())


def new_debug_metrics(path: str | Path = DEFAULT_DEBUG_LOG_PATH) -> Metrics:
    """Metrics facade writing every record to a local log file.

    Raises:
        MetricsConfigError: If the log file cannot be opened
    """
    return Metrics(DebugMetricsEngine(path))


def new_influx_metrics(
    category: str,
    config: BackendConfig,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    flush_interval: float = DEFAULT_FLUSH_INTERVAL_MS / 1000.0,
    transport: httpx.BaseTransport | None = None,
) -> Metrics:
    """Metrics facade batching records to a line-protocol endpoint.

    The engine starts IDLE: call start() before the emulator runs and
    stop() (or close()) when it finishes.
    """
    client = LineProtocolClient(config, transport=transport)
    engine = InfluxMetricsEngine(category, client, batch_size=batch_size, flush_interval=flush_interval)
    return Metrics(engine)
