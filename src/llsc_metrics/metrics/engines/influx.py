# src/llsc_metrics/metrics/engines/influx.py
"""Batching recording engine pushing line protocol over HTTP.

Records are converted to Metric points, buffered in memory and pushed in
batches by a LineProtocolClient. A batch is pushed when:
1. The buffer reaches batch_size (synchronously, inside record_metric())
2. The flush interval elapses (background flush thread)
3. stop() is called with a non-empty buffer

Delivery is best-effort and at-most-once: a batch whose push fails is
logged and discarded, never retried.

Thread Safety:
    One lock (_lock) guards the buffer, the lifecycle state and the flush
    itself, including the network call. A slow push therefore stalls every
    concurrent recorder until it completes or fails. The background thread
    and the threshold flush in record_metric() never run concurrently.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any

import structlog

from llsc_metrics.contracts.config import BackendConfig
from llsc_metrics.contracts.enums import LifecycleState
from llsc_metrics.contracts.metric import Metric
from llsc_metrics.core.config import DEFAULT_BATCH_SIZE, DEFAULT_FLUSH_INTERVAL_MS
from llsc_metrics.metrics.errors import MetricsConfigError
from llsc_metrics.metrics.line_protocol import LineProtocolClient

if TYPE_CHECKING:
    from llsc_metrics.core.config import MetricsSettings

logger = structlog.get_logger(__name__)

# How long stop() waits for the flush thread to exit
_JOIN_TIMEOUT_SECONDS = 5.0


class InfluxMetricsEngine:
    """Buffer records and push them to a line-protocol endpoint.

    Lifecycle:
        IDLE    - constructed, records rejected, no thread
        RUNNING - start() called, records accepted, flush thread alive
        STOPPED - stop() called, buffer drained once, records rejected

    Example:
        >>> engine = InfluxMetricsEngine("emulator", LineProtocolClient(config))
        >>> engine.start()
        >>> engine.record_failure(1)
        >>> engine.stop()
    """

    _name = "influx"

    def __init__(
        self,
        category: str,
        client: LineProtocolClient,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL_MS / 1000.0,
    ) -> None:
        """Initialize an idle engine.

        Args:
            category: Measurement name for every exported metric
            client: Transport used for pushes (owned: closed by close())
            batch_size: Buffered metrics that trigger an eager flush
            flush_interval: Background flush period in seconds

        Raises:
            MetricsConfigError: If batch_size or flush_interval is not positive
        """
        if batch_size < 1:
            raise MetricsConfigError(self._name, f"batch_size must be >= 1, got {batch_size}")
        if flush_interval <= 0:
            raise MetricsConfigError(self._name, f"flush_interval must be > 0, got {flush_interval}")

        self._category = category
        self._client = client
        self._batch_size = batch_size
        self._flush_interval = flush_interval

        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._state = LifecycleState.IDLE
        self._buffer: list[Metric] = []
        self._closed = False

        # Health metrics (all guarded by _lock)
        self._flushes = 0
        self._metrics_sent = 0
        self._metrics_dropped = 0
        self._metrics_rejected = 0
        self._push_failures = 0

    @classmethod
    def from_settings(cls, settings: MetricsSettings) -> InfluxMetricsEngine:
        if settings.influx is None:
            raise MetricsConfigError(cls._name, "missing 'influx' settings section")
        client = LineProtocolClient(BackendConfig.from_settings(settings.influx))
        return cls(
            settings.category,
            client,
            batch_size=settings.batch_size,
            flush_interval=settings.flush_interval_seconds,
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> LifecycleState:
        """Current lifecycle state."""
        with self._lock:
            return self._state

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Start accepting records and spawn the flush thread. No-op unless IDLE."""
        with self._lock:
            if self._state != LifecycleState.IDLE:
                return
            self._state = LifecycleState.RUNNING
            # Daemon: a host that never calls stop() can still exit; whatever
            # is buffered at that point is lost, as with any failed push.
            self._thread = threading.Thread(
                target=self._flush_loop,
                name="llsc-metrics-flush",
                daemon=True,
            )
            self._thread.start()
        logger.debug(
            "metrics_engine_started",
            category=self._category,
            batch_size=self._batch_size,
            flush_interval=self._flush_interval,
        )

    def stop(self) -> None:
        """Drain the buffer once and stop. No-op unless RUNNING.

        The state check and transition happen under the buffer lock, so
        concurrent or repeated calls perform the drain and signal exactly
        once.
        """
        with self._lock:
            if self._state != LifecycleState.RUNNING:
                return
            self._flush_locked()
            self._state = LifecycleState.STOPPED
            self._stop_event.set()
            thread = self._thread

        # Join outside the lock: the flush thread may be waiting on it
        if thread is not None:
            thread.join(timeout=_JOIN_TIMEOUT_SECONDS)
            if thread.is_alive():
                logger.error("metrics_flush_thread_timeout", timeout_seconds=_JOIN_TIMEOUT_SECONDS)
        logger.debug("metrics_engine_stopped", **self.health_metrics)

    def close(self) -> None:
        """Stop (if running) and close the transport. Idempotent."""
        self.stop()
        with self._lock:
            if self._closed:
                return
            self._closed = True
            # An engine closed without ever starting can no longer start
            if self._state == LifecycleState.IDLE:
                self._state = LifecycleState.STOPPED
        self._client.close()

    def _flush_loop(self) -> None:
        """Background thread: flush every interval until stop is signaled.

        Event.wait() doubles as the timer: it returns False on timeout and
        True as soon as stop() sets the event.
        """
        while not self._stop_event.wait(self._flush_interval):
            with self._lock:
                if self._state != LifecycleState.RUNNING:
                    break
                self._flush_locked()

    # -------------------------------------------------------------------------
    # Buffering
    # -------------------------------------------------------------------------

    def record_metric(self, metric: Metric) -> None:
        """Buffer a metric, flushing synchronously when the batch is full.

        Rejected with a warning unless the engine is RUNNING.
        """
        with self._lock:
            if self._state != LifecycleState.RUNNING:
                self._metrics_rejected += 1
                logger.warning(
                    "metric_rejected",
                    reason="engine not running",
                    state=self._state.value,
                    measurement=metric.measurement,
                )
                return
            self._buffer.append(metric)
            if len(self._buffer) >= self._batch_size:
                self._flush_locked()

    def flush(self) -> None:
        """Push whatever is buffered now."""
        with self._lock:
            self._flush_locked()

    def _flush_locked(self) -> None:
        """Push and clear the buffer. Caller MUST hold _lock.

        The buffer is cleared whether or not the push succeeds.
        """
        if not self._buffer:
            return
        batch = self._buffer
        self._buffer = []
        self._flushes += 1
        try:
            self._client.push(batch)
        except Exception as e:
            # Best-effort delivery: drop the batch, keep the engine alive
            self._push_failures += 1
            self._metrics_dropped += len(batch)
            logger.error(
                "metrics_batch_dropped",
                category=self._category,
                metric_count=len(batch),
                dropped_total=self._metrics_dropped,
                error=str(e),
            )
        else:
            self._metrics_sent += len(batch)

    @property
    def health_metrics(self) -> dict[str, Any]:
        """Snapshot of engine health.

        Every accepted record is exactly one of sent, dropped or buffered.
        """
        with self._lock:
            return {
                "state": self._state.value,
                "buffered": len(self._buffer),
                "flushes": self._flushes,
                "metrics_sent": self._metrics_sent,
                "metrics_dropped": self._metrics_dropped,
                "metrics_rejected": self._metrics_rejected,
                "push_failures": self._push_failures,
            }

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    def _record_point(self, fields: dict[str, int], tags: dict[str, str] | None = None) -> None:
        """Build and buffer one point. A point that fails validation is rejected on its own."""
        try:
            metric = Metric(self._category, fields, tags=tags or {}, unsigned=True)
        except ValueError as e:
            with self._lock:
                self._metrics_rejected += 1
            logger.warning("metric_rejected", reason="invalid value", fields=fields, error=str(e))
            return
        self.record_metric(metric)

    def record_success(self, count: int, steps: int) -> None:
        self._record_point({"rmw_success_count": count, "rmw_step_count": steps})

    def record_failure(self, count: int) -> None:
        self._record_point({"rmw_failure_count": count})

    def record_invalidated(self, count: int) -> None:
        self._record_point({"rmw_reset_count": count}, {"reason": "memory_invalidated"})

    def record_overwritten(self, count: int) -> None:
        self._record_point({"rmw_reset_count": count}, {"reason": "overwritten"})

    def record_preemption(self, steps: int) -> None:
        self._record_point({"steps_at_preemption": steps})

    def record_forced_preemption(self, count: int) -> None:
        self._record_point({"preemption_count": count}, {"reason": "forced"})

    def record_wakeup_miss(self, count: int) -> None:
        self._record_point({"wakeup_miss_count": count})
