# tests/unit/metrics/test_facade.py
"""Unit tests for the Metrics facade.

Tests cover:
- Counter increments and the values forwarded to the engine
- Step delta for conditional successes (including the clamp policy)
- Overwrite reported before the reservation step changes
- Wakeup traversal state machine
- Engine failures never reaching the caller
- Counter ordering under concurrent callers
- Lifecycle delegation and convenience constructors
"""

import threading
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from llsc_metrics.contracts import AuthScheme, BackendConfig, LifecycleState
from llsc_metrics.metrics.engines.debug import DebugMetricsEngine
from llsc_metrics.metrics.engines.influx import InfluxMetricsEngine
from llsc_metrics.metrics.engines.noop import NoopMetricsEngine
from llsc_metrics.metrics.facade import (
    Metrics,
    new_debug_metrics,
    new_influx_metrics,
    new_noop_metrics,
)
from tests.fixtures.metrics import RecordingEngine


@pytest.fixture
def metrics(recording_engine: RecordingEngine) -> Metrics:
    return Metrics(recording_engine)


# =============================================================================
# LL/SC tracking
# =============================================================================


class TestConditionalSuccess:
    """Tests for track_conditional_success()."""

    def test_forwards_count_and_step_delta(self, metrics: Metrics, recording_engine: RecordingEngine) -> None:
        metrics.track_reservation_set(100)
        metrics.track_conditional_success(112)

        assert recording_engine.calls_to("record_success") == [(1, 12)]
        assert metrics.snapshot().success_count == 1

    def test_count_is_monotonic(self, metrics: Metrics, recording_engine: RecordingEngine) -> None:
        for step in (10, 20, 30):
            metrics.track_reservation_set(step)
            metrics.track_conditional_success(step + 1)

        assert recording_engine.calls_to("record_success") == [(1, 1), (2, 1), (3, 1)]

    def test_same_step_gives_zero_delta(self, metrics: Metrics, recording_engine: RecordingEngine) -> None:
        metrics.track_reservation_set(50)
        metrics.track_conditional_success(50)

        assert recording_engine.calls_to("record_success") == [(1, 0)]

    def test_step_before_reservation_is_clamped(self, metrics: Metrics, recording_engine: RecordingEngine) -> None:
        metrics.track_reservation_set(100)

        with patch("llsc_metrics.metrics.facade.logger") as mock_logger:
            metrics.track_conditional_success(90)

        assert recording_engine.calls_to("record_success") == [(1, 0)]
        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args[0][0] == "reservation_step_underflow"

    def test_without_reservation_reports_zero(self, metrics: Metrics, recording_engine: RecordingEngine) -> None:
        with patch("llsc_metrics.metrics.facade.logger") as mock_logger:
            metrics.track_conditional_success(42)

        assert recording_engine.calls_to("record_success") == [(1, 0)]
        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args[0][0] == "conditional_success_without_reservation"

    def test_reservation_step_not_consumed(self, metrics: Metrics, recording_engine: RecordingEngine) -> None:
        """A second success without a new reservation measures from the same step."""
        metrics.track_reservation_set(10)
        metrics.track_conditional_success(15)
        metrics.track_conditional_success(20)

        assert recording_engine.calls_to("record_success") == [(1, 5), (2, 10)]


class TestReservationSet:
    """Tests for track_reservation_set()."""

    def test_plain_reservation_forwards_nothing(self, metrics: Metrics, recording_engine: RecordingEngine) -> None:
        metrics.track_reservation_set(7)

        assert recording_engine.calls == []
        assert metrics.snapshot().last_reservation_step == 7

    def test_overwrite_increments_and_forwards(self, metrics: Metrics, recording_engine: RecordingEngine) -> None:
        metrics.track_reservation_set(1)
        metrics.track_reservation_set(2, overwrites_existing=True)
        metrics.track_reservation_set(3, overwrites_existing=True)

        assert recording_engine.calls_to("record_overwritten") == [(1,), (2,)]
        snapshot = metrics.snapshot()
        assert snapshot.overwritten_count == 2
        assert snapshot.last_reservation_step == 3

    def test_overwrite_reported_before_step_changes(self) -> None:
        """The engine observes the previous reservation step when the overwrite is recorded."""
        observed: list[int | None] = []

        class StepObservingEngine(RecordingEngine):
            def record_overwritten(self, count: int) -> None:
                # snapshot() would re-enter the facade lock
                observed.append(facade._last_reservation_step)
                super().record_overwritten(count)

        facade = Metrics(StepObservingEngine())
        facade.track_reservation_set(10)
        facade.track_reservation_set(20, overwrites_existing=True)

        assert observed == [10]
        assert facade.snapshot().last_reservation_step == 20


class TestFailureAndInvalidation:
    def test_failure(self, metrics: Metrics, recording_engine: RecordingEngine) -> None:
        metrics.track_conditional_failure()
        metrics.track_conditional_failure()

        assert recording_engine.calls_to("record_failure") == [(1,), (2,)]
        assert metrics.snapshot().failure_count == 2

    def test_invalidated(self, metrics: Metrics, recording_engine: RecordingEngine) -> None:
        metrics.track_reservation_invalidated()

        assert recording_engine.calls_to("record_invalidated") == [(1,)]
        assert metrics.snapshot().invalidated_count == 1

    def test_counters_are_independent(self, metrics: Metrics) -> None:
        metrics.track_conditional_failure()
        metrics.track_reservation_invalidated()
        metrics.track_reservation_invalidated()

        snapshot = metrics.snapshot()
        assert snapshot.failure_count == 1
        assert snapshot.invalidated_count == 2
        assert snapshot.success_count == 0
        assert snapshot.overwritten_count == 0


# =============================================================================
# Scheduling
# =============================================================================


class TestPreemption:
    def test_preemption_forwards_steps(self, metrics: Metrics, recording_engine: RecordingEngine) -> None:
        metrics.track_preemption(250)
        metrics.track_preemption(100)

        assert recording_engine.calls_to("record_preemption") == [(250,), (100,)]
        assert metrics.snapshot().preemption_count == 2

    def test_forced_preemption_forwards_count(self, metrics: Metrics, recording_engine: RecordingEngine) -> None:
        metrics.track_forced_preemption()
        metrics.track_forced_preemption()

        assert recording_engine.calls_to("record_forced_preemption") == [(1,), (2,)]
        snapshot = metrics.snapshot()
        assert snapshot.forced_preemption_count == 2
        assert snapshot.preemption_count == 0


class TestWakeupTraversal:
    """Tests for the traversal / hit / miss state machine."""

    def test_miss_inside_traversal_counts(self, metrics: Metrics, recording_engine: RecordingEngine) -> None:
        metrics.track_wakeup_traversal()
        metrics.track_wakeup_miss()

        assert recording_engine.calls_to("record_wakeup_miss") == [(1,)]
        snapshot = metrics.snapshot()
        assert snapshot.wakeup_miss_count == 1
        assert snapshot.wakeup_traversal_active is False

    def test_miss_without_traversal_ignored(self, metrics: Metrics, recording_engine: RecordingEngine) -> None:
        metrics.track_wakeup_miss()

        assert recording_engine.calls == []
        assert metrics.snapshot().wakeup_miss_count == 0

    def test_hit_ends_traversal(self, metrics: Metrics, recording_engine: RecordingEngine) -> None:
        metrics.track_wakeup_traversal()
        metrics.track_wakeup_hit()
        metrics.track_wakeup_miss()

        assert recording_engine.calls == []
        assert metrics.snapshot().wakeup_traversal_active is False

    def test_second_miss_needs_new_traversal(self, metrics: Metrics, recording_engine: RecordingEngine) -> None:
        metrics.track_wakeup_traversal()
        metrics.track_wakeup_miss()
        metrics.track_wakeup_miss()
        metrics.track_wakeup_traversal()
        metrics.track_wakeup_miss()

        assert recording_engine.calls_to("record_wakeup_miss") == [(1,), (2,)]

    def test_traversal_marks_active(self, metrics: Metrics) -> None:
        metrics.track_wakeup_traversal()
        assert metrics.snapshot().wakeup_traversal_active is True


# =============================================================================
# Failure isolation
# =============================================================================


class TestEngineFailures:
    """Engine exceptions are logged, never raised to the emulator."""

    def test_record_failure_is_swallowed_and_logged(self) -> None:
        metrics = Metrics(RecordingEngine(fail=True))

        with patch("llsc_metrics.metrics.facade.logger") as mock_logger:
            metrics.track_conditional_failure()

        mock_logger.error.assert_called_once()
        assert mock_logger.error.call_args[0][0] == "engine_record_failed"
        assert mock_logger.error.call_args[1]["record"] == "record_failure"

    def test_counters_advance_despite_failures(self) -> None:
        metrics = Metrics(RecordingEngine(fail=True))

        with patch("llsc_metrics.metrics.facade.logger"):
            metrics.track_reservation_set(1)
            metrics.track_conditional_success(3)
            metrics.track_reservation_set(4, overwrites_existing=True)
            metrics.track_preemption(5)

        snapshot = metrics.snapshot()
        assert snapshot.success_count == 1
        assert snapshot.overwritten_count == 1
        assert snapshot.preemption_count == 1
        assert snapshot.last_reservation_step == 4

    def test_close_failure_is_logged(self) -> None:
        engine = MagicMock(spec=["close"])
        engine.close.side_effect = OSError("disk gone")
        metrics = Metrics(engine)

        with patch("llsc_metrics.metrics.facade.logger") as mock_logger:
            metrics.close()

        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args[0][0] == "engine_close_failed"


# =============================================================================
# Concurrency
# =============================================================================


class TestConcurrentCallers:
    """Counters stay exact and reach the engine in order under concurrent tracking."""

    @pytest.mark.parametrize(("threads", "per_thread"), [(4, 250), (8, 125)])
    def test_failure_counts_forwarded_in_order(self, threads: int, per_thread: int) -> None:
        engine = RecordingEngine()
        metrics = Metrics(engine)
        barrier = threading.Barrier(threads)

        def worker() -> None:
            barrier.wait()
            for _ in range(per_thread):
                metrics.track_conditional_failure()

        workers = [threading.Thread(target=worker) for _ in range(threads)]
        for t in workers:
            t.start()
        for t in workers:
            t.join(timeout=30.0)

        total = threads * per_thread
        assert metrics.snapshot().failure_count == total
        assert [args[0] for args in engine.calls_to("record_failure")] == list(range(1, total + 1))

    def test_mixed_events_keep_each_counter_ordered(self) -> None:
        engine = RecordingEngine()
        metrics = Metrics(engine)
        threads, per_thread = 6, 100
        barrier = threading.Barrier(threads)

        def worker(n: int) -> None:
            barrier.wait()
            for i in range(per_thread):
                if (n + i) % 2:
                    metrics.track_reservation_invalidated()
                else:
                    metrics.track_forced_preemption()

        workers = [threading.Thread(target=worker, args=(n,)) for n in range(threads)]
        for t in workers:
            t.start()
        for t in workers:
            t.join(timeout=30.0)

        snapshot = metrics.snapshot()
        assert snapshot.invalidated_count + snapshot.forced_preemption_count == threads * per_thread
        invalidated = [args[0] for args in engine.calls_to("record_invalidated")]
        forced = [args[0] for args in engine.calls_to("record_forced_preemption")]
        assert invalidated == list(range(1, snapshot.invalidated_count + 1))
        assert forced == list(range(1, snapshot.forced_preemption_count + 1))


# =============================================================================
# Lifecycle
# =============================================================================


class TestLifecycle:
    def test_start_stop_ignored_for_engines_without_service(self, metrics: Metrics, recording_engine: RecordingEngine) -> None:
        metrics.start()
        metrics.stop()

        assert recording_engine.calls == []
        assert recording_engine.close_count == 0

    def test_start_stop_delegate_to_service_engine(self) -> None:
        engine = MagicMock(spec=["start", "stop", "close"])
        metrics = Metrics(engine)

        metrics.start()
        metrics.stop()

        engine.start.assert_called_once()
        engine.stop.assert_called_once()

    def test_close_stops_then_closes(self) -> None:
        engine = MagicMock(spec=["start", "stop", "close"])
        metrics = Metrics(engine)

        metrics.close()

        assert [c[0] for c in engine.method_calls] == ["stop", "close"]

    def test_close_closes_plain_engine(self, metrics: Metrics, recording_engine: RecordingEngine) -> None:
        metrics.close()
        assert recording_engine.close_count == 1


# =============================================================================
# Constructors
# =============================================================================


class TestConstructors:
    def test_noop(self) -> None:
        metrics = new_noop_metrics()

        metrics.track_reservation_set(1)
        metrics.track_conditional_success(2)

        assert isinstance(metrics.engine, NoopMetricsEngine)
        assert metrics.snapshot().success_count == 1

    def test_debug(self, tmp_path: Path) -> None:
        path = tmp_path / "debug.log"
        metrics = new_debug_metrics(path)
        try:
            assert isinstance(metrics.engine, DebugMetricsEngine)
            assert path.exists()
        finally:
            metrics.close()

    def test_influx_starts_idle(self) -> None:
        config = BackendConfig(url="http://localhost:8086/write", auth_scheme=AuthScheme.BEARER, token="t")
        metrics = new_influx_metrics("emulator", config, batch_size=10, flush_interval=60.0)
        try:
            assert isinstance(metrics.engine, InfluxMetricsEngine)
            assert metrics.engine.state == LifecycleState.IDLE
        finally:
            metrics.close()
        assert metrics.engine.state == LifecycleState.STOPPED
