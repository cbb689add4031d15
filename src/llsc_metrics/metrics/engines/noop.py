# src/llsc_metrics/metrics/engines/noop.py
"""Recording engine that discards everything (metrics disabled)."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from llsc_metrics.core.config import MetricsSettings


class NoopMetricsEngine:
    """Discard every record. Used when telemetry is disabled."""

    _name = "noop"

    @classmethod
    def from_settings(cls, settings: MetricsSettings) -> NoopMetricsEngine:
        return cls()

    @property
    def name(self) -> str:
        return self._name

    def record_success(self, count: int, steps: int) -> None:
        pass

    def record_failure(self, count: int) -> None:
        pass

    def record_invalidated(self, count: int) -> None:
        pass

    def record_overwritten(self, count: int) -> None:
        pass

    def record_preemption(self, steps: int) -> None:
        pass

    def record_forced_preemption(self, count: int) -> None:
        pass

    def record_wakeup_miss(self, count: int) -> None:
        pass

    def close(self) -> None:
        pass
