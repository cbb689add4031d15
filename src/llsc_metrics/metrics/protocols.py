# src/llsc_metrics/metrics/protocols.py
"""Protocol definitions for recording engines.

A recording engine receives counter values from the Metrics facade and
ships them somewhere (nowhere, a local file, a time-series backend).
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class RecordingEngineProtocol(Protocol):
    """Protocol for recording engines.

    Engines are discovered via pluggy hooks and built from settings with
    their ``from_settings()`` classmethod.

    Error handling:
        - Construction MUST raise MetricsConfigError on unusable config
        - record_*() SHOULD NOT raise; the facade still isolates the
          emulator from any exception that escapes
        - close() MUST be idempotent

    Thread Safety:
        record_*() may be called from several emulator threads at once.
        Engines with shared state must serialize it themselves.
    """

    @property
    def name(self) -> str:
        """Engine name as used in settings (``backend: <name>``)."""
        ...

    def record_success(self, count: int, steps: int) -> None:
        """Record a successful conditional store.

        Args:
            count: Total successes so far
            steps: Steps between the reservation and this success
        """
        ...

    def record_failure(self, count: int) -> None:
        """Record a failed conditional store (running total)."""
        ...

    def record_invalidated(self, count: int) -> None:
        """Record a reservation cleared by another actor (running total)."""
        ...

    def record_overwritten(self, count: int) -> None:
        """Record a reservation replaced by a newer one (running total)."""
        ...

    def record_preemption(self, steps: int) -> None:
        """Record a preemption with the steps since the previous one."""
        ...

    def record_forced_preemption(self, count: int) -> None:
        """Record a scheduler-initiated preemption (running total)."""
        ...

    def record_wakeup_miss(self, count: int) -> None:
        """Record a wakeup traversal that found nothing (running total)."""
        ...

    def close(self) -> None:
        """Release files, connections or threads held by the engine."""
        ...


@runtime_checkable
class ServiceProtocol(Protocol):
    """Optional lifecycle for engines with background activity."""

    def start(self) -> None:
        """Begin accepting records and start background work."""
        ...

    def stop(self) -> None:
        """Drain pending work and stop. Further records are rejected."""
        ...
