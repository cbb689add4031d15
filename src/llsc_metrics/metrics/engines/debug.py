# src/llsc_metrics/metrics/engines/debug.py
"""Debug recording engine: one logfmt line per event in a local file.

The file is created (or truncated) when the engine is built and its
absolute path is printed once so an operator running the emulator knows
where to look. Every record is written synchronously, inline with the
emulator's call.

Example line:
    timestamp=2026-10-19T12:00:00.000000Z level=debug event=record_success count=3 steps=12
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

import structlog

from llsc_metrics.core.config import DEFAULT_DEBUG_LOG_PATH
from llsc_metrics.metrics.errors import MetricsConfigError

if TYPE_CHECKING:
    from llsc_metrics.core.config import MetricsSettings


def _create_file_logger(stream: TextIO) -> structlog.typing.FilteringBoundLogger:
    """Build a logger bound to ``stream``, independent of global structlog config."""
    return structlog.wrap_logger(
        structlog.PrintLogger(file=stream),
        processors=[
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.add_log_level,
            structlog.processors.LogfmtRenderer(key_order=["timestamp", "level", "event"]),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
    )


class DebugMetricsEngine:
    """Write each record to a local log file.

    Construction failure (the file cannot be opened) raises
    MetricsConfigError: a broken metrics setup is a startup error, not
    something to discover halfway through an emulation run.

    Thread Safety:
        structlog's PrintLogger serializes writes with its own lock.
    """

    _name = "debug"

    def __init__(self, path: str | Path = DEFAULT_DEBUG_LOG_PATH) -> None:
        """Open (create/truncate) the log file and announce its location.

        Args:
            path: Log file path, relative to the working directory unless absolute

        Raises:
            MetricsConfigError: If the file cannot be opened
        """
        try:
            self._file: TextIO = open(path, "w", encoding="utf-8")  # noqa: SIM115 - closed in close()
            self._path = Path(path).resolve()
        except OSError as e:
            raise MetricsConfigError(self._name, f"cannot open debug log {str(path)!r}: {e}") from e

        print(f"llsc-metrics debug log will be saved to: {self._path}")
        self._logger = _create_file_logger(self._file)

    @classmethod
    def from_settings(cls, settings: MetricsSettings) -> DebugMetricsEngine:
        return cls(settings.debug_log_path)

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> Path:
        """Absolute path of the log file."""
        return self._path

    def _write(self, event: str, **fields: int) -> None:
        if self._file.closed:
            return
        self._logger.debug(event, **fields)

    def record_success(self, count: int, steps: int) -> None:
        self._write("record_success", count=count, steps=steps)

    def record_failure(self, count: int) -> None:
        self._write("record_failure", count=count)

    def record_invalidated(self, count: int) -> None:
        self._write("record_invalidated", count=count)

    def record_overwritten(self, count: int) -> None:
        self._write("record_overwritten", count=count)

    def record_preemption(self, steps: int) -> None:
        self._write("record_preemption", steps=steps)

    def record_forced_preemption(self, count: int) -> None:
        self._write("record_forced_preemption", count=count)

    def record_wakeup_miss(self, count: int) -> None:
        self._write("record_wakeup_miss", count=count)

    def close(self) -> None:
        """Close the log file. Idempotent."""
        if not self._file.closed:
            self._file.close()
