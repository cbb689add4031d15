# src/llsc_metrics/metrics/errors.py
"""Metrics-specific exceptions.

Configuration errors are fatal at startup. Push errors are raised by the
line-protocol client and handled by the batching engine; they never reach
the emulator.
"""


class MetricsError(Exception):
    """Base class for metrics subsystem errors."""


class MetricsConfigError(MetricsError):
    """Raised when a recording engine cannot be configured or constructed.

    Attributes:
        backend: Name of the backend that failed
        message: Human-readable error description
    """

    def __init__(self, backend: str, message: str) -> None:
        self.backend = backend
        self.message = message
        super().__init__(f"Metrics backend '{backend}' failed: {message}")


class MetricsPushError(MetricsError):
    """Raised when a line-protocol push fails.

    Attributes:
        status_code: HTTP status of the response, or None for transport
            failures (the underlying error is chained as __cause__)
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
