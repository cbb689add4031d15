# src/llsc_metrics/contracts/enums.py
"""Status codes and modes shared across the metrics subsystem."""

from enum import StrEnum


class LifecycleState(StrEnum):
    """Lifecycle of an engine with background activity.

    Transitions are one-way: IDLE -> RUNNING -> STOPPED. A stopped engine
    is never resumed.
    """

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class AuthScheme(StrEnum):
    """Authorization scheme used for line-protocol pushes.

    Values:
        BASIC: ``Authorization: Basic base64(user:password)``
        BEARER: ``Authorization: Bearer user:token`` (or ``Bearer token``
            when no user is configured)
    """

    BASIC = "basic"
    BEARER = "bearer"


class BackendName(StrEnum):
    """Built-in recording engine names, as used in settings."""

    NOOP = "noop"
    DEBUG = "debug"
    INFLUX = "influx"
