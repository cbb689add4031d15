"""Shared types crossing the facade <-> engine <-> transport boundaries."""

from llsc_metrics.contracts.config import BackendConfig
from llsc_metrics.contracts.enums import AuthScheme, BackendName, LifecycleState
from llsc_metrics.contracts.metric import DEFAULT_FIELD, Metric

__all__ = [
    "DEFAULT_FIELD",
    "AuthScheme",
    "BackendConfig",
    "BackendName",
    "LifecycleState",
    "Metric",
]
