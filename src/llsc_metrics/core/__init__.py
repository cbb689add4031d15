"""Ambient infrastructure: settings and logging."""

from llsc_metrics.core.config import InfluxSettings, MetricsSettings, load_settings
from llsc_metrics.core.logging import configure_logging

__all__ = [
    "InfluxSettings",
    "MetricsSettings",
    "configure_logging",
    "load_settings",
]
