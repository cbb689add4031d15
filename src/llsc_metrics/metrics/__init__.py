# src/llsc_metrics/metrics/__init__.py
"""Metrics subsystem for emulator LL/SC and scheduling instrumentation.

Components:
- facade: Metrics, the tracking surface the emulator calls
- protocols: RecordingEngineProtocol and ServiceProtocol
- engines: built-in engines (noop, debug, influx)
- line_protocol: wire encoding and LineProtocolClient
- factory: create_metrics() resolving engines via pluggy hooks
- errors: MetricsConfigError, MetricsPushError

Usage:
    from llsc_metrics.metrics import create_metrics, new_debug_metrics

    metrics = new_debug_metrics()
    metrics.track_reservation_set(step=10)
    metrics.track_conditional_success(step=14)
"""

from llsc_metrics.metrics.engines import DebugMetricsEngine, InfluxMetricsEngine, NoopMetricsEngine
from llsc_metrics.metrics.errors import MetricsConfigError, MetricsError, MetricsPushError
from llsc_metrics.metrics.facade import (
    CounterSnapshot,
    Metrics,
    new_debug_metrics,
    new_influx_metrics,
    new_noop_metrics,
)
from llsc_metrics.metrics.factory import create_metrics, discover_engines
from llsc_metrics.metrics.line_protocol import LineProtocolClient, encode_batch, encode_metric
from llsc_metrics.metrics.protocols import RecordingEngineProtocol, ServiceProtocol

__all__ = [
    "CounterSnapshot",
    "DebugMetricsEngine",
    "InfluxMetricsEngine",
    "LineProtocolClient",
    "Metrics",
    "MetricsConfigError",
    "MetricsError",
    "MetricsPushError",
    "NoopMetricsEngine",
    "RecordingEngineProtocol",
    "ServiceProtocol",
    "create_metrics",
    "discover_engines",
    "encode_batch",
    "encode_metric",
    "new_debug_metrics",
    "new_influx_metrics",
    "new_noop_metrics",
]
