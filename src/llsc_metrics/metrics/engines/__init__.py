# src/llsc_metrics/metrics/engines/__init__.py
"""Built-in recording engines.

Available engines:
- NoopMetricsEngine (``noop``): discards everything
- DebugMetricsEngine (``debug``): one logfmt line per record in a local file
- InfluxMetricsEngine (``influx``): batched line-protocol pushes over HTTP

Engines are registered with the factory through the
llsc_metrics_get_engines hook implemented by BuiltinEnginesPlugin.
"""

from llsc_metrics.metrics.engines.debug import DebugMetricsEngine
from llsc_metrics.metrics.engines.influx import InfluxMetricsEngine
from llsc_metrics.metrics.engines.noop import NoopMetricsEngine
from llsc_metrics.metrics.hookspecs import hookimpl


class BuiltinEnginesPlugin:
    """Plugin that registers built-in recording engines."""

    @hookimpl
    def llsc_metrics_get_engines(self) -> list[type]:
        """Return built-in engine classes."""
        return [NoopMetricsEngine, DebugMetricsEngine, InfluxMetricsEngine]


__all__ = [
    "BuiltinEnginesPlugin",
    "DebugMetricsEngine",
    "InfluxMetricsEngine",
    "NoopMetricsEngine",
]
