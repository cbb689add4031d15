# src/llsc_metrics/metrics/hookspecs.py
"""pluggy hook specifications for recording engines.

Engine plugins implement these hooks to register engine classes. The
factory calls them to resolve the configured backend name.

Usage (implementing an engine plugin):
    from llsc_metrics.metrics.hookspecs import hookimpl

    class MyEnginePlugin:
        @hookimpl
        def llsc_metrics_get_engines(self):
            return [MyEngine]
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from llsc_metrics.metrics.protocols import RecordingEngineProtocol

PROJECT_NAME = "llsc_metrics"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)

hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class LlscMetricsEngineSpec:
    """Hook specifications for recording engine plugins."""

    @hookspec
    def llsc_metrics_get_engines(self) -> list[type["RecordingEngineProtocol"]]:  # type: ignore[empty-body]
        """Return recording engine classes.

        Each class must define a non-empty ``_name`` class attribute and a
        ``from_settings(settings)`` classmethod.

        Returns:
            List of engine classes (not instances)
        """
