# src/llsc_metrics/metrics/factory.py
"""Factory functions for creating the Metrics facade from settings.

This module is the glue between MetricsSettings and a running facade:
1. Discovering engine classes via pluggy hooks
2. Building the configured engine with its from_settings() classmethod
3. Wrapping it in a Metrics facade

Usage:
    from llsc_metrics.core.config import load_settings
    from llsc_metrics.metrics.factory import create_metrics

    metrics = create_metrics(load_settings(Path("metrics.yaml")))
    metrics.start()
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import pluggy
import structlog

from llsc_metrics.core.config import MetricsSettings
from llsc_metrics.metrics.engines import BuiltinEnginesPlugin
from llsc_metrics.metrics.errors import MetricsConfigError
from llsc_metrics.metrics.facade import Metrics
from llsc_metrics.metrics.hookspecs import PROJECT_NAME, LlscMetricsEngineSpec

logger = structlog.get_logger(__name__)


def _resolve_engine_name(engine_class: type) -> str:
    """Read the ``_name`` class attribute of a discovered engine.

    Raises:
        MetricsConfigError: If the class has no usable name
    """
    class_name = getattr(engine_class, "__name__", repr(engine_class))
    name = engine_class.__dict__.get("_name")
    if type(name) is not str or name == "":
        raise MetricsConfigError(
            class_name,
            f"Engine class attribute _name must be a non-empty string, got {name!r}",
        )
    if not callable(getattr(engine_class, "from_settings", None)):
        raise MetricsConfigError(name, f"Engine class {class_name} has no from_settings() classmethod")
    return name


def discover_engines(engine_plugins: Iterable[Any] = ()) -> dict[str, type]:
    """Discover recording engines via pluggy hooks.

    Registers the built-in engines plus any additional plugin objects,
    then calls every ``llsc_metrics_get_engines`` hook.

    Args:
        engine_plugins: Extra plugin objects implementing the hook

    Returns:
        Mapping of engine name to engine class

    Raises:
        MetricsConfigError: If a plugin is invalid or two engines share a name
    """
    plugin_manager = pluggy.PluginManager(PROJECT_NAME)
    plugin_manager.add_hookspecs(LlscMetricsEngineSpec)

    for plugin in [BuiltinEnginesPlugin(), *list(engine_plugins)]:
        try:
            plugin_manager.register(plugin)
            plugin_manager.check_pending()
        except (pluggy.PluginValidationError, ValueError) as e:
            if isinstance(e, pluggy.PluginValidationError):
                plugin_manager.unregister(plugin=plugin)
            raise MetricsConfigError(
                "engine_plugins",
                f"Invalid engine plugin {type(plugin).__name__}: {e}",
            ) from e

    registry: dict[str, type] = {}
    for engine_classes in plugin_manager.hook.llsc_metrics_get_engines():
        if engine_classes is None or isinstance(engine_classes, str | bytes):
            raise MetricsConfigError(
                "engine_plugins",
                f"llsc_metrics_get_engines returned {engine_classes!r}; expected a list of engine classes",
            )
        for engine_class in engine_classes:
            name = _resolve_engine_name(engine_class)
            if name in registry:
                raise MetricsConfigError(
                    name,
                    f"Duplicate engine name '{name}' discovered: {registry[name].__name__} and {engine_class.__name__}",
                )
            registry[name] = engine_class

    return registry


def create_metrics(
    settings: MetricsSettings,
    *,
    engine_plugins: Iterable[Any] = (),
) -> Metrics:
    """Create a Metrics facade for the configured backend.

    The engine is built but not started: call start() on the facade.

    Args:
        settings: Validated settings
        engine_plugins: Extra engine plugin objects

    Returns:
        Metrics facade wrapping the configured engine

    Raises:
        MetricsConfigError: Unknown backend, or the engine cannot be built
    """
    registry = discover_engines(engine_plugins)

    try:
        engine_class = registry[settings.backend]
    except KeyError:
        raise MetricsConfigError(
            settings.backend,
            f"Unknown backend. Available backends: {sorted(registry)}",
        ) from None

    engine = engine_class.from_settings(settings)
    logger.debug("metrics_engine_configured", backend=settings.backend, category=settings.category)
    return Metrics(engine)
