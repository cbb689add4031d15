# src/llsc_metrics/cli.py
"""llsc-metrics Command Line Interface.

Operator tooling around the metrics settings: check a settings file and
exercise the configured backend with a synthetic event sequence before
wiring it into an emulator run.
"""

from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError

from llsc_metrics import __version__
from llsc_metrics.core.config import MetricsSettings, load_settings
from llsc_metrics.metrics.errors import MetricsConfigError

__all__ = ["app"]

app = typer.Typer(
    name="llsc-metrics",
    help="llsc-metrics: LL/SC and scheduling counters for emulator runs.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"llsc-metrics version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """llsc-metrics: LL/SC and scheduling counters for emulator runs."""
    from llsc_metrics.core.logging import configure_logging

    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "INFO")


def _load_settings_or_exit(settings_path: Path) -> MetricsSettings:
    """Load settings, reporting failures as CLI errors (exit code 1)."""
    try:
        return load_settings(settings_path)
    except FileNotFoundError:
        typer.secho(f"Error: Settings file not found: {settings_path}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.secho("Settings validation failed:", fg=typer.colors.RED, err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"]) or "<root>"
            typer.secho(f"  - {loc}: {error['msg']}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from None


@app.command()
def validate(
    settings_path: Path = typer.Option(
        ...,
        "--settings",
        "-s",
        help="Path to metrics settings YAML file.",
    ),
) -> None:
    """Validate a settings file without starting any engine."""
    settings = _load_settings_or_exit(settings_path)

    typer.secho("Settings are valid.", fg=typer.colors.GREEN)
    typer.echo(f"  backend: {settings.backend}")
    typer.echo(f"  category: {settings.category}")
    if settings.backend == "debug":
        typer.echo(f"  debug_log_path: {settings.debug_log_path}")
    if settings.influx is not None:
        # Credentials are never echoed
        typer.echo(f"  url: {settings.influx.url}")
        typer.echo(f"  auth_scheme: {settings.influx.auth_scheme}")
        typer.echo(f"  batch_size: {settings.batch_size}")
        typer.echo(f"  flush_interval_ms: {settings.flush_interval_ms}")


@app.command()
def probe(
    settings_path: Path = typer.Option(
        ...,
        "--settings",
        "-s",
        help="Path to metrics settings YAML file.",
    ),
    rounds: int = typer.Option(
        1,
        "--rounds",
        "-n",
        min=1,
        help="Number of synthetic event rounds to record.",
    ),
) -> None:
    """Record a synthetic LL/SC and scheduling sequence through the configured backend.

    Each round sets a reservation, overwrites it, succeeds, fails, invalidates,
    preempts (step-driven and forced) and runs one missed wakeup traversal.
    """
    from llsc_metrics.metrics.factory import create_metrics

    settings = _load_settings_or_exit(settings_path)
    try:
        metrics = create_metrics(settings)
    except MetricsConfigError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from None

    metrics.start()
    try:
        step = 0
        for _ in range(rounds):
            metrics.track_reservation_set(step)
            metrics.track_reservation_set(step + 2, overwrites_existing=True)
            metrics.track_conditional_success(step + 7)
            metrics.track_reservation_set(step + 8)
            metrics.track_conditional_failure()
            metrics.track_reservation_invalidated()
            metrics.track_preemption(10)
            metrics.track_forced_preemption()
            metrics.track_wakeup_traversal()
            metrics.track_wakeup_miss()
            step += 10
    finally:
        metrics.close()

    snapshot = metrics.snapshot()
    typer.secho(f"Recorded {rounds} round(s) via '{settings.backend}' backend.", fg=typer.colors.GREEN)
    typer.echo(f"  successes: {snapshot.success_count}")
    typer.echo(f"  failures: {snapshot.failure_count}")
    typer.echo(f"  invalidated: {snapshot.invalidated_count}")
    typer.echo(f"  overwritten: {snapshot.overwritten_count}")
    typer.echo(f"  preemptions: {snapshot.preemption_count}")
    typer.echo(f"  forced preemptions: {snapshot.forced_preemption_count}")
    typer.echo(f"  wakeup misses: {snapshot.wakeup_miss_count}")

    health = getattr(metrics.engine, "health_metrics", None)
    if health is not None:
        typer.echo(f"  sent: {health['metrics_sent']}")
        typer.echo(f"  dropped: {health['metrics_dropped']}")
