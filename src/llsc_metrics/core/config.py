# src/llsc_metrics/core/config.py
"""
Settings schema and loading for llsc-metrics.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.

Example YAML:
    backend: influx
    category: emulator
    batch_size: 50
    flush_interval_ms: 1000
    influx:
      url: https://influx.example.com/api/v1/push/influx/write
      auth_scheme: bearer
      user: "123456"
      token: ${INFLUX_TOKEN}
"""

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from llsc_metrics.contracts.enums import BackendName

DEFAULT_DEBUG_LOG_PATH = "llsc-metrics.log"
DEFAULT_BATCH_SIZE = 50
DEFAULT_FLUSH_INTERVAL_MS = 1000

# Environment variable prefix for overrides (LLSC_METRICS_INFLUX__URL, ...)
ENVVAR_PREFIX = "LLSC_METRICS"


class InfluxSettings(BaseModel):
    """Line-protocol endpoint and credentials.

    Example YAML:
        influx:
          url: https://influx.example.com/write
          auth_scheme: basic
          user: emulator
          password: ${INFLUX_PASSWORD}
    """

    model_config = {"frozen": True}

    url: str = Field(description="Write endpoint receiving line-protocol POSTs")
    auth_scheme: Literal["basic", "bearer"] = Field(
        default="basic",
        description="Authorization header scheme",
    )
    user: str = Field(default="", description="User (basic) or user id (bearer)")
    password: str = Field(default="", description="Password for basic auth")
    token: str = Field(default="", description="Token for bearer auth")
    timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Per-push timeout; None waits indefinitely",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """URL must be an absolute http(s) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"url must start with http:// or https://, got {v!r}")
        return v

    @model_validator(mode="after")
    def validate_credentials(self) -> "InfluxSettings":
        """Bearer auth without a token would send an empty credential."""
        if self.auth_scheme == "bearer" and not self.token:
            raise ValueError("auth_scheme 'bearer' requires a token")
        return self


class MetricsSettings(BaseModel):
    """Top-level settings selecting and configuring the recording engine."""

    model_config = {"frozen": True}

    backend: str = Field(
        default=BackendName.NOOP.value,
        min_length=1,
        description="Recording engine name (noop, debug, influx or a plugin engine)",
    )
    category: str = Field(
        default="emulator",
        min_length=1,
        description="Measurement name used for exported metrics",
    )
    batch_size: int = Field(
        default=DEFAULT_BATCH_SIZE,
        ge=1,
        description="Buffered metrics that trigger an eager flush",
    )
    flush_interval_ms: int = Field(
        default=DEFAULT_FLUSH_INTERVAL_MS,
        ge=1,
        description="Background flush period in milliseconds",
    )
    debug_log_path: str = Field(
        default=DEFAULT_DEBUG_LOG_PATH,
        min_length=1,
        description="File written by the debug engine (truncated on start)",
    )
    influx: InfluxSettings | None = Field(
        default=None,
        description="Endpoint settings, required for the influx backend",
    )

    @model_validator(mode="after")
    def validate_backend_requirements(self) -> "MetricsSettings":
        """The influx backend cannot run without endpoint settings."""
        if self.backend == BackendName.INFLUX and self.influx is None:
            raise ValueError("backend 'influx' requires an 'influx' section")
        return self

    @property
    def flush_interval_seconds(self) -> float:
        """Flush interval in seconds."""
        return self.flush_interval_ms / 1000.0


# ${VAR} or ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _substitute_env_var(match: re.Match[str]) -> str:
    name, default = match.group(1), match.group(2)
    value = os.environ.get(name, default)
    # Unresolved references stay verbatim so validation reports them
    return match.group(0) if value is None else value


def _normalize(value: Any) -> Any:
    """Lowercase mapping keys and expand env var references, recursively.

    Dynaconf upper-cases top-level keys and env-sourced keys; the schema
    uses lowercase field names.
    """
    if isinstance(value, str):
        return _ENV_VAR_PATTERN.sub(_substitute_env_var, value)
    if isinstance(value, dict):
        return {str(k).lower(): _normalize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_normalize(item) for item in value]
    return value


def load_settings(config_path: Path) -> MetricsSettings:
    """Load settings from YAML file with environment variable overrides.

    Precedence:
    1. Environment variables (LLSC_METRICS_*) - highest priority
    2. Config file
    3. Defaults from the Pydantic schema - lowest priority

    Environment variable format: LLSC_METRICS_INFLUX__URL for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated MetricsSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix=ENVVAR_PREFIX,
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k: v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    return MetricsSettings(**_normalize(raw_config))
