# src/llsc_metrics/contracts/config.py
"""Runtime configuration for the line-protocol backend.

``BackendConfig`` is the immutable counterpart of ``InfluxSettings``: the
settings model is what the YAML file validates into, this dataclass is what
the client holds for its whole lifetime.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from llsc_metrics.contracts.enums import AuthScheme

if TYPE_CHECKING:
    from llsc_metrics.core.config import InfluxSettings


@dataclass(frozen=True, slots=True)
class BackendConfig:
    """Endpoint and credential material for line-protocol pushes.

    Field Origins (all from InfluxSettings):
        - url: InfluxSettings.url
        - auth_scheme: InfluxSettings.auth_scheme (parsed to enum)
        - user, password, token: direct
        - timeout_seconds: InfluxSettings.timeout_seconds (None = no timeout)
    """

    url: str
    auth_scheme: AuthScheme = AuthScheme.BASIC
    user: str = ""
    password: str = ""
    token: str = ""
    timeout_seconds: float | None = None

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("backend url cannot be empty")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0 or None, got {self.timeout_seconds}")

    def __repr__(self) -> str:
        # Credentials stay out of logs and tracebacks
        return f"BackendConfig(url={self.url!r}, auth_scheme={self.auth_scheme.value!r}, user={self.user!r})"

    @classmethod
    def from_settings(cls, settings: InfluxSettings) -> BackendConfig:
        """Factory from the validated InfluxSettings model."""
        return cls(
            url=settings.url,
            auth_scheme=AuthScheme(settings.auth_scheme.lower()),
            user=settings.user,
            password=settings.password,
            token=settings.token,
            timeout_seconds=settings.timeout_seconds,
        )
