# src/llsc_metrics/metrics/line_protocol.py
"""Line-protocol encoding and the HTTP push client.

Wire format (one metric per line, lines joined by newlines):

    measurement[,tag=value,...] field=value[u][,field2=value2,...]

Tags and fields are emitted sorted by key so a given batch always encodes
to the same payload.
"""

from __future__ import annotations

import base64
from collections.abc import Sequence

import httpx
import structlog

from llsc_metrics.contracts.config import BackendConfig
from llsc_metrics.contracts.enums import AuthScheme
from llsc_metrics.contracts.metric import FieldValue, Metric
from llsc_metrics.metrics.errors import MetricsPushError

logger = structlog.get_logger(__name__)

_MEASUREMENT_ESCAPES = str.maketrans({",": r"\,", " ": r"\ "})
_KEY_ESCAPES = str.maketrans({",": r"\,", "=": r"\=", " ": r"\ "})


def _escape_key(value: str) -> str:
    return value.translate(_KEY_ESCAPES)


def _format_field_value(value: FieldValue, *, unsigned: bool) -> str:
    """Format a field value.

    bool is checked before int since bool is an int subclass.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        # Metric rejects negative unsigned values at construction
        return f"{value}u" if unsigned else str(value)
    return repr(float(value))


def encode_metric(metric: Metric) -> str:
    """Encode a single metric as one line (no trailing newline).

    Examples:
        >>> encode_metric(Metric("a", 11))
        'a metric=11'
        >>> encode_metric(Metric("a", 11, tags={"t1": "x"}))
        'a,t1=x metric=11'
    """
    head = metric.measurement.translate(_MEASUREMENT_ESCAPES)
    if metric.tags:
        tags = ",".join(f"{_escape_key(k)}={_escape_key(v)}" for k, v in sorted(metric.tags.items()))
        head = f"{head},{tags}"
    fields = ",".join(
        f"{_escape_key(k)}={_format_field_value(v, unsigned=metric.unsigned)}" for k, v in sorted(metric.fields.items())
    )
    return f"{head} {fields}"


def encode_batch(batch: Sequence[Metric]) -> str:
    """Encode a batch as newline-separated lines."""
    return "\n".join(encode_metric(m) for m in batch)


def authorization_header(config: BackendConfig) -> str:
    """Build the Authorization header value for the configured scheme."""
    if config.auth_scheme == AuthScheme.BEARER:
        credential = f"{config.user}:{config.token}" if config.user else config.token
        return f"Bearer {credential}"
    raw = f"{config.user}:{config.password}".encode()
    return "Basic " + base64.b64encode(raw).decode("ascii")


class LineProtocolClient:
    """Pushes batches of metrics to a line-protocol write endpoint.

    One push is one POST. There is no retry: callers treat any
    MetricsPushError as terminal for that batch.

    Thread Safety:
        Holds only immutable configuration and an httpx.Client (itself
        thread-safe), so independent engines may share one client.

    Example:
        client = LineProtocolClient(BackendConfig(url="https://influx.example.com/write"))
        client.push([Metric("a", 11)])
        client.close()
    """

    def __init__(
        self,
        config: BackendConfig,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Endpoint and credentials (immutable)
            transport: Optional httpx transport (tests, custom TLS setups)
        """
        self._config = config
        self._auth_header = authorization_header(config)
        # timeout=None means a hung endpoint blocks push() indefinitely
        self._client = httpx.Client(timeout=config.timeout_seconds, transport=transport)
        self._closed = False

    def push(self, batch: Sequence[Metric]) -> None:
        """Encode and POST a batch.

        Args:
            batch: Metrics to send. An empty batch sends nothing.

        Raises:
            MetricsPushError: On transport failure or a status outside [200, 300)
        """
        if not batch:
            return

        payload = encode_batch(batch)
        try:
            response = self._client.post(
                self._config.url,
                content=payload.encode("utf-8"),
                headers={
                    "Content-Type": "text/plain",
                    "Authorization": self._auth_header,
                },
            )
        except httpx.HTTPError as e:
            raise MetricsPushError(f"push to {self._config.url} failed: {e}") from e

        if response.status_code < 200 or response.status_code >= 300:
            raise MetricsPushError(
                f"received non-2xx response: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        logger.debug("metrics_pushed", metric_count=len(batch), status_code=response.status_code)

    def close(self) -> None:
        """Close pooled connections. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._client.close()
