# src/llsc_metrics/contracts/metric.py
"""Metric value type exported by recording engines.

A metric is one line of the wire format: a measurement name, an optional
set of tags and at least one numeric field.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field

# Field name used when a metric carries a single scalar value
DEFAULT_FIELD = "metric"

FieldValue = int | float | bool


@dataclass(frozen=True, slots=True)
class Metric:
    """A single point destined for the time-series backend.

    Attributes:
        measurement: Measurement name (first token of the line)
        value: Either a single number, encoded as ``metric=<value>``, or a
            mapping of field name to number
        tags: Tag key/value pairs (indexed dimensions)
        unsigned: Encode integer field values with the ``u`` suffix

    Example:
        >>> Metric("a", 11)
        >>> Metric("emulator", {"rmw_failure_count": 3}, unsigned=True)
    """

    measurement: str
    value: FieldValue | Mapping[str, FieldValue]
    tags: Mapping[str, str] = field(default_factory=dict)
    unsigned: bool = False

    def __post_init__(self) -> None:
        """Reject metrics that cannot be encoded as a line."""
        if not self.measurement:
            raise ValueError("Metric measurement cannot be empty")
        if isinstance(self.value, Mapping) and not self.value:
            raise ValueError(f"Metric '{self.measurement}' must have at least one field")
        for name, value in self.fields.items():
            # The wire format has no representation for NaN or Infinity
            if isinstance(value, float) and not math.isfinite(value):
                raise ValueError(f"Metric '{self.measurement}' field '{name}' is not finite: {value}")
            if self.unsigned and isinstance(value, int) and not isinstance(value, bool) and value < 0:
                raise ValueError(f"Metric '{self.measurement}' unsigned field '{name}' is negative: {value}")

    @property
    def fields(self) -> dict[str, FieldValue]:
        """Field mapping, expanding a scalar value under ``DEFAULT_FIELD``."""
        if isinstance(self.value, Mapping):
            return dict(self.value)
        return {DEFAULT_FIELD: self.value}
