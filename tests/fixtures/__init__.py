# tests/fixtures/__init__.py
"""Shared test doubles for llsc-metrics tests.

Available doubles:
- RecordingEngine: engine capturing every record_* call
- FakeLineProtocolClient: client capturing pushed batches, optionally failing or blocking
"""

from tests.fixtures.metrics import FakeLineProtocolClient, RecordingEngine

__all__ = [
    "FakeLineProtocolClient",
    "RecordingEngine",
]
