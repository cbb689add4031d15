"""
llsc-metrics: counters and export for emulator LL/SC and scheduling events.

The emulator calls a small tracking facade on every relevant step; the
facade keeps monotonic counters and forwards them to a recording engine
(no-op, local debug log, or a batching InfluxDB line-protocol exporter).
"""

__version__ = "0.1.0"
