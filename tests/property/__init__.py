# tests/property/__init__.py
"""Property-based tests for llsc-metrics.

Property-based testing validates invariants that must hold for ALL event
sequences, not just the specific examples we think of.

Test categories:
- metrics/: Counter monotonicity, step-delta clamping, wire-format line counts
"""
