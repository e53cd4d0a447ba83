"""Observability helpers for hollow function invocations."""

from hollow.observability.invocation_metrics import FunctionMetrics, InvocationMetrics

__all__ = ["FunctionMetrics", "InvocationMetrics"]
