"""Invocation runtime: registry, engine, and bound function handles."""

from hollow.runtime.engine import HollowRuntime
from hollow.runtime.hollow_function import HollowFunction
from hollow.runtime.registry import FunctionRegistry

__all__ = ["FunctionRegistry", "HollowFunction", "HollowRuntime"]
