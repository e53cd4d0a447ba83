"""Hollow functions: typed function signatures backed by a language-model provider."""

from hollow.cache.invocation_cache import InvocationCache, make_key
from hollow.errors import HollowError, HollowFunctionError
from hollow.llm.base_client import InferenceProvider
from hollow.models import (
    EngineSettings,
    ErrorKind,
    FunctionSpec,
    InvocationOptions,
    InvocationResult,
    InvocationStatus,
    OutputSchema,
    RawResponse,
    RetryPolicy,
)
from hollow.runtime import FunctionRegistry, HollowFunction, HollowRuntime

__version__ = "0.1.0"

__all__ = [
    "EngineSettings",
    "ErrorKind",
    "FunctionRegistry",
    "FunctionSpec",
    "HollowError",
    "HollowFunction",
    "HollowFunctionError",
    "HollowRuntime",
    "InferenceProvider",
    "InvocationCache",
    "InvocationOptions",
    "InvocationResult",
    "InvocationStatus",
    "OutputSchema",
    "RawResponse",
    "RetryPolicy",
    "make_key",
]
