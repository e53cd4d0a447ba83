"""Model exports for the invocation pipeline."""

from hollow.models.config import CacheSettings, EngineSettings, RetryPolicy
from hollow.models.enums import (
    ErrorKind,
    InvocationStatus,
    RetryState,
    SchemaKind,
    SegmentType,
)
from hollow.models.function_spec import (
    FunctionSpec,
    OutputSchema,
    PromptSegment,
    parse_template,
)
from hollow.models.invocation import (
    CacheEntry,
    CompiledPrompt,
    InvocationError,
    InvocationOptions,
    InvocationRequest,
    InvocationResult,
    RawResponse,
    truncate_snippet,
)

__all__ = [
    "CacheEntry",
    "CacheSettings",
    "CompiledPrompt",
    "EngineSettings",
    "ErrorKind",
    "FunctionSpec",
    "InvocationError",
    "InvocationOptions",
    "InvocationRequest",
    "InvocationResult",
    "InvocationStatus",
    "OutputSchema",
    "PromptSegment",
    "RawResponse",
    "RetryPolicy",
    "RetryState",
    "SchemaKind",
    "SegmentType",
    "parse_template",
    "truncate_snippet",
]
