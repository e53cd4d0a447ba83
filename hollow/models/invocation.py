"""Per-call values: compiled prompts, raw provider output, and terminal results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from hollow.models.enums import ErrorKind, InvocationStatus
from hollow.models.function_spec import FunctionSpec

RAW_SNIPPET_LIMIT = 200


def truncate_snippet(text: Optional[str], limit: int = RAW_SNIPPET_LIMIT) -> Optional[str]:
    if text is None:
        return None
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


class CompiledPrompt(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    max_tokens: int
    temperature: float


@dataclass
class InvocationRequest:
    spec: FunctionSpec
    arguments: Dict[str, Any]
    attempt: int = 0


@dataclass(frozen=True)
class RawResponse:
    text: str
    latency_ms: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    model: Optional[str] = None


class InvocationError(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    raw_snippet: Optional[str] = None


class InvocationResult(BaseModel):
    """Terminal value returned by ``HollowRuntime.invoke``.

    Exactly one of ``value``/``error`` is meaningful: a SUCCESS never carries
    an error, a FAILED never carries a value.
    """

    model_config = ConfigDict(frozen=True)

    status: InvocationStatus
    value: Any = None
    error: Optional[InvocationError] = None
    attempts: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_exclusive(self) -> "InvocationResult":
        if self.status == InvocationStatus.SUCCESS and self.error is not None:
            raise ValueError("successful result cannot carry an error")
        if self.status == InvocationStatus.FAILED:
            if self.error is None:
                raise ValueError("failed result requires an error")
            if self.value is not None:
                raise ValueError("failed result cannot carry a value")
        return self

    @classmethod
    def succeeded(cls, value: Any, attempts: int) -> "InvocationResult":
        return cls(status=InvocationStatus.SUCCESS, value=value, attempts=attempts)

    @classmethod
    def failed(
        cls,
        kind: ErrorKind,
        message: str,
        raw_text: Optional[str] = None,
        attempts: int = 0,
    ) -> "InvocationResult":
        return cls(
            status=InvocationStatus.FAILED,
            error=InvocationError(kind=kind, message=message, raw_snippet=truncate_snippet(raw_text)),
            attempts=attempts,
        )

    @property
    def ok(self) -> bool:
        return self.status == InvocationStatus.SUCCESS

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None


@dataclass
class CacheEntry:
    key: str
    result: InvocationResult
    expires_at: float
    spec_name: str = ""
    spec_fingerprint: Optional[str] = None


@dataclass(frozen=True)
class InvocationOptions:
    no_cache: bool = False
    timeout_ms: Optional[int] = None
