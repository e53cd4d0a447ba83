"""Configuration models loaded from YAML."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RetryPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=3, ge=1, description="Total dispatch attempts, first call included.")
    base_delay_ms: int = Field(default=500, ge=0)
    max_delay_ms: int = Field(default=8000, ge=0)
    per_attempt_timeout_ms: int = Field(default=30000, gt=0)
    jitter: bool = True

    @model_validator(mode="after")
    def _check_delays(self) -> "RetryPolicy":
        if self.max_delay_ms < self.base_delay_ms:
            raise ValueError("max_delay_ms must be >= base_delay_ms")
        return self

    @property
    def base_delay_s(self) -> float:
        return self.base_delay_ms / 1000.0

    @property
    def max_delay_s(self) -> float:
        return self.max_delay_ms / 1000.0

    @property
    def per_attempt_timeout_s(self) -> float:
        return self.per_attempt_timeout_ms / 1000.0


class CacheSettings(BaseModel):
    enabled: bool = True
    max_entries: int = Field(default=1024, ge=1)
    default_ttl_ms: int = Field(default=600_000, ge=0)


class EngineSettings(BaseModel):
    default_retry: RetryPolicy = Field(default_factory=RetryPolicy)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    coalesce_inflight: bool = Field(
        default=True,
        description="Let concurrent invocations with the same cache key share one provider call.",
    )
    audit_log_dir: Optional[str] = Field(
        default=None,
        description="Directory for the invocations.jsonl audit trail; None disables it.",
    )
