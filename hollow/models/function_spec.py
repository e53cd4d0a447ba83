"""FunctionSpec and the pieces it is made of: prompt segments and output schemas."""

from __future__ import annotations

import hashlib
import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from hollow.models.config import RetryPolicy
from hollow.models.enums import SchemaKind, SegmentType

_PLACEHOLDER_RE = re.compile(r"\{\{|\}\}|\{([A-Za-z_][A-Za-z0-9_]*)\}")


class PromptSegment(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: SegmentType
    value: str

    @classmethod
    def literal(cls, text: str) -> "PromptSegment":
        return cls(type=SegmentType.LITERAL, value=text)

    @classmethod
    def placeholder(cls, name: str) -> "PromptSegment":
        return cls(type=SegmentType.PLACEHOLDER, value=name)


def parse_template(template: str) -> Tuple[PromptSegment, ...]:
    """Split brace syntax into segments.

    ``"Is '{word}' in '{sentence}'?"`` yields literal/placeholder/literal/...
    ``{{`` and ``}}`` stand for literal braces, so JSON examples can be written
    inline. Any other brace is kept verbatim.
    """
    segments: List[PromptSegment] = []
    buffer: List[str] = []
    cursor = 0
    for match in _PLACEHOLDER_RE.finditer(template):
        buffer.append(template[cursor : match.start()])
        cursor = match.end()
        token = match.group(0)
        if token == "{{":
            buffer.append("{")
        elif token == "}}":
            buffer.append("}")
        else:
            if buffer and "".join(buffer):
                segments.append(PromptSegment.literal("".join(buffer)))
            buffer = []
            segments.append(PromptSegment.placeholder(match.group(1)))
    buffer.append(template[cursor:])
    tail = "".join(buffer)
    if tail:
        segments.append(PromptSegment.literal(tail))
    return tuple(segments)


class OutputSchema(BaseModel):
    """Tagged type descriptor walked by the schema validator."""

    model_config = ConfigDict(frozen=True)

    kind: SchemaKind
    values: Tuple[str, ...] = ()
    properties: Dict[str, "OutputSchema"] = Field(default_factory=dict)
    items: Optional["OutputSchema"] = None
    optional: bool = False
    description: Optional[str] = None

    @model_validator(mode="after")
    def _check_shape(self) -> "OutputSchema":
        if self.kind == SchemaKind.ENUM and not self.values:
            raise ValueError("enum schema requires at least one value")
        if self.kind == SchemaKind.RECORD and not self.properties:
            raise ValueError("record schema requires at least one field")
        if self.kind == SchemaKind.LIST and self.items is None:
            raise ValueError("list schema requires an items schema")
        return self

    @classmethod
    def from_dict(cls, raw: Any) -> "OutputSchema":
        """Build a schema from the declarative YAML forms.

        Accepted shapes:
          - ``"boolean"``: a primitive kind name
          - ``["red", "green"]``: enum shorthand
          - ``{"kind": "record", "fields": {...}}``: explicit form
          - ``{"wordInSentence": "boolean"}``: record shorthand
        """
        if isinstance(raw, OutputSchema):
            return raw
        if isinstance(raw, str):
            return cls(kind=SchemaKind(raw))
        if isinstance(raw, (list, tuple)):
            return cls(kind=SchemaKind.ENUM, values=tuple(str(v) for v in raw))
        if not isinstance(raw, dict):
            raise ValueError(f"Cannot build an output schema from {type(raw).__name__}")
        if "kind" not in raw:
            return cls(
                kind=SchemaKind.RECORD,
                properties={name: cls.from_dict(sub) for name, sub in raw.items()},
            )
        kind = SchemaKind(raw["kind"])
        fields = raw.get("fields", raw.get("properties")) or {}
        items = raw.get("items")
        return cls(
            kind=kind,
            values=tuple(str(v) for v in raw.get("values") or ()),
            properties={name: cls.from_dict(sub) for name, sub in fields.items()},
            items=cls.from_dict(items) if items is not None else None,
            optional=bool(raw.get("optional", False)),
            description=raw.get("description"),
        )


class FunctionSpec(BaseModel):
    """Immutable declaration of a hollow function."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    prompt_template: Tuple[PromptSegment, ...]
    output_schema: OutputSchema
    max_tokens: int = Field(default=256, ge=1)
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    timeout_ms: int = Field(default=60_000, gt=0, description="Overall deadline across all attempts.")
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    cache_ttl_ms: int = Field(default=600_000, ge=0)
    cache_enabled: bool = True
    append_schema_hint: bool = True
    description: str = ""

    @field_validator("prompt_template", mode="before")
    @classmethod
    def _coerce_template(cls, value: Any) -> Any:
        if isinstance(value, str):
            return parse_template(value)
        return value

    @field_validator("output_schema", mode="before")
    @classmethod
    def _coerce_schema(cls, value: Any) -> Any:
        return OutputSchema.from_dict(value)

    @property
    def placeholders(self) -> List[str]:
        seen: List[str] = []
        for segment in self.prompt_template:
            if segment.type == SegmentType.PLACEHOLDER and segment.value not in seen:
                seen.append(segment.value)
        return seen

    @property
    def fingerprint(self) -> str:
        """sha256 of the canonical spec; identifies this version of the spec."""
        return hashlib.sha256(self.model_dump_json().encode("utf-8")).hexdigest()
