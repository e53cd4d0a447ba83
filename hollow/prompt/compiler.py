"""
Prompt Compiler

Renders a FunctionSpec's template plus call arguments into a provider-ready
CompiledPrompt. Literal segments are inserted verbatim; argument values are
escaped so they cannot open template or JSON fragments of their own.
"""

from __future__ import annotations

import json
import math
from typing import Any, Dict, List, Mapping

from hollow.errors import MissingArgument, UnsupportedArgumentType
from hollow.models.enums import SchemaKind, SegmentType
from hollow.models.function_spec import FunctionSpec, OutputSchema
from hollow.models.invocation import CompiledPrompt

MAX_ARGUMENT_LENGTH = 4000

_ESCAPES = {
    "\\": "\\\\",
    "{": "\\{",
    "}": "\\}",
    "[": "\\[",
    "]": "\\]",
    '"': '\\"',
    "`": "\\`",
    "<": "\\<",
    ">": "\\>",
    "\n": "\\n",
    "\r": "\\r",
}


def escape_argument(text: str) -> str:
    return "".join(_ESCAPES.get(ch, ch) for ch in text)


def render_argument(name: str, value: Any) -> str:
    """Return the literal text form of *value*, escaped for embedding."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise UnsupportedArgumentType(name, "non-finite float")
        return repr(value)
    if isinstance(value, str):
        if len(value) > MAX_ARGUMENT_LENGTH:
            raise UnsupportedArgumentType(
                name, f"string longer than {MAX_ARGUMENT_LENGTH} characters"
            )
        return escape_argument(value)
    raise UnsupportedArgumentType(
        name, f"{type(value).__name__} values must be serialized by the caller"
    )


def _schema_shape(schema: OutputSchema) -> Any:
    if schema.kind == SchemaKind.RECORD:
        return {name: _schema_shape(sub) for name, sub in schema.properties.items()}
    if schema.kind == SchemaKind.LIST:
        assert schema.items is not None
        return [_schema_shape(schema.items)]
    if schema.kind == SchemaKind.ENUM:
        return " | ".join(schema.values)
    return f"<{schema.kind.value}>"


def render_schema_hint(schema: OutputSchema) -> str:
    """Compact JSON shape the model is asked to answer with."""
    shape = _schema_shape(schema)
    if schema.kind not in (SchemaKind.RECORD, SchemaKind.LIST):
        shape = {"answer": shape}
    return "Respond with JSON only, shaped like: " + json.dumps(shape, separators=(", ", ": "))


def compile_prompt(spec: FunctionSpec, arguments: Mapping[str, Any]) -> CompiledPrompt:
    """Render *spec* with *arguments*.

    Raises:
        MissingArgument: a placeholder has no value (all missing names are reported).
        UnsupportedArgumentType: a value has no embeddable text form.
    """
    missing = [name for name in spec.placeholders if name not in arguments]
    if missing:
        raise MissingArgument(missing)

    rendered: Dict[str, str] = {
        name: render_argument(name, arguments[name]) for name in spec.placeholders
    }
    parts: List[str] = []
    for segment in spec.prompt_template:
        if segment.type == SegmentType.LITERAL:
            parts.append(segment.value)
        else:
            parts.append(rendered[segment.value])
    text = "".join(parts)

    literal_text = "".join(
        s.value for s in spec.prompt_template if s.type == SegmentType.LITERAL
    )
    if spec.append_schema_hint and "json" not in literal_text.lower():
        text = f"{text.rstrip()}\n\n{render_schema_hint(spec.output_schema)}"

    return CompiledPrompt(
        text=text,
        max_tokens=spec.max_tokens,
        temperature=spec.temperature,
    )
