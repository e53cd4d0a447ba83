"""
Schema Validator

Walks an OutputSchema over a decoded payload and returns the typed value.
Models frequently emit stringified scalars ("true", "42"), so primitive kinds
coerce from text where the meaning is unambiguous.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping

from hollow.errors import FieldTypeMismatch, MissingField, SchemaViolation
from hollow.models.enums import SchemaKind
from hollow.models.function_spec import OutputSchema

_TRUE_WORDS = {"true", "yes"}
_FALSE_WORDS = {"false", "no"}

_PRIMITIVE_KINDS = {
    SchemaKind.BOOLEAN,
    SchemaKind.NUMBER,
    SchemaKind.INTEGER,
    SchemaKind.STRING,
    SchemaKind.ENUM,
}


def validate(payload: Any, schema: OutputSchema) -> Any:
    """Return *payload* coerced to *schema*, or raise a SchemaViolation.

    A primitive schema applied to a single-field record validates that field's
    value, so ``{"wordInSentence": "true"}`` against ``boolean`` gives ``True``.
    Extra record fields are ignored. A record schema always returns a record:
    declare a primitive schema to get the bare value back.
    """
    if (
        schema.kind in _PRIMITIVE_KINDS
        and isinstance(payload, Mapping)
        and len(payload) == 1
    ):
        (field_name, inner), = payload.items()
        return _validate_node(inner, schema, str(field_name))
    return _validate_node(payload, schema, "")


def _validate_node(value: Any, schema: OutputSchema, path: str) -> Any:
    kind = schema.kind
    if kind == SchemaKind.BOOLEAN:
        return _as_boolean(value, path)
    if kind == SchemaKind.NUMBER:
        return _as_number(value, path)
    if kind == SchemaKind.INTEGER:
        return _as_integer(value, path)
    if kind == SchemaKind.STRING:
        if isinstance(value, str):
            return value
        raise FieldTypeMismatch(path, "string", value)
    if kind == SchemaKind.ENUM:
        return _as_enum(value, schema, path)
    if kind == SchemaKind.RECORD:
        return _as_record(value, schema, path)
    if kind == SchemaKind.LIST:
        return _as_list(value, schema, path)
    raise SchemaViolation(f"Unsupported schema kind {kind!r}", path=path)


def _as_boolean(value: Any, path: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    elif isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    raise FieldTypeMismatch(path, "boolean", value)


def _as_number(value: Any, path: str) -> float:
    if isinstance(value, bool):
        raise FieldTypeMismatch(path, "number", value)
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise FieldTypeMismatch(path, "number", value) from None
    else:
        raise FieldTypeMismatch(path, "number", value)
    if isinstance(number, float) and not math.isfinite(number):
        raise FieldTypeMismatch(path, "finite number", value)
    return number


def _as_integer(value: Any, path: str) -> int:
    if isinstance(value, bool):
        raise FieldTypeMismatch(path, "integer", value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                raise FieldTypeMismatch(path, "integer", value) from None
            if number.is_integer():
                return int(number)
    raise FieldTypeMismatch(path, "integer", value)


def _as_enum(value: Any, schema: OutputSchema, path: str) -> str:
    expected = f"one of {list(schema.values)}"
    if not isinstance(value, str):
        raise FieldTypeMismatch(path, expected, value)
    if value in schema.values:
        return value
    folded = value.strip().casefold()
    for allowed in schema.values:
        if allowed.casefold() == folded:
            return allowed
    raise FieldTypeMismatch(path, expected, value)


def _as_record(value: Any, schema: OutputSchema, path: str) -> Dict[str, Any]:
    if not isinstance(value, Mapping):
        raise FieldTypeMismatch(path, "record", value)
    record: Dict[str, Any] = {}
    for name, field_schema in schema.properties.items():
        field_path = f"{path}.{name}" if path else name
        if name not in value or value[name] is None:
            if field_schema.optional:
                record[name] = None
                continue
            raise MissingField(field_path)
        record[name] = _validate_node(value[name], field_schema, field_path)
    return record


def _as_list(value: Any, schema: OutputSchema, path: str) -> List[Any]:
    if not isinstance(value, list):
        raise FieldTypeMismatch(path, "list", value)
    assert schema.items is not None
    return [
        _validate_node(item, schema.items, f"{path}[{index}]")
        for index, item in enumerate(value)
    ]
