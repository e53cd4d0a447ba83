"""Enum definitions shared across the invocation pipeline."""

from enum import Enum


class ErrorKind(str, Enum):
    MISSING_ARGUMENT = "MissingArgument"
    UNSUPPORTED_ARGUMENT_TYPE = "UnsupportedArgumentType"
    DUPLICATE_NAME = "DuplicateName"
    UNKNOWN_FUNCTION = "UnknownFunction"
    TRANSPORT_ERROR = "TransportError"
    RATE_LIMITED = "RateLimited"
    DECODE_ERROR = "DecodeError"
    SCHEMA_VIOLATION = "SchemaViolation"
    PROVIDER_REJECTED = "ProviderRejected"
    PROVIDER_UNAVAILABLE = "ProviderUnavailable"
    CANCELLED = "Cancelled"
    TIMEOUT = "Timeout"


class InvocationStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class SchemaKind(str, Enum):
    BOOLEAN = "boolean"
    NUMBER = "number"
    INTEGER = "integer"
    STRING = "string"
    ENUM = "enum"
    RECORD = "record"
    LIST = "list"


class SegmentType(str, Enum):
    LITERAL = "literal"
    PLACEHOLDER = "placeholder"


class RetryState(str, Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
