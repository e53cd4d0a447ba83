"""
Classified exceptions used inside the invocation engine.

Every failure raised by a component carries an ErrorKind and a retryable flag.
HollowRuntime.invoke converts them to Failed results at its boundary.
"""

from __future__ import annotations

from typing import Iterable, Optional

from hollow.models.enums import ErrorKind


class HollowError(Exception):
    """Base class for all engine failures."""

    kind: ErrorKind = ErrorKind.TRANSPORT_ERROR
    retryable: bool = False

    def __init__(self, message: str, *, raw_text: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.raw_text = raw_text


# Caller / programmer errors


class MissingArgument(HollowError):
    kind = ErrorKind.MISSING_ARGUMENT

    def __init__(self, names: Iterable[str]):
        self.names = list(names)
        super().__init__(f"Missing argument(s): {', '.join(self.names)}")


class UnsupportedArgumentType(HollowError):
    kind = ErrorKind.UNSUPPORTED_ARGUMENT_TYPE

    def __init__(self, name: str, reason: str):
        self.name = name
        super().__init__(f"Argument {name!r} cannot be embedded in a prompt: {reason}")


class DuplicateName(HollowError):
    kind = ErrorKind.DUPLICATE_NAME

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Function {name!r} is already registered")


class UnknownFunction(HollowError):
    kind = ErrorKind.UNKNOWN_FUNCTION

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No function registered under {name!r}")


# Transient / model-variance errors


class TransportError(HollowError):
    kind = ErrorKind.TRANSPORT_ERROR
    retryable = True


class RateLimited(HollowError):
    kind = ErrorKind.RATE_LIMITED
    retryable = True

    def __init__(self, message: str, *, retry_after_s: Optional[float] = None, raw_text: Optional[str] = None):
        super().__init__(message, raw_text=raw_text)
        self.retry_after_s = retry_after_s


class DecodeError(HollowError):
    kind = ErrorKind.DECODE_ERROR
    retryable = True


class SchemaViolation(HollowError):
    kind = ErrorKind.SCHEMA_VIOLATION
    retryable = True

    def __init__(self, message: str, *, path: str = "", raw_text: Optional[str] = None):
        self.path = path
        where = f" at {path!r}" if path else ""
        super().__init__(f"{message}{where}", raw_text=raw_text)


class MissingField(SchemaViolation):
    def __init__(self, path: str):
        super().__init__("Missing required field", path=path)


class FieldTypeMismatch(SchemaViolation):
    def __init__(self, path: str, expected: str, actual: object):
        self.expected = expected
        shown = repr(actual)
        if len(shown) > 60:
            shown = shown[:57] + "..."
        super().__init__(f"Expected {expected}, got {shown}", path=path)


# Terminal errors


class ProviderRejected(HollowError):
    kind = ErrorKind.PROVIDER_REJECTED


class ProviderUnavailable(HollowError):
    kind = ErrorKind.PROVIDER_UNAVAILABLE


class InvocationCancelled(HollowError):
    kind = ErrorKind.CANCELLED


class InvocationTimeout(HollowError):
    kind = ErrorKind.TIMEOUT


class HollowFunctionError(Exception):
    """Raised by ``HollowFunction.value`` when the result is Failed."""

    def __init__(self, function_name: str, kind: ErrorKind, message: str):
        super().__init__(f"{function_name} failed ({kind.value}): {message}")
        self.function_name = function_name
        self.kind = kind
