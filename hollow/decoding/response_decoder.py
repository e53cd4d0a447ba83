"""
Response Decoder

Extracts the structured fragment a model was asked to produce from its raw
text. Models add commentary ("Sure! ... Hope that helps!") and code fences
despite instructions, so the decoder scans for the first parseable JSON
object or array instead of parsing the whole reply.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterator, Optional, Tuple

from hollow.errors import DecodeError
from hollow.models.invocation import truncate_snippet

DecodedPayload = Any

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_PY_LITERALS = (
    (re.compile(r"\bTrue\b"), "true"),
    (re.compile(r"\bFalse\b"), "false"),
    (re.compile(r"\bNone\b"), "null"),
)
_SINGLE_QUOTED_RE = re.compile(r"'((?:[^'\\]|\\.)*)'")

_decoder = json.JSONDecoder()


def _strip_fences(text: str) -> str:
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text


def _candidate_starts(text: str) -> Iterator[int]:
    for index, char in enumerate(text):
        if char in "{[":
            yield index


class _TooDeep(Exception):
    """Raised when a fragment nests deeper than the JSON decoder can follow."""


def _scan_fragment(text: str) -> Tuple[bool, Any]:
    """Return (found, value) for the first balanced JSON object/array in *text*."""
    for start in _candidate_starts(text):
        try:
            value, _end = _decoder.raw_decode(text, start)
        except RecursionError as exc:
            raise _TooDeep() from exc
        except ValueError:
            continue
        return True, value
    return False, None


def _lenient(text: str) -> str:
    """Normalise the usual near-JSON slips: Python literals, single quotes, trailing commas."""
    for pattern, replacement in _PY_LITERALS:
        text = pattern.sub(replacement, text)
    text = _SINGLE_QUOTED_RE.sub(lambda m: json.dumps(m.group(1)), text)
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def _bare_scalar(text: str) -> Tuple[bool, Any]:
    try:
        value = json.loads(text)
    except RecursionError as exc:
        raise _TooDeep() from exc
    except ValueError:
        return False, None
    return True, value


def _parse(text: str) -> Tuple[bool, Any]:
    found, value = _scan_fragment(text)
    if found:
        return found, value

    found, value = _scan_fragment(_lenient(text))
    if found:
        return found, value

    return _bare_scalar(text)


def decode(raw_text: Optional[str]) -> DecodedPayload:
    """Parse the outermost structured fragment in *raw_text*.

    Raises:
        DecodeError: the text is empty, nests too deeply, or holds nothing parseable.
    """
    if raw_text is None or not raw_text.strip():
        raise DecodeError("Empty response from provider", raw_text=raw_text)

    text = _strip_fences(raw_text.strip())

    try:
        found, value = _parse(text)
    except _TooDeep:
        raise DecodeError("Response nests too deeply to decode", raw_text=raw_text) from None
    if found:
        return value

    raise DecodeError(
        f"No structured fragment found in response: {truncate_snippet(raw_text, 80)!r}",
        raw_text=raw_text,
    )
