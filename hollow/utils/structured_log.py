"""Structured logging for a machine-parseable invocation audit trail."""

from __future__ import annotations

import json
from pathlib import Path
from typing import IO, Any, Optional

import structlog
from structlog.processors import JSONRenderer
from structlog.typing import Processor

AUDIT_FILE_NAME = "invocations.jsonl"

_configured = False
_logger: structlog.BoundLogger | None = None
_file_handle: Optional[IO[str]] = None


def configure_run_logging(log_dir: str) -> Path:
    """One-time setup. Writes JSON lines to {log_dir}/invocations.jsonl."""
    global _configured, _logger, _file_handle
    app_log_path = Path(log_dir) / AUDIT_FILE_NAME
    if _configured:
        return app_log_path
    app_log_path.parent.mkdir(parents=True, exist_ok=True)
    _file_handle = open(app_log_path, "a", encoding="utf-8")
    file_handle = _file_handle

    def _file_logger_factory(*args: Any, **kwargs: Any) -> structlog.PrintLogger:
        return structlog.PrintLogger(file_handle)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        JSONRenderer(),
    ]
    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=_file_logger_factory,
        cache_logger_on_first_use=False,
    )
    _configured = True
    _logger = structlog.get_logger()
    return app_log_path


def reset_run_logging() -> None:
    """Close the audit file and return to the unconfigured (no-op) state."""
    global _configured, _logger, _file_handle
    if _file_handle is not None:
        _file_handle.close()
    _file_handle = None
    _logger = None
    _configured = False
    structlog.reset_defaults()


def is_configured() -> bool:
    return _configured


def log_invocation(
    function: str,
    status: str,
    *,
    key: str | None = None,
    error_kind: str | None = None,
    error: str | None = None,
    attempts: int | None = None,
    latency_ms: int | None = None,
    cache_hit: bool = False,
    coalesced: bool = False,
) -> None:
    """Log one completed invocation."""
    payload: dict[str, Any] = {"function": function, "status": status}
    if key is not None:
        payload["key"] = key[:16]
    if error_kind is not None:
        payload["error_kind"] = error_kind
    if error is not None:
        payload["error"] = error if len(error) < 500 else error[:200] + "..."
    if attempts is not None:
        payload["attempts"] = attempts
    if latency_ms is not None:
        payload["latency_ms"] = latency_ms
    if cache_hit:
        payload["cache_hit"] = True
    if coalesced:
        payload["coalesced"] = True
    if _logger is not None:
        _logger.info("invocation", **payload)


def log_attempt(
    function: str,
    attempt: int,
    status: str,
    *,
    error_kind: str | None = None,
    raw_response: str | None = None,
    latency_ms: int | None = None,
    tokens_in: int | None = None,
    tokens_out: int | None = None,
) -> None:
    """Log one provider dispatch attempt."""
    payload: dict[str, Any] = {"function": function, "attempt": attempt, "status": status}
    if error_kind is not None:
        payload["error_kind"] = error_kind
    if raw_response is not None and len(raw_response) < 500:
        payload["raw_response"] = raw_response
    elif raw_response is not None:
        payload["raw_response_preview"] = raw_response[:200] + "..."
    if latency_ms is not None:
        payload["latency_ms"] = latency_ms
    if tokens_in is not None:
        payload["tokens_in"] = tokens_in
    if tokens_out is not None:
        payload["tokens_out"] = tokens_out
    if _logger is not None:
        _logger.info("attempt", **payload)


def load_events_from_jsonl(path: str) -> list[dict[str, Any]]:
    """Read an invocations.jsonl file, skipping lines that fail to parse."""
    result: list[dict[str, Any]] = []
    try:
        with open(path, encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line:
                    continue
                try:
                    result.append(json.loads(line))
                except json.JSONDecodeError:
                    continue
    except OSError:
        pass
    return result
