"""YAML and env loader for engine settings and hollow function declarations."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Dict, List

import yaml
from dotenv import load_dotenv

from hollow.models import EngineSettings, FunctionSpec, RetryPolicy

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")
_CAMEL_PATTERN = re.compile(r"(?<!^)(?=[A-Z])")

# Flat retry options accepted on a function declaration, folded into RetryPolicy.
_RETRY_KEYS = ("max_attempts", "base_delay_ms", "max_delay_ms", "per_attempt_timeout_ms", "jitter")

REQUIRED_ENV_KEYS = ("GEMINI_API_KEY",)


def _read_yaml(path: str) -> Any:
    resolved = Path(path)
    if not resolved.exists():
        raise FileNotFoundError(f"Missing config file: {path}")
    with resolved.open("r", encoding="utf-8") as file_obj:
        return yaml.safe_load(file_obj)


def substitute_env_vars(value: Any) -> Any:
    """Recursively replace ${VAR_NAME} placeholders with environment values.

    Unset variables are left as-is so the failure shows up at validation time.
    """
    if isinstance(value, str):
        return _ENV_PATTERN.sub(lambda m: os.getenv(m.group(1), m.group(0)), value)
    if isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [substitute_env_vars(item) for item in value]
    return value


def load_settings(path: str = "config/engine.yaml") -> EngineSettings:
    load_dotenv()
    loaded = _read_yaml(path) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Expected object at root of YAML file: {path}")
    return EngineSettings.model_validate(substitute_env_vars(loaded))


def build_function_spec(raw: Dict[str, Any], default_retry: RetryPolicy | None = None) -> FunctionSpec:
    """Turn one declarative entry into a FunctionSpec.

    Keys may be snake_case or camelCase (maxAttempts, cacheTtlMs, ...). Flat
    retry keys override *default_retry*.
    """
    data = {_CAMEL_PATTERN.sub("_", k).lower(): v for k, v in raw.items()}
    retry_data: Dict[str, Any] = (default_retry or RetryPolicy()).model_dump()
    retry_data.update(data.pop("retry", None) or {})
    for key in _RETRY_KEYS:
        if key in data:
            retry_data[key] = data.pop(key)
    data["retry"] = RetryPolicy.model_validate(retry_data)
    return FunctionSpec.model_validate(data)


def load_function_specs(
    path: str = "config/functions.yaml",
    settings: EngineSettings | None = None,
) -> List[FunctionSpec]:
    """Load hollow function declarations.

    The file holds either a list of declarations or ``{"functions": [...]}``.
    Duplicate names are rejected here so the failure points at the file.
    """
    load_dotenv()
    loaded = _read_yaml(path) or []
    if isinstance(loaded, dict):
        loaded = loaded.get("functions", [])
    if not isinstance(loaded, list):
        raise ValueError(f"Expected a list of functions in YAML file: {path}")

    default_retry = settings.default_retry if settings else None
    specs: List[FunctionSpec] = []
    seen: set[str] = set()
    for entry in substitute_env_vars(loaded):
        if not isinstance(entry, dict):
            raise ValueError(f"Each function declaration must be an object: {entry!r}")
        spec = build_function_spec(entry, default_retry)
        if spec.name in seen:
            raise ValueError(f"Duplicate function name {spec.name!r} in {path}")
        seen.add(spec.name)
        specs.append(spec)
    return specs


def validate_secret_env(required: tuple[str, ...] = REQUIRED_ENV_KEYS) -> list[str]:
    """Return list of missing required env var names."""
    load_dotenv()
    return [key for key in required if not os.getenv(key)]
