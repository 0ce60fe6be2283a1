from __future__ import annotations

import os
from copy import deepcopy
from typing import Any, Hashable, Iterable

__all__ = [
    "_safe_copy",
    "_redact_for_log",
    "_env_float",
]

_SECRET_MARKERS = ("secret", "password", "token", "key", "passwd", "api_key", "credential")


def _safe_copy(value: Any) -> Any:
    try:
        return deepcopy(value)
    except Exception as e:
        raise ValueError("Value is not deepcopy-able") from e


def _redact_for_log(key: Iterable[Hashable], value: Any) -> str:
    """
    Redact likely secrets in logs, judged by the last string identifier of the key.
    """
    names = [s for s in key if isinstance(s, str)]
    lowered = names[-1].lower() if names else ""
    if any(s in lowered for s in _SECRET_MARKERS):
        return "***"
    try:
        return repr(value)
    except Exception:
        return "<unreprable>"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"Environment variable {name} must be a number, got {raw!r}") from e
