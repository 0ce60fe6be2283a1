from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

logger = logging.getLogger("config_model.typecheck")
logger.addHandler(logging.NullHandler())

__all__ = ["get_adapter", "type_error", "typecheck", "type_name"]


@lru_cache(maxsize=512)
def _cached_adapter(type_: Any) -> TypeAdapter:
    return TypeAdapter(type_)


def get_adapter(type_: Any) -> TypeAdapter:
    try:
        hash(type_)
    except TypeError:
        return TypeAdapter(type_)
    return _cached_adapter(type_)


def type_name(type_: Any) -> str:
    if isinstance(type_, type):
        return type_.__name__
    return repr(type_).replace("typing.", "")


def type_error(type_: Any) -> Optional[str]:
    """Return why ``type_`` is not usable as a declared type, or None."""
    try:
        get_adapter(type_)
    except Exception as e:
        logger.debug("Rejected type %r: %s", type_, e)
        return f"{type_!r} is not a valid type: {e}"
    return None


def typecheck(type_: Any, value: Any) -> Optional[str]:
    """Strictly check ``value`` against ``type_``; return an error message or None.

    No coercion happens: ``"8080"`` is not an ``int``.
    """
    try:
        adapter = get_adapter(type_)
    except Exception as e:
        return f"Invalid type {type_!r}: {e}"
    try:
        adapter.validate_python(value, strict=True)
    except ValidationError as e:
        details = "; ".join(err["msg"] for err in e.errors())
        return f"Expected {type_name(type_)}, got {value!r} ({details})"
    return None
