from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Hashable, Iterable, List, Tuple

__all__ = [
    "CHILDREN",
    "Child",
    "Key",
    "Marker",
    "format_key",
    "full_split_key",
    "get_model_key",
    "is_reserved",
    "match",
    "namespace",
    "sort_key",
    "split_key",
    "to_key",
]

Key = Tuple[Hashable, ...]


class Marker(Enum):
    """Reserved key segments. Never equal to a user node identifier."""

    CHILDREN = "$children"

    def __repr__(self) -> str:
        return self.value


CHILDREN = Marker.CHILDREN


@dataclass(frozen=True)
class Child:
    """Concrete identifier of one element of a repeated node.

    Takes the place of ``CHILDREN`` in instance keys:
    ``("hosts", Child("db"), "port")`` is an instance of
    ``("hosts", CHILDREN, "port")``.
    """

    id: Hashable

    def __repr__(self) -> str:
        return f"{{{self.id!r}}}"


def to_key(key: Iterable[Hashable]) -> Key:
    if isinstance(key, tuple):
        return key
    if isinstance(key, (str, bytes)):
        raise TypeError(f"Key must be a sequence of identifiers, got {key!r}")
    return tuple(key)


def is_reserved(segment: Any) -> bool:
    return segment is CHILDREN or isinstance(segment, Child)


def get_model_key(key: Iterable[Hashable]) -> Key:
    """Project an instance key onto the model key that declares it."""
    return tuple(CHILDREN if isinstance(s, Child) else s for s in key)


def match(model_key: Iterable[Hashable], instance_key: Iterable[Hashable]) -> bool:
    return get_model_key(instance_key) == to_key(model_key)


def split_key(key: Iterable[Hashable]) -> Tuple[Key, Key]:
    """Split a model key after its last ``CHILDREN`` segment.

    ``(a, $children, b, $children, c)`` splits into the base
    ``(a, $children, b, $children)`` and the required part ``(c,)``. Every
    instance of the node is an instance of the base followed by the
    required part. A key without ``CHILDREN`` has an empty base.
    """
    key = to_key(key)
    for idx in range(len(key) - 1, -1, -1):
        if key[idx] is CHILDREN:
            return key[: idx + 1], key[idx + 1 :]
    return (), key


def full_split_key(key: Iterable[Hashable]) -> List[Key]:
    """Split a key into chunks, each ending with a ``CHILDREN`` or ``Child`` segment."""
    chunks: List[Key] = []
    current: List[Hashable] = []
    for segment in to_key(key):
        current.append(segment)
        if is_reserved(segment):
            chunks.append(tuple(current))
            current = []
    chunks.append(tuple(current))
    return chunks


def namespace(prefix: Iterable[Hashable], module: Dict[Hashable, Any]) -> Dict[Hashable, Any]:
    """Nest ``module`` under ``prefix``: ``namespace(["a", "b"], m) == {"a": {"b": m}}``."""
    for node_id in reversed(list(prefix)):
        module = {node_id: module}
    return module


def _segment_sort_key(segment: Any) -> Tuple[Any, ...]:
    if segment is CHILDREN:
        return (0, "", 0, "")
    if isinstance(segment, bool):
        return (2, "bool", int(segment), "")
    if isinstance(segment, (int, float)):
        return (1, "", segment, "")
    if isinstance(segment, str):
        return (2, "str", 0, segment)
    if isinstance(segment, Child):
        return (4,) + _segment_sort_key(segment.id)
    return (3, type(segment).__name__, 0, repr(segment))


def sort_key(key: Iterable[Hashable]) -> Tuple[Tuple[Any, ...], ...]:
    """Total order over keys whose segments have mixed types."""
    return tuple(_segment_sort_key(s) for s in key)


def format_key(key: Any) -> str:
    try:
        segments = to_key(key)
    except TypeError:
        return repr(key)
    return "[" + ", ".join(s if isinstance(s, str) else repr(s) for s in segments) + "]"
