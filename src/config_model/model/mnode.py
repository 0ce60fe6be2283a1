from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, FrozenSet, Hashable, Iterable, Mapping

from config_model.exceptions import ModelCompileError
from config_model.keys import Key, format_key


@dataclass(frozen=True)
class MNode:
    """A declared configuration point.

    ``metatypes`` tag which validators apply, ``metaparameters`` carry the
    metatype specific settings (``type``, ``default``, ``default_ref``,
    ``key_elements``, ``oneliner``...) and ``children`` is a nested raw
    namespace. Compiled nodes never keep their children.
    """

    metatypes: FrozenSet[Hashable] = frozenset()
    metaparameters: Mapping[str, Any] = field(default_factory=dict)
    children: Mapping[Hashable, Any] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        if isinstance(self.metatypes, (str, bytes)):
            raise TypeError(f"metatypes must be a collection of tags, got {self.metatypes!r}")
        object.__setattr__(self, "metatypes", frozenset(self.metatypes))
        object.__setattr__(self, "metaparameters", MappingProxyType(dict(self.metaparameters)))
        if not isinstance(self.children, Mapping):
            raise TypeError(f"children must be a namespace mapping, got {type(self.children)}")

    @classmethod
    def coerce(cls, value: Any, key: Key = ()) -> "MNode":
        """Build a node from an ``MNode`` or a ``(metatypes, metaparameters[, children])`` tuple."""
        if isinstance(value, MNode):
            return value
        if isinstance(value, tuple) and len(value) in (2, 3):
            try:
                return cls(*value)
            except TypeError as e:
                raise ModelCompileError([f"{format_key(key)}: invalid node declaration: {e}"]) from e
        raise ModelCompileError(
            [f"{format_key(key)}: expected a node or a namespace, got {type(value).__name__}"]
        )

    def has_metatype(self, metatype: Hashable) -> bool:
        return metatype in self.metatypes

    def get(self, name: str, default: Any = None) -> Any:
        return self.metaparameters.get(name, default)

    def __contains__(self, name: str) -> bool:
        return name in self.metaparameters

    def cooked(self) -> "MNode":
        if not self.children:
            return self
        return MNode(self.metatypes, self.metaparameters)


def node(metatypes: Iterable[Hashable], children: Mapping[Hashable, Any] | None = None, **metaparameters: Any) -> MNode:
    """Shorthand: ``node(["value"], type=int, default=30)``."""
    if isinstance(metatypes, (str, bytes)):
        raise TypeError(f"metatypes must be a collection of tags, got {metatypes!r}")
    return MNode(frozenset(metatypes), metaparameters, children or {})
