from __future__ import annotations

import logging
from typing import Dict, Hashable, Iterable, Optional, Tuple

from config_model.exceptions import MetatypeDuplicateError, MetatypeNotFoundError
from config_model.metatypes.builtin import BUILTIN_METATYPES
from config_model.metatypes.protocol import MetatypeProtocol

logger = logging.getLogger("config_model.metatypes")
logger.addHandler(logging.NullHandler())

__all__ = [
    "MetatypeRegistry",
    "REGISTRY",
    "get_metatype",
    "list_metatypes",
    "register_metatype",
]


class MetatypeRegistry:
    """Dispatch table from metatype tag to its implementation."""

    def __init__(self, metatypes: Iterable[MetatypeProtocol] = ()) -> None:
        self._metatypes: Dict[Hashable, MetatypeProtocol] = {}
        for mt in metatypes:
            self.register(mt)
        logger.debug(
            "MetatypeRegistry initialized id=%s metatypes=%d", hex(id(self)), len(self._metatypes)
        )

    @classmethod
    def with_builtins(cls) -> "MetatypeRegistry":
        return cls(BUILTIN_METATYPES)

    def register(self, metatype: MetatypeProtocol, override: bool = False) -> None:
        if not isinstance(metatype, MetatypeProtocol):
            raise TypeError(f"{metatype!r} does not implement validate_node/meta_validate")
        name = metatype.name
        logger.debug("Register called: name=%r override=%s", name, override)
        if not override and name in self._metatypes:
            logger.error("Register failed: %r already registered", name)
            raise MetatypeDuplicateError(f"Metatype {name!r} already registered.")
        if name in self._metatypes:
            logger.debug("Metatype overridden: %r", name)
        self._metatypes[name] = metatype

    def has(self, name: Hashable) -> bool:
        return name in self._metatypes

    def get(self, name: Hashable) -> MetatypeProtocol:
        try:
            return self._metatypes[name]
        except KeyError:
            logger.error(
                "Unknown metatype: %r | registered(sample)=%r",
                name,
                tuple(list(self._metatypes)[:10]),
            )
            raise MetatypeNotFoundError(f"Unknown metatype: {name!r}") from None

    def find(self, name: Hashable) -> Optional[MetatypeProtocol]:
        return self._metatypes.get(name)

    def all_names(self) -> Tuple[Hashable, ...]:
        return tuple(sorted(self._metatypes, key=repr))

    def clear(self) -> None:
        logger.debug("Clearing registry: metatypes=%d", len(self._metatypes))
        self._metatypes.clear()


REGISTRY = MetatypeRegistry.with_builtins()


def register_metatype(metatype: MetatypeProtocol, *, override: bool = False) -> None:
    REGISTRY.register(metatype, override=override)


def get_metatype(name: Hashable) -> MetatypeProtocol:
    return REGISTRY.get(name)


def list_metatypes() -> Tuple[Hashable, ...]:
    return REGISTRY.all_names()
