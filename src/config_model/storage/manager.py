from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Hashable,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Set,
    Tuple,
    TypeVar,
)

from config_model.keys import CHILDREN, Child, Key, sort_key, to_key
from config_model.storage.adaptors import MemoryBackend, StorageBackend
from config_model.storage.patch import RemoveOp, SetOp, normalize_patch

if TYPE_CHECKING:
    from config_model.model import Model

logger = logging.getLogger("config_model.storage")
logger.addHandler(logging.NullHandler())

A = TypeVar("A")
S = TypeVar("S")


class _Missing:
    def __repr__(self) -> str:
        return "<MISSING>"


MISSING: Any = _Missing()


def _prefix_matches(pattern: Key, key: Key) -> bool:
    for p, k in zip(pattern, key):
        if p is CHILDREN:
            if not (k is CHILDREN or isinstance(k, Child)):
                return False
        elif p != k:
            return False
    return True


class Storage:
    """Key/value configuration data over a pluggable backend.

    Keys are tuples of identifiers. The only mutation primitive is
    :meth:`patch`, which the backend applies atomically.
    """

    def __init__(
        self, backend: Optional[StorageBackend] = None, model: Optional["Model"] = None
    ) -> None:
        if backend is None:
            backend = MemoryBackend()
        if not isinstance(backend, StorageBackend):
            raise TypeError(f"{backend!r} does not implement StorageBackend")
        self._backend = backend
        self._model = model

    @classmethod
    def from_mapping(
        cls,
        values: Mapping[Iterable[Hashable], Any],
        backend: Optional[StorageBackend] = None,
        model: Optional["Model"] = None,
    ) -> "Storage":
        storage = cls(backend, model)
        storage.patch([SetOp(to_key(k), v) for k, v in values.items()])
        return storage

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    @property
    def model(self) -> Optional["Model"]:
        return self._model

    def get(self, key: Iterable[Hashable], default: Any = None) -> Any:
        try:
            return self._backend.get(to_key(key))
        except KeyError:
            return default

    def __contains__(self, key: Iterable[Hashable]) -> bool:
        return self.get(key, MISSING) is not MISSING

    def __len__(self) -> int:
        return len(self._backend.keys())

    def keys(self) -> List[Key]:
        return sorted(self._backend.keys(), key=sort_key)

    def items(self) -> List[Tuple[Key, Any]]:
        return sorted(self._backend.items(), key=lambda kv: sort_key(kv[0]))

    def list(self, pattern: Iterable[Hashable]) -> List[Key]:
        """List instance keys matching ``pattern``.

        ``CHILDREN`` segments of the pattern match any concrete child
        identifier (or a stored ``CHILDREN``); other segments, concrete
        ``Child`` identifiers included, must be equal. Every stored key
        whose leading segments match yields that prefix, so
        ``list(("hosts", CHILDREN))`` returns
        ``[("hosts", Child("a")), ("hosts", Child("b"))]`` when values are
        stored under both children.
        """
        pattern = to_key(pattern)
        size = len(pattern)
        found: Set[Key] = set()
        for key in self._backend.keys():
            if len(key) >= size and _prefix_matches(pattern, key):
                found.add(key[:size])
        result = sorted(found, key=sort_key)
        logger.debug("Storage.list pattern=%r -> %d keys", pattern, len(result))
        return result

    def patch(self, patch: Iterable[Any]) -> "Storage":
        ops = normalize_patch(patch)
        if ops:
            self._backend.apply(ops)
        logger.debug("Storage.patch ops=%d", len(ops))
        return self

    def set(self, key: Iterable[Hashable], value: Any) -> "Storage":
        return self.patch([SetOp(to_key(key), value)])

    def remove(self, key: Iterable[Hashable]) -> "Storage":
        return self.patch([RemoveOp(to_key(key))])

    def fold(
        self,
        fun: Callable[[Key, Any, A, S], Tuple[A, S]],
        acc: A,
        scope: S = None,  # type: ignore[assignment]
    ) -> A:
        """Fold over entries in key order.

        Each entry receives the scope returned for its nearest stored
        ancestor key, or the initial scope when it has none.
        """
        scopes: Dict[Key, Any] = {}
        for key, value in self.items():
            parent_scope = scope
            for size in range(len(key) - 1, 0, -1):
                found = scopes.get(key[:size], MISSING)
                if found is not MISSING:
                    parent_scope = found
                    break
            acc, scopes[key] = fun(key, value, acc, parent_scope)
        return acc

    @contextmanager
    def snapshot(self) -> Iterator["Storage"]:
        """Yield a storage reading from one consistent state of the backend."""
        with self._backend.snapshot() as view:
            yield Storage(view, self._model)

    def close(self) -> None:
        self._backend.close()

    def __repr__(self) -> str:
        return f"<Storage backend={self._backend!r}>"


def new(backend: Optional[StorageBackend] = None, model: Optional["Model"] = None) -> Storage:
    return Storage(backend, model)
