from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from copy import deepcopy
from typing import Any, ContextManager, Dict, Iterator, List, Optional, Protocol, Sequence, Tuple

from typing_extensions import runtime_checkable

from config_model.keys import Key
from config_model.storage.patch import PatchOp, RemoveOp, SetOp

logger = logging.getLogger("config_model.storage")
logger.addHandler(logging.NullHandler())


@runtime_checkable
class StorageBackend(Protocol):
    def get(self, key: Key) -> Any: ...  # raises KeyError when absent

    def keys(self) -> List[Key]: ...

    def items(self) -> List[Tuple[Key, Any]]: ...

    def apply(self, ops: Sequence[PatchOp]) -> None: ...  # all or nothing

    def snapshot(self) -> ContextManager["StorageBackend"]: ...

    def close(self) -> None: ...


class MemoryBackend:
    """Associative in-memory backend.

    Patches are applied to a copy of the mapping which then replaces the
    current one, so readers only ever see fully applied states.
    """

    def __init__(self, initial: Optional[Dict[Key, Any]] = None, *, copy_values: bool = True) -> None:
        self._lock = threading.RLock()
        self._copy_values = copy_values
        self._data: Dict[Key, Any] = {}
        if initial:
            self._data = {k: self._copy(v) for k, v in initial.items()}
        logger.debug("MemoryBackend init keys=%d copy_values=%s", len(self._data), copy_values)

    def _copy(self, value: Any) -> Any:
        return deepcopy(value) if self._copy_values else value

    def get(self, key: Key) -> Any:
        return self._copy(self._data[key])

    def keys(self) -> List[Key]:
        return list(self._data)

    def items(self) -> List[Tuple[Key, Any]]:
        return [(k, self._copy(v)) for k, v in self._data.items()]

    def apply(self, ops: Sequence[PatchOp]) -> None:
        with self._lock:
            staged = dict(self._data)
            for op in ops:
                if isinstance(op, SetOp):
                    staged[op.key] = self._copy(op.value)
                elif isinstance(op, RemoveOp):
                    staged.pop(op.key, None)
                else:
                    raise TypeError(f"Invalid patch operation: {op!r}")
            self._data = staged
            logger.debug("MemoryBackend applied ops=%d keys=%d", len(ops), len(staged))

    @contextmanager
    def snapshot(self) -> Iterator["MemoryBackend"]:
        # the current mapping is never mutated in place, sharing it is enough
        view = MemoryBackend(copy_values=self._copy_values)
        view._data = self._data
        yield view

    def close(self) -> None:
        return None

    def __repr__(self) -> str:
        return f"<MemoryBackend keys={len(self._data)}>"
