from __future__ import annotations

import logging
from typing import Callable, List, Literal, Tuple

from config_model.storage import PatchOp, Storage

logger = logging.getLogger("config_model.hooks")
logger.addHandler(logging.NullHandler())

Hook = Callable[[Storage, Tuple[PatchOp, ...]], None]
FailureMode = Literal["ignore", "log", "raise"]


class HookBus:
    """Post-patch listeners, called in registration order with ``(layer, ops)``.

    A failing listener never undoes the patch. ``failure_mode`` decides
    whether the failure is re-raised, logged, or only traced at debug level.
    """

    def __init__(self, failure_mode: FailureMode = "log") -> None:
        if failure_mode not in ("ignore", "log", "raise"):
            raise ValueError("failure_mode must be one of 'ignore', 'log', 'raise'")
        self._failure_mode = failure_mode
        self._hooks: List[Hook] = []

    @property
    def failure_mode(self) -> FailureMode:
        return self._failure_mode

    def register(self, func: Hook) -> None:
        if not callable(func):
            raise TypeError("Hook must be callable")
        self._hooks.append(func)

    def unregister(self, func: Hook) -> bool:
        try:
            self._hooks.remove(func)
        except ValueError:
            return False
        return True

    def run(self, layer: Storage, ops: Tuple[PatchOp, ...]) -> int:
        """Notify every listener; return how many of them failed."""
        failed = 0
        for hook in list(self._hooks):
            try:
                hook(layer, ops)
            except Exception as exc:
                failed += 1
                if self._failure_mode == "raise":
                    raise
                level = logging.ERROR if self._failure_mode == "log" else logging.DEBUG
                logger.log(level, "Post-patch hook %r failed on %r (%d ops): %s", hook, layer, len(ops), exc)
        return failed

    def clear(self) -> None:
        self._hooks.clear()

    def __len__(self) -> int:
        return len(self._hooks)
