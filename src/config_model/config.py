from __future__ import annotations

import logging
import threading
from functools import wraps
from types import TracebackType
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Sequence, Type, TypeVar, cast

from config_model.accessors import get as _get
from config_model.accessors import list_keys, lookup
from config_model.exceptions import ConfigTornDownError, ConfigValidationError
from config_model.hooks import Hook, HookBus
from config_model.keys import Key, to_key
from config_model.model import Model
from config_model.storage import MISSING, PatchOp, RemoveOp, SetOp, Storage
from config_model.storage.patch import normalize_patch
from config_model.utils import _redact_for_log
from config_model.validation import CheckResult, meta_validate, validate
from config_model.validation.base import Metatypes

logger = logging.getLogger("config_model.config")
logger.addHandler(logging.NullHandler())


F = TypeVar("F", bound=Callable[..., Any])


def is_torn_down(func: F) -> F:
    """
    Decorator to check if the config has been torn down before method execution.
    Raises ConfigTornDownError if torn down.
    """

    @wraps(func)
    def wrapper(self: "LayeredConfig", *args: Any, **kwargs: Any) -> Any:
        if self.torn_down:
            logger.error(f"Attempted {func.__name__} after teardown.")
            raise ConfigTornDownError("Config has been torn down")
        return func(self, *args, **kwargs)

    return cast(F, wrapper)


def _inverse_patch(layer: Storage, ops: Sequence[PatchOp]) -> List[PatchOp]:
    undo: Dict[Key, PatchOp] = {}
    for op in ops:
        if op.key in undo:
            continue
        previous = layer.get(op.key, MISSING)
        undo[op.key] = RemoveOp(op.key) if previous is MISSING else SetOp(op.key, previous)
    return list(undo.values())


class LayeredConfig:
    """
    A compiled model plus a stack of configuration layers (highest priority first).

    Mutations go through patch(); reads go through get()/list(). Data is
    validated on demand with validate(), or on every patch when
    ``validate_on_patch`` is set, in which case a patch introducing errors
    is rolled back.
    """

    def __init__(
        self,
        model: Model,
        layers: Optional[Iterable[Storage]] = None,
        *,
        validate_on_patch: bool = False,
        hook_failure_mode: str = "log",
    ) -> None:
        self.__lock = threading.RLock()
        self.__torn_down = False
        self.__model = model
        self.__layers = tuple(layers) if layers is not None else (Storage(model=model),)
        if not self.__layers:
            raise ValueError("LayeredConfig needs at least one layer")
        self.__validate_on_patch = validate_on_patch
        self.__hooks = HookBus(hook_failure_mode)  # type: ignore[arg-type]
        self.__last_result: Optional[CheckResult] = None
        logger.debug(
            "LayeredConfig init layers=%d validate_on_patch=%s", len(self.__layers), validate_on_patch
        )

    @property
    def torn_down(self) -> bool:
        return self.__torn_down

    @property
    def model(self) -> Model:
        return self.__model

    @property
    def layers(self) -> tuple:
        return self.__layers

    @property
    def last_result(self) -> Optional[CheckResult]:
        """Result of the most recent validation, if any."""
        return self.__last_result

    # forbid public attribute mutation
    def __setattr__(self, name: str, value: Any) -> None:
        if hasattr(self, "_LayeredConfig__lock") and not name.startswith("_LayeredConfig__"):
            raise AttributeError("Direct attribute assignment forbidden. Use patch().")
        super().__setattr__(name, value)

    # updates
    @is_torn_down
    def patch(self, patch: Iterable[Any], *, layer: int = 0) -> None:
        """
        Apply a patch to one layer. Raises ConfigValidationError (and leaves the
        layer unchanged) when validate_on_patch is set and the result is invalid.
        """
        ops = normalize_patch(patch)
        with self.__lock:
            target = self.__layers[layer]
            if self.__validate_on_patch:
                undo = _inverse_patch(target, ops)
                target.patch(ops)
                try:
                    result = validate(self.__model, self.__layers)
                except BaseException:
                    target.patch(undo)
                    logger.error("Patch rolled back layer=%d: validation did not complete", layer)
                    raise
                self.__last_result = result
                if not result.ok:
                    target.patch(undo)
                    logger.error(
                        "Patch rejected layer=%d errors=%s", layer, [str(e) for e in result.errors]
                    )
                    raise ConfigValidationError(result.errors, result.warnings)
            else:
                target.patch(ops)
            logger.info(
                "Config patched layer=%d ops=%s",
                layer,
                [
                    f"set {op.key!r}={_redact_for_log(op.key, op.value)}"
                    if isinstance(op, SetOp)
                    else f"rm {op.key!r}"
                    for op in ops
                ],
            )
            self.__hooks.run(target, ops)

    def set(self, key: Iterable[Hashable], value: Any, *, layer: int = 0) -> None:
        self.patch([SetOp(to_key(key), value)], layer=layer)

    def remove(self, key: Iterable[Hashable], *, layer: int = 0) -> None:
        self.patch([RemoveOp(to_key(key))], layer=layer)

    @is_torn_down
    def register_post_patch_hook(self, func: Hook) -> None:
        """
        Register a function called with (layer, ops) after each patch.
        """
        with self.__lock:
            self.__hooks.register(func)

    # reads
    @is_torn_down
    def get(self, key: Iterable[Hashable]) -> Any:
        return _get(self.__model, self.__layers, key)

    @is_torn_down
    def list(self, pattern: Iterable[Hashable]) -> List[Key]:
        return list_keys(self.__model, self.__layers, pattern)

    # validation
    @is_torn_down
    def validate(self, metatypes: Metatypes = "all", *, raise_on_error: bool = False) -> CheckResult:
        with self.__lock:
            result = validate(self.__model, self.__layers, metatypes)
            self.__last_result = result
        if result.ok:
            logger.info("Config valid warnings=%d", len(result.warnings))
        else:
            logger.error("Config invalid errors=%s", [str(e) for e in result.errors])
            if raise_on_error:
                result.raise_for_errors()
        return result

    @is_torn_down
    def meta_validate(
        self, metatypes: Metatypes = "all", *, raise_on_error: bool = False
    ) -> CheckResult:
        result = meta_validate(self.__model, metatypes)
        if not result.ok:
            logger.error("Model invalid errors=%s", [str(e) for e in result.errors])
            if raise_on_error:
                result.raise_for_errors()
        return result

    def teardown(self) -> None:
        """
        Close every layer and drop the hooks.
        """
        with self.__lock:
            if self.__torn_down:
                return
            self.__torn_down = True
            self.__hooks.clear()
            for layer in self.__layers:
                layer.close()
            logger.info("LayeredConfig torn down.")

    def __enter__(self) -> "LayeredConfig":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.teardown()

    def __getitem__(self, key: Iterable[Hashable]) -> Any:
        return self.get(key)

    def __contains__(self, key: Iterable[Hashable]) -> bool:
        """
        True when some layer stores a value for ``key``; defaults do not count.
        """
        return lookup(self.__layers, key) is not MISSING

    def __repr__(self) -> str:
        return f"<LayeredConfig layers={len(self.__layers)} torn_down={self.__torn_down}>"
