from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import Hashable, Iterable, List, Literal, Mapping, Tuple, Union

from config_model.accessors import Data, layers_of, list_keys
from config_model.keys import Key, split_key
from config_model.model import Model
from config_model.storage import Storage
from config_model.validation.result import CheckResult, Diagnostic

logger = logging.getLogger("config_model.validation")
logger.addHandler(logging.NullHandler())

__all__ = ["instances", "meta_validate", "validate"]

Metatypes = Union[Literal["all"], Iterable[Hashable]]


def _select(model: Model, metatypes: Metatypes) -> Mapping[Hashable, Tuple[Key, ...]]:
    index = model.metatype_index
    if metatypes == "all":
        return index
    if isinstance(metatypes, (str, bytes)):
        raise TypeError(f"metatypes must be 'all' or a collection of metatypes, got {metatypes!r}")
    wanted = set(metatypes)
    return {mt: keys for mt, keys in index.items() if mt in wanted}


def instances(model: Model, data: Data, key: Key) -> List[Key]:
    """Concrete instance keys of the model key ``key`` present in ``data``.

    A key without ``CHILDREN`` has exactly one instance, itself. Otherwise
    every instance of its base found in the data is extended with the
    required part.
    """
    base, required = split_key(key)
    if not base:
        return [key]
    return [instance + required for instance in list_keys(model, data, base)]


def validate(model: Model, data: Data, metatypes: Metatypes = "all") -> CheckResult:
    """Check ``data`` against ``model``.

    Runs the ``validate_node`` check of every selected metatype on every
    instance of every node carrying it. All problems are collected; the
    result is ok when there are no errors.
    """
    with ExitStack() as stack:
        views = [stack.enter_context(layer.snapshot()) for layer in layers_of(data)]
        snapshot: Data = views[0] if isinstance(data, Storage) else views
        result = _run(model, metatypes, snapshot, meta=False)
    logger.debug(
        "validate -> errors=%d warnings=%d", len(result.errors), len(result.warnings)
    )
    return result


def meta_validate(model: Model, metatypes: Metatypes = "all") -> CheckResult:
    """Check the model declaration against its metamodel, once per declared node."""
    result = _run(model, metatypes, Storage(), meta=True)
    logger.debug(
        "meta_validate -> errors=%d warnings=%d", len(result.errors), len(result.warnings)
    )
    return result


def _run(model: Model, metatypes: Metatypes, data: Data, *, meta: bool) -> CheckResult:
    declared = set(model.metatypes)
    registry = model.registry
    errors: List[Diagnostic] = []
    warnings: List[Diagnostic] = []
    for metatype, keys in _select(model, metatypes).items():
        if metatype not in declared:
            if meta:
                warnings.append(
                    Diagnostic(
                        f"Metatype {metatype!r} is used but not declared in the metamodel",
                        ("metatype", metatype),
                    )
                )
            logger.debug("Skipping undeclared metatype %r", metatype)
            continue
        handler = registry.find(metatype)
        if handler is None:
            continue
        for key in keys:
            mnode = model.get(key)
            if meta:
                results = [handler.meta_validate(model, key, mnode).located(key)]
            else:
                results = [
                    handler.validate_node(model, data, instance, mnode).located(instance)
                    for instance in instances(model, data, key)
                ]
            for r in results:
                errors.extend(r.errors)
                warnings.extend(r.warnings)
    return CheckResult(tuple(errors), tuple(warnings))
