from __future__ import annotations

import logging
from types import MappingProxyType
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Hashable,
    Iterable,
    List,
    Mapping,
    Optional,
    Set,
    Tuple,
    TypeVar,
    Union,
)

from config_model.exceptions import CollidingKeysError, ModelCompileError, ModelKeyError
from config_model.keys import CHILDREN, Key, format_key, is_reserved, sort_key, to_key
from config_model.model.mnode import MNode
from config_model.storage import MemoryBackend, SetOp, Storage

if TYPE_CHECKING:
    from config_model.metatypes.registry import MetatypeRegistry

logger = logging.getLogger("config_model.model")
logger.addHandler(logging.NullHandler())

__all__ = [
    "Model",
    "MetatypeIndex",
    "compile",
    "compile_module",
    "merge",
    "merge_all",
    "metatype_index",
]

Module = Union[Mapping[Hashable, Any], Storage]
MetatypeIndex = Mapping[Hashable, Tuple[Key, ...]]

A = TypeVar("A")
S = TypeVar("S")


def _new_module() -> Storage:
    # compiled nodes are immutable, no need to copy them on every read
    return Storage(MemoryBackend(copy_values=False))


def _walk(prefix: Key, namespace: Mapping[Hashable, Any], ops: List[SetOp]) -> None:
    for node_id, value in namespace.items():
        key = prefix + (node_id,)
        if is_reserved(node_id):
            raise ModelCompileError([f"{format_key(key)}: {node_id!r} is a reserved identifier"])
        if isinstance(value, Mapping):
            # plain namespace level: no node, no children marker
            _walk(key, value, ops)
            continue
        mnode = MNode.coerce(value, key)
        ops.append(SetOp(key, mnode.cooked()))
        _walk(key + (CHILDREN,), mnode.children, ops)


def compile_module(module: Module) -> Storage:
    """Flatten a raw namespace into a cooked module (key -> ``MNode`` storage).

    Every node's children are placed after a ``CHILDREN`` segment. Already
    cooked modules are returned unchanged.
    """
    if isinstance(module, Storage):
        return module
    if not isinstance(module, Mapping):
        raise ModelCompileError([f"Expected a namespace mapping, got {type(module).__name__}"])
    ops: List[SetOp] = []
    _walk((), module, ops)
    logger.debug("compile_module -> %d nodes", len(ops))
    return _new_module().patch(ops)


def merge(first: Module, second: Module) -> Storage:
    """Merge two modules into a new cooked module.

    Raises :class:`CollidingKeysError` naming every key declared by both;
    neither input is modified.
    """
    m1 = compile_module(first)
    m2 = compile_module(second)
    incoming = m2.items()
    collisions = [key for key, _ in incoming if key in m1]
    if collisions:
        logger.error("Clashing model keys: %s", ", ".join(format_key(k) for k in collisions))
        raise CollidingKeysError(collisions)
    ops = [SetOp(k, v) for k, v in m1.items()] + [SetOp(k, v) for k, v in incoming]
    return _new_module().patch(ops)


def merge_all(modules: Iterable[Module]) -> Storage:
    """Left fold of :func:`merge`; the first failing merge is raised."""
    acc = _new_module()
    for module in modules:
        acc = merge(acc, module)
    return acc


def metatype_index(module: Storage) -> Dict[Hashable, Tuple[Key, ...]]:
    """Map each metatype to the sorted keys of the nodes carrying it."""

    def _index(key: Key, mnode: MNode, acc: Dict[Hashable, Set[Key]], scope: Any) -> Tuple[Any, Any]:
        for mt in mnode.metatypes:
            acc.setdefault(mt, set()).add(key)
        return acc, scope

    idx: Dict[Hashable, Set[Key]] = module.fold(_index, {})
    return {mt: tuple(sorted(idx[mt], key=sort_key)) for mt in sorted(idx, key=repr)}


def compile(
    metamodels: Iterable[Module],
    models: Iterable[Module],
    *,
    registry: Optional["MetatypeRegistry"] = None,
) -> "Model":
    """Compile metamodel and model fragments into a :class:`Model`.

    Both fragment lists are compiled independently; when either fails,
    :class:`ModelCompileError` carries the failures of both.
    """
    errors: List[ModelCompileError] = []
    meta: Optional[Storage] = None
    model: Optional[Storage] = None
    try:
        meta = merge_all(compile_module(m) for m in metamodels)
    except ModelCompileError as e:
        errors.append(e)
    try:
        model = merge_all(compile_module(m) for m in models)
    except ModelCompileError as e:
        errors.append(e)
    if errors:
        logger.error("Model compilation failed with %d error(s)", len(errors))
        raise ModelCompileError(errors)
    assert meta is not None and model is not None
    compiled = Model(meta, model, registry=registry)
    logger.debug(
        "Model compiled: meta_nodes=%d nodes=%d metatypes=%r",
        len(meta),
        len(model),
        tuple(compiled.metatype_index),
    )
    return compiled


class Model:
    """Compiled configuration model.

    Holds the cooked metamodel, the cooked model and the metatype index.
    Immutable once built and safe to share between threads.
    """

    def __init__(
        self,
        metamodel: Storage,
        model: Storage,
        index: Optional[MetatypeIndex] = None,
        *,
        registry: Optional["MetatypeRegistry"] = None,
    ) -> None:
        self._metamodel = metamodel
        self._model = model
        self._index = MappingProxyType(dict(index if index is not None else metatype_index(model)))
        self._registry = registry

    @property
    def metamodel(self) -> Storage:
        return self._metamodel

    @property
    def model(self) -> Storage:
        return self._model

    @property
    def metatype_index(self) -> MetatypeIndex:
        return self._index

    @property
    def registry(self) -> "MetatypeRegistry":
        if self._registry is None:
            from config_model.metatypes.registry import REGISTRY

            return REGISTRY
        return self._registry

    @property
    def metatypes(self) -> Tuple[Hashable, ...]:
        """Metatype tags declared by the metamodel under ``[metatype, *]``."""
        return tuple(k[1] for k in self._metamodel.keys() if len(k) == 2 and k[0] == "metatype")

    def get(self, key: Iterable[Hashable]) -> MNode:
        key = to_key(key)
        mnode = self._model.get(key)
        if mnode is None:
            raise ModelKeyError(key)
        return mnode

    def get_meta(self, key: Iterable[Hashable]) -> MNode:
        key = to_key(key)
        mnode = self._metamodel.get(key)
        if mnode is None:
            raise ModelKeyError(key)
        return mnode

    def get_metatype_index(self, metatype: Hashable) -> Tuple[Key, ...]:
        return self._index.get(metatype, ())

    def fold(self, fun: Callable[[Key, MNode, A, S], Tuple[A, S]], acc: A, scope: S = None) -> A:  # type: ignore[assignment]
        return self._model.fold(fun, acc, scope)

    def keys(self) -> List[Key]:
        return self._model.keys()

    def __contains__(self, key: Iterable[Hashable]) -> bool:
        return to_key(key) in self._model

    def __len__(self) -> int:
        return len(self._model)

    def __repr__(self) -> str:
        return f"<Model nodes={len(self._model)} metatypes={tuple(self._index)!r}>"
