"""
Read path over validated configuration data.

``data`` is either one :class:`Storage` or a sequence of them (overlays,
highest priority first). A lookup probes every layer at most once and
touches the model only when no layer has the key, so resolving a key over
``N`` layers costs at most ``N + 1`` accesses.
"""

from __future__ import annotations

import logging
from typing import Any, Hashable, Iterable, List, Sequence, Set, Union

from config_model.exceptions import MissingDataError
from config_model.keys import Key, get_model_key, sort_key, to_key
from config_model.model import Model
from config_model.storage import MISSING, Storage
from config_model.utils import _safe_copy

logger = logging.getLogger("config_model.accessors")
logger.addHandler(logging.NullHandler())

Data = Union[Storage, Sequence[Storage]]

__all__ = ["Data", "get", "layers_of", "list_keys", "lookup"]


def layers_of(data: Data) -> Sequence[Storage]:
    if isinstance(data, Storage):
        return (data,)
    layers = tuple(data)
    if not all(isinstance(layer, Storage) for layer in layers):
        raise TypeError("data must be a Storage or a sequence of Storage layers")
    return layers


def lookup(data: Data, key: Iterable[Hashable]) -> Any:
    """Stored value of ``key`` from the first layer holding it, else ``MISSING``."""
    key = to_key(key)
    for layer in layers_of(data):
        value = layer.get(key, MISSING)
        if value is not MISSING:
            return value
    return MISSING


def get(model: Model, data: Data, key: Iterable[Hashable]) -> Any:
    """Value of ``key``: stored value, else the declared default.

    Safe as long as ``data`` passed :func:`config_model.validate`. Raises
    :class:`MissingDataError` otherwise, which signals a programming
    error rather than bad user input.
    """
    return _get(model, data, to_key(key), ())


def _get(model: Model, data: Data, key: Key, chain: tuple) -> Any:
    value = lookup(data, key)
    if value is not MISSING:
        return value
    mnode = model.get(get_model_key(key))
    if "default" in mnode:
        return _safe_copy(mnode.get("default"))
    if "default_ref" in mnode:
        ref = to_key(mnode.get("default_ref"))
        if ref in chain or ref == key:
            logger.error("Cyclic default_ref chain at %r", key)
            raise MissingDataError(key)
        return _get(model, data, ref, chain + (key,))
    logger.critical("Missing data for %r; configuration was not validated", key)
    raise MissingDataError(key)


def list_keys(model: Model, data: Data, pattern: Iterable[Hashable]) -> List[Key]:
    """Instance keys matching ``pattern``; the sorted union over all layers."""
    layers = layers_of(data)
    if len(layers) == 1:
        return layers[0].list(pattern)
    found: Set[Key] = set()
    for layer in layers:
        found.update(layer.list(pattern))
    return sorted(found, key=sort_key)
