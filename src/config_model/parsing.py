"""
Turning text into typed values for reader collaborators (CLI, environment, files).

Validation never goes through here: it checks the values readers already
stored. A node may declare a ``from_string`` callable metaparameter to
override the default parsing; it should raise ``ValueError`` on bad input.
"""

from __future__ import annotations

import logging
from typing import Any, Hashable, Iterable, List

from pydantic import ValidationError

from config_model.exceptions import ConfigParseError
from config_model.keys import to_key
from config_model.model import Model
from config_model.typecheck import get_adapter, type_name

logger = logging.getLogger("config_model.parsing")
logger.addHandler(logging.NullHandler())


def from_string(model: Model, key: Iterable[Hashable], text: str) -> Any:
    key = to_key(key)
    mnode = model.get(key)
    custom = mnode.get("from_string")
    if custom is not None:
        try:
            return custom(text)
        except (ValueError, TypeError) as e:
            raise ConfigParseError(key, str(e)) from e
    if "type" not in mnode:
        raise ConfigParseError(key, "node declares no `type'")
    type_ = mnode.get("type")
    if type_ is str:
        return text
    adapter = get_adapter(type_)
    try:
        return adapter.validate_json(text)
    except ValidationError:
        logger.debug("%r is not JSON for %r, trying plain validation", text, key)
    try:
        return adapter.validate_python(text)
    except ValidationError as e:
        raise ConfigParseError(key, f"cannot parse {text!r} as {type_name(type_)}") from e


def from_strings(model: Model, key: Iterable[Hashable], texts: Iterable[str]) -> List[Any]:
    return [from_string(model, key, t) for t in texts]
