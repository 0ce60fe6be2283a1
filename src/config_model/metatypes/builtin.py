from __future__ import annotations

from typing import Any, Dict, Hashable, List

from config_model.accessors import Data, lookup
from config_model.doc import UNDOCUMENTED, check_docstrings
from config_model.exceptions import ModelKeyError
from config_model.keys import CHILDREN, Key, format_key, namespace, to_key
from config_model.metatypes.protocol import Metatype
from config_model.model import MNode, Model
from config_model.storage import MISSING
from config_model.typecheck import type_error, typecheck
from config_model.validation.result import CheckResult

__all__ = [
    "BUILTIN_METATYPES",
    "MapMetatype",
    "UndocumentedMetatype",
    "ValueMetatype",
    "base_metamodel",
]


class ValueMetatype(Metatype):
    """A leaf holding one concrete value.

    Metaparameters:

    - ``type``: declared type of the value (any type pydantic can check).
    - ``default``: literal default, optional.
    - ``default_ref``: key of another ``value`` node of the same type whose
      value is used as default, optional.
    - ``oneliner`` / ``doc``: documentation.
    - ``from_string``: custom text parser for readers, optional.
    """

    name = "value"
    metaparameters = frozenset({"type", "default", "default_ref", "oneliner", "doc", "from_string"})
    oneliner = "Leaf node holding a typed value"

    def validate_node(self, model: Model, data: Data, key: Key, mnode: MNode) -> CheckResult:
        value = lookup(data, key)
        if value is not MISSING:
            if "type" not in mnode:
                return CheckResult()
            err = typecheck(mnode.get("type"), value)
            return CheckResult.error(err, key) if err else CheckResult()
        if "default" in mnode or "default_ref" in mnode:
            return CheckResult()
        return CheckResult.error("Mandatory value is missing in the config", key)

    def meta_validate(self, model: Model, key: Key, mnode: MNode) -> CheckResult:
        return (check_docstrings(mnode) + self._check_type_and_default(model, mnode)).located(key)

    @staticmethod
    def _check_type_and_default(model: Model, mnode: MNode) -> CheckResult:
        if "type" not in mnode:
            return CheckResult.error("Missing `type' metaparameter")
        type_ = mnode.get("type")
        bad_type = type_error(type_)
        if bad_type:
            return CheckResult.error(f"Invalid `type' metaparameter: {bad_type}")
        if "default" in mnode:
            result = CheckResult()
            if "default_ref" in mnode:
                result = CheckResult.warning("Both `default' and `default_ref' are set; `default_ref' is ignored")
            err = typecheck(type_, mnode.get("default"))
            if err:
                result = result + CheckResult.error(f"Mistyped default value: {err}")
            return result
        if "default_ref" in mnode:
            try:
                ref = model.get(mnode.get("default_ref"))
            except (ModelKeyError, TypeError):
                return CheckResult.error("Invalid `default_ref' reference key")
            if not ref.has_metatype(ValueMetatype.name):
                return CheckResult.error("Invalid `default_ref' metatype")
            if "type" not in ref or ref.get("type") != type_:
                return CheckResult.error("Type of the `default_ref' is different")
        return CheckResult()


class MapMetatype(Metatype):
    """A container whose children are repeated per element.

    Metaparameters:

    - ``key_elements``: list of child keys identifying an element, optional.
      A bare identifier stands for a one-segment key.
    """

    name = "map"
    metaparameters = frozenset({"key_elements", "oneliner", "doc"})
    oneliner = "Collection of child elements"

    def meta_validate(self, model: Model, key: Key, mnode: MNode) -> CheckResult:
        if "key_elements" not in mnode:
            return CheckResult()
        key_elements = mnode.get("key_elements")
        if not isinstance(key_elements, (list, tuple)):
            return CheckResult.error("`key_elements' should be a list of valid child keys", key)
        errors: List[CheckResult] = []
        for element in key_elements:
            child_key = to_key(element) if isinstance(element, (list, tuple)) else (element,)
            if key + (CHILDREN,) + child_key not in model:
                errors.append(
                    CheckResult.error(f"{format_key(child_key)} is not a valid child key", key)
                )
        return CheckResult.compose(errors)


class UndocumentedMetatype(Metatype):
    """Marks nodes that are deliberately left out of the documentation."""

    name = UNDOCUMENTED
    oneliner = "Node excluded from documentation"


BUILTIN_METATYPES = (ValueMetatype(), MapMetatype(), UndocumentedMetatype())


def base_metamodel() -> Dict[Hashable, Any]:
    """Metamodel fragment declaring the built-in metatypes under ``[metatype, *]``."""
    return namespace(
        ["metatype"],
        {
            mt.name: (["metatype"], {"oneliner": mt.oneliner, "metaparameters": tuple(sorted(mt.metaparameters))})
            for mt in BUILTIN_METATYPES
        },
    )
