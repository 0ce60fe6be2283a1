"""
config_model: declare configuration as a tree of typed nodes, compile it, store and validate data.

- Compiles nested namespace fragments into one flat, collision-checked model.
- Stores configuration data behind pluggable backends (memory, SQLite) and atomic patches.
- Validates data (and the model itself) through per-metatype checks, reporting every problem at once.
- Serves reads over overlay layers with declared defaults as the fallback.
"""

from __future__ import annotations

from config_model.accessors import get, list_keys
from config_model.config import LayeredConfig
from config_model.exceptions import (
    CollidingKeysError,
    ConfigError,
    ConfigParseError,
    ConfigTornDownError,
    ConfigValidationError,
    MetatypeDuplicateError,
    MetatypeNotFoundError,
    MissingDataError,
    ModelCompileError,
    ModelKeyError,
    StorageError,
)
from config_model.keys import (
    CHILDREN,
    Child,
    full_split_key,
    get_model_key,
    match,
    namespace,
    split_key,
)
from config_model.metatypes import (
    REGISTRY,
    Metatype,
    MetatypeRegistry,
    base_metamodel,
    get_metatype,
    register_metatype,
)
from config_model.model import MNode, Model, compile, compile_module, merge, merge_all, metatype_index, node
from config_model.parsing import from_string, from_strings
from config_model.storage import MemoryBackend, RemoveOp, SetOp, SqliteBackend, Storage
from config_model.validation import CheckResult, Diagnostic, meta_validate, validate

__all__ = [
    "CHILDREN",
    "CheckResult",
    "Child",
    "CollidingKeysError",
    "ConfigError",
    "ConfigParseError",
    "ConfigTornDownError",
    "ConfigValidationError",
    "Diagnostic",
    "LayeredConfig",
    "MNode",
    "MemoryBackend",
    "Metatype",
    "MetatypeDuplicateError",
    "MetatypeNotFoundError",
    "MetatypeRegistry",
    "MissingDataError",
    "Model",
    "ModelCompileError",
    "ModelKeyError",
    "REGISTRY",
    "RemoveOp",
    "SetOp",
    "SqliteBackend",
    "Storage",
    "StorageError",
    "base_metamodel",
    "compile",
    "compile_module",
    "from_string",
    "from_strings",
    "full_split_key",
    "get",
    "get_metatype",
    "get_model_key",
    "list_keys",
    "match",
    "merge",
    "merge_all",
    "meta_validate",
    "metatype_index",
    "namespace",
    "node",
    "register_metatype",
    "split_key",
    "validate",
]
