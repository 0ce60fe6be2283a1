from config_model.model.compiler import (
    MetatypeIndex,
    Model,
    compile,
    compile_module,
    merge,
    merge_all,
    metatype_index,
)
from config_model.model.mnode import MNode, node

__all__ = [
    "MNode",
    "MetatypeIndex",
    "Model",
    "compile",
    "compile_module",
    "merge",
    "merge_all",
    "metatype_index",
    "node",
]
