from config_model.metatypes.builtin import (
    BUILTIN_METATYPES,
    MapMetatype,
    UndocumentedMetatype,
    ValueMetatype,
    base_metamodel,
)
from config_model.metatypes.protocol import Metatype, MetatypeProtocol
from config_model.metatypes.registry import (
    REGISTRY,
    MetatypeRegistry,
    get_metatype,
    list_metatypes,
    register_metatype,
)

__all__ = [
    "BUILTIN_METATYPES",
    "MapMetatype",
    "Metatype",
    "MetatypeProtocol",
    "MetatypeRegistry",
    "REGISTRY",
    "UndocumentedMetatype",
    "ValueMetatype",
    "base_metamodel",
    "get_metatype",
    "list_metatypes",
    "register_metatype",
]
