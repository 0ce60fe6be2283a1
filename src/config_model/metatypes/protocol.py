from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, FrozenSet, Hashable, Protocol

from typing_extensions import runtime_checkable

from config_model.keys import Key
from config_model.model import MNode, Model
from config_model.validation.result import CheckResult

if TYPE_CHECKING:
    from config_model.accessors import Data


@runtime_checkable
class MetatypeProtocol(Protocol):
    name: Hashable

    def validate_node(self, model: Model, data: "Data", key: Key, mnode: MNode) -> CheckResult: ...

    def meta_validate(self, model: Model, key: Key, mnode: MNode) -> CheckResult: ...


class Metatype:
    """Behaviour attached to a metatype tag.

    ``validate_node`` checks one instance of a node against configuration
    data, ``meta_validate`` checks the node declaration itself. Both do
    nothing unless overridden. ``metaparameters`` lists the names the
    metatype understands.
    """

    name: ClassVar[Hashable] = ""
    metaparameters: ClassVar[FrozenSet[str]] = frozenset()
    oneliner: ClassVar[str] = ""

    def validate_node(self, model: Model, data: "Data", key: Key, mnode: MNode) -> CheckResult:
        return CheckResult()

    def meta_validate(self, model: Model, key: Key, mnode: MNode) -> CheckResult:
        return CheckResult()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"

    def __eq__(self, other: Any) -> bool:
        return type(self) is type(other) and self.name == other.name

    def __hash__(self) -> int:
        return hash((type(self), self.name))
