from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Hashable, Iterable, List, Sequence, Tuple, Union

from config_model.keys import Key, to_key


@dataclass(frozen=True)
class SetOp:
    key: Key
    value: Any

    def __post_init__(self) -> None:
        object.__setattr__(self, "key", to_key(self.key))


@dataclass(frozen=True)
class RemoveOp:
    key: Key

    def __post_init__(self) -> None:
        object.__setattr__(self, "key", to_key(self.key))


PatchOp = Union[SetOp, RemoveOp]
Patch = Sequence[PatchOp]


def normalize_patch(patch: Iterable[Any]) -> Tuple[PatchOp, ...]:
    """Accept ``SetOp``/``RemoveOp`` or ``("set", key, value)`` / ``("rm", key)`` tuples."""
    ops: List[PatchOp] = []
    for op in patch:
        if isinstance(op, (SetOp, RemoveOp)):
            ops.append(op)
        elif isinstance(op, tuple) and len(op) == 3 and op[0] == "set":
            ops.append(SetOp(op[1], op[2]))
        elif isinstance(op, tuple) and len(op) == 2 and op[0] == "rm":
            ops.append(RemoveOp(op[1]))
        else:
            raise TypeError(f"Invalid patch operation: {op!r}")
    return tuple(ops)


def set_op(key: Iterable[Hashable], value: Any) -> SetOp:
    return SetOp(to_key(key), value)


def remove_op(key: Iterable[Hashable]) -> RemoveOp:
    return RemoveOp(to_key(key))
