from config_model.storage.adaptors import MemoryBackend, StorageBackend
from config_model.storage.manager import MISSING, Storage, new
from config_model.storage.patch import Patch, PatchOp, RemoveOp, SetOp, remove_op, set_op
from config_model.storage.sqlite import SqliteBackend

__all__ = [
    "MISSING",
    "MemoryBackend",
    "Patch",
    "PatchOp",
    "RemoveOp",
    "SetOp",
    "SqliteBackend",
    "Storage",
    "StorageBackend",
    "new",
    "remove_op",
    "set_op",
]
