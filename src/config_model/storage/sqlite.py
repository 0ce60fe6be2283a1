from __future__ import annotations

import logging
import pickle
import sqlite3
import threading
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Sequence, Tuple

from config_model.exceptions import StorageError
from config_model.keys import CHILDREN, Child, Key
from config_model.storage.patch import PatchOp, RemoveOp, SetOp
from config_model.utils import _env_float

logger = logging.getLogger("config_model.storage.sqlite")
logger.addHandler(logging.NullHandler())

DEFAULT_TIMEOUT = 5.0

_SCHEMA = """
CREATE TABLE IF NOT EXISTS {table} (
    key_id TEXT PRIMARY KEY,
    key BLOB NOT NULL,
    value BLOB NOT NULL
)
"""


def _canonical(value: Any) -> str:
    # equal identifiers must encode equally, whatever their type or hash seed
    if value is CHILDREN:
        return "$children"
    if isinstance(value, Child):
        return "{" + _canonical(value.id) + "}"
    if isinstance(value, (bool, int)):
        return str(int(value))
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, tuple):
        return "(" + ",".join(_canonical(v) for v in value) + ")"
    if isinstance(value, frozenset):
        return "frozenset{" + ",".join(sorted(_canonical(v) for v in value)) + "}"
    return repr(value)


def _key_id(key: Key) -> str:
    return _canonical(tuple(key))


class SqliteBackend:
    """Durable transactional backend on top of SQLite.

    By default every patch runs in an ``IMMEDIATE`` transaction and
    ``snapshot()`` holds a read transaction, so a validation pass sees one
    consistent state. With ``dirty=True`` the connection uses a shared
    cache with ``read_uncommitted`` and reads never open a transaction:
    cheaper, but a reader may observe another connection's uncommitted
    patch.

    Snapshots and patches nest: inside an open transaction a snapshot
    reuses it and a patch runs in a savepoint, so reads, patches and a
    validation pass can share one transaction.

    Keys are indexed by a canonical encoding, so identifiers that compare
    equal (``1``, ``1.0``, ``True``) address the same row, as they do in
    :class:`MemoryBackend`.

    Keys and values are stored with :mod:`pickle`. Loading a pickle can run
    arbitrary code: only open database files written by trusted processes.
    """

    def __init__(
        self,
        path: str = ":memory:",
        *,
        dirty: bool = False,
        timeout: Optional[float] = None,
        table: str = "config_data",
    ) -> None:
        if not table.isidentifier():
            raise ValueError(f"Invalid table name: {table!r}")
        self._lock = threading.RLock()
        self._table = table
        self._dirty = dirty
        self._path = path
        if timeout is None:
            timeout = _env_float("CONFIG_MODEL_SQLITE_TIMEOUT", DEFAULT_TIMEOUT)
        try:
            if dirty:
                if path == ":memory:":
                    target = f"file:config_model_{id(self):x}?mode=memory&cache=shared"
                else:
                    target = f"file:{path}?cache=shared"
                self._conn = sqlite3.connect(
                    target, uri=True, timeout=timeout, isolation_level=None, check_same_thread=False
                )
                self._conn.execute("PRAGMA read_uncommitted = 1")
            else:
                self._conn = sqlite3.connect(
                    path, timeout=timeout, isolation_level=None, check_same_thread=False
                )
                if path != ":memory:":
                    self._conn.execute("PRAGMA journal_mode = WAL")
            self._conn.execute(_SCHEMA.format(table=table))
        except sqlite3.Error as e:
            logger.error("SqliteBackend initialization failed path=%r: %s", path, e)
            raise StorageError(f"Cannot open SQLite storage at {path!r}: {e}") from e
        logger.debug("SqliteBackend ready path=%r dirty=%s timeout=%s", path, dirty, timeout)

    @property
    def dirty(self) -> bool:
        return self._dirty

    def _execute(self, sql: str, params: Tuple[Any, ...] = ()) -> sqlite3.Cursor:
        try:
            return self._conn.execute(sql.format(table=self._table), params)
        except sqlite3.Error as e:
            logger.error("SQLite error on %r: %s", sql, e)
            raise StorageError(f"SQLite error: {e}") from e

    def get(self, key: Key) -> Any:
        with self._lock:
            row = self._execute("SELECT value FROM {table} WHERE key_id = ?", (_key_id(key),)).fetchone()
        if row is None:
            raise KeyError(key)
        return pickle.loads(row[0])

    def keys(self) -> List[Key]:
        with self._lock:
            rows = self._execute("SELECT key FROM {table}").fetchall()
        return [pickle.loads(r[0]) for r in rows]

    def items(self) -> List[Tuple[Key, Any]]:
        with self._lock:
            rows = self._execute("SELECT key, value FROM {table}").fetchall()
        return [(pickle.loads(k), pickle.loads(v)) for k, v in rows]

    def apply(self, ops: Sequence[PatchOp]) -> None:
        with self._lock:
            nested = self._conn.in_transaction
            self._execute("SAVEPOINT config_patch" if nested else "BEGIN IMMEDIATE")
            try:
                for op in ops:
                    if isinstance(op, SetOp):
                        self._execute(
                            "INSERT OR REPLACE INTO {table} (key_id, key, value) VALUES (?, ?, ?)",
                            (_key_id(op.key), pickle.dumps(op.key), pickle.dumps(op.value)),
                        )
                    elif isinstance(op, RemoveOp):
                        self._execute("DELETE FROM {table} WHERE key_id = ?", (_key_id(op.key),))
                    else:
                        raise TypeError(f"Invalid patch operation: {op!r}")
            except BaseException:
                if nested:
                    self._conn.execute("ROLLBACK TO config_patch")
                    self._conn.execute("RELEASE config_patch")
                else:
                    self._conn.execute("ROLLBACK")
                logger.error("SqliteBackend patch rolled back ops=%d nested=%s", len(ops), nested)
                raise
            self._execute("RELEASE config_patch" if nested else "COMMIT")
        logger.debug("SqliteBackend applied ops=%d nested=%s", len(ops), nested)

    @contextmanager
    def snapshot(self) -> Iterator["SqliteBackend"]:
        if self._dirty:
            yield self
            return
        with self._lock:
            if self._conn.in_transaction:
                # already inside a snapshot: share its transaction
                yield self
                return
            self._execute("BEGIN")
            try:
                yield self
            finally:
                self._conn.execute("COMMIT")

    def close(self) -> None:
        with self._lock:
            self._conn.close()
        logger.debug("SqliteBackend closed path=%r", self._path)

    def __repr__(self) -> str:
        return f"<SqliteBackend path={self._path!r} dirty={self._dirty}>"
