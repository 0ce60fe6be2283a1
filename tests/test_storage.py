import threading

import pytest

from config_model import CHILDREN, Child, MemoryBackend, RemoveOp, SetOp, SqliteBackend, Storage, validate
from config_model.exceptions import StorageError
from config_model.storage import StorageBackend, new, remove_op, set_op
from config_model.storage.sqlite import _key_id


@pytest.fixture(params=["memory", "sqlite", "sqlite_dirty"])
def storage(request, tmp_path):
    if request.param == "memory":
        backend = MemoryBackend()
    elif request.param == "sqlite":
        backend = SqliteBackend(str(tmp_path / "config.db"))
    else:
        backend = SqliteBackend(str(tmp_path / "config.db"), dirty=True)
    s = Storage(backend)
    yield s
    s.close()


def test_backends_implement_protocol(tmp_path):
    assert isinstance(MemoryBackend(), StorageBackend)
    assert isinstance(SqliteBackend(str(tmp_path / "p.db")), StorageBackend)
    assert SqliteBackend(dirty=True).dirty
    assert not SqliteBackend().dirty
    with pytest.raises(TypeError):
        Storage(object())  # type: ignore[arg-type]


def test_patch_round_trip(storage):
    storage.patch([SetOp(("a",), 1), SetOp(("b", "c"), 2), RemoveOp(("a",))])
    assert storage.get(("a",)) is None
    assert ("a",) not in storage
    assert storage.get(("b", "c")) == 2
    assert len(storage) == 1


def test_patch_accepts_tuple_shorthand(storage):
    storage.patch([("set", ["x"], [1, 2]), ("rm", ["y"])])
    assert storage.get(["x"]) == [1, 2]


def test_invalid_patch_applies_nothing(storage):
    storage.set(("a",), 1)
    with pytest.raises(TypeError):
        storage.patch([SetOp(("a",), 2), "not an op"])
    assert storage.get(("a",)) == 1


def test_get_default_and_none_values(storage):
    storage.set(("n",), None)
    assert ("n",) in storage
    assert storage.get(("missing",), "fallback") == "fallback"


def test_list_children(storage):
    storage.patch(
        [
            SetOp(("hosts", Child("b"), "port"), 2),
            SetOp(("hosts", Child("a"), "name"), "a"),
            SetOp(("hosts", Child("a"), "port"), 1),
            SetOp(("other",), 0),
        ]
    )
    assert storage.list(("hosts", CHILDREN)) == [("hosts", Child("a")), ("hosts", Child("b"))]
    assert storage.list(("hosts", CHILDREN, "name")) == [("hosts", Child("a"), "name")]
    assert storage.list(("nothing", CHILDREN)) == []


def test_list_nested_children(storage):
    storage.patch(
        [
            SetOp(("a", Child(1), "b", Child("x"), "v"), 1),
            SetOp(("a", Child(1), "b", Child("y"), "v"), 2),
            SetOp(("a", Child(2), "b", Child("x"), "v"), 3),
        ]
    )
    assert storage.list(("a", CHILDREN, "b", CHILDREN)) == [
        ("a", Child(1), "b", Child("x")),
        ("a", Child(1), "b", Child("y")),
        ("a", Child(2), "b", Child("x")),
    ]


def test_values_are_copied(storage):
    value = {"k": [1, 2]}
    storage.set(("m",), value)
    value["k"].append(3)
    got = storage.get(("m",))
    assert got == {"k": [1, 2]}
    got["k"].append(4)
    assert storage.get(("m",)) == {"k": [1, 2]}


def test_fold_passes_parent_scope():
    storage = Storage.from_mapping(
        {("a",): 1, ("a", CHILDREN, "b"): 2, ("a", CHILDREN, "b", CHILDREN, "c"): 3, ("d",): 4}
    )

    def visit(key, value, acc, scope):
        acc.append((key, scope))
        return acc, value

    visited = storage.fold(visit, [], "root")
    assert visited == [
        (("a",), "root"),
        (("a", CHILDREN, "b"), 1),
        (("a", CHILDREN, "b", CHILDREN, "c"), 2),
        (("d",), "root"),
    ]


def test_memory_snapshot_is_isolated_from_later_patches():
    storage = Storage.from_mapping({("x",): 1})
    with storage.snapshot() as view:
        storage.set(("x",), 2)
        storage.set(("y",), 3)
        assert view.get(("x",)) == 1
        assert ("y",) not in view
    assert storage.get(("x",)) == 2


def test_memory_readers_never_see_partial_patch():
    storage = Storage.from_mapping({("a",): 0, ("b",): 0})
    stop = threading.Event()
    torn = []

    def reader():
        while not stop.is_set():
            with storage.snapshot() as view:
                if view.get(("a",)) != view.get(("b",)):
                    torn.append(True)

    t = threading.Thread(target=reader)
    t.start()
    for i in range(1, 300):
        storage.patch([SetOp(("a",), i), SetOp(("b",), i)])
    stop.set()
    t.join()
    assert not torn


def test_new_defaults_to_memory_backend():
    s = new()
    assert isinstance(s.backend, MemoryBackend)
    assert s.model is None


def test_sqlite_persists_across_connections(tmp_path):
    path = str(tmp_path / "persist.db")
    first = Storage(SqliteBackend(path))
    first.set(("hosts", Child("a"), "port"), 8080)
    first.close()

    second = Storage(SqliteBackend(path))
    assert second.get(("hosts", Child("a"), "port")) == 8080
    assert second.keys() == [("hosts", Child("a"), "port")]
    second.close()


def test_sqlite_patch_rolls_back_on_failure():
    storage = Storage(SqliteBackend())
    storage.set(("a",), 1)
    with pytest.raises(Exception):
        storage.patch([SetOp(("a",), 2), SetOp(("b",), lambda: None)])
    assert storage.get(("a",)) == 1
    assert ("b",) not in storage


def test_sqlite_snapshot_reads_inside_transaction(tmp_path):
    storage = Storage(SqliteBackend(str(tmp_path / "snap.db")))
    storage.set(("x",), 1)
    with storage.snapshot() as view:
        assert view.get(("x",)) == 1
    storage.set(("x",), 2)
    assert storage.get(("x",)) == 2


def test_sqlite_bad_path_raises_storage_error(tmp_path):
    with pytest.raises(StorageError):
        SqliteBackend(str(tmp_path / "missing" / "dir" / "x.db"))


def test_sqlite_rejects_bad_table_name():
    with pytest.raises(ValueError):
        SqliteBackend(table="x; DROP TABLE y")


def test_sqlite_timeout_from_env(monkeypatch):
    monkeypatch.setenv("CONFIG_MODEL_SQLITE_TIMEOUT", "not-a-number")
    with pytest.raises(ValueError):
        SqliteBackend()
    monkeypatch.setenv("CONFIG_MODEL_SQLITE_TIMEOUT", "0.5")
    SqliteBackend().close()


def test_dirty_in_memory_backends_are_separate():
    a = Storage(SqliteBackend(dirty=True))
    b = Storage(SqliteBackend(dirty=True))
    a.set(("x",), 1)
    assert ("x",) not in b
    a.close()
    b.close()


def test_op_helpers_normalize_keys():
    storage = Storage()
    storage.patch([set_op(["a", "b"], 1), set_op(["c"], 2), remove_op(["c"])])
    assert storage.items() == [(("a", "b"), 1)]
    assert SetOp(["x"], 1).key == ("x",)


def test_validate_inside_snapshot(storage, model):
    storage.set(["port"], 80)
    with storage.snapshot() as view:
        with view.snapshot() as inner:
            assert inner.get(["port"]) == 80
        assert validate(model, view).ok
        assert validate(model, [view]).ok


def test_sqlite_patch_inside_snapshot_shares_transaction(tmp_path, model):
    storage = Storage(SqliteBackend(str(tmp_path / "tx.db")))
    storage.set(["port"], 80)
    with storage.snapshot() as view:
        storage.set(["timeout"], 10)
        with pytest.raises(Exception):
            storage.patch([SetOp(("port",), 81), SetOp(("bad",), lambda: None)])
        assert view.get(["timeout"]) == 10
        assert view.get(["port"]) == 80
        assert ("bad",) not in view
        assert validate(model, view).ok
    storage.close()

    reopened = Storage(SqliteBackend(str(tmp_path / "tx.db")))
    assert reopened.items() == [(("port",), 80), (("timeout",), 10)]
    reopened.close()


def test_equal_identifiers_address_one_entry(storage):
    storage.set((1,), "int")
    storage.set((1.0,), "float")
    storage.set((True,), "bool")
    assert len(storage) == 1
    assert storage.get((1,)) == "bool"
    storage.set(("hosts", Child(2), "port"), 1)
    assert storage.get(("hosts", Child(2.0), "port")) == 1
    storage.remove((1.0,))
    assert (1,) not in storage


def test_frozenset_identifiers_are_stable(storage):
    storage.set(("tags", frozenset({"b", "a"})), 1)
    assert storage.get(("tags", frozenset(["a", "b"]))) == 1
    assert _key_id(("tags", frozenset({"b", "a"}))) == "('tags',frozenset{'a','b'})"
    assert _key_id((1.0, Child(True))) == "(1,{1})"
    assert _key_id(("1",)) != _key_id((1,))


def test_list_narrows_on_concrete_children(storage):
    storage.patch(
        [
            SetOp(("hosts", Child("a"), "name"), "a"),
            SetOp(("hosts", Child("b"), "name"), "b"),
        ]
    )
    assert storage.list(("hosts", Child("a"))) == [("hosts", Child("a"))]
    assert storage.list(("hosts", Child("a"), "name")) == [("hosts", Child("a"), "name")]
    assert storage.list(("hosts", Child("c"))) == []
