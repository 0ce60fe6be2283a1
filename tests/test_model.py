import pytest

from config_model import (
    CHILDREN,
    Child,
    CollidingKeysError,
    MNode,
    ModelCompileError,
    ModelKeyError,
    base_metamodel,
    compile,
    compile_module,
    merge,
    merge_all,
    metatype_index,
    node,
)
from config_model.exceptions import ConfigError


def leaf(**kw):
    return node(["value"], type=int, oneliner="leaf", **kw)


def test_compile_module_flattens_with_children_marker(sample_ns):
    module = compile_module(sample_ns)
    assert module.keys() == [
        ("hosts",),
        ("hosts", CHILDREN, "name"),
        ("hosts", CHILDREN, "port"),
        ("log", "level"),
        ("port",),
        ("timeout",),
    ]
    hosts = module.get(("hosts",))
    assert isinstance(hosts, MNode)
    assert hosts.children == {}
    assert hosts.get("key_elements") == [["name"]]


def test_nested_nodes_get_a_marker_per_level():
    module = compile_module(
        {"a": node(["map"], children={"b": node(["map"], children={"c": leaf()})})}
    )
    assert ("a", CHILDREN, "b", CHILDREN, "c") in module
    assert len(module) == 3


def test_compile_module_accepts_tuple_nodes():
    module = compile_module({"a": (["value"], {"type": int}), "b": (["map"], {}, {"c": leaf()})})
    assert module.get(("a",)).metatypes == frozenset({"value"})
    assert module.get(("a",)).get("type") is int
    assert ("b", CHILDREN, "c") in module


def test_compile_module_returns_cooked_modules_unchanged():
    module = compile_module({"a": leaf()})
    assert compile_module(module) is module


@pytest.mark.parametrize(
    "namespace",
    [
        {CHILDREN: leaf()},
        {"a": {Child("x"): leaf()}},
        {"a": node(["map"], children={CHILDREN: leaf()})},
    ],
)
def test_compile_module_rejects_reserved_identifiers(namespace):
    with pytest.raises(ModelCompileError):
        compile_module(namespace)


@pytest.mark.parametrize("namespace", [{"a": 5}, {"a": ("value", {})}, ["not", "a", "namespace"]])
def test_compile_module_rejects_malformed_nodes(namespace):
    with pytest.raises(ModelCompileError):
        compile_module(namespace)


def test_node_rejects_string_metatypes():
    with pytest.raises(TypeError):
        MNode("value")  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        node("value", type=int)
    with pytest.raises(TypeError):
        node(b"value", type=int)


def test_node_metaparameters_are_read_only():
    n = leaf(default=1)
    with pytest.raises(TypeError):
        n.metaparameters["default"] = 2  # type: ignore[index]
    assert "default" in n
    assert n.has_metatype("value")


def test_merge_names_exactly_the_shared_keys():
    first = compile_module({"a": leaf(), "b": leaf(), "c": leaf()})
    second = compile_module({"b": leaf(), "c": leaf(), "d": leaf()})
    with pytest.raises(CollidingKeysError) as exc:
        merge(first, second)
    assert exc.value.keys == [("b",), ("c",)]
    assert "Clashing keys: [b], [c]" in str(exc.value)
    assert isinstance(exc.value, ModelCompileError)


def test_merge_collides_on_nested_keys():
    first = {"hosts": node(["map"], children={"port": leaf()})}
    with pytest.raises(CollidingKeysError) as exc:
        merge(first, {"hosts": node(["map"], children={"port": leaf(), "name": leaf()})})
    assert exc.value.keys == [("hosts",), ("hosts", CHILDREN, "port")]


def test_merge_does_not_mutate_inputs():
    first = compile_module({"a": leaf()})
    second = compile_module({"a": leaf(), "b": leaf()})
    with pytest.raises(CollidingKeysError):
        merge(first, second)
    assert first.keys() == [("a",)]

    third = compile_module({"c": leaf()})
    merged = merge(first, third)
    assert merged.keys() == [("a",), ("c",)]
    assert first.keys() == [("a",)]
    assert third.keys() == [("c",)]


def test_merge_all_folds_left():
    merged = merge_all([{"a": leaf()}, {"b": leaf()}, {"c": {"d": leaf()}}])
    assert merged.keys() == [("a",), ("b",), ("c", "d")]
    assert len(merge_all([])) == 0
    with pytest.raises(CollidingKeysError):
        merge_all([{"a": leaf()}, {"b": leaf()}, {"a": leaf()}])


def test_compile_reports_both_metamodel_and_model_failures():
    with pytest.raises(ModelCompileError) as exc:
        compile(
            [base_metamodel(), base_metamodel()],
            [{"a": leaf()}, {"a": leaf()}],
        )
    errors = exc.value.errors
    assert len(errors) == 2
    assert all(isinstance(e, CollidingKeysError) for e in errors)
    assert ("metatype", "value") in errors[0].keys
    assert errors[1].keys == [("a",)]


def test_metatype_index_is_union_of_fragment_indices():
    first = {"a": leaf(), "m": node(["map"], children={"x": leaf()})}
    second = {"b": node(["value", "undocumented"], type=str), "c": {"d": leaf()}}
    merged = metatype_index(merge(first, second))

    expected = {}
    for fragment in (first, second):
        for mt, keys in metatype_index(compile_module(fragment)).items():
            expected.setdefault(mt, set()).update(keys)
    assert {mt: set(keys) for mt, keys in merged.items()} == expected
    assert merged["value"] == (("a",), ("b",), ("c", "d"), ("m", CHILDREN, "x"))


def test_model_lookup(model):
    assert model.get(["timeout"]).get("default") == 30
    assert model.get_meta(("metatype", "value")).has_metatype("metatype")
    assert ("log", "level") in model
    assert ("log",) not in model
    assert set(model.metatypes) == {"value", "map", "undocumented"}
    assert model.get_metatype_index("map") == (("hosts",),)
    assert model.get_metatype_index("nope") == ()
    assert len(model) == 6


def test_model_get_unknown_key_raises(model):
    with pytest.raises(ModelKeyError) as exc:
        model.get(("nope",))
    assert isinstance(exc.value, KeyError)
    assert isinstance(exc.value, ConfigError)
    assert exc.value.key == ("nope",)
    with pytest.raises(ModelKeyError):
        model.get_meta(("metatype", "nope"))


def test_model_fold_visits_nodes_in_order(model):
    def collect(key, mnode, acc, scope):
        acc.append(key)
        return acc, scope

    assert model.fold(collect, []) == model.keys()
