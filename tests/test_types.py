import pytest

from typelint.tools.types import (
    ANY,
    BOOLEAN,
    INVALID,
    NULL,
    NUMBER,
    STRING,
    UNDEFINED,
    Alias,
    ArrayT,
    FunctionT,
    Prim,
    RecordT,
    UnionT,
    get_property,
    is_of_type,
    is_supertype_of,
    make_union,
    prim,
    return_type,
)

SAMPLES = [
    ANY,
    INVALID,
    NUMBER,
    make_union(NUMBER, UNDEFINED),
    RecordT({"a": STRING}),
    ArrayT(NUMBER),
    FunctionT(NUMBER, (STRING,), {"s": STRING}),
]


@pytest.mark.parametrize("t", SAMPLES)
def test_every_type_is_of_itself(t):
    assert is_of_type(t, t)


def test_primitives_compare_by_name():
    assert is_of_type(prim("number"), NUMBER)
    assert not is_of_type(NUMBER, STRING)
    assert not is_of_type(STRING, NUMBER)
    assert prim(" Foo Bar ").name == "FooBar"


def test_any_is_permissive_as_target_and_opaque_as_value():
    assert is_of_type(NUMBER, ANY)
    assert is_of_type(RecordT({"a": STRING}), ANY)
    assert not is_of_type(ANY, NUMBER)


def test_invalid_rejects_in_both_roles():
    assert not is_of_type(INVALID, NUMBER)
    assert not is_of_type(INVALID, ANY)
    assert not is_of_type(NUMBER, INVALID)


def test_union_value_needs_every_member():
    u = make_union(NUMBER, UNDEFINED)
    assert not is_of_type(u, NUMBER)
    assert is_of_type(u, make_union(UNDEFINED, STRING, NUMBER))


def test_union_target_needs_one_member():
    u = make_union(NUMBER, UNDEFINED)
    assert is_of_type(NUMBER, u)
    assert is_supertype_of(u, UNDEFINED)
    assert not is_supertype_of(u, STRING)


def test_make_union_flattens_and_deduplicates():
    u = make_union(make_union(NUMBER, STRING), prim("number"), BOOLEAN)
    assert u == UnionT((NUMBER, STRING, BOOLEAN))
    assert make_union(NUMBER, prim("number")) == NUMBER


def test_record_width_subtyping():
    required = RecordT({"name": STRING})
    wider = RecordT({"name": STRING, "age": NUMBER})
    assert is_of_type(wider, required)
    assert not is_of_type(required, wider)
    assert is_of_type(RecordT({}), RecordT({"loose": ANY}))
    assert not is_of_type(RecordT({"name": NUMBER}), required)


def test_object_primitive_accepts_records():
    assert is_of_type(RecordT({"a": NUMBER}), prim("object"))
    assert not is_of_type(NUMBER, prim("object"))


def test_array_element_check_runs_from_the_required_side():
    wide = ArrayT(make_union(NUMBER, STRING))
    narrow = ArrayT(NUMBER)
    assert is_of_type(wide, narrow)
    assert not is_of_type(narrow, wide)


def test_function_parameters_are_contravariant():
    f1 = FunctionT(NUMBER, (ANY,))
    f2 = FunctionT(NUMBER, (NUMBER,))
    assert is_of_type(f1, f2)
    assert not is_of_type(f2, f1)


def test_function_return_is_covariant():
    assert is_of_type(FunctionT(NUMBER), FunctionT(make_union(NUMBER, UNDEFINED)))
    assert not is_of_type(FunctionT(STRING), FunctionT(NUMBER))


def test_function_primitive_matches_any_function():
    assert is_of_type(FunctionT(STRING, (NUMBER,)), prim("function"))
    assert FunctionT(ANY, (NUMBER, STRING)).argument_count == 2


def test_alias_forwards_to_target():
    a = Alias("Id")
    a.bind(NUMBER)
    assert is_of_type(NUMBER, a)
    assert is_of_type(a, NUMBER)
    assert not is_of_type(a, STRING)
    b = Alias("Other")
    b.bind(NUMBER)
    assert is_of_type(a, b)


def test_alias_binds_only_once():
    a = Alias("Once")
    a.bind(NUMBER)
    with pytest.raises(RuntimeError):
        a.bind(STRING)


def test_alias_bound_to_itself_becomes_invalid():
    a = Alias("Loop")
    a.bind(a)
    assert a.target is INVALID
    assert not is_of_type(NUMBER, a)


def test_unbound_alias_behaves_as_any():
    assert is_of_type(NUMBER, Alias("Pending"))


def test_recursive_aliases_compare_without_looping():
    node = Alias("Node")
    node.bind(RecordT({"value": NUMBER, "next": make_union(node, NULL)}))
    other = Alias("List")
    other.bind(RecordT({"value": NUMBER, "next": make_union(other, NULL)}))
    assert is_of_type(node, other)
    assert is_of_type(other, node)

    strings = Alias("Strings")
    strings.bind(RecordT({"value": STRING, "next": make_union(strings, NULL)}))
    assert not is_of_type(strings, node)


def test_get_property():
    rec = RecordT({"name": STRING})
    alias = Alias("Thing")
    alias.bind(rec)
    assert get_property(rec, "name") == STRING
    assert get_property(alias, "name") == STRING
    assert get_property(rec, "missing") is ANY
    assert get_property(UNDEFINED, "x") is INVALID
    assert get_property(NULL, "x") is INVALID
    assert get_property(NUMBER, "toFixed") is ANY


def test_return_type():
    assert return_type(FunctionT(STRING)) == STRING
    assert return_type(NUMBER) is ANY


def test_rendering():
    assert str(make_union(NUMBER, UNDEFINED)) == "number|undefined"
    assert make_union(NUMBER, UNDEFINED).render(nested=True) == "(number|undefined)"
    assert str(RecordT({"name": STRING, "value": NUMBER})) == "{name:string, value:number}"
    assert str(ArrayT(NUMBER)) == "number[]"
    assert str(ArrayT(make_union(STRING, NUMBER))) == "(string|number)[]"
    assert str(FunctionT(NUMBER, (STRING, make_union(NUMBER, UNDEFINED)))) == "function(string,(number|undefined)):number"
    assert str(ANY) == "any"
    assert str(INVALID) == "invalid"
    a = Alias("Thing")
    a.bind(RecordT({}))
    assert str(a) == "Thing"
    assert str(Prim("RegExp")) == "RegExp"
