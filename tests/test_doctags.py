import logging

import pytest

from typelint.tools.doctags import (
    AllLiteral,
    ArrayType,
    FieldType,
    FunctionType,
    ImportType,
    NameExpression,
    NonNullableType,
    NullableType,
    NullLiteral,
    OptionalType,
    RecordType,
    RestType,
    StringLiteralType,
    TypeApplication,
    TypeSyntaxError,
    UndefinedLiteral,
    UnionType,
    parse_comment,
    parse_type_expr,
)


def test_param_and_return_tags():
    tags = parse_comment(
        "/**\n"
        " * Adds things.\n"
        " * @param {number} x - the x\n"
        " * @param {string} [y='a'] optional one\n"
        " * @returns {boolean}\n"
        " */"
    )
    assert [t.tag for t in tags] == ["param", "param", "returns"]
    x, y, ret = tags
    assert x.name == "x"
    assert x.type == NameExpression("number")
    assert x.description == "the x"
    assert not x.optional
    assert y.name == "y"
    assert y.optional
    assert y.default == "'a'"
    assert ret.type == NameExpression("boolean")
    assert ret.name is None


def test_single_line_type_tag():
    (tag,) = parse_comment("/** @type {number|undefined} */")
    assert tag.tag == "type"
    assert tag.type_text == "number|undefined"
    assert tag.type == UnionType((NameExpression("number"), UndefinedLiteral()))


def test_typedef_with_properties():
    tags = parse_comment(
        "/** @typedef {object} Thing\n"
        " * @property {string} name\n"
        " * @property {{a: number}} [meta]\n"
        " */"
    )
    assert [(t.tag, t.name) for t in tags] == [("typedef", "Thing"), ("property", "name"), ("property", "meta")]
    assert tags[2].optional
    assert tags[2].type == RecordType((FieldType("a", NameExpression("number")),))


def test_inline_braces_do_not_start_tags():
    tags = parse_comment("/** @param {string} s see {@link other} for details */")
    assert len(tags) == 1
    assert tags[0].description == "see {@link other} for details"


def test_malformed_type_is_dropped_with_a_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="typelint.tools.doctags"):
        (tag,) = parse_comment("/** @type {number|} */")
    assert tag.type is None
    assert tag.type_text == "number|"
    assert "malformed type" in caplog.text


@pytest.mark.parametrize(
    "expr, expected",
    [
        ("number", NameExpression("number")),
        ("ns.Thing", NameExpression("ns.Thing")),
        ("(string|number)", UnionType((NameExpression("string"), NameExpression("number")))),
        ("Array.<string>", TypeApplication(NameExpression("Array"), (NameExpression("string"),))),
        ("Map<string, number>", TypeApplication(NameExpression("Map"), (NameExpression("string"), NameExpression("number")))),
        ("string[]", ArrayType(NameExpression("string"))),
        ("(string|number)[]", ArrayType(UnionType((NameExpression("string"), NameExpression("number"))))),
        ("number=", OptionalType(NameExpression("number"))),
        ("?number", NullableType(NameExpression("number"))),
        ("!Foo", NonNullableType(NameExpression("Foo"))),
        ("...number", RestType(NameExpression("number"))),
        ("*", AllLiteral()),
        ("?", AllLiteral()),
        ("null", NullLiteral()),
        ("'on'", StringLiteralType("on")),
        ("{a: number, b}", RecordType((FieldType("a", NameExpression("number")), FieldType("b", None)))),
        ("import('./types').User", ImportType("./types", "User")),
    ],
)
def test_type_expressions(expr, expected):
    assert parse_type_expr(expr) == expected


def test_function_type_drops_this_and_new():
    t = parse_type_expr("function(this:Foo, number, string=): boolean")
    assert t == FunctionType(
        (NameExpression("number"), OptionalType(NameExpression("string"))),
        NameExpression("boolean"),
    )
    assert parse_type_expr("function()") == FunctionType((), None)


@pytest.mark.parametrize("expr", ["", "number|", "{a:", "Array.<string", "function(number", "a b", "%"])
def test_syntax_errors(expr):
    with pytest.raises(TypeSyntaxError):
        parse_type_expr(expr)
