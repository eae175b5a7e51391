from typelint.tools.lint import Linter

ASSIGN = "assignment-types-must-match"
LENGTH = "function-args-length-must-match"
ARG_TYPES = "function-args-types-must-match"
RETURNS = "function-return-type-must-match"


# -------------------------
# assignment-types-must-match
# -------------------------

def test_initializer_mismatch(lint):
    assert lint("/** @type {number} */\nvar x = true;\n", ASSIGN) == [
        "can't initialize variable of type number with value of type boolean"
    ]


def test_initializer_match(lint):
    assert lint("/** @type {number} */\nvar x = 1;\n/** @type {string} */\nconst s = `a`;\n", ASSIGN) == []


def test_assignment_spanning_lines(lint):
    src = "/** @type {number} */\nlet count = 0;\ncount =\n  true;\n"
    assert lint(src, ASSIGN) == ["can't assign type boolean to variable of type number"]


def test_assignment_of_string(lint):
    src = "/** @type {number} */\nvar x = 1;\nx = 'definitely not a number';\n"
    assert lint(src, ASSIGN) == ["can't assign type string to variable of type number"]


def test_jsx_value(lint):
    assert lint("/** @type {number} */\nconst el = <div />;\n", ASSIGN) == [
        "can't initialize variable of type number with value of type JSXElement"
    ]


def test_union_declared_type_is_rendered_whole(lint):
    assert lint("/** @type {number|undefined} */\nvar x = true;\n", ASSIGN) == [
        "can't initialize variable of type number|undefined with value of type boolean"
    ]


def test_wider_value_is_rejected(lint):
    src = "/** @type {number|undefined} */\nvar y;\n/** @type {number} */\nvar x = y;\n"
    assert lint(src, ASSIGN) == ["can't initialize variable of type number with value of type number|undefined"]


def test_narrower_value_is_accepted(lint):
    src = "/** @type {number} */\nvar y = 1;\n/** @type {number|undefined} */\nvar x = y;\n"
    assert lint(src, ASSIGN) == []


def test_call_result(lint):
    src = (
        "/** @returns {boolean} */\n"
        "function foo() { return true; }\n"
        "/** @type {number} */\n"
        "var x = foo();\n"
    )
    assert lint(src, ASSIGN) == ["can't initialize variable of type number with value of type boolean"]


def test_ternaries(lint):
    src = (
        "/** @param {boolean} flag */\n"
        "function f(flag) {\n"
        "  /** @type {string} */\n"
        "  var s = flag ? 'a' : undefined;\n"
        "  s = flag ? 'b' : undefined;\n"
        "}\n"
    )
    assert lint(src, ASSIGN) == [
        "can't initialize variable of type string with value of type string|undefined",
        "can't assign type string|undefined to variable of type string",
    ]


def test_typedef_member(lint):
    src = (
        "/** @typedef {{name: string}} Thing */\n"
        "/** @type {Thing} */\n"
        "const myThing = {name: 'a'};\n"
        "/** @type {boolean} */\n"
        "var b = myThing.name;\n"
    )
    assert lint(src, ASSIGN) == ["can't initialize variable of type boolean with value of type string"]


def test_constructed_value(lint):
    assert lint("/** @type {string} */\nvar x = new Foo();\n", ASSIGN) == [
        "can't initialize variable of type string with value of type Foo"
    ]


def test_nested_record_mismatch(lint):
    src = (
        "/**\n"
        " * @typedef {Object} ExtendedRecord\n"
        " * @property {{name: string, value: number}} data\n"
        " * @property {string} department\n"
        " */\n"
        "/** @type {ExtendedRecord} */\n"
        "const rec = {data: {name: 'n', value: undefined}, department: 'd'};\n"
        "/** @type {ExtendedRecord} */\n"
        "const ok = {data: {name: 'n', value: 1}, department: 'd', extra: true};\n"
    )
    assert lint(src, ASSIGN) == [
        "can't initialize variable of type ExtendedRecord with value of type "
        "{data:{name:string, value:undefined}, department:string}"
    ]


RECORD_TYPEDEFS = (
    "/**\n"
    " * @typedef {object} Record\n"
    " * @property {string} name\n"
    " * @property {number} value\n"
    " */\n"
    "/**\n"
    " * @typedef {object} ExtendedRecord\n"
    " * @property {Record} data\n"
    " * @property {string} department\n"
    " */\n"
)


def test_typedef_property_typed_by_another_typedef(lint):
    src = RECORD_TYPEDEFS + (
        "/** @type {ExtendedRecord} */\n"
        "const rec = { data: { name: 'alice', value: 123 }, department: 'finance' };\n"
    )
    assert lint(src, ASSIGN) == []


def test_typedef_property_typed_by_another_typedef_mismatch(lint):
    src = RECORD_TYPEDEFS + (
        "/** @type {ExtendedRecord} */\n"
        "const rec = { data: { name: 'alice', value: undefined }, department: 'finance' };\n"
    )
    assert lint(src, ASSIGN) == [
        "can't initialize variable of type ExtendedRecord with value of type "
        "{data:{name:string, value:undefined}, department:string}"
    ]


def test_comment_covers_only_the_first_declarator(lint):
    assert lint("/** @type {number} */\nlet a = 1,\n    b = 'x';\n", ASSIGN) == []
    assert lint("/** @type {number} */\nlet a = 'x',\n    b = 'y';\n", ASSIGN) == [
        "can't initialize variable of type number with value of type string"
    ]


def test_imported_let_is_not_narrowed_to_its_initializer():
    linter = Linter({"rules": {ASSIGN: "error"}})
    linter.session.add_source("/virtual/counter.js", "export let count = 0;\nexport const total = 0;\n")
    src = (
        "import { count, total } from './counter';\n"
        "/** @type {string} */\n"
        "const c = count;\n"
        "/** @type {string} */\n"
        "const t = total;\n"
    )
    issues = linter.lint_source(src, "/virtual/main.js")
    assert [(i.line, i.message) for i in issues] == [
        (5, "can't initialize variable of type string with value of type number")
    ]


def test_undeclared_variables_are_not_checked(lint):
    assert lint("var x = 1;\nx = 'a';\nlet y;\ny = true;\n", ASSIGN) == []


# -------------------------
# function-args-length-must-match
# -------------------------

def test_no_parameters(lint):
    assert lint("function foo() {}\nfoo(1, 2);\n", LENGTH) == [
        "function foo expects no arguments but was called with 2"
    ]


def test_too_few_arguments(lint):
    src = (
        "/**\n"
        " * @param {number} a\n"
        " * @param {number} b\n"
        " * @param {number} c\n"
        " */\n"
        "function foo(a, b, c) {}\n"
        "foo(1, 2);\n"
    )
    assert lint(src, LENGTH) == ["function foo expects 3 arguments but was called with 2"]


def test_optional_parameter_and_too_many(lint):
    src = (
        "/**\n"
        " * @param {number} a\n"
        " * @param {number} b\n"
        " * @param {number|undefined} q\n"
        " */\n"
        "function foo(a, b, q) {}\n"
        "foo(1, 2);\n"
        "foo(1, 2, 3, 4);\n"
    )
    assert lint(src, LENGTH) == ["function foo expects 3 arguments but was called with 4"]


def test_defaults_rest_and_spread(lint):
    src = (
        "function foo(a, b = 1) {}\n"
        "foo(1);\n"
        "function bar(a, ...rest) {}\n"
        "bar(1, 2, 3);\n"
        "foo(...xs);\n"
        "unknown(1, 2, 3);\n"
        "obj.method(1);\n"
    )
    assert lint(src, LENGTH) == []


def test_declared_function_type_without_a_body(lint):
    src = "/** @type {function(number, string): void} */\nlet cb;\ncb(1);\ncb(1, 'a');\n"
    assert lint(src, LENGTH) == ["function cb expects 2 arguments but was called with 1"]


# -------------------------
# function-args-types-must-match
# -------------------------

ARGS_SRC = (
    "/**\n"
    " * @param {number} n\n"
    " * @param {string|undefined} s\n"
    " * @param {boolean} flag\n"
    " */\n"
    "function foo(n, s, flag) {}\n"
    "foo(1, 2);\n"
)


def test_argument_type_mismatch_and_missing(lint):
    assert lint(ARGS_SRC, ARG_TYPES) == [
        "type (string|undefined) expected for argument 1 in call to foo but number provided",
        "type boolean expected for argument 2 in call to foo but undefined implicitly provided",
    ]


def test_ignore_trailing_undefineds(lint):
    assert lint(ARGS_SRC, ARG_TYPES, ignoreTrailingUndefineds=True) == [
        "type (string|undefined) expected for argument 1 in call to foo but number provided",
    ]


def test_missing_argument_to_arrow(lint):
    src = "/** @param {number} x */\nconst myFunc = (x) => x;\nmyFunc();\n"
    assert lint(src, ARG_TYPES) == [
        "type number expected for argument 0 in call to myFunc but undefined implicitly provided"
    ]


def test_defaulted_parameter_may_be_omitted(lint):
    src = (
        "/**\n"
        " * @param {number} y\n"
        " * @param {boolean} [z=true]\n"
        " */\n"
        "function foo(y, z = true) {}\n"
        "foo(1);\n"
    )
    assert lint(src, ARG_TYPES) == []


def test_matching_arguments(lint):
    src = "/** @param {number} a\n * @param {string} b */\nfunction foo(a, b) {}\nfoo(1, 'x');\nfoo(x, y);\n"
    assert lint(src, ARG_TYPES) == []


# -------------------------
# function-return-type-must-match
# -------------------------

def test_wrong_return_type(lint):
    src = "/** @returns {number} */\nfunction f() {\n  return true;\n}\n"
    assert lint(src, RETURNS) == ["returning boolean from a function declared to return number"]


def test_implicit_undefined_return(lint):
    src = "/** @returns {number} */\nfunction f() {\n  return;\n}\n"
    assert lint(src, RETURNS) == ["returning an implicit undefined from a function declared to return number"]
    assert lint(src, RETURNS, allowImplicitUndefineds=True) == []


def test_return_checks_only_the_innermost_function(lint):
    src = (
        "/** @returns {number} */\n"
        "function f() {\n"
        "  const g = () => {\n"
        "    return 'x';\n"
        "  };\n"
        "  return 1;\n"
        "}\n"
    )
    assert lint(src, RETURNS) == []


def test_optional_return_type_allows_bare_return(lint):
    src = "/** @returns {number|undefined} */\nfunction f() {\n  return;\n}\n"
    assert lint(src, RETURNS) == []


# -------------------------
# host
# -------------------------

BOOLEAN_IS_TRUE = (
    "/**\n"
    " * @param {boolean} myBool\n"
    " * @return {string}\n"
    " */\n"
    "function booleanIsTrue(myBool) {\n"
    '  return myBool ? "yes" : "no";\n'
    "}\n"
)


def test_all_rules_by_default():
    linter = Linter()
    issues = linter.lint_source(BOOLEAN_IS_TRUE + "/** @type {number} */\nconst x = booleanIsTrue(true);\n", "/virtual/a.js")
    assert [(i.rule, i.line, i.message) for i in issues] == [
        (ASSIGN, 9, "can't initialize variable of type number with value of type string"),
    ]
    assert linter.lint_source(BOOLEAN_IS_TRUE + "/** @type {string} */\nconst y = booleanIsTrue(true);\n", "/virtual/a.js") == []
    assert linter.lint_source(BOOLEAN_IS_TRUE + "const z = booleanIsTrue(false);\n", "/virtual/a.js") == []


def test_issue_positions_and_severity():
    linter = Linter({"rules": {ASSIGN: "warn"}})
    (issue,) = linter.lint_source("var a;\n/** @type {number} */\n  var x = 'a';\n", "/virtual/p.js")
    assert (issue.line, issue.column, issue.severity) == (3, 7, "warn")
    assert issue.to_dict()["path"] == "/virtual/p.js"


def test_rules_switched_off_do_not_run():
    linter = Linter({"rules": {ASSIGN: "off", RETURNS: 0}})
    assert linter.lint_source("/** @type {number} */\nvar x = true;\n", "/virtual/off.js") == []
