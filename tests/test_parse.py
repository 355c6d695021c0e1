"""Tests for parser recovery and limits."""

from lox import parse
from lox.ast import Block, Call, Expression, Function, Print
from lox.driver import format_static_error
from lox.parse import ParseError, parse as parse_tokens
from lox.tokens import tokenize


def _collect_ids(node, out: list[int]) -> None:
    if isinstance(node, list):
        for n in node:
            _collect_ids(n, out)
        return
    if hasattr(node, "id"):
        out.append(node.id)
    if hasattr(node, "__dataclass_fields__"):
        for name in node.__dataclass_fields__:
            _collect_ids(getattr(node, name), out)


# ── Recovery ──


def test_recovers_and_reports_each_statement():
    statements, errors = parse("var = 1;\nprint (;\nprint 3;")
    assert [e.msg for e in errors] == ["Expect variable name.", "Expect expression."]
    assert [e.line for e in errors] == [1, 2]
    assert len(statements) == 1
    assert isinstance(statements[0], Print)


def test_recovers_inside_block_and_keeps_later_statements():
    statements, errors = parse("{ print ; print 2; }\nprint 3;")
    assert [e.msg for e in errors] == ["Expect expression."]
    assert len(statements) == 2
    assert isinstance(statements[0], Block)
    assert len(statements[0].statements) == 1
    assert isinstance(statements[0].statements[0], Print)


def test_recovers_inside_function_body():
    statements, errors = parse("fun f() { ) }\nprint 1;")
    assert [e.msg for e in errors] == ["Expect expression.", "Expect '}' after block."]
    assert statements == []


def test_error_at_end_has_no_lexeme():
    _, errors = parse("print 1")
    assert isinstance(errors[0], ParseError)
    assert errors[0].lexeme is None
    assert format_static_error(errors[0]) == "[line 1] Error at end: Expect ';' after value."


def test_error_names_the_offending_token():
    _, errors = parse("print 1 2;")
    assert format_static_error(errors[0]) == "[line 1] Error at '2': Expect ';' after value."


def test_invalid_assignment_target_does_not_drop_statement():
    statements, errors = parse("1 = 2;\nprint 3;")
    assert [e.msg for e in errors] == ["Invalid assignment target."]
    assert len(statements) == 2
    assert isinstance(statements[0], Expression)


# ── Limits ──


def test_255_arguments_allowed():
    source = "f(" + ", ".join(["1"] * 255) + ");"
    statements, errors = parse(source)
    assert errors == []
    call = statements[0].expression
    assert isinstance(call, Call)
    assert len(call.arguments) == 255


def test_too_many_arguments_is_reported_but_parsed():
    source = "f(" + ", ".join(["1"] * 256) + ");"
    statements, errors = parse(source)
    assert [e.msg for e in errors] == ["Can't have more than 255 arguments."]
    assert len(statements[0].expression.arguments) == 256


def test_too_many_parameters_is_reported_but_parsed():
    params = ", ".join("p" + str(i) for i in range(256))
    statements, errors = parse("fun f(" + params + ") {}")
    assert [e.msg for e in errors] == ["Can't have more than 255 parameters."]
    assert isinstance(statements[0], Function)
    assert len(statements[0].params) == 256


# ── Node ids ──


def test_node_ids_are_unique_across_parses():
    first, _ = parse("var a = 1; print a + a;")
    second, _ = parse("print a;")
    ids: list[int] = []
    _collect_ids(first, ids)
    _collect_ids(second, ids)
    assert len(ids) > 0
    assert len(ids) == len(set(ids))


# ── Package API ──


def test_package_parse_matches_stage_functions():
    source = "print 1 @ 2;\nvar = 3;"
    tokens, lex_errors = tokenize(source)
    _, parse_errors = parse_tokens(tokens)
    _, errors = parse(source)
    assert [e.msg for e in errors] == [e.msg for e in lex_errors + parse_errors]
    assert [e.msg for e in errors] == [
        "Unexpected character.",
        "Expect ';' after value.",
        "Expect variable name.",
    ]
