"""Tests for the Lox tokenizer."""

from lox import scan
from lox.tokens import (
    TK_BANG,
    TK_BANG_EQUAL,
    TK_CLASS,
    TK_DOT,
    TK_EOF,
    TK_EQUAL,
    TK_EQUAL_EQUAL,
    TK_GREATER,
    TK_GREATER_EQUAL,
    TK_IDENTIFIER,
    TK_LESS,
    TK_LESS_EQUAL,
    TK_NUMBER,
    TK_PRINT,
    TK_SEMICOLON,
    TK_SLASH,
    TK_STRING,
    TK_VAR,
)


def _kinds(source: str) -> list[str]:
    tokens, errors = scan(source)
    assert errors == [], [str(e) for e in errors]
    return [t.kind for t in tokens]


# ── Tokens ──


def test_keywords_and_identifiers():
    assert _kinds("var classy = class;") == [
        TK_VAR,
        TK_IDENTIFIER,
        TK_EQUAL,
        TK_CLASS,
        TK_SEMICOLON,
        TK_EOF,
    ]


def test_operators_take_trailing_equal():
    assert _kinds("!= == <= >= ! = < >") == [
        TK_BANG_EQUAL,
        TK_EQUAL_EQUAL,
        TK_LESS_EQUAL,
        TK_GREATER_EQUAL,
        TK_BANG,
        TK_EQUAL,
        TK_LESS,
        TK_GREATER,
        TK_EOF,
    ]


def test_number_literal():
    tokens, _ = scan("12.5 7")
    assert tokens[0].kind == TK_NUMBER
    assert tokens[0].literal == 12.5
    assert tokens[1].literal == 7.0


def test_trailing_dot_is_not_part_of_number():
    tokens, _ = scan("1.")
    assert [t.kind for t in tokens] == [TK_NUMBER, TK_DOT, TK_EOF]
    assert tokens[0].lexeme == "1"


def test_string_literal_drops_quotes():
    tokens, _ = scan('"hi there"')
    assert tokens[0].kind == TK_STRING
    assert tokens[0].lexeme == '"hi there"'
    assert tokens[0].literal == "hi there"


def test_comment_runs_to_end_of_line():
    tokens, _ = scan("// note / here\nprint 1 / 2;")
    assert [t.kind for t in tokens][:4] == [TK_PRINT, TK_NUMBER, TK_SLASH, TK_NUMBER]
    assert tokens[0].line == 2


def test_empty_source_is_just_eof():
    assert _kinds("") == [TK_EOF]


# ── Positions ──


def test_lines_and_columns():
    tokens, _ = scan("var a;\n  print a;")
    assert (tokens[0].line, tokens[0].col) == (1, 1)
    assert (tokens[1].line, tokens[1].col) == (1, 5)
    assert (tokens[3].line, tokens[3].col) == (2, 3)


def test_multiline_string_counts_lines():
    tokens, errors = scan('"a\nb"\nx')
    assert errors == []
    assert tokens[0].literal == "a\nb"
    assert tokens[1].kind == TK_IDENTIFIER
    assert tokens[1].line == 3


# ── Errors ──


def test_unexpected_character_is_collected():
    tokens, errors = scan("1 @ 2")
    assert len(errors) == 1
    assert errors[0].msg == "Unexpected character."
    assert errors[0].line == 1
    assert [t.kind for t in tokens] == [TK_NUMBER, TK_NUMBER, TK_EOF]


def test_scanning_continues_after_errors():
    _, errors = scan("@\n#\nprint 1;")
    assert [e.line for e in errors] == [1, 2]


def test_unterminated_string_still_yields_token():
    tokens, errors = scan('print "abc')
    assert len(errors) == 1
    assert errors[0].msg == "Unterminated string."
    assert tokens[1].kind == TK_STRING
    assert tokens[1].literal == "abc"
    assert tokens[-1].kind == TK_EOF
