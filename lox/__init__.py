"""Lox tree-walking interpreter — public API."""

from __future__ import annotations

from .ast import Stmt
from .driver import RunResult as RunResult, Session as Session, analyze, run as run
from .emit import to_source
from .parse import ParseError as ParseError, parse as parse_tokens
from .resolve import ResolveError as ResolveError, resolve as resolve_statements
from .runtime import Environment, LoxRuntimeError as LoxRuntimeError
from .runtime import interpret as interpret_statements
from .tokens import LexError as LexError, Token, tokenize


def scan(source: str) -> tuple[list[Token], list[LexError]]:
    """Scan source into tokens. Lexical errors are returned, not raised."""
    return tokenize(source)


def parse(source: str) -> tuple[list[Stmt], list[LexError | ParseError]]:
    """Scan and parse source. Returns (statements, lex and parse errors)."""
    tokens, lex_errors = tokenize(source)
    statements, parse_errors = parse_tokens(tokens)
    errors: list[LexError | ParseError] = []
    errors.extend(lex_errors)
    errors.extend(parse_errors)
    return statements, errors


def resolve(statements: list[Stmt]) -> tuple[dict[int, int], list[ResolveError]]:
    """Compute scope distances for parsed statements."""
    return resolve_statements(statements)


def check(source: str) -> list[LexError | ParseError | ResolveError]:
    """Run every static stage. Returns the errors (empty = ok)."""
    return list(analyze(source).errors)


def interpret(
    statements: list[Stmt], locals: dict[int, int], global_env: Environment
) -> LoxRuntimeError | None:
    """Execute resolved statements against global_env."""
    return interpret_statements(statements, locals, global_env)


def emit(statements: list[Stmt]) -> str:
    """Emit statements as Lox source text."""
    return to_source(statements)
