"""Pipeline driver — scan, parse, resolve, then interpret.

Static errors from the first three stages are rendered and stop the run
before anything executes. A runtime error stops the statements being run, but
a `Session` keeps its globals so a prompt can continue with the next line.
"""

from __future__ import annotations

import io
import logging
import sys
from dataclasses import dataclass, field
from typing import TextIO, Union

from .ast import Stmt
from .natives import define_natives
from .parse import ParseError, parse
from .resolve import ResolveError, resolve
from .runtime import Environment, Interpreter, LoxRuntimeError
from .tokens import LexError, tokenize

logger = logging.getLogger("lox.driver")

StaticError = Union[LexError, ParseError, ResolveError]

EXIT_OK = 0
EXIT_USAGE = 64
EXIT_STATIC_ERROR = 65
EXIT_NO_INPUT = 66
EXIT_RUNTIME_ERROR = 70


@dataclass
class Program:
    """Result of the static stages."""

    statements: list[Stmt]
    locals: dict[int, int] = field(default_factory=dict)
    errors: list[StaticError] = field(default_factory=list)


@dataclass
class RunResult:
    exit_code: int
    stdout: str
    stderr: str


def analyze(source: str) -> Program:
    """Scan, parse and resolve. Resolution is skipped if parsing failed."""
    tokens, lex_errors = tokenize(source)
    statements, parse_errors = parse(tokens)
    errors: list[StaticError] = []
    errors.extend(lex_errors)
    errors.extend(parse_errors)
    if errors:
        return Program(statements, {}, errors)
    table, resolve_errors = resolve(statements)
    return Program(statements, table, list(resolve_errors))


def format_static_error(err: StaticError) -> str:
    if isinstance(err, LexError):
        return "[line " + str(err.line) + "] Error: " + err.msg
    if err.lexeme is None:
        where = " at end"
    else:
        where = " at '" + err.lexeme + "'"
    return "[line " + str(err.line) + "] Error" + where + ": " + err.msg


def format_runtime_error(err: LoxRuntimeError) -> str:
    return err.msg + "\n[line " + str(err.line) + "]"


class Session:
    """One interpreter and its globals, shared by every source run through it."""

    def __init__(self, stdout: TextIO | None = None, stderr: TextIO | None = None):
        self.stderr: TextIO = stderr if stderr is not None else sys.stderr
        self.interpreter = Interpreter(
            stdout=stdout, global_env=define_natives(Environment())
        )

    def _report(self, text: str) -> None:
        self.stderr.write(text + "\n")

    def run(self, source: str) -> int:
        """Run source and return an exit code."""
        program = analyze(source)
        if program.errors:
            logger.debug("Static errors", extra={"count": len(program.errors)})
            for err in program.errors:
                self._report(format_static_error(err))
            return EXIT_STATIC_ERROR
        runtime_error = self.interpreter.interpret(program.statements, program.locals)
        if runtime_error is not None:
            self._report(format_runtime_error(runtime_error))
            return EXIT_RUNTIME_ERROR
        return EXIT_OK


def run(source: str) -> RunResult:
    """Run a complete program in a fresh session, capturing its output."""
    stdout = io.StringIO()
    stderr = io.StringIO()
    code = Session(stdout=stdout, stderr=stderr).run(source)
    return RunResult(code, stdout.getvalue(), stderr.getvalue())
