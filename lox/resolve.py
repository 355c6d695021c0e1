"""Lox resolver — static binding analysis.

One pass over the statement list. For every Variable, Assign and This node it
records how many enclosing scopes separate the reference from the scope that
declares the name. References that reach the top level are left out of the
table and looked up in the globals at run time.
"""

from __future__ import annotations

import logging

from .ast import (
    Assign,
    Binary,
    Block,
    Call,
    Class,
    Expr,
    Expression,
    Function,
    Get,
    Grouping,
    If,
    Literal,
    Logical,
    Print,
    Return,
    Set,
    Stmt,
    This,
    Unary,
    Var,
    Variable,
    While,
)
from .tokens import Token

logger = logging.getLogger("lox.resolve")

# Function kinds
FN_NONE = "none"
FN_FUNCTION = "function"
FN_METHOD = "method"
FN_INITIALIZER = "initializer"

# Class kinds
CLASS_NONE = "none"
CLASS_CLASS = "class"


class ResolveError(Exception):
    """Static-semantic error located at a token."""

    def __init__(self, msg: str, line: int, col: int, lexeme: str | None = None):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        self.lexeme: str | None = lexeme
        super().__init__(msg + " at line " + str(line) + " col " + str(col))


class Resolver:
    def __init__(self) -> None:
        self.errors: list[ResolveError] = []
        self.locals: dict[int, int] = {}
        # name -> defined? False while the initializer is being resolved
        self.scopes: list[dict[str, bool]] = []
        # Top level: tracked for initializer checks only, never given distances
        self.globals: dict[str, bool] = {}
        self.current_function: str = FN_NONE
        self.current_class: str = CLASS_NONE

    def error(self, tok: Token, msg: str) -> None:
        self.errors.append(ResolveError(msg, tok.line, tok.col, tok.lexeme))

    # ── Scope management ──────────────────────────────────────

    def begin_scope(self) -> None:
        self.scopes.append({})

    def end_scope(self) -> None:
        self.scopes.pop()

    def declare(self, name: Token) -> None:
        if len(self.scopes) == 0:
            # Globals may be redeclared; a redeclaration reads the old value
            if self.globals.get(name.lexeme) is not True:
                self.globals[name.lexeme] = False
            return
        scope = self.scopes[-1]
        if name.lexeme in scope:
            self.error(name, "Already a variable with this name in this scope.")
        scope[name.lexeme] = False

    def define(self, name: Token) -> None:
        if len(self.scopes) == 0:
            self.globals[name.lexeme] = True
            return
        self.scopes[-1][name.lexeme] = True

    def resolve_local(self, expr: Expr, name: Token) -> None:
        i = len(self.scopes) - 1
        while i >= 0:
            if name.lexeme in self.scopes[i]:
                self.locals[expr.id] = len(self.scopes) - 1 - i
                return
            i -= 1

    # ── Entry ─────────────────────────────────────────────────

    def resolve(self, statements: list[Stmt]) -> dict[int, int]:
        self.resolve_stmts(statements)
        logger.debug(
            "Resolved bindings",
            extra={"bindings": len(self.locals), "errors": len(self.errors)},
        )
        return self.locals

    def resolve_stmts(self, statements: list[Stmt]) -> None:
        for stmt in statements:
            self.resolve_stmt(stmt)

    # ── Statements ────────────────────────────────────────────

    def resolve_stmt(self, stmt: Stmt) -> None:
        if isinstance(stmt, Block):
            self.begin_scope()
            self.resolve_stmts(stmt.statements)
            self.end_scope()
        elif isinstance(stmt, Var):
            self.declare(stmt.name)
            if stmt.initializer is not None:
                self.resolve_expr(stmt.initializer)
            self.define(stmt.name)
        elif isinstance(stmt, Function):
            # Name first so the body can recurse
            self.declare(stmt.name)
            self.define(stmt.name)
            self.resolve_function(stmt, FN_FUNCTION)
        elif isinstance(stmt, Class):
            self.resolve_class(stmt)
        elif isinstance(stmt, Expression):
            self.resolve_expr(stmt.expression)
        elif isinstance(stmt, Print):
            self.resolve_expr(stmt.expression)
        elif isinstance(stmt, If):
            self.resolve_expr(stmt.condition)
            self.resolve_stmt(stmt.then_branch)
            if stmt.else_branch is not None:
                self.resolve_stmt(stmt.else_branch)
        elif isinstance(stmt, While):
            self.resolve_expr(stmt.condition)
            self.resolve_stmt(stmt.body)
        elif isinstance(stmt, Return):
            self.resolve_return(stmt)
        else:
            raise TypeError("unhandled statement type: " + type(stmt).__name__)

    def resolve_return(self, stmt: Return) -> None:
        if self.current_function == FN_NONE:
            self.error(stmt.keyword, "Can't return from top-level code.")
        if stmt.value is not None:
            if self.current_function == FN_INITIALIZER:
                self.error(stmt.keyword, "Can't return a value from an initializer.")
            self.resolve_expr(stmt.value)

    def resolve_class(self, stmt: Class) -> None:
        enclosing_class = self.current_class
        self.current_class = CLASS_CLASS
        self.declare(stmt.name)
        self.define(stmt.name)

        self.begin_scope()
        self.scopes[-1]["this"] = True
        for method in stmt.methods:
            kind = FN_INITIALIZER if method.name.lexeme == "init" else FN_METHOD
            self.resolve_function(method, kind)
        self.end_scope()

        self.current_class = enclosing_class

    def resolve_function(self, fn: Function, kind: str) -> None:
        enclosing_function = self.current_function
        self.current_function = kind
        self.begin_scope()
        for param in fn.params:
            self.declare(param)
            self.define(param)
        self.resolve_stmts(fn.body)
        self.end_scope()
        self.current_function = enclosing_function

    # ── Expressions ───────────────────────────────────────────

    def resolve_expr(self, expr: Expr) -> None:
        if isinstance(expr, Variable):
            innermost = self.scopes[-1] if len(self.scopes) > 0 else self.globals
            if innermost.get(expr.name.lexeme) is False:
                self.error(expr.name, "Can't read local variable in its own initializer.")
            self.resolve_local(expr, expr.name)
        elif isinstance(expr, Assign):
            self.resolve_expr(expr.value)
            self.resolve_local(expr, expr.name)
        elif isinstance(expr, This):
            if self.current_class == CLASS_NONE:
                self.error(expr.keyword, "Can't use 'this' outside of a class.")
                return
            self.resolve_local(expr, expr.keyword)
        elif isinstance(expr, Binary) or isinstance(expr, Logical):
            self.resolve_expr(expr.left)
            self.resolve_expr(expr.right)
        elif isinstance(expr, Unary):
            self.resolve_expr(expr.right)
        elif isinstance(expr, Grouping):
            self.resolve_expr(expr.expression)
        elif isinstance(expr, Call):
            self.resolve_expr(expr.callee)
            for arg in expr.arguments:
                self.resolve_expr(arg)
        elif isinstance(expr, Get):
            self.resolve_expr(expr.obj)
        elif isinstance(expr, Set):
            self.resolve_expr(expr.value)
            self.resolve_expr(expr.obj)
        elif isinstance(expr, Literal):
            return
        else:
            raise TypeError("unhandled expression type: " + type(expr).__name__)


def resolve(statements: list[Stmt]) -> tuple[dict[int, int], list[ResolveError]]:
    """Resolve a statement list. Returns (distances by node id, errors)."""
    resolver = Resolver()
    table = resolver.resolve(statements)
    return table, resolver.errors
