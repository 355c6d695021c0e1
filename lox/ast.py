"""Lox AST — parse-time node definitions.

Expression nodes carry an `id` assigned by the parser in creation order. The
resolver keys its scope distances by that id, so nodes never need to be
hashed or compared by identity.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .tokens import Token


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass
class Expr:
    """Base for all expression nodes."""

    id: int = field(compare=False)


@dataclass
class Literal(Expr):
    """nil, true, false, number or string."""

    value: object


@dataclass
class Grouping(Expr):
    """( expr )."""

    expression: Expr


@dataclass
class Unary(Expr):
    """! expr, - expr."""

    op: Token
    right: Expr


@dataclass
class Binary(Expr):
    """Arithmetic, comparison and equality operators."""

    left: Expr
    op: Token
    right: Expr


@dataclass
class Logical(Expr):
    """and / or: short-circuiting, value-returning."""

    left: Expr
    op: Token
    right: Expr


@dataclass
class Variable(Expr):
    name: Token


@dataclass
class Assign(Expr):
    name: Token
    value: Expr


@dataclass
class Call(Expr):
    """callee ( args ). paren is the closing ')' for error locations."""

    callee: Expr
    paren: Token
    arguments: list[Expr]


@dataclass
class Get(Expr):
    """object . name."""

    obj: Expr
    name: Token


@dataclass
class Set(Expr):
    """object . name = value."""

    obj: Expr
    name: Token
    value: Expr


@dataclass
class This(Expr):
    keyword: Token


# ============================================================
# STATEMENTS
# ============================================================


@dataclass
class Stmt:
    """Base for all statements."""


@dataclass
class Expression(Stmt):
    expression: Expr


@dataclass
class Print(Stmt):
    expression: Expr


@dataclass
class Var(Stmt):
    """var name ( = initializer )? ;"""

    name: Token
    initializer: Expr | None


@dataclass
class Block(Stmt):
    statements: list[Stmt]


@dataclass
class If(Stmt):
    condition: Expr
    then_branch: Stmt
    else_branch: Stmt | None


@dataclass
class While(Stmt):
    """Also the target of for-loop desugaring."""

    condition: Expr
    body: Stmt


@dataclass
class Function(Stmt):
    """fun name(params) { body }; also used for class methods."""

    name: Token
    params: list[Token]
    body: list[Stmt]


@dataclass
class Return(Stmt):
    keyword: Token
    value: Expr | None


@dataclass
class Class(Stmt):
    """class Name { methods }."""

    name: Token
    methods: list[Function]
