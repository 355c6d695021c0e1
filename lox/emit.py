"""Lox emitter — converts parsed statements back into Lox source text.

Output reparses to an equivalent tree: parentheses appear only where the tree
holds a Grouping node, or where a hand-built tree would otherwise reparse with
a different shape. A desugared for loop is emitted as its while form.
"""

from __future__ import annotations

from decimal import Decimal

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


def to_source(statements: list[Stmt]) -> str:
    """Render a statement list back into Lox source text."""
    return _Emitter().emit_program(statements)


def render_number(value: float) -> str:
    """Positional notation, so the lexer reads the same value back."""
    text = format(Decimal(repr(value)), "f")
    if text.endswith(".0"):
        text = text[:-2]
    return text


class _Emitter:
    _INDENT: str = "    "

    # Expression precedence (higher binds tighter)
    _PREC_ASSIGN: int = 1
    _PREC_OR: int = 2
    _PREC_AND: int = 3
    _PREC_EQUALITY: int = 4
    _PREC_COMPARISON: int = 5
    _PREC_TERM: int = 6
    _PREC_FACTOR: int = 7
    _PREC_UNARY: int = 8
    _PREC_CALL: int = 9
    _PREC_PRIMARY: int = 10

    _BIN_PREC: dict[str, int] = {
        "or": _PREC_OR,
        "and": _PREC_AND,
        "==": _PREC_EQUALITY,
        "!=": _PREC_EQUALITY,
        "<": _PREC_COMPARISON,
        "<=": _PREC_COMPARISON,
        ">": _PREC_COMPARISON,
        ">=": _PREC_COMPARISON,
        "+": _PREC_TERM,
        "-": _PREC_TERM,
        "*": _PREC_FACTOR,
        "/": _PREC_FACTOR,
    }

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._indent_level: int = 0

    # ── Public ──────────────────────────────────────────────

    def emit_program(self, statements: list[Stmt]) -> str:
        self._lines = []
        self._indent_level = 0
        for stmt in statements:
            self._emit_stmt(stmt)
        text = "\n".join(self._lines)
        if text == "":
            return ""
        return text + "\n"

    # ── Lines / Blocks ──────────────────────────────────────

    def _emit_line(self, line: str) -> None:
        self._lines.append(self._INDENT * self._indent_level + line)

    def _emit_stmt_block(self, stmts: list[Stmt]) -> None:
        self._indent_level += 1
        for stmt in stmts:
            self._emit_stmt(stmt)
        self._indent_level -= 1

    def _emit_body(self, header: str, body: Stmt) -> None:
        """Emit `header` followed by a braced block or an indented statement."""
        if isinstance(body, Block):
            self._emit_line(header + " {")
            self._emit_stmt_block(body.statements)
            self._emit_line("}")
            return
        self._emit_line(header)
        self._indent_level += 1
        self._emit_stmt(body)
        self._indent_level -= 1

    # ── Stmts ───────────────────────────────────────────────

    def _emit_stmt(self, stmt: Stmt, prefix: str = "") -> None:
        if isinstance(stmt, Expression):
            self._emit_line(prefix + self._render_expr(stmt.expression, self._PREC_ASSIGN) + ";")
            return
        if isinstance(stmt, Print):
            self._emit_line(
                prefix + "print " + self._render_expr(stmt.expression, self._PREC_ASSIGN) + ";"
            )
            return
        if isinstance(stmt, Var):
            line = "var " + stmt.name.lexeme
            if stmt.initializer is not None:
                line += " = " + self._render_expr(stmt.initializer, self._PREC_ASSIGN)
            self._emit_line(prefix + line + ";")
            return
        if isinstance(stmt, Block):
            self._emit_line(prefix + "{")
            self._emit_stmt_block(stmt.statements)
            self._emit_line("}")
            return
        if isinstance(stmt, If):
            cond = self._render_expr(stmt.condition, self._PREC_ASSIGN)
            self._emit_body(prefix + "if (" + cond + ")", stmt.then_branch)
            if stmt.else_branch is None:
                return
            if isinstance(stmt.else_branch, If):
                self._emit_stmt(stmt.else_branch, prefix="else ")
            else:
                self._emit_body("else", stmt.else_branch)
            return
        if isinstance(stmt, While):
            cond = self._render_expr(stmt.condition, self._PREC_ASSIGN)
            self._emit_body(prefix + "while (" + cond + ")", stmt.body)
            return
        if isinstance(stmt, Function):
            self._emit_function(stmt, prefix + "fun ")
            return
        if isinstance(stmt, Return):
            if stmt.value is None:
                self._emit_line(prefix + "return;")
            else:
                self._emit_line(
                    prefix + "return " + self._render_expr(stmt.value, self._PREC_ASSIGN) + ";"
                )
            return
        if isinstance(stmt, Class):
            self._emit_line(prefix + "class " + stmt.name.lexeme + " {")
            self._indent_level += 1
            first = True
            for method in stmt.methods:
                if not first:
                    self._lines.append("")
                first = False
                self._emit_function(method, "")
            self._indent_level -= 1
            self._emit_line("}")
            return
        raise TypeError("unhandled statement type: " + type(stmt).__name__)

    def _emit_function(self, fn: Function, keyword: str) -> None:
        params = ", ".join(p.lexeme for p in fn.params)
        self._emit_line(keyword + fn.name.lexeme + "(" + params + ") {")
        self._emit_stmt_block(fn.body)
        self._emit_line("}")

    # ── Exprs ───────────────────────────────────────────────

    def _prec(self, expr: Expr) -> int:
        if isinstance(expr, Assign) or isinstance(expr, Set):
            return self._PREC_ASSIGN
        if isinstance(expr, Binary) or isinstance(expr, Logical):
            return self._BIN_PREC[expr.op.lexeme]
        if isinstance(expr, Unary):
            return self._PREC_UNARY
        if isinstance(expr, Call) or isinstance(expr, Get):
            return self._PREC_CALL
        if isinstance(expr, Literal) and isinstance(expr.value, float) and expr.value < 0:
            # Only hand-built trees hold negative literals; they render as unary minus
            return self._PREC_UNARY
        return self._PREC_PRIMARY

    def _render_expr(self, expr: Expr, min_prec: int) -> str:
        text = self._render_bare(expr)
        if self._prec(expr) < min_prec:
            return "(" + text + ")"
        return text

    def _render_bare(self, expr: Expr) -> str:
        if isinstance(expr, Literal):
            return self._render_literal(expr.value)
        if isinstance(expr, Grouping):
            return "(" + self._render_expr(expr.expression, self._PREC_ASSIGN) + ")"
        if isinstance(expr, Variable):
            return expr.name.lexeme
        if isinstance(expr, This):
            return "this"
        if isinstance(expr, Assign):
            return expr.name.lexeme + " = " + self._render_expr(expr.value, self._PREC_ASSIGN)
        if isinstance(expr, Set):
            target = self._render_expr(expr.obj, self._PREC_CALL) + "." + expr.name.lexeme
            return target + " = " + self._render_expr(expr.value, self._PREC_ASSIGN)
        if isinstance(expr, Binary) or isinstance(expr, Logical):
            prec = self._BIN_PREC[expr.op.lexeme]
            left = self._render_expr(expr.left, prec)
            right = self._render_expr(expr.right, prec + 1)
            return left + " " + expr.op.lexeme + " " + right
        if isinstance(expr, Unary):
            return expr.op.lexeme + self._render_expr(expr.right, self._PREC_UNARY)
        if isinstance(expr, Call):
            args = ", ".join(self._render_expr(a, self._PREC_ASSIGN) for a in expr.arguments)
            return self._render_expr(expr.callee, self._PREC_CALL) + "(" + args + ")"
        if isinstance(expr, Get):
            return self._render_expr(expr.obj, self._PREC_CALL) + "." + expr.name.lexeme
        raise TypeError("unhandled expression type: " + type(expr).__name__)

    def _render_literal(self, value: object) -> str:
        if value is None:
            return "nil"
        if value is True:
            return "true"
        if value is False:
            return "false"
        if isinstance(value, float):
            if value < 0:
                return "-" + render_number(-value)
            return render_number(value)
        return '"' + str(value) + '"'
