"""Lox runtime — value model, environments, callables and the evaluator.

Runtime values are plain Python objects: None (nil), bool, float, str, and
the LoxCallable / LoxInstance classes below.
"""

from __future__ import annotations

import logging
import math
import sys
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, TextIO

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
from .tokens import (
    TK_AND,
    TK_BANG,
    TK_BANG_EQUAL,
    TK_EQUAL_EQUAL,
    TK_GREATER,
    TK_GREATER_EQUAL,
    TK_LESS,
    TK_LESS_EQUAL,
    TK_MINUS,
    TK_OR,
    TK_PLUS,
    TK_SLASH,
    TK_STAR,
    Token,
)

logger = logging.getLogger("lox.runtime")


# ============================================================
# Diagnostics
# ============================================================


class LoxRuntimeError(Exception):
    """Runtime error located at the token that caused it."""

    def __init__(self, token: Token, msg: str):
        self.token: Token = token
        self.msg: str = msg
        self.line: int = token.line
        self.col: int = token.col
        super().__init__(msg + " at line " + str(token.line) + " col " + str(token.col))


# ============================================================
# Control flow
# ============================================================


@dataclass
class Returning:
    """Result of a statement that executed `return`.

    Statements yield None when they complete normally. A Returning result is
    handed up through blocks and loops until a function call absorbs it.
    """

    value: object


# ============================================================
# Environments
# ============================================================


class Environment:
    """One scope: a name table plus a link to the enclosing scope.

    Closures hold environments by reference, so two closures created in the
    same scope see each other's assignments.
    """

    def __init__(self, enclosing: Environment | None = None):
        self.values: dict[str, object] = {}
        self.enclosing: Environment | None = enclosing

    def define(self, name: str, value: object) -> None:
        self.values[name] = value

    def ancestor(self, distance: int) -> Environment:
        env = self
        for _ in range(distance):
            assert env.enclosing is not None, "resolver distance exceeds scope chain"
            env = env.enclosing
        return env

    def get_at(self, distance: int, name: str) -> object:
        return self.ancestor(distance).values[name]

    def assign_at(self, distance: int, name: Token, value: object) -> None:
        self.ancestor(distance).values[name.lexeme] = value

    def get(self, name: Token) -> object:
        env: Environment | None = self
        while env is not None:
            if name.lexeme in env.values:
                return env.values[name.lexeme]
            env = env.enclosing
        raise LoxRuntimeError(name, "Undefined variable '" + name.lexeme + "'.")

    def assign(self, name: Token, value: object) -> None:
        env: Environment | None = self
        while env is not None:
            if name.lexeme in env.values:
                env.values[name.lexeme] = value
                return
            env = env.enclosing
        raise LoxRuntimeError(name, "Undefined variable '" + name.lexeme + "'.")


# ============================================================
# Callables and instances
# ============================================================


class LoxCallable:
    """Anything that can appear as the callee of a call expression."""

    def arity(self) -> int:
        raise NotImplementedError

    def call(self, interpreter: Interpreter, arguments: list[object]) -> object:
        raise NotImplementedError


class NativeFunction(LoxCallable):
    def __init__(self, name: str, arity: int, fn: Callable[[list[object]], object]):
        self.name: str = name
        self._arity: int = arity
        self.fn = fn

    def arity(self) -> int:
        return self._arity

    def call(self, interpreter: Interpreter, arguments: list[object]) -> object:
        return self.fn(arguments)

    def __str__(self) -> str:
        return "<native fn>"


class LoxFunction(LoxCallable):
    def __init__(self, declaration: Function, closure: Environment, is_initializer: bool):
        self.declaration: Function = declaration
        self.closure: Environment = closure
        self.is_initializer: bool = is_initializer

    def bind(self, instance: LoxInstance) -> LoxFunction:
        """Return a copy whose closure has `this` bound to instance."""
        env = Environment(self.closure)
        env.define("this", instance)
        return LoxFunction(self.declaration, env, self.is_initializer)

    def arity(self) -> int:
        return len(self.declaration.params)

    def call(self, interpreter: Interpreter, arguments: list[object]) -> object:
        env = Environment(self.closure)
        for i, param in enumerate(self.declaration.params):
            env.define(param.lexeme, arguments[i])
        result = interpreter.execute_block(self.declaration.body, env)
        # Initializers always yield the instance, even after a bare return
        if self.is_initializer:
            return self.closure.get_at(0, "this")
        if result is not None:
            return result.value
        return None

    def __str__(self) -> str:
        return "<fn " + self.declaration.name.lexeme + " >"


class LoxClass(LoxCallable):
    def __init__(self, name: str, methods: dict[str, LoxFunction]):
        self.name: str = name
        self.methods: dict[str, LoxFunction] = methods

    def find_method(self, name: str) -> LoxFunction | None:
        return self.methods.get(name)

    def arity(self) -> int:
        initializer = self.find_method("init")
        if initializer is None:
            return 0
        return initializer.arity()

    def call(self, interpreter: Interpreter, arguments: list[object]) -> object:
        instance = LoxInstance(self)
        initializer = self.find_method("init")
        if initializer is not None:
            initializer.bind(instance).call(interpreter, arguments)
        return instance

    def __str__(self) -> str:
        return self.name


@dataclass(eq=False)
class LoxInstance:
    klass: LoxClass
    fields: dict[str, object] = field(default_factory=dict)

    def get(self, name: Token) -> object:
        if name.lexeme in self.fields:
            return self.fields[name.lexeme]
        method = self.klass.find_method(name.lexeme)
        if method is not None:
            return method.bind(self)
        raise LoxRuntimeError(name, "Undefined property '" + name.lexeme + "'.")

    def set(self, name: Token, value: object) -> None:
        self.fields[name.lexeme] = value

    def __str__(self) -> str:
        return self.klass.name + " instance"


# ============================================================
# Value semantics
# ============================================================


def is_truthy(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return True


def is_equal(a: object, b: object) -> bool:
    if a is None and b is None:
        return True
    if a is None or b is None:
        return False
    # bool is an int subclass; keep it from comparing equal to 1.0
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, float) and isinstance(b, float):
        return a == b
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    return a is b


def _is_number(value: object) -> bool:
    return isinstance(value, float) and not isinstance(value, bool)


def stringify(value: object) -> str:
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        text = format_double(value)
        if text.endswith(".0"):
            text = text[:-2]
        return text
    return str(value)


def format_double(value: float) -> str:
    """Spell a number the way Lox prints it before trimming a trailing ".0".

    Magnitudes in [1e-3, 1e7) are positional ("2.5", "100.0"); others use a
    one-digit mantissa and an E exponent ("1.0E21", "1.5E-4").
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0.0 or (1e-3 <= abs(value) < 1e7):
        # repr is positional throughout this range
        return repr(value)
    sign, digits, exponent = Decimal(repr(value)).normalize().as_tuple()
    mantissa = str(digits[0]) + "." + ("".join(str(d) for d in digits[1:]) or "0")
    scale = len(digits) - 1 + exponent
    return ("-" if sign else "") + mantissa + "E" + str(scale)


def _divide(left: float, right: float) -> float:
    """IEEE division; Python raises on a zero divisor instead."""
    if right != 0.0:
        return left / right
    if left == 0.0 or math.isnan(left):
        return math.nan
    return math.copysign(math.inf, left) * math.copysign(1.0, right)


# ============================================================
# Interpreter
# ============================================================


class Interpreter:
    def __init__(
        self, stdout: TextIO | None = None, global_env: Environment | None = None
    ):
        self.stdout: TextIO = stdout if stdout is not None else sys.stdout
        self.globals: Environment = global_env if global_env is not None else Environment()
        self.environment: Environment = self.globals
        self.locals: dict[int, int] = {}

    # ---- Running -----------------------------------------------------------

    def interpret(
        self, statements: list[Stmt], locals: dict[int, int] | None = None
    ) -> LoxRuntimeError | None:
        """Execute statements. Returns the runtime error that stopped them, if any.

        Effects of statements completed before the error are kept.
        """
        if locals is not None:
            self.locals.update(locals)
        try:
            for stmt in statements:
                self.execute(stmt)
        except LoxRuntimeError as e:
            logger.debug(
                "Runtime error",
                extra={"source_line": e.line, "error": e.msg},
            )
            return e
        return None

    # ---- Statements --------------------------------------------------------

    def execute(self, stmt: Stmt) -> Returning | None:
        if isinstance(stmt, Expression):
            self.evaluate(stmt.expression)
            return None
        if isinstance(stmt, Print):
            value = self.evaluate(stmt.expression)
            self.stdout.write(stringify(value) + "\n")
            return None
        if isinstance(stmt, Var):
            value = None
            if stmt.initializer is not None:
                value = self.evaluate(stmt.initializer)
            self.environment.define(stmt.name.lexeme, value)
            return None
        if isinstance(stmt, Block):
            return self.execute_block(stmt.statements, Environment(self.environment))
        if isinstance(stmt, If):
            if is_truthy(self.evaluate(stmt.condition)):
                return self.execute(stmt.then_branch)
            if stmt.else_branch is not None:
                return self.execute(stmt.else_branch)
            return None
        if isinstance(stmt, While):
            while is_truthy(self.evaluate(stmt.condition)):
                result = self.execute(stmt.body)
                if result is not None:
                    return result
            return None
        if isinstance(stmt, Function):
            fn = LoxFunction(stmt, self.environment, False)
            self.environment.define(stmt.name.lexeme, fn)
            return None
        if isinstance(stmt, Return):
            value = None
            if stmt.value is not None:
                value = self.evaluate(stmt.value)
            return Returning(value)
        if isinstance(stmt, Class):
            self.environment.define(stmt.name.lexeme, None)
            methods: dict[str, LoxFunction] = {}
            for method in stmt.methods:
                is_init = method.name.lexeme == "init"
                methods[method.name.lexeme] = LoxFunction(method, self.environment, is_init)
            self.environment.assign(stmt.name, LoxClass(stmt.name.lexeme, methods))
            return None
        raise TypeError("unhandled statement type: " + type(stmt).__name__)

    def execute_block(self, statements: list[Stmt], env: Environment) -> Returning | None:
        previous = self.environment
        self.environment = env
        try:
            for stmt in statements:
                result = self.execute(stmt)
                if result is not None:
                    return result
            return None
        finally:
            self.environment = previous

    # ---- Variables ---------------------------------------------------------

    def look_up_variable(self, name: Token, expr: Expr) -> object:
        distance = self.locals.get(expr.id)
        if distance is not None:
            return self.environment.get_at(distance, name.lexeme)
        return self.globals.get(name)

    # ---- Expressions -------------------------------------------------------

    def evaluate(self, expr: Expr) -> object:
        if isinstance(expr, Literal):
            return expr.value
        if isinstance(expr, Grouping):
            return self.evaluate(expr.expression)
        if isinstance(expr, Variable):
            return self.look_up_variable(expr.name, expr)
        if isinstance(expr, This):
            return self.look_up_variable(expr.keyword, expr)
        if isinstance(expr, Assign):
            value = self.evaluate(expr.value)
            distance = self.locals.get(expr.id)
            if distance is not None:
                self.environment.assign_at(distance, expr.name, value)
            else:
                self.globals.assign(expr.name, value)
            return value
        if isinstance(expr, Logical):
            left = self.evaluate(expr.left)
            if expr.op.kind == TK_OR:
                if is_truthy(left):
                    return left
            elif expr.op.kind == TK_AND:
                if not is_truthy(left):
                    return left
            return self.evaluate(expr.right)
        if isinstance(expr, Unary):
            return self._eval_unary(expr)
        if isinstance(expr, Binary):
            return self._eval_binary(expr)
        if isinstance(expr, Call):
            return self._eval_call(expr)
        if isinstance(expr, Get):
            obj = self.evaluate(expr.obj)
            if isinstance(obj, LoxInstance):
                return obj.get(expr.name)
            raise LoxRuntimeError(expr.name, "Only instances have properties.")
        if isinstance(expr, Set):
            obj = self.evaluate(expr.obj)
            if not isinstance(obj, LoxInstance):
                raise LoxRuntimeError(expr.name, "Only instances have fields.")
            value = self.evaluate(expr.value)
            obj.set(expr.name, value)
            return value
        raise TypeError("unhandled expression type: " + type(expr).__name__)

    def _eval_unary(self, expr: Unary) -> object:
        right = self.evaluate(expr.right)
        if expr.op.kind == TK_BANG:
            return not is_truthy(right)
        if expr.op.kind == TK_MINUS:
            if not _is_number(right):
                raise LoxRuntimeError(expr.op, "Operand must be a number.")
            return -right
        raise LoxRuntimeError(expr.op, "Unknown unary operator '" + expr.op.lexeme + "'.")

    def _eval_binary(self, expr: Binary) -> object:
        # Right operand first; the order is observable through side effects
        right = self.evaluate(expr.right)
        left = self.evaluate(expr.left)
        kind = expr.op.kind

        if kind == TK_EQUAL_EQUAL:
            return is_equal(left, right)
        if kind == TK_BANG_EQUAL:
            return not is_equal(left, right)
        if kind == TK_PLUS:
            if _is_number(left) and _is_number(right):
                return left + right
            if isinstance(left, str) and isinstance(right, str):
                return left + right
            raise LoxRuntimeError(expr.op, "Operands must be two numbers or two strings.")

        if not _is_number(left) or not _is_number(right):
            raise LoxRuntimeError(expr.op, "Operands must be numbers.")
        if kind == TK_MINUS:
            return left - right
        if kind == TK_STAR:
            return left * right
        if kind == TK_SLASH:
            return _divide(left, right)
        if kind == TK_GREATER:
            return left > right
        if kind == TK_GREATER_EQUAL:
            return left >= right
        if kind == TK_LESS:
            return left < right
        if kind == TK_LESS_EQUAL:
            return left <= right
        raise LoxRuntimeError(expr.op, "Unknown binary operator '" + expr.op.lexeme + "'.")

    def _eval_call(self, expr: Call) -> object:
        callee = self.evaluate(expr.callee)
        # Arguments are evaluated last to first, then passed in source order
        arguments: list[object] = []
        for arg in reversed(expr.arguments):
            arguments.append(self.evaluate(arg))
        arguments.reverse()

        if not isinstance(callee, LoxCallable):
            raise LoxRuntimeError(expr.paren, "Can only call functions and classes.")
        if len(arguments) != callee.arity():
            raise LoxRuntimeError(
                expr.paren,
                "Expected "
                + str(callee.arity())
                + " arguments but got "
                + str(len(arguments))
                + ".",
            )
        return callee.call(self, arguments)


def interpret(
    statements: list[Stmt],
    locals: dict[int, int],
    global_env: Environment | None = None,
    *,
    stdout: TextIO | None = None,
) -> LoxRuntimeError | None:
    """Run resolved statements against a global environment."""
    return Interpreter(stdout=stdout, global_env=global_env).interpret(statements, locals)
