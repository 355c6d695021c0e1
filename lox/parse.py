"""Lox parser — recursive descent, one method per grammar production.

Errors are collected on `Parser.errors`. Grammar violations raise `ParseError`
internally; `declaration()` hands it back as its result and the `parse()` loop
synchronizes to the next statement boundary so later statements are still
diagnosed.
"""

from __future__ import annotations

import itertools
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
from .tokens import (
    TK_AND,
    TK_BANG,
    TK_BANG_EQUAL,
    TK_CLASS,
    TK_COMMA,
    TK_DOT,
    TK_ELSE,
    TK_EOF,
    TK_EQUAL,
    TK_EQUAL_EQUAL,
    TK_FALSE,
    TK_FOR,
    TK_FUN,
    TK_GREATER,
    TK_GREATER_EQUAL,
    TK_IDENTIFIER,
    TK_IF,
    TK_LEFT_BRACE,
    TK_LEFT_PAREN,
    TK_LESS,
    TK_LESS_EQUAL,
    TK_MINUS,
    TK_NIL,
    TK_NUMBER,
    TK_OR,
    TK_PLUS,
    TK_PRINT,
    TK_RETURN,
    TK_RIGHT_BRACE,
    TK_RIGHT_PAREN,
    TK_SEMICOLON,
    TK_SLASH,
    TK_STAR,
    TK_STRING,
    TK_THIS,
    TK_TRUE,
    TK_VAR,
    TK_WHILE,
    Token,
)

logger = logging.getLogger("lox.parse")

MAX_ARGS = 255

# Node ids are unique per process so tables from separate parses can merge
_node_ids = itertools.count(1)

# Tokens that begin a statement; synchronize() stops in front of them
STATEMENT_KEYWORDS: set[str] = {
    TK_CLASS,
    TK_FUN,
    TK_VAR,
    TK_FOR,
    TK_IF,
    TK_WHILE,
    TK_PRINT,
    TK_RETURN,
}


class ParseError(Exception):
    """Parse error located at the offending token."""

    def __init__(self, msg: str, line: int, col: int, lexeme: str | None = None):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        # None means the error is at end of input
        self.lexeme: str | None = lexeme
        super().__init__(msg + " at line " + str(line) + " col " + str(col))

    @classmethod
    def at(cls, tok: Token, msg: str) -> ParseError:
        lexeme = None if tok.kind == TK_EOF else tok.lexeme
        return cls(msg, tok.line, tok.col, lexeme)


class Parser:
    """Recursive descent parser for Lox."""

    def __init__(self, tokens: list[Token]):
        self.tokens: list[Token] = tokens
        self.pos: int = 0
        self.errors: list[ParseError] = []

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        return self.tokens[self.pos]

    def previous(self) -> Token:
        return self.tokens[self.pos - 1]

    def at_end(self) -> bool:
        return self.current().kind == TK_EOF

    def advance(self) -> Token:
        if not self.at_end():
            self.pos += 1
        return self.previous()

    def check(self, kind: str) -> bool:
        if self.at_end():
            return False
        return self.current().kind == kind

    def match(self, *kinds: str) -> bool:
        for kind in kinds:
            if self.check(kind):
                self.advance()
                return True
        return False

    def expect(self, kind: str, msg: str) -> Token:
        if self.check(kind):
            return self.advance()
        raise self.error(self.current(), msg)

    def error(self, tok: Token, msg: str) -> ParseError:
        """Record an error and return it; the caller decides whether to raise."""
        err = ParseError.at(tok, msg)
        self.errors.append(err)
        return err

    def node_id(self) -> int:
        return next(_node_ids)

    def synchronize(self) -> None:
        self.advance()
        while not self.at_end():
            if self.previous().kind == TK_SEMICOLON:
                return
            if self.current().kind in STATEMENT_KEYWORDS:
                return
            self.advance()

    # ── Top Level ────────────────────────────────────────────

    def parse(self) -> list[Stmt]:
        statements: list[Stmt] = []
        while not self.at_end():
            result = self.declaration()
            if isinstance(result, ParseError):
                self.synchronize()
                continue
            statements.append(result)
        logger.debug(
            "Parsed program",
            extra={"statements": len(statements), "errors": len(self.errors)},
        )
        return statements

    def declaration(self) -> Stmt | ParseError:
        """One declaration, or the error that stopped it (already recorded)."""
        try:
            if self.match(TK_CLASS):
                return self.class_declaration()
            if self.match(TK_FUN):
                return self.function("function")
            if self.match(TK_VAR):
                return self.var_declaration()
            return self.statement()
        except ParseError as err:
            return err

    def class_declaration(self) -> Class:
        """classDecl = IDENTIFIER '{' function* '}'"""
        name = self.expect(TK_IDENTIFIER, "Expect class name.")
        self.expect(TK_LEFT_BRACE, "Expect '{' before class body.")
        methods: list[Function] = []
        while not self.check(TK_RIGHT_BRACE) and not self.at_end():
            methods.append(self.function("method"))
        self.expect(TK_RIGHT_BRACE, "Expect '}' after class body.")
        return Class(name, methods)

    def function(self, kind: str) -> Function:
        """function = IDENTIFIER '(' parameters? ')' block"""
        name = self.expect(TK_IDENTIFIER, "Expect " + kind + " name.")
        self.expect(TK_LEFT_PAREN, "Expect '(' after " + kind + " name.")
        params: list[Token] = []
        if not self.check(TK_RIGHT_PAREN):
            params.append(self.expect(TK_IDENTIFIER, "Expect parameter name."))
            while self.match(TK_COMMA):
                if len(params) >= MAX_ARGS:
                    self.error(self.current(), "Can't have more than 255 parameters.")
                params.append(self.expect(TK_IDENTIFIER, "Expect parameter name."))
        self.expect(TK_RIGHT_PAREN, "Expect ')' after parameters.")
        self.expect(TK_LEFT_BRACE, "Expect '{' before " + kind + " body.")
        body = self.block()
        return Function(name, params, body)

    def var_declaration(self) -> Var:
        """varDecl = IDENTIFIER ( '=' expression )? ';'"""
        name = self.expect(TK_IDENTIFIER, "Expect variable name.")
        initializer: Expr | None = None
        if self.match(TK_EQUAL):
            initializer = self.expression()
        self.expect(TK_SEMICOLON, "Expect ';' after variable declaration.")
        return Var(name, initializer)

    # ── Statements ───────────────────────────────────────────

    def statement(self) -> Stmt:
        if self.match(TK_FOR):
            return self.for_statement()
        if self.match(TK_IF):
            return self.if_statement()
        if self.match(TK_PRINT):
            return self.print_statement()
        if self.match(TK_RETURN):
            return self.return_statement()
        if self.match(TK_WHILE):
            return self.while_statement()
        if self.match(TK_LEFT_BRACE):
            return Block(self.block())
        return self.expression_statement()

    def for_statement(self) -> Stmt:
        """Desugar for (init; cond; incr) body into a while loop inside a block."""
        self.expect(TK_LEFT_PAREN, "Expect '(' after 'for'.")
        initializer: Stmt | None
        if self.match(TK_SEMICOLON):
            initializer = None
        elif self.match(TK_VAR):
            initializer = self.var_declaration()
        else:
            initializer = self.expression_statement()

        condition: Expr | None = None
        if not self.check(TK_SEMICOLON):
            condition = self.expression()
        self.expect(TK_SEMICOLON, "Expect ';' after loop condition.")

        increment: Expr | None = None
        if not self.check(TK_RIGHT_PAREN):
            increment = self.expression()
        self.expect(TK_RIGHT_PAREN, "Expect ')' after for clauses.")

        body = self.statement()
        if increment is not None:
            body = Block([body, Expression(increment)])
        if condition is None:
            condition = Literal(self.node_id(), True)
        body = While(condition, body)
        if initializer is not None:
            body = Block([initializer, body])
        return body

    def if_statement(self) -> If:
        self.expect(TK_LEFT_PAREN, "Expect '(' after 'if'.")
        condition = self.expression()
        self.expect(TK_RIGHT_PAREN, "Expect ')' after if condition.")
        then_branch = self.statement()
        # Dangling else binds to the nearest if
        else_branch: Stmt | None = None
        if self.match(TK_ELSE):
            else_branch = self.statement()
        return If(condition, then_branch, else_branch)

    def print_statement(self) -> Print:
        value = self.expression()
        self.expect(TK_SEMICOLON, "Expect ';' after value.")
        return Print(value)

    def return_statement(self) -> Return:
        keyword = self.previous()
        value: Expr | None = None
        if not self.check(TK_SEMICOLON):
            value = self.expression()
        self.expect(TK_SEMICOLON, "Expect ';' after return value.")
        return Return(keyword, value)

    def while_statement(self) -> While:
        self.expect(TK_LEFT_PAREN, "Expect '(' after 'while'.")
        condition = self.expression()
        self.expect(TK_RIGHT_PAREN, "Expect ')' after condition.")
        body = self.statement()
        return While(condition, body)

    def block(self) -> list[Stmt]:
        """block = '{' declaration* '}'; the '{' is already consumed."""
        statements: list[Stmt] = []
        while not self.check(TK_RIGHT_BRACE) and not self.at_end():
            result = self.declaration()
            if isinstance(result, ParseError):
                self.synchronize()
                continue
            statements.append(result)
        self.expect(TK_RIGHT_BRACE, "Expect '}' after block.")
        return statements

    def expression_statement(self) -> Expression:
        expr = self.expression()
        self.expect(TK_SEMICOLON, "Expect ';' after expression.")
        return Expression(expr)

    # ── Expressions ──────────────────────────────────────────

    def expression(self) -> Expr:
        return self.assignment()

    def assignment(self) -> Expr:
        """Assignment = ( Call '.' )? IDENTIFIER '=' Assignment | Or"""
        expr = self.logic_or()
        if self.match(TK_EQUAL):
            equals = self.previous()
            value = self.assignment()
            if isinstance(expr, Variable):
                return Assign(self.node_id(), expr.name, value)
            if isinstance(expr, Get):
                return Set(self.node_id(), expr.obj, expr.name, value)
            # Reported without unwinding; parsing continues
            self.error(equals, "Invalid assignment target.")
        return expr

    def logic_or(self) -> Expr:
        """Or = And ( 'or' And )*"""
        expr = self.logic_and()
        while self.match(TK_OR):
            op = self.previous()
            right = self.logic_and()
            expr = Logical(self.node_id(), expr, op, right)
        return expr

    def logic_and(self) -> Expr:
        """And = Equality ( 'and' Equality )*"""
        expr = self.equality()
        while self.match(TK_AND):
            op = self.previous()
            right = self.equality()
            expr = Logical(self.node_id(), expr, op, right)
        return expr

    def equality(self) -> Expr:
        """Equality = Comparison ( ( '!=' | '==' ) Comparison )*"""
        expr = self.comparison()
        while self.match(TK_BANG_EQUAL, TK_EQUAL_EQUAL):
            op = self.previous()
            right = self.comparison()
            expr = Binary(self.node_id(), expr, op, right)
        return expr

    def comparison(self) -> Expr:
        """Comparison = Term ( ( '>' | '>=' | '<' | '<=' ) Term )*"""
        expr = self.term()
        while self.match(TK_GREATER, TK_GREATER_EQUAL, TK_LESS, TK_LESS_EQUAL):
            op = self.previous()
            right = self.term()
            expr = Binary(self.node_id(), expr, op, right)
        return expr

    def term(self) -> Expr:
        """Term = Factor ( ( '-' | '+' ) Factor )*"""
        expr = self.factor()
        while self.match(TK_MINUS, TK_PLUS):
            op = self.previous()
            right = self.factor()
            expr = Binary(self.node_id(), expr, op, right)
        return expr

    def factor(self) -> Expr:
        """Factor = Unary ( ( '/' | '*' ) Unary )*"""
        expr = self.unary()
        while self.match(TK_SLASH, TK_STAR):
            op = self.previous()
            right = self.unary()
            expr = Binary(self.node_id(), expr, op, right)
        return expr

    def unary(self) -> Expr:
        """Unary = ( '!' | '-' ) Unary | Call"""
        if self.match(TK_BANG, TK_MINUS):
            op = self.previous()
            right = self.unary()
            return Unary(self.node_id(), op, right)
        return self.call()

    def call(self) -> Expr:
        """Call = Primary ( '(' Arguments? ')' | '.' IDENTIFIER )*"""
        expr = self.primary()
        while True:
            if self.match(TK_LEFT_PAREN):
                expr = self.finish_call(expr)
            elif self.match(TK_DOT):
                name = self.expect(TK_IDENTIFIER, "Expect property name after '.'.")
                expr = Get(self.node_id(), expr, name)
            else:
                break
        return expr

    def finish_call(self, callee: Expr) -> Call:
        arguments: list[Expr] = []
        if not self.check(TK_RIGHT_PAREN):
            arguments.append(self.expression())
            while self.match(TK_COMMA):
                if len(arguments) >= MAX_ARGS:
                    self.error(self.current(), "Can't have more than 255 arguments.")
                arguments.append(self.expression())
        paren = self.expect(TK_RIGHT_PAREN, "Expect ')' after arguments.")
        return Call(self.node_id(), callee, paren, arguments)

    def primary(self) -> Expr:
        if self.match(TK_FALSE):
            return Literal(self.node_id(), False)
        if self.match(TK_TRUE):
            return Literal(self.node_id(), True)
        if self.match(TK_NIL):
            return Literal(self.node_id(), None)
        if self.match(TK_NUMBER, TK_STRING):
            return Literal(self.node_id(), self.previous().literal)
        if self.match(TK_THIS):
            return This(self.node_id(), self.previous())
        if self.match(TK_IDENTIFIER):
            return Variable(self.node_id(), self.previous())
        if self.match(TK_LEFT_PAREN):
            expr = self.expression()
            self.expect(TK_RIGHT_PAREN, "Expect ')' after expression.")
            return Grouping(self.node_id(), expr)
        raise self.error(self.current(), "Expect expression.")


def parse(tokens: list[Token]) -> tuple[list[Stmt], list[ParseError]]:
    """Parse a token list into statements, plus any errors."""
    parser = Parser(tokens)
    statements = parser.parse()
    return statements, parser.errors
