"""Lox tokenizer — scans source into a flat token list, collecting errors."""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger("lox.tokens")


# Single-character tokens
TK_LEFT_PAREN = "LEFT_PAREN"
TK_RIGHT_PAREN = "RIGHT_PAREN"
TK_LEFT_BRACE = "LEFT_BRACE"
TK_RIGHT_BRACE = "RIGHT_BRACE"
TK_COMMA = "COMMA"
TK_DOT = "DOT"
TK_MINUS = "MINUS"
TK_PLUS = "PLUS"
TK_SEMICOLON = "SEMICOLON"
TK_SLASH = "SLASH"
TK_STAR = "STAR"

# One or two character tokens
TK_BANG = "BANG"
TK_BANG_EQUAL = "BANG_EQUAL"
TK_EQUAL = "EQUAL"
TK_EQUAL_EQUAL = "EQUAL_EQUAL"
TK_GREATER = "GREATER"
TK_GREATER_EQUAL = "GREATER_EQUAL"
TK_LESS = "LESS"
TK_LESS_EQUAL = "LESS_EQUAL"

# Literals
TK_IDENTIFIER = "IDENTIFIER"
TK_STRING = "STRING"
TK_NUMBER = "NUMBER"

# Keywords
TK_AND = "AND"
TK_CLASS = "CLASS"
TK_ELSE = "ELSE"
TK_FALSE = "FALSE"
TK_FUN = "FUN"
TK_FOR = "FOR"
TK_IF = "IF"
TK_NIL = "NIL"
TK_OR = "OR"
TK_PRINT = "PRINT"
TK_RETURN = "RETURN"
TK_SUPER = "SUPER"
TK_THIS = "THIS"
TK_TRUE = "TRUE"
TK_VAR = "VAR"
TK_WHILE = "WHILE"

TK_EOF = "EOF"

KEYWORDS: dict[str, str] = {
    "and": TK_AND,
    "class": TK_CLASS,
    "else": TK_ELSE,
    "false": TK_FALSE,
    "for": TK_FOR,
    "fun": TK_FUN,
    "if": TK_IF,
    "nil": TK_NIL,
    "or": TK_OR,
    "print": TK_PRINT,
    "return": TK_RETURN,
    "super": TK_SUPER,
    "this": TK_THIS,
    "true": TK_TRUE,
    "var": TK_VAR,
    "while": TK_WHILE,
}

SINGLE_OPS: dict[str, str] = {
    "(": TK_LEFT_PAREN,
    ")": TK_RIGHT_PAREN,
    "{": TK_LEFT_BRACE,
    "}": TK_RIGHT_BRACE,
    ",": TK_COMMA,
    ".": TK_DOT,
    "-": TK_MINUS,
    "+": TK_PLUS,
    ";": TK_SEMICOLON,
    "*": TK_STAR,
}

# Operators that become a different token when followed by '='
EQUAL_SUFFIX_OPS: dict[str, tuple[str, str]] = {
    "!": (TK_BANG, TK_BANG_EQUAL),
    "=": (TK_EQUAL, TK_EQUAL_EQUAL),
    ">": (TK_GREATER, TK_GREATER_EQUAL),
    "<": (TK_LESS, TK_LESS_EQUAL),
}


class LexError(Exception):
    """Error during tokenization. Collected, never raised by the lexer."""

    def __init__(self, msg: str, line: int, col: int):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        super().__init__(msg + " at line " + str(line) + " col " + str(col))


@dataclass(frozen=True)
class Token:
    """A token with kind, source text, decoded literal, and position."""

    kind: str
    lexeme: str
    literal: object
    line: int
    col: int = 0

    def __repr__(self) -> str:
        return (
            "Token("
            + self.kind
            + ", "
            + repr(self.lexeme)
            + ", "
            + repr(self.literal)
            + ", "
            + str(self.line)
            + ")"
        )


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_alpha(c: str) -> bool:
    return (c >= "a" and c <= "z") or (c >= "A" and c <= "Z") or c == "_"


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c)


class Lexer:
    """Single left-to-right scanner with one character of lookahead."""

    def __init__(self, source: str):
        self.source: str = source
        self.tokens: list[Token] = []
        self.errors: list[LexError] = []
        self.start: int = 0
        self.pos: int = 0
        self.line: int = 1
        self.line_start: int = 0

    # ── Helpers ──────────────────────────────────────────────

    def at_end(self) -> bool:
        return self.pos >= len(self.source)

    def advance(self) -> str:
        c = self.source[self.pos]
        self.pos += 1
        return c

    def peek(self) -> str:
        if self.at_end():
            return "\0"
        return self.source[self.pos]

    def peek_next(self) -> str:
        if self.pos + 1 >= len(self.source):
            return "\0"
        return self.source[self.pos + 1]

    def match(self, expected: str) -> bool:
        if self.at_end() or self.source[self.pos] != expected:
            return False
        self.pos += 1
        return True

    def newline(self) -> None:
        self.line += 1
        self.line_start = self.pos

    def col(self, offset: int) -> int:
        return offset - self.line_start + 1

    def error(self, msg: str) -> None:
        self.errors.append(LexError(msg, self.line, self.col(self.start)))

    def add_token(self, kind: str, literal: object = None) -> None:
        text = self.source[self.start : self.pos]
        self.tokens.append(Token(kind, text, literal, self.line, self.col(self.start)))

    # ── Scanning ─────────────────────────────────────────────

    def scan(self) -> list[Token]:
        while not self.at_end():
            self.start = self.pos
            self.scan_token()
        self.tokens.append(Token(TK_EOF, "", None, self.line, self.col(self.pos)))
        logger.debug(
            "Scanned source",
            extra={"tokens": len(self.tokens), "errors": len(self.errors)},
        )
        return self.tokens

    def scan_token(self) -> None:
        c = self.advance()

        if c == "\n":
            self.newline()
            return
        if c == " " or c == "\r" or c == "\t":
            return

        if c in SINGLE_OPS:
            self.add_token(SINGLE_OPS[c])
            return

        # Greedy '=' suffix: ! != = == > >= < <=
        if c in EQUAL_SUFFIX_OPS:
            single, double = EQUAL_SUFFIX_OPS[c]
            self.add_token(double if self.match("=") else single)
            return

        # Division or line comment
        if c == "/":
            if self.match("/"):
                while self.peek() != "\n" and not self.at_end():
                    self.advance()
            else:
                self.add_token(TK_SLASH)
            return

        if c == '"':
            self.scan_string()
            return
        if _is_digit(c):
            self.scan_number()
            return
        if _is_alpha(c):
            self.scan_identifier()
            return

        self.error("Unexpected character.")

    def scan_string(self) -> None:
        start_col = self.col(self.start)
        while self.peek() != '"' and not self.at_end():
            if self.advance() == "\n":
                self.newline()
        if self.at_end():
            self.errors.append(LexError("Unterminated string.", self.line, start_col))
            value = self.source[self.start + 1 : self.pos]
        else:
            self.advance()  # closing "
            value = self.source[self.start + 1 : self.pos - 1]
        text = self.source[self.start : self.pos]
        # Multi-line strings are stamped with the line they end on
        self.tokens.append(Token(TK_STRING, text, value, self.line, start_col))

    def scan_number(self) -> None:
        while _is_digit(self.peek()):
            self.advance()
        # A trailing '.' with no digit after it is left for the DOT token
        if self.peek() == "." and _is_digit(self.peek_next()):
            self.advance()
            while _is_digit(self.peek()):
                self.advance()
        self.add_token(TK_NUMBER, float(self.source[self.start : self.pos]))

    def scan_identifier(self) -> None:
        while _is_alnum(self.peek()):
            self.advance()
        word = self.source[self.start : self.pos]
        self.add_token(KEYWORDS.get(word, TK_IDENTIFIER))


def tokenize(source: str) -> tuple[list[Token], list[LexError]]:
    """Tokenize Lox source into a list ending with TK_EOF, plus any errors."""
    lexer = Lexer(source)
    tokens = lexer.scan()
    return tokens, lexer.errors
