"""Lox diagnostics — static (scan/parse/resolve) and runtime errors."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .tokens import Token


class LoxError(Exception):
    """Base error for every Lox pipeline stage."""

    category: str = "error"

    def __init__(self, msg: str, line: int):
        self.msg: str = msg
        self.line: int = line
        super().__init__(msg + " at line " + str(line))

    def report(self) -> str:
        raise NotImplementedError


class StaticError(LoxError):
    """Error found before execution; blocks the program from running."""

    def __init__(self, msg: str, line: int, where: str = ""):
        super().__init__(msg, line)
        self.where: str = where

    def report(self) -> str:
        return "[line " + str(self.line) + "] Error" + self.where + ": " + self.msg


class TokenizeError(StaticError):
    """Unexpected character or unterminated string."""

    category = "scan"


class ParseError(StaticError):
    """Syntax error, reported at the offending token."""

    category = "parse"


class ResolveError(StaticError):
    """Static-semantic error found by the resolver."""

    category = "resolve"


class LoxRuntimeError(LoxError):
    """Runtime fault; aborts the rest of the program."""

    category = "runtime"

    def __init__(self, token: Token, msg: str):
        super().__init__(msg, token.line)
        self.token: Token = token

    def report(self) -> str:
        return self.msg + "\n[line " + str(self.line) + "]"


def token_where(token: Token) -> str:
    """Location fragment for a diagnostic anchored at a token."""
    if token.type == "EOF":
        return " at end"
    return " at '" + token.lexeme + "'"
