"""Lox tree-walking interpreter — public API."""

from __future__ import annotations

import logging

from .ast import ExprArena, Program
from .errors import (
    LoxError as LoxError,
    LoxRuntimeError as LoxRuntimeError,
    ParseError as ParseError,
    ResolveError as ResolveError,
    StaticError as StaticError,
    TokenizeError as TokenizeError,
)
from .interpreter import NATIVE_NAMES, Interpreter as Interpreter
from .parse import parse as parse_tokens
from .resolve import resolve as resolve
from .session import RunResult as RunResult, Session as Session, run as run
from .tokens import tokenize as tokenize

logging.getLogger(__name__).addHandler(logging.NullHandler())


def parse(
    source: str, arena: ExprArena | None = None
) -> tuple[Program, list[StaticError]]:
    """Scan and parse Lox source. Returns (program, scan + parse errors)."""
    tokens, scan_errors = tokenize(source)
    program, parse_errors = parse_tokens(tokens, arena)
    errors: list[StaticError] = []
    errors.extend(scan_errors)
    errors.extend(parse_errors)
    return program, errors


def check(source: str) -> list[StaticError]:
    """Scan, parse and resolve Lox source. Returns static errors (empty = ok)."""
    program, errors = parse(source)
    if errors:
        return errors
    _, resolve_errors = resolve(program, NATIVE_NAMES)
    return list(resolve_errors)
