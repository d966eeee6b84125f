"""Lox pipeline driver — scan, parse, resolve, interpret."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from .ast import ExprArena
from .errors import LoxRuntimeError, StaticError
from .interpreter import Interpreter
from .parse import parse
from .resolve import resolve
from .tokens import tokenize

logger = logging.getLogger(__name__)

# Exit codes (sysexits.h), chosen by callers from a RunResult
EXIT_OK = 0
EXIT_USAGE = 64
EXIT_STATIC_ERROR = 65
EXIT_NO_INPUT = 66
EXIT_RUNTIME_ERROR = 70


@dataclass
class RunResult:
    static_errors: list[StaticError] = field(default_factory=list)
    runtime_error: LoxRuntimeError | None = None
    stdout: str = ""

    @property
    def exit_code(self) -> int:
        if self.static_errors:
            return EXIT_STATIC_ERROR
        if self.runtime_error is not None:
            return EXIT_RUNTIME_ERROR
        return EXIT_OK

    def diagnostics(self) -> list[str]:
        """Formatted error lines, in the order they were found."""
        lines = [e.report() for e in self.static_errors]
        if self.runtime_error is not None:
            lines.append(self.runtime_error.report())
        return lines


class Session:
    """One interpreter plus the arena its resolved node ids come from.

    Successive run() calls share globals, which is what a REPL needs.
    """

    def __init__(self, write: Callable[[str], None] | None = None):
        self.arena: ExprArena = ExprArena()
        self.interpreter: Interpreter = Interpreter(write)

    def run(self, source: str) -> RunResult:
        tokens, scan_errors = tokenize(source)
        program, parse_errors = parse(tokens, self.arena)
        logger.debug(
            "scanned %d tokens, parsed %d statements",
            len(tokens),
            len(program.statements),
        )
        static_errors: list[StaticError] = []
        static_errors.extend(scan_errors)
        static_errors.extend(parse_errors)
        if static_errors:
            return RunResult(static_errors)

        locals_, resolve_errors = resolve(
            program, self.interpreter.globals.values.keys()
        )
        if resolve_errors:
            return RunResult(list(resolve_errors))

        self.interpreter.resolve(locals_)
        runtime_error = self.interpreter.interpret(program.statements)
        return RunResult(runtime_error=runtime_error)


def run(source: str) -> RunResult:
    """Run a whole program in a fresh session, capturing its printed output."""
    out: list[str] = []
    result = Session(out.append).run(source)
    result.stdout = "".join(line + "\n" for line in out)
    return result
