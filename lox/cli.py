"""Lox CLI — run a script file or start an interactive prompt."""

from __future__ import annotations

import logging
import sys

from .session import (
    EXIT_NO_INPUT,
    EXIT_OK,
    EXIT_STATIC_ERROR,
    EXIT_USAGE,
    RunResult,
    Session,
)


USAGE: str = """\
lox [OPTIONS] [FILE]

Run a Lox program, or start a prompt when no FILE is given.

Options:
  --verbose  Log pipeline stages to stderr
  --help     Show this help message
"""


def _report(result: RunResult) -> None:
    for line in result.diagnostics():
        print(line, file=sys.stderr)


def run_file(filepath: str) -> int:
    try:
        with open(filepath, "rb") as f:
            raw = f.read()
    except FileNotFoundError:
        print("lox: " + filepath + ": No such file or directory", file=sys.stderr)
        return EXIT_NO_INPUT
    except OSError as e:
        print("lox: " + filepath + ": " + str(e), file=sys.stderr)
        return EXIT_NO_INPUT
    try:
        source = raw.decode("utf-8")
    except ValueError:
        print("lox: " + filepath + ": invalid utf-8", file=sys.stderr)
        return EXIT_STATIC_ERROR

    result = Session().run(source)
    _report(result)
    return result.exit_code


def run_prompt() -> int:
    session = Session()
    while True:
        try:
            line = input("> ")
        except EOFError:
            print()
            return EXIT_OK
        # Errors are reported and the prompt keeps going.
        _report(session.run(line))


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    filepath: str = ""
    verbose = False
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return EXIT_OK
        elif arg == "--verbose" or arg == "-v":
            verbose = True
            i += 1
        elif arg.startswith("-"):
            print("lox: unknown flag '" + arg + "'", file=sys.stderr)
            return EXIT_USAGE
        elif filepath == "":
            filepath = arg
            i += 1
        else:
            print("Usage: lox [script]", file=sys.stderr)
            return EXIT_USAGE

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="[%(levelname)s] %(name)s: %(message)s"
        )

    if filepath == "":
        return run_prompt()
    return run_file(filepath)


if __name__ == "__main__":
    sys.exit(main())
