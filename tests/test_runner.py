"""Test runner for Lox .tests spec files"""

import signal
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from lox import check as lox_check, parse as lox_parse, run as lox_run

RUN_TIMEOUT = 5
TESTS_DIR = Path(__file__).parent

# fixture prefix -> directory of .tests files
TESTS = {
    "lox_parse": "parser",
    "lox_resolve": "resolver",
    "lox_interpret": "interpreter",
}


# ---------------------------------------------------------------------------
# Timeout
# ---------------------------------------------------------------------------


def _timeout_handler(signum, frame):
    raise TimeoutError("lox program timed out")


signal.signal(signal.SIGALRM, _timeout_handler)


# ---------------------------------------------------------------------------
# Spec file parsing
# ---------------------------------------------------------------------------


def parse_spec_file(path: Path) -> list[tuple[str, str, str]]:
    """Parse a .tests file into (name, input, expected) tuples."""
    lines = path.read_text().split("\n")
    result: list[tuple[str, str, str]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("=== "):
            test_name = line[4:].strip()
            i += 1
            input_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                input_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            expected_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                expected_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            test_input = "\n".join(input_lines)
            expected = "\n".join(expected_lines).strip()
            result.append((test_name, test_input, expected))
        else:
            i += 1
    return result


def discover_specs(test_dir: Path) -> list[tuple[str, str, str]]:
    """Glob *.tests in test_dir, return (test_id, input, expected) tuples."""
    results = []
    for test_file in sorted(test_dir.glob("*.tests")):
        for name, input_code, expected in parse_spec_file(test_file):
            results.append((f"{test_file.stem}/{name}", input_code, expected))
    return results


# ---------------------------------------------------------------------------
# Phase result + assertion checker
# ---------------------------------------------------------------------------


@dataclass
class PhaseResult:
    errors: list[str] = field(default_factory=list)


def check_expected(expected: str, result: PhaseResult, phase: str) -> None:
    """Match "ok", "error: <substring>", or the exact diagnostic lines."""
    if expected == "ok":
        if result.errors:
            pytest.fail(f"Expected ok, got error: {result.errors[0]}")
        return
    if expected.startswith("error:"):
        expected_msg = expected[6:].strip()
        if not result.errors:
            pytest.fail(f"Expected error containing '{expected_msg}', got ok")
        found = any(expected_msg in e for e in result.errors)
        if not found:
            pytest.fail(
                f"Expected error containing '{expected_msg}', got: {result.errors}"
            )
        return
    actual = "\n".join(result.errors)
    if actual != expected:
        pytest.fail(
            f"{phase} diagnostics differ\n"
            f"  expected: {expected!r}\n"
            f"  actual:   {actual!r}"
        )


# ---------------------------------------------------------------------------
# Phase runners
# ---------------------------------------------------------------------------


def run_lox_parse(source: str) -> PhaseResult:
    _, errors = lox_parse(source)
    return PhaseResult(errors=[e.report() for e in errors])


def run_lox_resolve(source: str) -> PhaseResult:
    return PhaseResult(errors=[e.report() for e in lox_check(source)])


def run_lox_transcript(source: str) -> str:
    """Printed output followed by any diagnostics, as one text block."""
    try:
        signal.alarm(RUN_TIMEOUT)
        result = lox_run(source)
    finally:
        signal.alarm(0)
    lines = result.stdout.splitlines()
    for diagnostic in result.diagnostics():
        lines.extend(diagnostic.split("\n"))
    return "\n".join(lines).strip()


# ---------------------------------------------------------------------------
# Parametrization
# ---------------------------------------------------------------------------


def pytest_generate_tests(metafunc):
    for name, dirname in TESTS.items():
        fixture = f"{name}_input"
        if fixture not in metafunc.fixturenames:
            continue
        specs = discover_specs(TESTS_DIR / dirname)
        params = [pytest.param(inp, exp, id=tid) for tid, inp, exp in specs]
        metafunc.parametrize(f"{fixture},{name}_expected", params)


# ---------------------------------------------------------------------------
# Test functions
# ---------------------------------------------------------------------------


def test_lox_parse(lox_parse_input, lox_parse_expected):
    check_expected(lox_parse_expected, run_lox_parse(lox_parse_input), "lox_parse")


def test_lox_resolve(lox_resolve_input, lox_resolve_expected):
    check_expected(
        lox_resolve_expected, run_lox_resolve(lox_resolve_input), "lox_resolve"
    )


def test_lox_interpret(lox_interpret_input, lox_interpret_expected):
    actual = run_lox_transcript(lox_interpret_input)
    if actual != lox_interpret_expected:
        pytest.fail(
            "transcript differs\n"
            f"--- expected\n{lox_interpret_expected}\n"
            f"--- actual\n{actual}"
        )
