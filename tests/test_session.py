"""Tests for the pipeline driver and the interpreter's entry points."""

import sys

from lox import Interpreter, Session, check, parse, run
from lox.errors import LoxRuntimeError, ParseError, ResolveError, TokenizeError
from lox.resolve import resolve
from lox.session import (
    EXIT_OK,
    EXIT_RUNTIME_ERROR,
    EXIT_STATIC_ERROR,
    RunResult,
)


def test_run_captures_output():
    result = run('print "a"; print 1 + 1;')
    assert result.stdout == "a\n2\n"
    assert result.exit_code == EXIT_OK
    assert result.diagnostics() == []


def test_run_returns_static_errors_in_order():
    result = run("print @;")
    assert result.exit_code == EXIT_STATIC_ERROR
    assert [type(e) for e in result.static_errors] == [TokenizeError, ParseError]
    assert result.stdout == ""


def test_resolve_errors_block_execution():
    result = run('print "never"; return;')
    assert result.exit_code == EXIT_STATIC_ERROR
    assert [type(e) for e in result.static_errors] == [ResolveError]
    assert result.stdout == ""


def test_runtime_error_keeps_earlier_output():
    result = run('print "first";\nprint "a" - 1;')
    assert result.exit_code == EXIT_RUNTIME_ERROR
    assert result.stdout == "first\n"
    assert isinstance(result.runtime_error, LoxRuntimeError)
    assert result.runtime_error.line == 2
    assert result.diagnostics() == ["Operands must be numbers.\n[line 2]"]


def test_static_errors_take_exit_code_precedence():
    result = RunResult(static_errors=[ParseError("x", 1)])
    assert result.exit_code == EXIT_STATIC_ERROR


def test_session_shares_globals_between_runs():
    out: list[str] = []
    session = Session(out.append)
    session.run("var count = 1;")
    session.run("fun bump() { count = count + 1; }")
    session.run("bump(); bump();")
    session.run("print count;")
    assert out == ["3"]


def test_session_closures_survive_between_runs():
    out: list[str] = []
    session = Session(out.append)
    session.run("fun make() { var n = 0; fun f() { n = n + 1; return n; } return f; }")
    session.run("var f = make();")
    session.run("print f(); print f();")
    assert out == ["1", "2"]


def test_session_continues_after_errors():
    out: list[str] = []
    session = Session(out.append)
    assert session.run("print nope;").exit_code == EXIT_RUNTIME_ERROR
    assert session.run("print;").exit_code == EXIT_STATIC_ERROR
    assert session.run('print "fine";').exit_code == EXIT_OK
    assert out == ["fine"]


def test_session_initializer_sees_earlier_global():
    out: list[str] = []
    session = Session(out.append)
    session.run("var a = 10;")
    result = session.run("{ var a = a + 1; print a; }")
    assert result.exit_code == EXIT_OK
    assert out == ["11"]


def test_interpreter_drives_a_resolved_program():
    out: list[str] = []
    interpreter = Interpreter(out.append)
    program, errors = parse("{ var x = 2; print x * x; }")
    assert errors == []
    locals_, resolve_errors = resolve(program)
    assert resolve_errors == []
    interpreter.resolve(locals_)
    assert interpreter.interpret(program.statements) is None
    assert out == ["4"]


def test_interpreter_returns_first_runtime_error():
    out: list[str] = []
    interpreter = Interpreter(out.append)
    program, _ = parse('print 1; print -"no"; print 2;')
    locals_, _ = resolve(program)
    interpreter.resolve(locals_)
    error = interpreter.interpret(program.statements)
    assert isinstance(error, LoxRuntimeError)
    assert error.msg == "Operand must be a number."
    assert error.token.lexeme == "-"
    assert out == ["1"]


def test_check_reports_static_errors_only():
    assert check("print nil + 1;") == []
    errors = check("return 1;")
    assert [e.report() for e in errors] == [
        "[line 1] Error at 'return': Can't return from top-level code."
    ]


def test_deep_recursion_completes():
    result = run(
        "fun count(n) { if (n == 0) return 0; return 1 + count(n - 1); }\n"
        "print count(2000);"
    )
    assert result.exit_code == EXIT_OK
    assert result.stdout == "2000\n"


def test_unbounded_recursion_is_a_runtime_error():
    limit = sys.getrecursionlimit()
    result = run("fun f() { return f(); }\nf();")
    assert result.exit_code == EXIT_RUNTIME_ERROR
    assert result.diagnostics() == ["Stack overflow.\n[line 1]"]
    assert sys.getrecursionlimit() == limit


def test_session_continues_after_stack_overflow():
    out: list[str] = []
    session = Session(out.append)
    session.run("fun f() { return f(); }")
    assert session.run("f();").exit_code == EXIT_RUNTIME_ERROR
    assert session.run('print "recovered";').exit_code == EXIT_OK
    assert out == ["recovered"]
