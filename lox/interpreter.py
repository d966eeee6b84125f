"""Lox interpreter — evaluate a resolved program by walking its AST.

Statement executors return an explicit outcome instead of raising for
`return`: None when execution falls through, or a Returning record that
each enclosing executor hands back unchanged until LoxFunction.call
receives it. Runtime faults are the only exceptions, and interpret()
stops at the first one.
"""

from __future__ import annotations

import logging
import math
import sys
import threading
import time
from typing import Callable, TypeVar

from .ast import (
    Assign,
    Binary,
    BlockStmt,
    Call,
    ClassStmt,
    Expr,
    ExprStmt,
    FunctionStmt,
    Get,
    Grouping,
    IfStmt,
    Literal,
    Logical,
    PrintStmt,
    ReturnStmt,
    Set,
    Stmt,
    Super,
    This,
    Unary,
    Variable,
    VarStmt,
    WhileStmt,
)
from .errors import LoxRuntimeError
from .runtime import (
    Environment,
    LoxCallable,
    LoxClass,
    LoxFunction,
    LoxInstance,
    NativeFunction,
    Returning,
    is_equal,
    is_truthy,
    stringify,
)
from .tokens import Token

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

# A Lox call costs about ten Python frames, so these allow a few thousand
# nested Lox calls before "Stack overflow." is reported.
RECURSION_LIMIT = 50_000
STACK_SIZE = 256 * 1024 * 1024


def _write_stdout(line: str) -> None:
    sys.stdout.write(line + "\n")


def _clock(arguments: list[object]) -> object:
    return time.time()


# Natives bound in every fresh global environment
NATIVE_NAMES: tuple[str, ...] = ("clock",)


def _check_number_operand(operator: Token, operand: object) -> float:
    if isinstance(operand, float):
        return operand
    raise LoxRuntimeError(operator, "Operand must be a number.")


def _check_number_operands(
    operator: Token, left: object, right: object
) -> tuple[float, float]:
    if isinstance(left, float) and isinstance(right, float):
        return left, right
    raise LoxRuntimeError(operator, "Operands must be numbers.")


def _divide(left: float, right: float) -> float:
    """IEEE division: x/0 is ±Infinity, 0/0 is NaN."""
    if right == 0.0:
        if left == 0.0 or math.isnan(left):
            return math.nan
        # Sign of zero matters: 1 / -0 is -Infinity.
        return math.copysign(math.inf, left) * math.copysign(1.0, right)
    return left / right


def _call_with_deep_stack(fn: Callable[[], _T]) -> _T:
    """Run fn on a worker thread with a large stack and a raised recursion
    limit, re-raising whatever it raised in the calling thread."""
    results: list[_T] = []
    failures: list[BaseException] = []

    def target() -> None:
        try:
            results.append(fn())
        except BaseException as e:
            failures.append(e)

    old_limit = sys.getrecursionlimit()
    sys.setrecursionlimit(max(old_limit, RECURSION_LIMIT))
    try:
        old_size = threading.stack_size(STACK_SIZE)
        try:
            worker = threading.Thread(target=target, name="lox-interpreter")
            worker.start()
        finally:
            threading.stack_size(old_size)
        worker.join()
    finally:
        sys.setrecursionlimit(old_limit)
    if failures:
        raise failures[0]
    return results[0]


class Interpreter:
    """Tree-walking evaluator over resolved Lox statements."""

    def __init__(self, write: Callable[[str], None] | None = None):
        self.write: Callable[[str], None] = (
            write if write is not None else _write_stdout
        )
        self.globals: Environment = Environment()
        self.locals: dict[int, int] = {}
        self.globals.define("clock", NativeFunction("clock", 0, _clock))

    # ---- Entry points ------------------------------------------------------

    def resolve(self, locals_: dict[int, int]) -> None:
        """Merge a resolver table; ids come from the arena shared with it."""
        self.locals.update(locals_)

    def interpret(self, statements: list[Stmt]) -> LoxRuntimeError | None:
        """Run top-level statements; stop and return the first runtime error."""
        return _call_with_deep_stack(lambda: self._interpret(statements))

    def _interpret(self, statements: list[Stmt]) -> LoxRuntimeError | None:
        try:
            for st in statements:
                self.execute(st, self.globals)
        except LoxRuntimeError as e:
            logger.debug("runtime error at line %d: %s", e.line, e.msg)
            return e
        return None

    # ---- Statements --------------------------------------------------------

    def execute_block(self, stmts: list[Stmt], env: Environment) -> Returning | None:
        for st in stmts:
            outcome = self.execute(st, env)
            if outcome is not None:
                return outcome
        return None

    def execute(self, st: Stmt, env: Environment) -> Returning | None:
        if isinstance(st, ExprStmt):
            self.evaluate(st.expression, env)
            return None

        if isinstance(st, PrintStmt):
            value = self.evaluate(st.expression, env)
            self.write(stringify(value))
            return None

        if isinstance(st, VarStmt):
            value: object = None
            if st.initializer is not None:
                value = self.evaluate(st.initializer, env)
            env.define(st.name.lexeme, value)
            return None

        if isinstance(st, BlockStmt):
            return self.execute_block(st.statements, Environment(env))

        if isinstance(st, IfStmt):
            if is_truthy(self.evaluate(st.condition, env)):
                return self.execute(st.then_branch, env)
            if st.else_branch is not None:
                return self.execute(st.else_branch, env)
            return None

        if isinstance(st, WhileStmt):
            while is_truthy(self.evaluate(st.condition, env)):
                outcome = self.execute(st.body, env)
                if outcome is not None:
                    return outcome
            return None

        if isinstance(st, FunctionStmt):
            fn = LoxFunction(st, env, False)
            env.define(st.name.lexeme, fn)
            return None

        if isinstance(st, ReturnStmt):
            value = None
            if st.value is not None:
                value = self.evaluate(st.value, env)
            return Returning(value)

        if isinstance(st, ClassStmt):
            self._execute_class(st, env)
            return None

        raise TypeError("unhandled statement type: " + type(st).__name__)

    def _execute_class(self, st: ClassStmt, env: Environment) -> None:
        superclass: LoxClass | None = None
        if st.superclass is not None:
            value = self.evaluate(st.superclass, env)
            if not isinstance(value, LoxClass):
                raise LoxRuntimeError(st.superclass.name, "Superclass must be a class.")
            superclass = value

        env.define(st.name.lexeme, None)

        method_env = env
        if superclass is not None:
            method_env = Environment(env)
            method_env.define("super", superclass)

        methods: dict[str, LoxFunction] = {}
        for method in st.methods:
            is_init = method.name.lexeme == "init"
            methods[method.name.lexeme] = LoxFunction(method, method_env, is_init)

        klass = LoxClass(st.name.lexeme, superclass, methods)
        env.assign(st.name, klass)

    # ---- Expressions -------------------------------------------------------

    def evaluate(self, expr: Expr, env: Environment) -> object:
        if isinstance(expr, Literal):
            return expr.value

        if isinstance(expr, Grouping):
            return self.evaluate(expr.expression, env)

        if isinstance(expr, Variable):
            return self._look_up(expr.name, expr, env)

        if isinstance(expr, Assign):
            value = self.evaluate(expr.value, env)
            distance = self.locals.get(expr.node_id)
            if distance is not None:
                env.assign_at(distance, expr.name, value)
            else:
                self.globals.assign(expr.name, value)
            return value

        if isinstance(expr, Unary):
            right = self.evaluate(expr.right, env)
            if expr.operator.type == "-":
                return -_check_number_operand(expr.operator, right)
            if expr.operator.type == "!":
                return not is_truthy(right)
            raise LoxRuntimeError(expr.operator, "Unknown unary operator.")

        if isinstance(expr, Binary):
            left = self.evaluate(expr.left, env)
            right = self.evaluate(expr.right, env)
            return self._eval_binary(expr.operator, left, right)

        if isinstance(expr, Logical):
            left = self.evaluate(expr.left, env)
            if expr.operator.type == "or":
                if is_truthy(left):
                    return left
            elif not is_truthy(left):
                return left
            return self.evaluate(expr.right, env)

        if isinstance(expr, Call):
            return self._eval_call(expr, env)

        if isinstance(expr, Get):
            obj = self.evaluate(expr.object, env)
            if isinstance(obj, LoxInstance):
                return obj.get(expr.name)
            raise LoxRuntimeError(expr.name, "Only instances have properties.")

        if isinstance(expr, Set):
            obj = self.evaluate(expr.object, env)
            if not isinstance(obj, LoxInstance):
                raise LoxRuntimeError(expr.name, "Only instances have fields.")
            value = self.evaluate(expr.value, env)
            obj.set(expr.name, value)
            return value

        if isinstance(expr, This):
            return self._look_up(expr.keyword, expr, env)

        if isinstance(expr, Super):
            return self._eval_super(expr, env)

        raise TypeError("unhandled expression type: " + type(expr).__name__)

    def _look_up(self, name: Token, expr: Expr, env: Environment) -> object:
        distance = self.locals.get(expr.node_id)
        if distance is not None:
            return env.get_at(distance, name.lexeme)
        return self.globals.get(name)

    def _eval_binary(self, operator: Token, left: object, right: object) -> object:
        op = operator.type
        if op == "==":
            return is_equal(left, right)
        if op == "!=":
            return not is_equal(left, right)

        if op == "+":
            if isinstance(left, float) and isinstance(right, float):
                return left + right
            if isinstance(left, str) and isinstance(right, str):
                return left + right
            raise LoxRuntimeError(
                operator, "Operands must be two numbers or two strings."
            )

        lv, rv = _check_number_operands(operator, left, right)
        if op == "-":
            return lv - rv
        if op == "*":
            return lv * rv
        if op == "/":
            return _divide(lv, rv)
        if op == ">":
            return lv > rv
        if op == ">=":
            return lv >= rv
        if op == "<":
            return lv < rv
        if op == "<=":
            return lv <= rv
        raise LoxRuntimeError(operator, "Unknown binary operator.")

    def _eval_call(self, call: Call, env: Environment) -> object:
        callee = self.evaluate(call.callee, env)
        arguments = [self.evaluate(arg, env) for arg in call.arguments]
        if not isinstance(callee, LoxCallable):
            raise LoxRuntimeError(call.paren, "Can only call functions and classes.")
        if len(arguments) != callee.arity():
            raise LoxRuntimeError(
                call.paren,
                "Expected "
                + str(callee.arity())
                + " arguments but got "
                + str(len(arguments))
                + ".",
            )
        try:
            return callee.call(self, arguments)
        except RecursionError:
            # Caught by the innermost call that still has room to raise.
            raise LoxRuntimeError(call.paren, "Stack overflow.") from None

    def _eval_super(self, expr: Super, env: Environment) -> object:
        distance = self.locals[expr.node_id]
        superclass = env.get_at(distance, "super")
        # "this" lives in the scope just inside the one binding "super".
        instance = env.get_at(distance - 1, "this")
        assert isinstance(superclass, LoxClass)
        assert isinstance(instance, LoxInstance)
        method = superclass.find_method(expr.method.lexeme)
        if method is None:
            raise LoxRuntimeError(
                expr.method, "Undefined property '" + expr.method.lexeme + "'."
            )
        return method.bind(instance)
