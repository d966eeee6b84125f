"""Lox resolver — static scope resolution and semantic checks.

Walks the whole program once before anything runs. For every variable use
(Variable, Assign, This, Super) it records how many scopes out the binding
lives, keyed by the node's arena id; names found in no local scope are left
out of the table and looked up in the globals at runtime. The scope stack
here mirrors the environments the interpreter creates, one for one.
"""

from __future__ import annotations

import logging
from typing import Iterable

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
    Program,
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
from .errors import ResolveError, token_where
from .tokens import Token

logger = logging.getLogger(__name__)

# Enclosing-function kinds
FN_NONE = "none"
FN_FUNCTION = "function"
FN_METHOD = "method"
FN_INITIALIZER = "initializer"

# Enclosing-class kinds
CLASS_NONE = "none"
CLASS_CLASS = "class"
CLASS_SUBCLASS = "subclass"

SELF_READ_MSG = "Can't read local variable in its own initializer."


class Resolver:
    def __init__(self, known_globals: Iterable[str] = ()) -> None:
        self.errors: list[ResolveError] = []
        self.locals: dict[int, int] = {}
        # name -> fully initialized?
        self.scopes: list[dict[str, bool]] = []
        # Top-level names are never resolved to a distance, but they are
        # tracked so a global initializer reading itself is caught too.
        self.global_scope: dict[str, bool] = dict.fromkeys(known_globals, True)
        # Initializer reads in function bodies that may name a later global
        self.pending_reads: list[Token] = []
        self.current_function: str = FN_NONE
        self.current_class: str = CLASS_NONE

    def error(self, tok: Token, msg: str) -> None:
        self.errors.append(ResolveError(msg, tok.line, token_where(tok)))

    # ── Scope management ──────────────────────────────────────

    def begin_scope(self) -> None:
        self.scopes.append({})

    def end_scope(self) -> None:
        self.scopes.pop()

    def declare(self, name: Token) -> None:
        if len(self.scopes) == 0:
            # Redeclaring a global is allowed and keeps its old value.
            if name.lexeme not in self.global_scope:
                self.global_scope[name.lexeme] = False
            return
        scope = self.scopes[-1]
        if name.lexeme in scope:
            self.error(name, "Already a variable with this name in this scope.")
        scope[name.lexeme] = False

    def define(self, name: Token) -> None:
        if len(self.scopes) == 0:
            self.global_scope[name.lexeme] = True
            return
        self.scopes[-1][name.lexeme] = True

    def resolve_local(self, expr: Expr, name: str, skip: int = 0) -> None:
        # Search scopes innermost-out, ignoring the innermost `skip` of them
        i = len(self.scopes) - 1 - skip
        while i >= 0:
            if name in self.scopes[i]:
                self.locals[expr.node_id] = len(self.scopes) - 1 - i
                return
            i -= 1

    # ── Statements ────────────────────────────────────────────

    def resolve_stmts(self, stmts: list[Stmt]) -> None:
        for s in stmts:
            self.resolve_stmt(s)

    def resolve_stmt(self, stmt: Stmt) -> None:
        if isinstance(stmt, BlockStmt):
            self.begin_scope()
            self.resolve_stmts(stmt.statements)
            self.end_scope()
        elif isinstance(stmt, ClassStmt):
            self.resolve_class(stmt)
        elif isinstance(stmt, ExprStmt):
            self.resolve_expr(stmt.expression)
        elif isinstance(stmt, FunctionStmt):
            # Defined before the body so the function can recurse.
            self.declare(stmt.name)
            self.define(stmt.name)
            self.resolve_function(stmt, FN_FUNCTION)
        elif isinstance(stmt, IfStmt):
            self.resolve_expr(stmt.condition)
            self.resolve_stmt(stmt.then_branch)
            if stmt.else_branch is not None:
                self.resolve_stmt(stmt.else_branch)
        elif isinstance(stmt, PrintStmt):
            self.resolve_expr(stmt.expression)
        elif isinstance(stmt, ReturnStmt):
            self.resolve_return(stmt)
        elif isinstance(stmt, VarStmt):
            self.declare(stmt.name)
            if stmt.initializer is not None:
                self.resolve_expr(stmt.initializer)
            self.define(stmt.name)
        elif isinstance(stmt, WhileStmt):
            self.resolve_expr(stmt.condition)
            self.resolve_stmt(stmt.body)
        else:
            raise TypeError("unhandled statement type: " + type(stmt).__name__)

    def resolve_class(self, stmt: ClassStmt) -> None:
        enclosing_class = self.current_class
        self.current_class = CLASS_CLASS

        self.declare(stmt.name)
        self.define(stmt.name)

        if stmt.superclass is not None:
            if stmt.superclass.name.lexeme == stmt.name.lexeme:
                self.error(stmt.superclass.name, "A class can't inherit from itself.")
            self.current_class = CLASS_SUBCLASS
            self.resolve_expr(stmt.superclass)
            self.begin_scope()
            self.scopes[-1]["super"] = True

        self.begin_scope()
        self.scopes[-1]["this"] = True
        for method in stmt.methods:
            kind = FN_METHOD
            if method.name.lexeme == "init":
                kind = FN_INITIALIZER
            self.resolve_function(method, kind)
        self.end_scope()

        if stmt.superclass is not None:
            self.end_scope()

        self.current_class = enclosing_class

    def resolve_function(self, fn: FunctionStmt, kind: str) -> None:
        enclosing_function = self.current_function
        self.current_function = kind
        self.begin_scope()
        for param in fn.params:
            self.declare(param)
            self.define(param)
        self.resolve_stmts(fn.body)
        self.end_scope()
        self.current_function = enclosing_function

    def resolve_return(self, stmt: ReturnStmt) -> None:
        if self.current_function == FN_NONE:
            self.error(stmt.keyword, "Can't return from top-level code.")
        if stmt.value is not None:
            if self.current_function == FN_INITIALIZER:
                self.error(stmt.keyword, "Can't return a value from an initializer.")
            self.resolve_expr(stmt.value)

    # ── Expressions ───────────────────────────────────────────

    def resolve_variable(self, expr: Variable) -> None:
        """Resolve a read. Inside its own initializer a name means the
        binding it shadows; with nothing to shadow the read is an error."""
        name = expr.name.lexeme
        if len(self.scopes) == 0:
            if self.global_scope.get(name) is False:
                self.error(expr.name, SELF_READ_MSG)
            return
        if self.scopes[-1].get(name) is not False:
            self.resolve_local(expr, name)
            return
        outer = self.scopes[:-1]
        if any(name in scope for scope in outer) or self.global_scope.get(name):
            self.resolve_local(expr, name, skip=1)
        elif self.current_function != FN_NONE:
            # Bodies run after the whole program is declared; checked in finish().
            self.pending_reads.append(expr.name)
        else:
            self.error(expr.name, SELF_READ_MSG)

    def finish(self) -> None:
        """Settle initializer reads inside function bodies against the full
        set of globals, then order errors by line."""
        for tok in self.pending_reads:
            if not self.global_scope.get(tok.lexeme):
                self.error(tok, SELF_READ_MSG)
        self.pending_reads = []
        self.errors.sort(key=lambda e: e.line)

    def resolve_expr(self, expr: Expr) -> None:
        if isinstance(expr, Variable):
            self.resolve_variable(expr)
        elif isinstance(expr, Assign):
            self.resolve_expr(expr.value)
            self.resolve_local(expr, expr.name.lexeme)
        elif isinstance(expr, Binary):
            self.resolve_expr(expr.left)
            self.resolve_expr(expr.right)
        elif isinstance(expr, Call):
            self.resolve_expr(expr.callee)
            for arg in expr.arguments:
                self.resolve_expr(arg)
        elif isinstance(expr, Get):
            self.resolve_expr(expr.object)
        elif isinstance(expr, Grouping):
            self.resolve_expr(expr.expression)
        elif isinstance(expr, Literal):
            pass
        elif isinstance(expr, Logical):
            self.resolve_expr(expr.left)
            self.resolve_expr(expr.right)
        elif isinstance(expr, Set):
            self.resolve_expr(expr.value)
            self.resolve_expr(expr.object)
        elif isinstance(expr, Super):
            if self.current_class == CLASS_NONE:
                self.error(expr.keyword, "Can't use 'super' outside of a class.")
            elif self.current_class != CLASS_SUBCLASS:
                self.error(
                    expr.keyword, "Can't use 'super' in a class with no superclass."
                )
            self.resolve_local(expr, "super")
        elif isinstance(expr, This):
            if self.current_class == CLASS_NONE:
                self.error(expr.keyword, "Can't use 'this' outside of a class.")
                return
            self.resolve_local(expr, "this")
        elif isinstance(expr, Unary):
            self.resolve_expr(expr.right)
        else:
            raise TypeError("unhandled expression type: " + type(expr).__name__)


# ============================================================
# PUBLIC API
# ============================================================


def resolve(
    program: Program, known_globals: Iterable[str] = ()
) -> tuple[dict[int, int], list[ResolveError]]:
    """Resolve a parsed Program. Returns (locals, errors); errors empty = ok.

    known_globals names globals already holding a value, such as natives
    or definitions from earlier prompt lines.
    """
    resolver = Resolver(known_globals)
    resolver.resolve_stmts(program.statements)
    resolver.finish()
    logger.debug(
        "resolved %d local references, %d errors",
        len(resolver.locals),
        len(resolver.errors),
    )
    return resolver.locals, resolver.errors
