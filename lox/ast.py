"""Lox AST — parse-time node definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TypeVar

from .tokens import Token


LiteralValue = float | str | bool | None


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass(eq=False)
class Expr:
    """Base for all expression nodes.

    node_id is the node's slot in its ExprArena. The resolver keys its
    binding table on it, so two structurally equal nodes stay distinct.
    """

    node_id: int = field(default=-1, init=False, repr=False)


@dataclass(eq=False)
class Assign(Expr):
    """name = value."""

    name: Token
    value: Expr


@dataclass(eq=False)
class Binary(Expr):
    """left op right: arithmetic, comparison, equality."""

    left: Expr
    operator: Token
    right: Expr


@dataclass(eq=False)
class Call(Expr):
    """callee(args...); paren is the closing ')' for error lines."""

    callee: Expr
    paren: Token
    arguments: list[Expr]


@dataclass(eq=False)
class Get(Expr):
    """object.name."""

    object: Expr
    name: Token


@dataclass(eq=False)
class Grouping(Expr):
    """( expression )."""

    expression: Expr


@dataclass(eq=False)
class Literal(Expr):
    """nil, true/false, number or string."""

    value: LiteralValue


@dataclass(eq=False)
class Logical(Expr):
    """left and/or right."""

    left: Expr
    operator: Token
    right: Expr


@dataclass(eq=False)
class Set(Expr):
    """object.name = value."""

    object: Expr
    name: Token
    value: Expr


@dataclass(eq=False)
class Super(Expr):
    """super.method."""

    keyword: Token
    method: Token


@dataclass(eq=False)
class This(Expr):
    keyword: Token


@dataclass(eq=False)
class Unary(Expr):
    """-right or !right."""

    operator: Token
    right: Expr


@dataclass(eq=False)
class Variable(Expr):
    name: Token


# ============================================================
# STATEMENTS
# ============================================================


@dataclass(eq=False)
class Stmt:
    """Base for all statements."""


@dataclass(eq=False)
class BlockStmt(Stmt):
    """{ statements }."""

    statements: list[Stmt]


@dataclass(eq=False)
class FunctionStmt(Stmt):
    """fun name(params) { body }; also used for methods."""

    name: Token
    params: list[Token]
    body: list[Stmt]


@dataclass(eq=False)
class ClassStmt(Stmt):
    """class Name < Superclass { methods }."""

    name: Token
    superclass: Variable | None
    methods: list[FunctionStmt]


@dataclass(eq=False)
class ExprStmt(Stmt):
    """Bare expression as statement."""

    expression: Expr


@dataclass(eq=False)
class IfStmt(Stmt):
    """if (condition) then_branch else else_branch."""

    condition: Expr
    then_branch: Stmt
    else_branch: Stmt | None


@dataclass(eq=False)
class PrintStmt(Stmt):
    expression: Expr


@dataclass(eq=False)
class ReturnStmt(Stmt):
    """return value?; keyword is kept for error lines."""

    keyword: Token
    value: Expr | None


@dataclass(eq=False)
class VarStmt(Stmt):
    """var name = initializer?."""

    name: Token
    initializer: Expr | None


@dataclass(eq=False)
class WhileStmt(Stmt):
    """while (condition) body. for loops desugar to this."""

    condition: Expr
    body: Stmt


@dataclass
class Program:
    """Top-level result of a parse: ordered statements."""

    statements: list[Stmt]


# ============================================================
# ARENA
# ============================================================

_E = TypeVar("_E", bound=Expr)


class ExprArena:
    """Hands out increasing expression ids; nodes themselves are not kept.

    A REPL session shares one arena across lines, so ids recorded by the
    resolver for earlier lines are never reused by later ones.
    """

    def __init__(self) -> None:
        self.next_id: int = 0

    def add(self, expr: _E) -> _E:
        expr.node_id = self.next_id
        self.next_id += 1
        return expr

    def __len__(self) -> int:
        return self.next_id
