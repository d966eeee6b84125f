"""Lox parser — recursive descent, one method per grammar production."""

from __future__ import annotations

from typing import Callable

from .ast import (
    Assign,
    Binary,
    BlockStmt,
    Call,
    ClassStmt,
    Expr,
    ExprArena,
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
from .errors import ParseError, token_where
from .tokens import TK_EOF, TK_IDENT, TK_NUMBER, TK_STRING, Token

MAX_ARGS = 255

# Tokens that start a declaration/statement; recovery stops in front of them
SYNC_KEYWORDS: set[str] = {
    "class",
    "fun",
    "var",
    "for",
    "if",
    "while",
    "print",
    "return",
}

EQUALITY_OPS: set[str] = {"!=", "=="}
COMPARISON_OPS: set[str] = {">", ">=", "<", "<="}
TERM_OPS: set[str] = {"-", "+"}
FACTOR_OPS: set[str] = {"/", "*"}
UNARY_OPS: set[str] = {"!", "-"}


class Parser:
    """Recursive descent parser for Lox."""

    def __init__(self, tokens: list[Token], arena: ExprArena | None = None):
        self.tokens: list[Token] = tokens
        self.pos: int = 0
        self.arena: ExprArena = arena if arena is not None else ExprArena()
        self.errors: list[ParseError] = []

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        return self.tokens[self.pos]

    def previous(self) -> Token:
        return self.tokens[self.pos - 1]

    def at_end(self) -> bool:
        return self.current().type == TK_EOF

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if tok.type != TK_EOF:
            self.pos += 1
        return tok

    def at(self, type_: str) -> bool:
        return self.current().type == type_

    def match(self, types: set[str]) -> Token | None:
        if self.current().type in types:
            return self.advance()
        return None

    def expect(self, type_: str, msg: str) -> Token:
        if self.at(type_):
            return self.advance()
        raise self.error(self.current(), msg)

    def error(self, tok: Token, msg: str) -> ParseError:
        err = ParseError(msg, tok.line, token_where(tok))
        self.errors.append(err)
        return err

    def synchronize(self) -> None:
        """Discard tokens until a likely statement boundary."""
        self.advance()
        while not self.at_end():
            if self.previous().type == ";":
                return
            if self.current().type in SYNC_KEYWORDS:
                return
            self.advance()

    # ── Top Level ────────────────────────────────────────────

    def parse_program(self) -> Program:
        statements: list[Stmt] = []
        while not self.at_end():
            stmt = self.parse_declaration()
            if stmt is not None:
                statements.append(stmt)
        return Program(statements)

    def parse_declaration(self) -> Stmt | None:
        try:
            if self.match({"class"}):
                return self.parse_class_decl()
            if self.match({"fun"}):
                return self.parse_function("function")
            if self.match({"var"}):
                return self.parse_var_decl()
            return self.parse_stmt()
        except ParseError:
            self.synchronize()
            return None

    def parse_class_decl(self) -> ClassStmt:
        name = self.expect(TK_IDENT, "Expect class name.")
        superclass: Variable | None = None
        if self.match({"<"}):
            super_name = self.expect(TK_IDENT, "Expect superclass name.")
            superclass = self.arena.add(Variable(super_name))
        self.expect("{", "Expect '{' before class body.")
        methods: list[FunctionStmt] = []
        while not self.at("}") and not self.at_end():
            methods.append(self.parse_function("method"))
        self.expect("}", "Expect '}' after class body.")
        return ClassStmt(name, superclass, methods)

    def parse_function(self, kind: str) -> FunctionStmt:
        name = self.expect(TK_IDENT, "Expect " + kind + " name.")
        self.expect("(", "Expect '(' after " + kind + " name.")
        params: list[Token] = []
        if not self.at(")"):
            params.append(self.expect(TK_IDENT, "Expect parameter name."))
            while self.match({","}):
                if len(params) >= MAX_ARGS:
                    self.error(self.current(), "Can't have more than 255 parameters.")
                params.append(self.expect(TK_IDENT, "Expect parameter name."))
        self.expect(")", "Expect ')' after parameters.")
        self.expect("{", "Expect '{' before " + kind + " body.")
        body = self.parse_block()
        return FunctionStmt(name, params, body)

    def parse_var_decl(self) -> VarStmt:
        name = self.expect(TK_IDENT, "Expect variable name.")
        initializer: Expr | None = None
        if self.match({"="}):
            initializer = self.parse_expr()
        self.expect(";", "Expect ';' after variable declaration.")
        return VarStmt(name, initializer)

    # ── Statements ───────────────────────────────────────────

    def parse_stmt(self) -> Stmt:
        if self.match({"for"}):
            return self.parse_for_stmt()
        if self.match({"if"}):
            return self.parse_if_stmt()
        if self.match({"print"}):
            return self.parse_print_stmt()
        if self.match({"return"}):
            return self.parse_return_stmt()
        if self.match({"while"}):
            return self.parse_while_stmt()
        if self.match({"{"}):
            return BlockStmt(self.parse_block())
        return self.parse_expr_stmt()

    def parse_block(self) -> list[Stmt]:
        """Statements up to the closing '}'; the '{' is already consumed."""
        statements: list[Stmt] = []
        while not self.at("}") and not self.at_end():
            stmt = self.parse_declaration()
            if stmt is not None:
                statements.append(stmt)
        self.expect("}", "Expect '}' after block.")
        return statements

    def parse_for_stmt(self) -> Stmt:
        """Desugar for (init; cond; incr) body into a while loop."""
        self.expect("(", "Expect '(' after 'for'.")
        initializer: Stmt | None
        if self.match({";"}):
            initializer = None
        elif self.match({"var"}):
            initializer = self.parse_var_decl()
        else:
            initializer = self.parse_expr_stmt()

        condition: Expr | None = None
        if not self.at(";"):
            condition = self.parse_expr()
        self.expect(";", "Expect ';' after loop condition.")

        increment: Expr | None = None
        if not self.at(")"):
            increment = self.parse_expr()
        self.expect(")", "Expect ')' after for clauses.")

        body = self.parse_stmt()
        if increment is not None:
            body = BlockStmt([body, ExprStmt(increment)])
        if condition is None:
            condition = self.arena.add(Literal(True))
        body = WhileStmt(condition, body)
        if initializer is not None:
            body = BlockStmt([initializer, body])
        return body

    def parse_if_stmt(self) -> IfStmt:
        self.expect("(", "Expect '(' after 'if'.")
        condition = self.parse_expr()
        self.expect(")", "Expect ')' after if condition.")
        then_branch = self.parse_stmt()
        else_branch: Stmt | None = None
        if self.match({"else"}):
            else_branch = self.parse_stmt()
        return IfStmt(condition, then_branch, else_branch)

    def parse_print_stmt(self) -> PrintStmt:
        value = self.parse_expr()
        self.expect(";", "Expect ';' after value.")
        return PrintStmt(value)

    def parse_return_stmt(self) -> ReturnStmt:
        keyword = self.previous()
        value: Expr | None = None
        if not self.at(";"):
            value = self.parse_expr()
        self.expect(";", "Expect ';' after return value.")
        return ReturnStmt(keyword, value)

    def parse_while_stmt(self) -> WhileStmt:
        self.expect("(", "Expect '(' after 'while'.")
        condition = self.parse_expr()
        self.expect(")", "Expect ')' after condition.")
        body = self.parse_stmt()
        return WhileStmt(condition, body)

    def parse_expr_stmt(self) -> ExprStmt:
        expr = self.parse_expr()
        self.expect(";", "Expect ';' after expression.")
        return ExprStmt(expr)

    # ── Expressions ──────────────────────────────────────────

    def parse_expr(self) -> Expr:
        return self.parse_assignment()

    def parse_assignment(self) -> Expr:
        """Assignment = ( Call '.' )? IDENT '=' Assignment | Or"""
        expr = self.parse_or()
        equals = self.match({"="})
        if equals is None:
            return expr
        value = self.parse_assignment()
        if isinstance(expr, Variable):
            return self.arena.add(Assign(expr.name, value))
        if isinstance(expr, Get):
            return self.arena.add(Set(expr.object, expr.name, value))
        # Reported, not raised: the parser is not confused about where it is.
        self.error(equals, "Invalid assignment target.")
        return expr

    def parse_or(self) -> Expr:
        """Or = And ( 'or' And )*"""
        left = self.parse_and()
        while True:
            op = self.match({"or"})
            if op is None:
                return left
            right = self.parse_and()
            left = self.arena.add(Logical(left, op, right))

    def parse_and(self) -> Expr:
        """And = Equality ( 'and' Equality )*"""
        left = self.parse_equality()
        while True:
            op = self.match({"and"})
            if op is None:
                return left
            right = self.parse_equality()
            left = self.arena.add(Logical(left, op, right))

    def parse_binary(self, ops: set[str], operand: Callable[[], Expr]) -> Expr:
        """Left-associative chain of one precedence level."""
        left = operand()
        while True:
            op = self.match(ops)
            if op is None:
                return left
            right = operand()
            left = self.arena.add(Binary(left, op, right))

    def parse_equality(self) -> Expr:
        """Equality = Comparison ( ( '!=' | '==' ) Comparison )*"""
        return self.parse_binary(EQUALITY_OPS, self.parse_comparison)

    def parse_comparison(self) -> Expr:
        """Comparison = Term ( ( '>' | '>=' | '<' | '<=' ) Term )*"""
        return self.parse_binary(COMPARISON_OPS, self.parse_term)

    def parse_term(self) -> Expr:
        """Term = Factor ( ( '-' | '+' ) Factor )*"""
        return self.parse_binary(TERM_OPS, self.parse_factor)

    def parse_factor(self) -> Expr:
        """Factor = Unary ( ( '/' | '*' ) Unary )*"""
        return self.parse_binary(FACTOR_OPS, self.parse_unary)

    def parse_unary(self) -> Expr:
        """Unary = ( '!' | '-' ) Unary | Call"""
        op = self.match(UNARY_OPS)
        if op is not None:
            right = self.parse_unary()
            return self.arena.add(Unary(op, right))
        return self.parse_call()

    def parse_call(self) -> Expr:
        """Call = Primary ( '(' Args? ')' | '.' IDENT )*"""
        expr = self.parse_primary()
        while True:
            if self.match({"("}):
                expr = self.finish_call(expr)
            elif self.match({"."}):
                name = self.expect(TK_IDENT, "Expect property name after '.'.")
                expr = self.arena.add(Get(expr, name))
            else:
                return expr

    def finish_call(self, callee: Expr) -> Expr:
        arguments: list[Expr] = []
        if not self.at(")"):
            arguments.append(self.parse_expr())
            while self.match({","}):
                if len(arguments) >= MAX_ARGS:
                    self.error(self.current(), "Can't have more than 255 arguments.")
                arguments.append(self.parse_expr())
        paren = self.expect(")", "Expect ')' after arguments.")
        return self.arena.add(Call(callee, paren, arguments))

    def parse_primary(self) -> Expr:
        """Parse a primary expression."""
        tok = self.current()

        if tok.type == "false":
            self.advance()
            return self.arena.add(Literal(False))
        if tok.type == "true":
            self.advance()
            return self.arena.add(Literal(True))
        if tok.type == "nil":
            self.advance()
            return self.arena.add(Literal(None))
        if tok.type == TK_NUMBER or tok.type == TK_STRING:
            self.advance()
            return self.arena.add(Literal(tok.literal))

        if tok.type == "super":
            self.advance()
            self.expect(".", "Expect '.' after 'super'.")
            method = self.expect(TK_IDENT, "Expect superclass method name.")
            return self.arena.add(Super(tok, method))
        if tok.type == "this":
            self.advance()
            return self.arena.add(This(tok))
        if tok.type == TK_IDENT:
            self.advance()
            return self.arena.add(Variable(tok))

        if tok.type == "(":
            self.advance()
            inner = self.parse_expr()
            self.expect(")", "Expect ')' after expression.")
            return self.arena.add(Grouping(inner))

        raise self.error(tok, "Expect expression.")


def parse(
    tokens: list[Token], arena: ExprArena | None = None
) -> tuple[Program, list[ParseError]]:
    """Parse a token list into a Program. Returns (program, errors)."""
    parser = Parser(tokens, arena)
    program = parser.parse_program()
    return program, parser.errors
