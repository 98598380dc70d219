"""Static call trees for the top-level functions of a configuration script."""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from typing import Iterable, Optional

__all__ = ["Call", "CallStackTree", "Param", "Position", "build_stack_trees"]


@dataclass(frozen=True)
class Position:
    """A 1-based line and column within a named file."""

    filename: str = ""
    line: int = 0
    col: int = 0

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.col}"


@dataclass
class Param:
    """An argument of a call: its index, keyword name, and identifier or literal text."""

    index: int = 0
    name: str = ""
    ident: Optional[str] = None
    string: Optional[str] = None


@dataclass
class Call:
    function_name: str = ""
    filename: str = ""
    pos: Position = field(default_factory=Position)
    params: list[Param] = field(default_factory=list)


@dataclass
class CallStackTree:
    """The calls made, directly or in nested definitions, by one top-level function."""

    function_name: str = ""
    pos: Position = field(default_factory=Position)
    calls: list[Call] = field(default_factory=list)

    def __str__(self) -> str:
        names = " ".join(call.function_name for call in self.calls)
        return f"{self.function_name} {len(self.calls)} [{names}]"


def _format_float(value: float) -> str:
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def _literal_text(value: object) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", "replace")
    if isinstance(value, float):
        return _format_float(value)
    return str(value)


def _expr_name(expr: Optional[ast.AST]) -> str:
    if isinstance(expr, ast.Name):
        return expr.id
    if isinstance(expr, ast.Attribute):
        return f"{_expr_name(expr.value)}.{expr.attr}"
    return ""


def _param_from_expr(expr: Optional[ast.AST]) -> Param:
    if isinstance(expr, ast.Name):
        return Param(ident=expr.id)
    if isinstance(expr, ast.Constant):
        # True, False and None are plain identifiers in the script language.
        if expr.value is None or isinstance(expr.value, bool):
            return Param(ident=str(expr.value))
        return Param(string=_literal_text(expr.value))
    if isinstance(expr, ast.BinOp):
        param = _param_from_expr(expr.right)
        param.name = _expr_name(expr.left)
        return param
    if isinstance(expr, ast.BoolOp):
        param = _param_from_expr(expr.values[-1])
        param.name = _expr_name(expr.values[0]) if len(expr.values) == 2 else ""
        return param
    if isinstance(expr, ast.Compare):
        param = _param_from_expr(expr.comparators[-1])
        param.name = _expr_name(expr.left) if len(expr.comparators) == 1 else ""
        return param
    return Param()


def _param_from_argument(arg: ast.AST) -> Param:
    if isinstance(arg, ast.keyword):
        if arg.arg is None:
            return Param()
        param = _param_from_expr(arg.value)
        param.name = arg.arg
        return param
    return _param_from_expr(arg)


class _Walker:
    def __init__(self, filename: str) -> None:
        self.filename = filename

    def position(self, line: int, col_offset: int) -> Position:
        return Position(self.filename, line, col_offset + 1)

    def statements(self, stmts: Iterable[ast.stmt]) -> list[Call]:
        calls: list[Call] = []
        for stmt in stmts:
            if isinstance(stmt, ast.FunctionDef):
                # A nested definition is assumed to be called at some point.
                calls.extend(self.statements(stmt.body))
            elif isinstance(stmt, ast.Expr):
                calls.extend(self.expression(stmt.value))
            elif isinstance(stmt, ast.If):
                calls.extend(self.statements(stmt.body))
                calls.extend(self.statements(stmt.orelse))
            elif isinstance(stmt, (ast.For, ast.While)):
                calls.extend(self.statements(stmt.body))
            elif isinstance(stmt, (ast.Assign, ast.AugAssign, ast.AnnAssign, ast.Return)):
                calls.extend(self.expression(stmt.value))
        return calls

    def expressions(self, exprs: Iterable[Optional[ast.AST]]) -> list[Call]:
        return [call for expr in exprs for call in self.expression(expr)]

    def expression(self, expr: Optional[ast.AST]) -> list[Call]:
        if expr is None:
            return []
        if isinstance(expr, ast.BinOp):
            return self.expressions([expr.left, expr.right])
        if isinstance(expr, ast.BoolOp):
            return self.expressions(expr.values)
        if isinstance(expr, ast.Compare):
            return self.expressions([expr.left, *expr.comparators])
        if isinstance(expr, ast.Call):
            return [self.call(expr)]
        if isinstance(expr, (ast.ListComp, ast.SetComp, ast.GeneratorExp)):
            return self.expression(expr.elt)
        if isinstance(expr, ast.DictComp):
            return self.expressions([expr.key, expr.value])
        if isinstance(expr, ast.IfExp):
            return self.expressions([expr.body, expr.orelse])
        if isinstance(expr, ast.Dict):
            return self.expressions(
                part for key, value in zip(expr.keys, expr.values) for part in (key, value)
            )
        if isinstance(expr, ast.Attribute):
            return self.expression(expr.value)
        if isinstance(expr, ast.Subscript):
            if isinstance(expr.slice, ast.Slice):
                return self.expressions(
                    [expr.value, expr.slice.lower, expr.slice.upper, expr.slice.step]
                )
            return self.expression(expr.value)
        if isinstance(expr, (ast.List, ast.Tuple)):
            return self.expressions(expr.elts)
        if isinstance(expr, ast.UnaryOp):
            return self.expression(expr.operand)
        return []

    def call(self, expr: ast.Call) -> Call:
        fn = expr.func
        if isinstance(fn, ast.Attribute):
            pos = self.position(fn.end_lineno or fn.lineno, (fn.end_col_offset or 0) - len(fn.attr))
            call = Call(function_name=_expr_name(fn), filename=self.filename, pos=pos)
        elif isinstance(fn, ast.Name):
            pos = self.position(fn.lineno, fn.col_offset)
            call = Call(function_name=fn.id, filename=self.filename, pos=pos)
        else:
            call = Call()

        arguments = sorted(
            [*expr.args, *expr.keywords], key=lambda node: (node.lineno, node.col_offset)
        )
        for index, arg in enumerate(arguments):
            param = _param_from_argument(arg)
            param.index = index
            call.params.append(param)
        return call


def build_stack_trees(source: str | bytes, filename: str = "") -> list[CallStackTree]:
    """Return one call tree per top-level function in ``source``, sorted by name.

    Raises SyntaxError if the source cannot be parsed.
    """
    if isinstance(source, bytes):
        source = source.decode("utf-8")
    module = ast.parse(source, filename or "<script>")
    walker = _Walker(filename)

    definitions: dict[str, ast.FunctionDef] = {}
    for stmt in module.body:
        if isinstance(stmt, ast.FunctionDef):
            definitions[stmt.name] = stmt

    trees = [
        CallStackTree(
            function_name=name,
            pos=walker.position(definition.lineno, definition.col_offset),
            calls=walker.statements(definition.body),
        )
        for name, definition in definitions.items()
    ]
    trees.sort(key=lambda tree: tree.function_name)
    return trees