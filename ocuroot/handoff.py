"""SDK version detection, handoff graphs and function descriptions for scripts."""

from __future__ import annotations

import ast
import json
from typing import Any, Iterable

from ocuroot.sdkdata import HandoffEdge
from ocuroot.stacktrees import Call, CallStackTree, Position

__all__ = [
    "SdkVersionError",
    "build_handoff_graph",
    "calls_for_function",
    "identify_sdk_version",
    "render_function",
]

_VERSION_FUNCTION = "ocuroot"
_TRANSITIONS = ("handoff", "approval", "delay")


class SdkVersionError(ValueError):
    """Raised when a script declares its SDK version incorrectly."""


def _bound_names(target: ast.AST) -> Iterable[str]:
    if isinstance(target, ast.Name):
        yield target.id
    elif isinstance(target, (ast.Tuple, ast.List)):
        for element in target.elts:
            yield from _bound_names(element)


def _top_level_bindings(module: ast.Module) -> set[str]:
    bound: set[str] = set()
    for stmt in module.body:
        if isinstance(stmt, ast.FunctionDef):
            bound.add(stmt.name)
        elif isinstance(stmt, ast.Assign):
            for target in stmt.targets:
                bound.update(_bound_names(target))
        elif isinstance(stmt, (ast.AugAssign, ast.AnnAssign, ast.For)):
            bound.update(_bound_names(stmt.target))
        elif (
            isinstance(stmt, ast.Expr)
            and isinstance(stmt.value, ast.Call)
            and isinstance(stmt.value.func, ast.Name)
            and stmt.value.func.id == "load"
        ):
            call = stmt.value
            for arg in call.args[1:]:
                if isinstance(arg, ast.Constant) and isinstance(arg.value, str):
                    bound.add(arg.value)
            bound.update(kw.arg for kw in call.keywords if kw.arg)
    return bound


def identify_sdk_version(filename: str, data: str | bytes) -> str:
    """Return the version given to the script's ``ocuroot(...)`` call, or "" if it has none."""
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    module = ast.parse(data, filename or "<script>")

    uses = sum(
        1
        for node in ast.walk(module)
        if isinstance(node, ast.Name)
        and isinstance(node.ctx, ast.Load)
        and node.id == _VERSION_FUNCTION
    )
    if _VERSION_FUNCTION in _top_level_bindings(module):
        uses = 0
    if uses == 0:
        return ""

    version = ""
    for stmt in module.body:
        if not (isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Call)):
            continue
        call = stmt.value
        if not (isinstance(call.func, ast.Name) and call.func.id == _VERSION_FUNCTION):
            continue
        if len(call.args) + len(call.keywords) != 1:
            raise SdkVersionError("ocuroot call must have exactly one argument")
        arg = call.args[0] if call.args else None
        if not (isinstance(arg, ast.Constant) and isinstance(arg.value, str)):
            raise SdkVersionError("ocuroot call must have a string literal as its argument")
        version = arg.value
    return version


def calls_for_function(trees: Iterable[CallStackTree], function_name: str) -> list[Call]:
    """Return every call made by the trees of the named function."""
    return [call for tree in trees if tree.function_name == function_name for call in tree.calls]


def _collect_edges(
    trees: list[CallStackTree], function_name: str, edges: dict[HandoffEdge, None]
) -> None:
    for call in calls_for_function(trees, function_name):
        if call.function_name in _TRANSITIONS:
            target = ""
            annotation = ""
            delay = ""
            for param in call.params:
                positional = param.name == ""
                if ((param.index == 0 and positional) or param.name == "fn") and param.ident is not None:
                    target = param.ident
                if (
                    (param.index == 1 and positional) or param.name == "annotation"
                ) and param.string is not None:
                    annotation = param.string
                if (param.index == 2 and positional) or param.name == "delay":
                    delay = param.string if param.string else "?"
            edge = HandoffEdge(
                source=function_name,
                target=target,
                annotation=annotation,
                delay=delay,
                needs_approval=call.function_name == "approval",
            )
            if edge not in edges and edge.target:
                edges[edge] = None
                _collect_edges(trees, edge.target, edges)

        if call.function_name == "done":
            annotation = ""
            for param in call.params:
                if (param.index == 0 or param.name == "annotation") and param.string is not None:
                    annotation = param.string
            edges.setdefault(HandoffEdge(source=function_name, annotation=annotation), None)


def build_handoff_graph(trees: Iterable[CallStackTree], function_name: str) -> list[HandoffEdge]:
    """Return the edges reachable from ``function_name``, starting with the edge into it."""
    tree_list = list(trees)
    edges: dict[HandoffEdge, None] = {HandoffEdge(target=function_name): None}
    _collect_edges(tree_list, function_name, edges)
    return list(edges)


def render_function(
    name: str, position: Position, require_top_level: bool = False
) -> dict[str, Any]:
    """Describe a function by name and position; optionally insist it is top-level."""
    pos = str(position)
    if require_top_level and position.col != 1:
        raise ValueError(
            f"function {json.dumps(name)} must be defined at the top level of a file, "
            f"it was defined at {pos}"
        )
    return {"function": {"name": name, "pos": pos}}