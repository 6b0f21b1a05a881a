"""Generate the function that wraps a user expression body.

The generated code has the shape::

    def __cueflow_expression__(status, trigger_data, globals):
        locals = __cueflow_owner_locals__(trigger_data)   # unless no_owner_locals
        <binding> = <generator>                            # ordered prelude
        ...
        <user statements, the last expression returned>

Nothing is evaluated here.
"""
from __future__ import annotations

import ast
from typing import List, Optional, Sequence

from cueflow.runtime.workspace import OWNER_LOCALS_NAME

from .planner import PlannedBinding

EXPRESSION_FUNCTION_NAME = "__cueflow_expression__"
PARAMETER_NAMES = ("status", "trigger_data", "globals")

_FUNCTION_TEMPLATE = f"def {EXPRESSION_FUNCTION_NAME}({', '.join(PARAMETER_NAMES)}):\n    pass\n"
_LOCALS_TEMPLATE = f"locals = {OWNER_LOCALS_NAME}(trigger_data)\n"


def return_last_value(body: Sequence[ast.stmt]) -> List[ast.stmt]:
    """Turn a trailing expression statement into ``return <expression>``."""
    statements = list(body)
    if statements and isinstance(statements[-1], ast.Expr):
        last = statements[-1]
        statements[-1] = ast.copy_location(ast.Return(value=last.value), last)
    return statements


_NESTED_SCOPES = (ast.FunctionDef, ast.AsyncFunctionDef, ast.Lambda, ast.ClassDef)


def find_body_yield(body: Sequence[ast.stmt]) -> Optional[ast.expr]:
    """First ``yield`` that would make the wrapper a generator, or ``None``.

    Yields inside nested functions, lambdas and classes belong to those
    scopes and are fine.
    """
    pending: List[ast.AST] = list(body)
    while pending:
        node = pending.pop(0)
        if isinstance(node, (ast.Yield, ast.YieldFrom)):
            return node
        if isinstance(node, _NESTED_SCOPES):
            continue
        pending.extend(ast.iter_child_nodes(node))
    return None


def binding_statement(planned: PlannedBinding) -> ast.stmt:
    target = ast.Name(id=planned.name, ctx=ast.Store())
    assign = ast.Assign(targets=[target], value=planned.expression)
    return ast.copy_location(assign, planned.expression)


def build_expression_module(
    body: Sequence[ast.stmt],
    prelude: Sequence[PlannedBinding],
    no_owner_locals: bool = False,
) -> ast.Module:
    """Return a module AST defining :data:`EXPRESSION_FUNCTION_NAME`."""
    module = ast.parse(_FUNCTION_TEMPLATE)
    function = module.body[0]
    statements: List[ast.stmt] = []
    if not no_owner_locals:
        statements.extend(ast.parse(_LOCALS_TEMPLATE).body)
    statements.extend(binding_statement(planned) for planned in prelude)
    statements.extend(return_last_value(body))
    function.body = statements or [ast.Pass()]
    return ast.fix_missing_locations(module)


def render_module(module: ast.Module) -> str:
    """Readable source for a generated module, for logs and help windows."""
    return ast.unparse(module)


__all__ = [
    "EXPRESSION_FUNCTION_NAME",
    "PARAMETER_NAMES",
    "binding_statement",
    "build_expression_module",
    "find_body_yield",
    "render_module",
    "return_last_value",
]
