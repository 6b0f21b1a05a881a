"""Evaluate user-written shared definitions into an expression workspace."""
from __future__ import annotations

import ast
import logging
from typing import List, Optional

from cueflow.runtime.errors import CompileError
from cueflow.runtime.tracing import ExpressionTracer, resolve_tracer
from cueflow.runtime.workspace import SharedWorkspace, resolve_workspace

logger = logging.getLogger(__name__)


def parse_source(source: str, title: str) -> ast.Module:
    """Parse user text into top-level statements, reporting the failing position."""
    try:
        return ast.parse(source, filename=title, mode="exec")
    except SyntaxError as exc:
        raise CompileError(
            title,
            f"Syntax error: {exc.msg}",
            cause=exc,
            line=exc.lineno,
            column=exc.offset,
        ) from exc
    except ValueError as exc:
        # e.g. null bytes in the source text
        raise CompileError(title, f"Unable to parse expression: {exc}", cause=exc) from exc


def load_shared_definitions(
    source: str,
    title: str,
    *,
    workspace: Optional[SharedWorkspace] = None,
    tracer: Optional[ExpressionTracer] = None,
) -> List[str]:
    """Run each top-level statement of ``source`` in the workspace, in order.

    The first failing statement aborts the rest and raises
    :class:`CompileError`. Statements that ran before it stay in effect;
    there is no rollback. Returns the names bound at top level.
    """
    workspace = resolve_workspace(workspace)
    tracer = resolve_tracer(tracer)
    tree = parse_source(source, title)
    defined: List[str] = []
    tracer.emit("shared_load_start", title=title, statements=len(tree.body), workspace=workspace.name)
    with workspace.lock:
        for statement in tree.body:
            module = ast.Module(body=[statement], type_ignores=[])
            try:
                code = compile(module, title, "exec")
                exec(code, workspace.namespace)
            except Exception as exc:
                if isinstance(exc, SyntaxError):
                    message = f"Syntax error: {exc.msg}"
                else:
                    message = f"{type(exc).__name__}: {exc}"
                tracer.emit("shared_load_error", title=title, line=statement.lineno, error=message)
                logger.error("Problem loading %s at line %s: %s", title, statement.lineno, message)
                raise CompileError(
                    title,
                    message,
                    cause=exc,
                    line=statement.lineno,
                    column=statement.col_offset + 1,
                ) from exc
            defined.extend(_bound_names(statement))
    tracer.emit("shared_load_end", title=title, defined=list(defined))
    logger.debug("Loaded %s into workspace '%s': %s", title, workspace.name, defined)
    return defined


def _bound_names(statement: ast.stmt) -> List[str]:
    if isinstance(statement, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
        return [statement.name]
    if isinstance(statement, (ast.Import, ast.ImportFrom)):
        return [(alias.asname or alias.name).split(".")[0] for alias in statement.names]
    targets: List[ast.expr] = []
    if isinstance(statement, ast.Assign):
        targets = list(statement.targets)
    elif isinstance(statement, (ast.AnnAssign, ast.AugAssign)):
        targets = [statement.target]
    names: List[str] = []
    for target in targets:
        names.extend(
            node.id
            for node in ast.walk(target)
            if isinstance(node, ast.Name) and isinstance(node.ctx, ast.Store)
        )
    return names


__all__ = ["load_shared_definitions", "parse_source"]
