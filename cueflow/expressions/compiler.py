"""Turn user expression text into live callables."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from cueflow.runtime.errors import CompileError
from cueflow.runtime.tracing import ExpressionTracer, resolve_tracer
from cueflow.runtime.workspace import SharedWorkspace, resolve_workspace

from .builder import EXPRESSION_FUNCTION_NAME, build_expression_module, find_body_yield, render_module
from .planner import plan_bindings
from .resolver import ResolvedBindingSet
from .scanner import scan_references
from .shared import load_shared_definitions, parse_source

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledExpression:
    """A user expression compiled together with its binding prelude.

    Call it as ``compiled(status, trigger_data, globals)``. ``prelude``
    lists the bound symbols in evaluation order.
    """

    function: Callable[[Any, Any, Any], Any]
    title: str
    source: str
    prelude: Tuple[str, ...]
    generated_source: str
    nil_guarded: bool = False
    no_owner_locals: bool = False

    def __call__(self, status: Any = None, trigger_data: Any = None, globals: Any = None) -> Any:
        return self.function(status, trigger_data, globals)


def compile_expression(
    source: str,
    bindings: ResolvedBindingSet,
    nil_guarded: bool = False,
    no_owner_locals: bool = False,
    title: str = "Expression",
    *,
    workspace: Optional[SharedWorkspace] = None,
    tracer: Optional[ExpressionTracer] = None,
) -> CompiledExpression:
    """Compile ``source`` against the resolved ``bindings``.

    Only bindings the source mentions (plus whatever they require) are
    computed when the expression runs. With ``nil_guarded`` every generator
    yields ``None`` instead of running when the event is ``None``. With
    ``no_owner_locals`` no ``locals`` name is bound, for process-wide setup
    and shutdown expressions. ``title`` is used as the file name in
    tracebacks and in any :class:`CompileError`.

    Compilation holds the workspace lock, so it never interleaves with a
    shared-definitions load. Nothing is installed anywhere; the caller owns
    the result.
    """
    workspace = resolve_workspace(workspace)
    tracer = resolve_tracer(tracer)
    tracer.emit("compile_start", title=title, workspace=workspace.name)
    try:
        tree = parse_source(source, title)
    except CompileError as exc:
        tracer.emit("compile_error", title=title, stage="parse", error=exc.message, line=exc.line)
        logger.error("Problem parsing %s: %s", title, exc.message)
        raise

    stray_yield = find_body_yield(tree.body)
    if stray_yield is not None:
        message = "'yield' is not allowed in an expression body"
        tracer.emit("compile_error", title=title, stage="parse", error=message, line=stray_yield.lineno)
        logger.error("Problem parsing %s: %s", title, message)
        raise CompileError(title, message, line=stray_yield.lineno, column=stray_yield.col_offset + 1)

    discovered = scan_references(tree, bindings)
    try:
        prelude = plan_bindings(discovered, bindings, nil_guarded=nil_guarded)
    except (KeyError, ValueError) as exc:
        tracer.emit("compile_error", title=title, stage="plan", error=str(exc))
        raise CompileError(title, f"Unable to bind convenience values: {exc}", cause=exc) from exc
    module = build_expression_module(tree.body, prelude, no_owner_locals=no_owner_locals)

    scratch: dict = {}
    with workspace.lock:
        try:
            code = compile(module, title, "exec")
            exec(code, workspace.namespace, scratch)
        except Exception as exc:
            if isinstance(exc, SyntaxError):
                message = f"Syntax error: {exc.msg}"
            else:
                message = f"{type(exc).__name__}: {exc}"
            tracer.emit("compile_error", title=title, stage="evaluate", error=message)
            logger.error("Problem compiling %s: %s", title, message)
            raise CompileError(
                title,
                message,
                cause=exc,
                line=getattr(exc, "lineno", None),
                column=getattr(exc, "offset", None),
            ) from exc

    compiled = CompiledExpression(
        function=scratch[EXPRESSION_FUNCTION_NAME],
        title=title,
        source=source,
        prelude=tuple(planned.name for planned in prelude),
        generated_source=render_module(module),
        nil_guarded=nil_guarded,
        no_owner_locals=no_owner_locals,
    )
    tracer.emit("compile_end", title=title, prelude=list(compiled.prelude))
    logger.debug("Compiled %s with bindings %s", title, compiled.prelude)
    return compiled


def compile_source(
    source: str,
    bindings: Optional[ResolvedBindingSet] = None,
    *,
    shared_definitions: bool = False,
    nil_guarded: bool = False,
    no_owner_locals: bool = False,
    title: str = "Expression",
    workspace: Optional[SharedWorkspace] = None,
    tracer: Optional[ExpressionTracer] = None,
) -> Optional[CompiledExpression]:
    """Compile an expression, or load it as shared definitions.

    Shared definitions are evaluated straight into the workspace and
    produce no callable, so ``None`` is returned for them.
    """
    if shared_definitions:
        load_shared_definitions(source, title, workspace=workspace, tracer=tracer)
        return None
    if bindings is None:
        raise ValueError(f"{title} needs a resolved binding set to compile against")
    return compile_expression(
        source,
        bindings,
        nil_guarded=nil_guarded,
        no_owner_locals=no_owner_locals,
        title=title,
        workspace=workspace,
        tracer=tracer,
    )


__all__ = ["CompiledExpression", "compile_expression", "compile_source"]
