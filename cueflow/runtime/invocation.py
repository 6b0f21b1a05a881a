"""Run compiled expressions and contain their failures."""
from __future__ import annotations

import logging
import traceback
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from cueflow.config import get_settings

from .errors import ExpressionRuntimeError
from .tracing import ExpressionTracer, resolve_tracer

if TYPE_CHECKING:  # pragma: no cover
    from cueflow.expressions.compiler import CompiledExpression

logger = logging.getLogger(__name__)


@dataclass
class InvocationResult:
    """Outcome of :func:`invoke_safely`: a value or the error that replaced it."""

    value: Any = None
    error: Optional[ExpressionRuntimeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _failing_line(exc: BaseException, title: str) -> Optional[int]:
    """Innermost traceback line that belongs to the expression named ``title``."""
    line = None
    for frame in traceback.extract_tb(exc.__traceback__):
        if frame.filename == title:
            line = frame.lineno
    return line


def invoke(
    compiled: "CompiledExpression",
    status: Any = None,
    trigger_data: Any = None,
    globals: Any = None,
    *,
    tracer: Optional[ExpressionTracer] = None,
) -> Any:
    """Call ``compiled`` and return its value.

    Any exception it raises is re-raised as :class:`ExpressionRuntimeError`
    carrying the expression title, chained to the original cause. That
    includes ``SystemExit``, so a stray ``sys.exit()`` in user code cannot stop
    the dispatching thread; ``KeyboardInterrupt`` still propagates.
    """
    tracer = resolve_tracer(tracer)
    tracer.emit("invoke_start", title=compiled.title)
    try:
        value = compiled(status, trigger_data, globals)
    except (Exception, SystemExit) as exc:
        line = _failing_line(exc, compiled.title)
        tracer.emit("invoke_error", title=compiled.title, error=str(exc), line=line)
        raise ExpressionRuntimeError(
            compiled.title,
            f"{type(exc).__name__}: {exc}",
            cause=exc,
            line=line,
        ) from exc
    tracer.emit("invoke_end", title=compiled.title, value=value)
    return value


def invoke_safely(
    compiled: Optional["CompiledExpression"],
    status: Any = None,
    trigger_data: Any = None,
    globals: Any = None,
    *,
    tracer: Optional[ExpressionTracer] = None,
) -> InvocationResult:
    """Run ``compiled`` without letting its failure escape to the caller's thread.

    Meant for event-dispatch loops: the error is logged and returned in the
    result instead of raised. A missing expression yields an empty result.
    """
    if compiled is None:
        return InvocationResult()
    try:
        return InvocationResult(value=invoke(compiled, status, trigger_data, globals, tracer=tracer))
    except ExpressionRuntimeError as error:
        if get_settings().log_source_on_error:
            logger.error("Problem running %s:\n%s", compiled.title, compiled.source, exc_info=error.cause)
        else:
            logger.error("Problem running %s", compiled.title, exc_info=error.cause)
        return InvocationResult(error=error)


__all__ = ["InvocationResult", "invoke", "invoke_safely"]
