"""
cueflow - compile short user-written Python expressions that react to DJ
player events.

Each expression is compiled into a function of ``(status, trigger_data,
globals)``. Only the convenience bindings the expression mentions (such as
``beat_number`` or ``track_title``) are computed when it runs, and every
expression shares a workspace where user-defined functions live.
"""

from .config import ExpressionSettings, configure_logging, get_settings
from .runtime import (
    CompileError,
    ExpressionError,
    ExpressionRuntimeError,
    InvocationResult,
    OwnerContext,
    SharedWorkspace,
    StateBag,
    default_workspace,
    invoke,
    invoke_safely,
    workspace_for,
)
from .expressions import (
    DEFAULT_CATALOG,
    Binding,
    BindingCatalog,
    CompiledExpression,
    EventKind,
    compile_expression,
    compile_slot,
    describe_bindings,
    load_shared_definitions,
    resolve_bindings,
)

__version__ = "0.1.0"

__all__ = [
    "Binding",
    "BindingCatalog",
    "CompileError",
    "CompiledExpression",
    "DEFAULT_CATALOG",
    "EventKind",
    "ExpressionError",
    "ExpressionRuntimeError",
    "ExpressionSettings",
    "InvocationResult",
    "OwnerContext",
    "SharedWorkspace",
    "StateBag",
    "compile_expression",
    "compile_slot",
    "configure_logging",
    "default_workspace",
    "describe_bindings",
    "get_settings",
    "invoke",
    "invoke_safely",
    "load_shared_definitions",
    "resolve_bindings",
    "workspace_for",
]
