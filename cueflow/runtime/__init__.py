"""Runtime support shared by compiled expressions: state, workspaces, errors."""

from .errors import CatalogError, CompileError, ExpressionError, ExpressionRuntimeError
from .invocation import InvocationResult, invoke, invoke_safely
from .state import OwnerContext, StateBag, owner_locals
from .tracing import ExpressionTracer
from .workspace import (
    DEFAULT_WORKSPACE_NAME,
    SharedWorkspace,
    default_workspace,
    discard_workspace,
    workspace_for,
)

__all__ = [
    "CatalogError",
    "CompileError",
    "DEFAULT_WORKSPACE_NAME",
    "ExpressionError",
    "ExpressionRuntimeError",
    "ExpressionTracer",
    "InvocationResult",
    "OwnerContext",
    "SharedWorkspace",
    "StateBag",
    "default_workspace",
    "discard_workspace",
    "invoke",
    "invoke_safely",
    "owner_locals",
    "workspace_for",
]
