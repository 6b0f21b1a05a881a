"""Compile user expressions together with the event bindings they mention."""

from .bindings import DEFAULT_CATALOG
from .catalog import Binding, BindingCatalog, CatalogBuilder, EventKind, KindSpec
from .compiler import CompiledExpression, compile_expression, compile_source
from .help import describe_bindings
from .resolver import ResolvedBindingSet, merge_binding_sets, resolve_bindings
from .shared import load_shared_definitions
from .slots import (
    SHOW_CUE_SLOTS,
    SHOW_SLOTS,
    SHOW_TRACK_SLOTS,
    TRIGGER_SLOTS,
    ExpressionSlot,
    compile_show_slot,
    compile_slot,
    get_slot,
    show_workspace,
    slot_title,
)

__all__ = [
    "Binding",
    "BindingCatalog",
    "CatalogBuilder",
    "CompiledExpression",
    "DEFAULT_CATALOG",
    "EventKind",
    "ExpressionSlot",
    "KindSpec",
    "ResolvedBindingSet",
    "SHOW_CUE_SLOTS",
    "SHOW_SLOTS",
    "SHOW_TRACK_SLOTS",
    "TRIGGER_SLOTS",
    "compile_expression",
    "compile_show_slot",
    "compile_slot",
    "compile_source",
    "describe_bindings",
    "get_slot",
    "load_shared_definitions",
    "merge_binding_sets",
    "resolve_bindings",
    "show_workspace",
    "slot_title",
]
