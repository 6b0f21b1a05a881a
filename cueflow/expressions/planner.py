"""Order discovered bindings so every ``requires`` target is bound first."""
from __future__ import annotations

import ast
from dataclasses import dataclass
from typing import List, Mapping, Set

from .catalog import Binding

STATUS_NAME = "status"


@dataclass
class PlannedBinding:
    """One entry of the binding prelude, in evaluation order."""

    name: str
    binding: Binding
    expression: ast.expr
    # True when the symbol was pulled in only because another binding requires it.
    implicit: bool = False


def guard_against_missing_status(expression: ast.expr) -> ast.expr:
    """Wrap a generator so it yields ``None`` instead of running when ``status`` is ``None``."""
    test = ast.Compare(
        left=ast.Name(id=STATUS_NAME, ctx=ast.Load()),
        ops=[ast.IsNot()],
        comparators=[ast.Constant(value=None)],
    )
    guarded = ast.IfExp(test=test, body=expression, orelse=ast.Constant(value=None))
    return ast.copy_location(guarded, expression)


def plan_bindings(
    discovered: Mapping[str, Binding],
    available: Mapping[str, Binding],
    nil_guarded: bool = False,
) -> List[PlannedBinding]:
    """Return the prelude for ``discovered`` bindings.

    Names are visited in sorted order so the result is deterministic; each
    binding's ``requires`` chain (looked up in ``available``) is emitted
    before it, and every symbol appears exactly once.
    """
    planned: List[PlannedBinding] = []
    emitted: Set[str] = set()

    def emit(name: str, implicit: bool, visiting: Set[str]) -> None:
        if name in emitted:
            return
        if name in visiting:
            raise ValueError(f"Cyclic binding requirement involving '{name}'")
        binding = discovered.get(name) or available.get(name)
        if binding is None:
            raise KeyError(f"Binding '{name}' is required but not available")
        if binding.requires is not None:
            emit(binding.requires, binding.requires not in discovered, visiting | {name})
        expression = binding.parse()
        if nil_guarded:
            expression = guard_against_missing_status(expression)
        planned.append(
            PlannedBinding(name=name, binding=binding, expression=expression, implicit=implicit)
        )
        emitted.add(name)

    for name in sorted(discovered):
        emit(name, False, set())
    return planned


__all__ = ["PlannedBinding", "STATUS_NAME", "guard_against_missing_status", "plan_bindings"]
