"""Find which convenience bindings a parsed expression actually mentions."""
from __future__ import annotations

import ast
from typing import Dict, Mapping, Set

from .catalog import Binding


def referenced_names(tree: ast.AST) -> Set[str]:
    """Every identifier used as a name anywhere in ``tree``.

    Covers loads, stores and deletes at any depth, including nested
    functions, lambdas, comprehensions and f-string fields; attribute names
    and keyword-argument names are not variable references and are skipped.
    Scoping is ignored: a comprehension variable or lambda parameter that
    happens to share a binding's name still pulls that binding into the
    prelude, so ``[is_playing for is_playing in pairs]`` computes
    ``is_playing`` from the event first and fails the same way the
    binding would if the event lacks it. Rename such variables.
    """
    return {node.id for node in ast.walk(tree) if isinstance(node, ast.Name)}


def scan_references(tree: ast.AST, available: Mapping[str, Binding]) -> Dict[str, Binding]:
    """Return the subset of ``available`` whose names occur in ``tree``."""
    found = referenced_names(tree)
    return {name: available[name] for name in sorted(found) if name in available}


__all__ = ["referenced_names", "scan_references"]
