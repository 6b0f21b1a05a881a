"""Flatten event-kind inheritance into the bindings an expression may use."""
from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Mapping

from .catalog import Binding, BindingCatalog, Kind

ResolvedBindingSet = Mapping[str, Binding]


def resolve_bindings(catalog: BindingCatalog, kind: Kind) -> ResolvedBindingSet:
    """Return every binding available for ``kind``, including inherited ones.

    Inherited kinds are merged in declaration order, later ones winning on
    name collisions, and the kind's own bindings are merged last so they
    take precedence over anything inherited. Results are cached on the
    catalog, which is immutable.
    """
    cached = catalog.cached_resolution(kind)
    if cached is not None:
        return cached
    declared = catalog[kind]
    merged: Dict[str, Binding] = {}
    for parent in declared.inherits:
        merged.update(resolve_bindings(catalog, parent))
    merged.update(declared.bindings)
    resolved = MappingProxyType(merged)
    catalog.remember_resolution(kind, resolved)
    return resolved


def merge_binding_sets(*binding_sets: ResolvedBindingSet) -> ResolvedBindingSet:
    """Combine resolved sets for editors that accept several event kinds.

    Later sets win on name collisions, as with inheritance.
    """
    merged: Dict[str, Binding] = {}
    for bindings in binding_sets:
        merged.update(bindings)
    return MappingProxyType(merged)


__all__ = ["ResolvedBindingSet", "merge_binding_sets", "resolve_bindings"]
