"""Registry of convenience bindings available to expressions per event kind."""
from __future__ import annotations

import ast
import keyword
import logging
from collections.abc import Hashable
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from cueflow.runtime.errors import CatalogError

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    """Shapes of event an expression can be compiled against."""

    DEVICE_UPDATE = "device-update"
    BEAT = "beat"
    MIXER_STATUS = "mixer-status"
    CDJ_STATUS = "cdj-status"
    # Pseudo kinds: binding groups shared by several concrete kinds, and the
    # composite (Beat, TrackPositionUpdate) pair delivered to show cues.
    METADATA = "metadata"
    BEAT_SHARED = "beat-shared"
    BEAT_TPU = "beat-tpu"


Kind = Union[EventKind, str, Hashable]


@dataclass(frozen=True)
class Binding:
    """A symbol bound from the current event before the user body runs.

    ``code`` is a Python expression evaluated in the expression workspace
    with ``status`` (the event) and any earlier bindings in scope.
    ``requires`` names a binding that must be bound first.
    """

    name: str
    code: str
    doc: str = ""
    requires: Optional[str] = None

    def parse(self) -> ast.expr:
        """Return a fresh AST for the generator expression."""
        return ast.parse(self.code, filename=f"<binding {self.name}>", mode="eval").body


@dataclass(frozen=True)
class KindSpec:
    inherits: Tuple[Kind, ...] = ()
    bindings: Mapping[str, Binding] = field(default_factory=dict)


BindingDecl = Union[Binding, Mapping[str, object], str]


def _coerce_binding(name: str, decl: BindingDecl) -> Binding:
    if isinstance(decl, Binding):
        if decl.name != name:
            raise CatalogError(f"Binding registered as '{name}' is named '{decl.name}'")
        return decl
    if isinstance(decl, str):
        return Binding(name=name, code=decl)
    if isinstance(decl, Mapping):
        unknown = set(decl) - {"code", "doc", "requires"}
        if unknown:
            raise CatalogError(f"Binding '{name}' has unknown fields: {sorted(unknown)}")
        if "code" not in decl:
            raise CatalogError(f"Binding '{name}' is missing its generator code")
        return Binding(
            name=name,
            code=str(decl["code"]),
            doc=str(decl.get("doc") or ""),
            requires=decl.get("requires"),  # type: ignore[arg-type]
        )
    raise CatalogError(f"Binding '{name}' has unsupported declaration {decl!r}")


def _validate_binding(kind: Kind, binding: Binding) -> None:
    if not binding.name.isidentifier() or keyword.iskeyword(binding.name):
        raise CatalogError(f"Binding name '{binding.name}' in {kind!r} is not a valid identifier")
    try:
        binding.parse()
    except SyntaxError as exc:
        raise CatalogError(
            f"Generator for '{binding.name}' in {kind!r} is not a valid expression: {exc.msg}"
        ) from exc


class BindingCatalog:
    """Immutable mapping from event kind to its declared bindings.

    Build one with :meth:`build` (or :class:`CatalogBuilder`). Construction
    fails fast on unknown or cyclic inheritance, unparseable generators, and
    ``requires`` targets that are missing or cyclic.
    """

    def __init__(self, kinds: Mapping[Kind, KindSpec]) -> None:
        self._kinds: Mapping[Kind, KindSpec] = MappingProxyType(dict(kinds))
        self._resolved: Dict[Kind, Mapping[str, Binding]] = {}
        self._validate()

    @classmethod
    def build(
        cls,
        declarations: Mapping[Kind, Mapping[str, object]],
    ) -> "BindingCatalog":
        """Build from ``{kind: {"inherits": [...], "bindings": {name: decl}}}``."""
        kinds: Dict[Kind, KindSpec] = {}
        for kind, entry in declarations.items():
            inherits = tuple(entry.get("inherits") or ())  # type: ignore[arg-type]
            raw_bindings = entry.get("bindings") or {}
            bindings = {
                name: _coerce_binding(name, decl)
                for name, decl in raw_bindings.items()  # type: ignore[union-attr]
            }
            kinds[kind] = KindSpec(inherits=inherits, bindings=MappingProxyType(bindings))
        return cls(kinds)

    def extend(
        self,
        kind: Kind,
        *,
        inherits: Iterable[Kind] = (),
        bindings: Optional[Mapping[str, BindingDecl]] = None,
    ) -> "BindingCatalog":
        """Return a new catalog with ``kind`` registered; this one is unchanged."""
        if kind in self._kinds:
            raise CatalogError(f"Event kind {kind!r} is already registered")
        coerced = {name: _coerce_binding(name, decl) for name, decl in (bindings or {}).items()}
        kinds = dict(self._kinds)
        kinds[kind] = KindSpec(inherits=tuple(inherits), bindings=MappingProxyType(coerced))
        return BindingCatalog(kinds)

    # ------------------------------------------------------------------

    def __contains__(self, kind: Kind) -> bool:
        return kind in self._kinds

    def __getitem__(self, kind: Kind) -> KindSpec:
        try:
            return self._kinds[kind]
        except KeyError:
            raise KeyError(f"Unknown event kind {kind!r}") from None

    def kinds(self) -> List[Kind]:
        return list(self._kinds)

    def cached_resolution(self, kind: Kind) -> Optional[Mapping[str, Binding]]:
        return self._resolved.get(kind)

    def remember_resolution(self, kind: Kind, resolved: Mapping[str, Binding]) -> None:
        self._resolved[kind] = resolved

    # ------------------------------------------------------------------
    # Validation

    def _validate(self) -> None:
        for kind, declared in self._kinds.items():
            for parent in declared.inherits:
                if parent not in self._kinds:
                    raise CatalogError(f"Event kind {kind!r} inherits unknown kind {parent!r}")
            for binding in declared.bindings.values():
                _validate_binding(kind, binding)
        self._check_inheritance_cycles()
        # Imported here: the resolver depends on this module.
        from .resolver import resolve_bindings

        for kind in self._kinds:
            self._check_requires(kind, resolve_bindings(self, kind))

    def _check_inheritance_cycles(self) -> None:
        done: set = set()

        def visit(kind: Kind, path: List[Kind]) -> None:
            if kind in done:
                return
            if kind in path:
                cycle = " -> ".join(repr(k) for k in path[path.index(kind):] + [kind])
                raise CatalogError(f"Cyclic inheritance between event kinds: {cycle}")
            path.append(kind)
            for parent in self._kinds[kind].inherits:
                visit(parent, path)
            path.pop()
            done.add(kind)

        for kind in self._kinds:
            visit(kind, [])

    @staticmethod
    def _check_requires(kind: Kind, resolved: Mapping[str, Binding]) -> None:
        for binding in resolved.values():
            seen = [binding.name]
            current = binding
            while current.requires is not None:
                target = resolved.get(current.requires)
                if target is None:
                    raise CatalogError(
                        f"Binding '{current.name}' in {kind!r} requires unknown binding "
                        f"'{current.requires}'"
                    )
                if target.name in seen:
                    chain = " -> ".join(seen + [target.name])
                    raise CatalogError(f"Cyclic binding requirements in {kind!r}: {chain}")
                seen.append(target.name)
                current = target


class CatalogBuilder:
    """Incrementally declare event kinds, then :meth:`build` the catalog."""

    def __init__(self) -> None:
        self._declarations: Dict[Kind, Dict[str, object]] = {}

    def register(
        self,
        kind: Kind,
        bindings: Optional[Mapping[str, BindingDecl]] = None,
        *,
        inherits: Iterable[Kind] = (),
    ) -> "CatalogBuilder":
        if kind in self._declarations:
            logger.warning("Event kind %r is already registered. Overwriting.", kind)
        self._declarations[kind] = {"inherits": list(inherits), "bindings": dict(bindings or {})}
        return self

    def build(self) -> BindingCatalog:
        return BindingCatalog.build(self._declarations)


__all__ = [
    "Binding",
    "BindingCatalog",
    "CatalogBuilder",
    "EventKind",
    "Kind",
    "KindSpec",
]
