"""Process-wide evaluation scopes shared by compiled expressions."""
from __future__ import annotations

import builtins
import logging
import threading
from typing import Any, Dict, Optional

from cueflow.events import helpers, model
from cueflow.events.simulation import simulation_data

from .state import OwnerContext, StateBag, owner_locals

logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE_NAME = "triggers"

# Name under which generated functions find the locals extractor; a dunder
# so shared definitions cannot collide with it by accident.
OWNER_LOCALS_NAME = "__cueflow_owner_locals__"


def _preloaded_names() -> Dict[str, Any]:
    names: Dict[str, Any] = {}
    for module in (model, helpers):
        for name in module.__all__:
            names[name] = getattr(module, name)
    names["helpers"] = helpers
    names["simulation_data"] = simulation_data
    names["StateBag"] = StateBag
    names["OwnerContext"] = OwnerContext
    names[OWNER_LOCALS_NAME] = owner_locals
    return names


class SharedWorkspace:
    """A single persistent namespace plus the lock that serializes writers.

    Compiled expressions use :attr:`namespace` as their module globals, so
    functions defined by shared-definition runs are visible to every
    expression compiled against the same workspace. The namespace lives as
    long as the process; :meth:`reset` exists for restarts and tests.
    """

    def __init__(self, name: str = DEFAULT_WORKSPACE_NAME) -> None:
        self.name = name
        self.lock = threading.RLock()
        self._namespace: Dict[str, Any] = self._fresh_namespace()

    def _fresh_namespace(self) -> Dict[str, Any]:
        namespace: Dict[str, Any] = {
            "__name__": f"cueflow.workspace.{self.name}",
            "__builtins__": builtins,
        }
        namespace.update(_preloaded_names())
        return namespace

    @property
    def namespace(self) -> Dict[str, Any]:
        return self._namespace

    def __contains__(self, name: str) -> bool:
        return name in self._namespace

    def lookup(self, name: str, default: Any = None) -> Any:
        return self._namespace.get(name, default)

    def reset(self) -> None:
        with self.lock:
            self._namespace.clear()
            self._namespace.update(self._fresh_namespace())
        logger.info("Workspace '%s' reset", self.name)

    def __repr__(self) -> str:
        return f"SharedWorkspace(name={self.name!r})"


_registry_lock = threading.Lock()
_workspaces: Dict[str, SharedWorkspace] = {}


def workspace_for(name: str) -> SharedWorkspace:
    """Return the workspace registered under ``name``, creating it on first use."""
    with _registry_lock:
        workspace = _workspaces.get(name)
        if workspace is None:
            workspace = SharedWorkspace(name)
            _workspaces[name] = workspace
            logger.debug("Created workspace '%s'", name)
        return workspace


def default_workspace() -> SharedWorkspace:
    return workspace_for(DEFAULT_WORKSPACE_NAME)


def resolve_workspace(workspace: Optional[SharedWorkspace]) -> SharedWorkspace:
    return workspace if workspace is not None else default_workspace()


def discard_workspace(name: str) -> None:
    """Forget a named workspace, e.g. when the show that owned it closes."""
    if name == DEFAULT_WORKSPACE_NAME:
        raise ValueError("The default workspace lives for the whole process")
    with _registry_lock:
        _workspaces.pop(name, None)


__all__ = [
    "DEFAULT_WORKSPACE_NAME",
    "OWNER_LOCALS_NAME",
    "SharedWorkspace",
    "default_workspace",
    "discard_workspace",
    "resolve_workspace",
    "workspace_for",
]
