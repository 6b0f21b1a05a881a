"""Simulated playback data that overrides the live finders while active."""
from __future__ import annotations

import contextvars
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Mapping, Optional

_SIMULATING: contextvars.ContextVar[Optional[Dict[str, Any]]] = contextvars.ContextVar(
    "cueflow_simulating", default=None
)


def simulation_data() -> Optional[Dict[str, Any]]:
    """Return the active simulation data, or ``None`` when running live.

    Recognised keys: ``time`` (ms), ``beat``, ``beat_grid``, ``cue_list``
    and ``metadata`` (a mapping with ``title``, ``artist``, ``album``,
    ``genre``, ``key``, ``label``, ``comment`` and ``duration``).
    """
    return _SIMULATING.get()


@contextmanager
def simulating(data: Mapping[str, Any]) -> Iterator[Dict[str, Any]]:
    """Run the enclosed block as if ``data`` described the playing track."""
    snapshot = dict(data)
    token = _SIMULATING.set(snapshot)
    try:
        yield snapshot
    finally:
        _SIMULATING.reset(token)


__all__ = ["simulating", "simulation_data"]
