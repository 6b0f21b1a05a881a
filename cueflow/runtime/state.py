"""Shared mutable state handed to compiled expressions at invocation time."""
from __future__ import annotations

import threading
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, Optional


class StateBag(MutableMapping):
    """Thread-safe dictionary used for expression ``locals`` and ``globals``.

    Expressions run concurrently from several device listener threads, so
    every access goes through a re-entrant lock. ``swap`` applies a function
    to the whole contents atomically, which is the way to do
    read-modify-write updates such as counters.
    """

    def __init__(self, initial: Optional[Mapping[str, Any]] = None) -> None:
        self._lock = threading.RLock()
        self._data: Dict[str, Any] = dict(initial or {})

    def __getitem__(self, key: str) -> Any:
        with self._lock:
            return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def __delitem__(self, key: str) -> None:
        with self._lock:
            del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __repr__(self) -> str:
        return f"StateBag({self.snapshot()!r})"

    def snapshot(self) -> Dict[str, Any]:
        """Return a shallow copy of the current contents."""
        with self._lock:
            return dict(self._data)

    def swap(self, fn: Callable[..., Mapping[str, Any]], *args: Any, **kwargs: Any) -> Dict[str, Any]:
        """Replace the contents with ``fn(current, *args, **kwargs)`` atomically."""
        with self._lock:
            updated = fn(dict(self._data), *args, **kwargs)
            if not isinstance(updated, Mapping):
                raise TypeError(
                    f"swap function must return a mapping (got {type(updated).__name__})"
                )
            self._data = dict(updated)
            return dict(self._data)

    def update_value(self, key: str, fn: Callable[..., Any], *args: Any, default: Any = None) -> Any:
        """Atomically set ``key`` to ``fn(old_value, *args)`` and return the new value."""
        with self._lock:
            value = fn(self._data.get(key, default), *args)
            self._data[key] = value
            return value

    def reset(self, contents: Optional[Mapping[str, Any]] = None) -> None:
        with self._lock:
            self._data = dict(contents or {})


@dataclass
class OwnerContext:
    """Per-owner data passed as ``trigger_data`` to a compiled expression.

    ``owner`` identifies the trigger, track or cue the expression belongs
    to; ``data`` carries whatever else the owning subsystem wants its
    expressions to see.
    """

    locals: StateBag = field(default_factory=StateBag)
    owner: Any = None
    data: Dict[str, Any] = field(default_factory=dict)


def owner_locals(trigger_data: Any) -> Optional[StateBag]:
    """Extract the ``locals`` bag from an owner context, tolerating ``None``."""
    if trigger_data is None:
        return None
    if isinstance(trigger_data, Mapping):
        return trigger_data.get("locals")
    return getattr(trigger_data, "locals", None)


__all__ = ["OwnerContext", "StateBag", "owner_locals"]
