"""Optional event recording for expression compilation and invocation."""
from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List, Optional


class ExpressionTracer:
    """Collects trace events emitted by the compiler and invocation helpers."""

    def __init__(
        self,
        enabled: bool = False,
        sink: Optional[Callable[[Dict[str, Any]], None]] = None,
    ):
        self.enabled = enabled
        self.events: List[Dict[str, Any]] = []
        self._sink = sink
        self._lock = threading.Lock()

    def emit(self, event_type: str, **payload):
        if not self.enabled:
            return
        event = {"type": event_type, **payload}
        with self._lock:
            self.events.append(event)
        if self._sink:
            self._sink(event)

    def clear(self):
        with self._lock:
            self.events.clear()

    def as_list(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self.events)

    def of_type(self, event_type: str) -> List[Dict[str, Any]]:
        return [event for event in self.as_list() if event["type"] == event_type]


_default_tracer: Optional[ExpressionTracer] = None


def default_tracer() -> ExpressionTracer:
    """Process tracer, enabled when ``CUEFLOW_TRACE`` is set."""
    global _default_tracer
    if _default_tracer is None:
        from cueflow.config import get_settings

        _default_tracer = ExpressionTracer(enabled=get_settings().trace)
    return _default_tracer


def resolve_tracer(tracer: Optional[ExpressionTracer]) -> ExpressionTracer:
    return tracer if tracer is not None else default_tracer()


__all__ = ["ExpressionTracer", "default_tracer", "resolve_tracer"]
