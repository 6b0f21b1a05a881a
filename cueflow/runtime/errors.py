"""Error types raised while compiling and running user expressions."""
from __future__ import annotations

from typing import Optional


class ExpressionError(Exception):
    """Base class for failures tied to a titled user expression.

    ``title`` identifies the snippet (for example
    ``"Trigger 3 Enabled Expression"``) and ``cause`` is the underlying
    exception, also available as ``__cause__`` when raised with ``from``.
    """

    def __init__(
        self,
        title: str,
        message: str,
        *,
        cause: Optional[BaseException] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        self.title = title
        self.message = message
        self.cause = cause
        self.line = line
        self.column = column
        super().__init__(self._render())

    def location(self) -> str:
        parts = []
        if self.line is not None:
            parts.append(f"line {self.line}")
        if self.column is not None:
            parts.append(f"column {self.column}")
        return ", ".join(parts)

    def _render(self) -> str:
        location = self.location()
        suffix = f" ({location})" if location else ""
        return f"{self.title}: {self.message}{suffix}"


class CompileError(ExpressionError):
    """Parsing the source or evaluating the generated callable failed."""


class ExpressionRuntimeError(ExpressionError):
    """A compiled expression raised while it was being invoked."""


class CatalogError(ValueError):
    """The binding catalog is malformed (raised while building it)."""


__all__ = [
    "CatalogError",
    "CompileError",
    "ExpressionError",
    "ExpressionRuntimeError",
]
