"""Plain-text help listing the symbols an expression editor makes available."""
from __future__ import annotations

import textwrap
from typing import List, Mapping, Optional

from .catalog import Binding

_STANDARD_SYMBOLS = {
    "status": "The event that caused the expression to run, or None.",
    "trigger_data": "Context of the trigger or cue that owns the expression.",
    "locals": "State bag private to the owner of the expression.",
    "globals": "State bag shared by every expression.",
}
_GLOBAL_STANDARD_SYMBOLS = ("status", "trigger_data", "globals")


def _entry(name: str, doc: str, width: int) -> List[str]:
    lines = [name]
    body = doc.strip() or "No description available."
    lines.extend(textwrap.wrap(body, width=width, initial_indent="    ", subsequent_indent="    "))
    return lines


def describe_bindings(
    bindings: Mapping[str, Binding],
    heading: Optional[str] = None,
    *,
    include_standard: bool = True,
    no_owner_locals: bool = False,
    width: int = 78,
) -> str:
    """Render the symbols available to an expression, sorted by name.

    Standard parameters come first unless ``include_standard`` is false;
    ``locals`` is left out for expressions compiled with ``no_owner_locals``.
    """
    lines: List[str] = []
    if heading:
        lines.extend([heading, "=" * len(heading), ""])
    if include_standard:
        names = _GLOBAL_STANDARD_SYMBOLS if no_owner_locals else tuple(_STANDARD_SYMBOLS)
        for name in names:
            lines.extend(_entry(name, _STANDARD_SYMBOLS[name], width))
        if bindings:
            lines.append("")
    for name in sorted(bindings):
        lines.extend(_entry(name, bindings[name].doc, width))
    return "\n".join(lines)


__all__ = ["describe_bindings"]
