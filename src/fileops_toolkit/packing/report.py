"""Plain-text report of ranked combinations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..core.sizes import format_size

if TYPE_CHECKING:
    from .combinations import ResultEntry

INDENT = "    "


def format_report(entries: list[ResultEntry]) -> list[str]:
    """Render ranked combinations, one block per combination."""
    lines = []
    for entry in entries:
        lines.append(f"[{entry.container.name}]")
        if entry.names:
            lines.extend(f"{INDENT}{name}" for name in entry.names)
        else:
            lines.append(f"{INDENT}(no fitting items)")
        lines.append(f"  = {format_size(entry.size)} ({format_size(entry.remaining)} remaining)")
    return lines


def print_report(entries: list[ResultEntry], elapsed: float) -> None:
    """Print ranked combinations followed by the elapsed time."""
    for line in format_report(entries):
        print(line)
    print(f"Elapsed: {elapsed:.2f}s")
