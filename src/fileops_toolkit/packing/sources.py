"""Item sources: directory snapshots and ``ls -l`` style listings."""

from __future__ import annotations

import logging
import re
import sys
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from ..core.base import SourceError
from .models import Item

if TYPE_CHECKING:
    from collections.abc import Iterable

LOG = logging.getLogger(__name__)

STDIN_SOURCE = "-"

# mode links owner group SIZE date date date NAME
_LISTING_PATTERN = re.compile(r"^\S+\s+\d+\s+\S+\s+\S+\s+(\d+)\s+\S+\s+\S+\s+\S+\s+(.+?)\s*$")


def _tree_size(directory: Path) -> int:
    """Total size of regular files below a directory."""
    total = 0
    for file_path in directory.rglob("*"):
        try:
            if file_path.is_file() and not file_path.is_symlink():
                total += file_path.stat().st_size
        except OSError as e:
            LOG.warning("Skipping %s: %s", file_path, e)
    return total


def scan_directory(directory: Path) -> list[Item]:
    """
    Snapshot the direct entries of a directory as items.

    Files contribute their own size; sub-directories are burned as a unit and
    contribute the total size of the files below them.
    """
    items = []
    for entry in sorted(directory.iterdir()):
        try:
            if entry.is_symlink():
                LOG.debug("Skipping symlink %s", entry)
                continue
            if entry.is_dir():
                size = _tree_size(entry)
            elif entry.is_file():
                size = entry.stat().st_size
            else:
                continue
        except OSError as e:
            LOG.warning("Skipping %s: %s", entry, e)
            continue
        items.append(Item(name=entry.name, size=size))

    LOG.info("Found %d entries in %s", len(items), directory)
    return items


def parse_listing(lines: Iterable[str]) -> list[Item]:
    """Parse ``ls -l`` output lines into items; lines that do not match are skipped."""
    items = []
    for line_number, raw_line in enumerate(lines, 1):
        line = raw_line.rstrip("\n")
        if not line.strip() or line.startswith("total "):
            continue
        match = _LISTING_PATTERN.match(line)
        if not match:
            LOG.debug("Listing line %d not understood: %s", line_number, line)
            continue
        size, name = match.groups()
        items.append(Item(name=name, size=int(size)))

    LOG.info("Parsed %d items from listing", len(items))
    return items


def filter_min_size(items: Iterable[Item], min_size: int) -> list[Item]:
    """Drop items smaller than ``min_size`` bytes."""
    return [item for item in items if item.size >= min_size]


def load_items(source: str | Path, min_size: int = 0, stdin: TextIO | None = None) -> list[Item]:
    """
    Load items from a directory, a listing file or ``-`` for standard input.

    Raises:
        SourceError: if the source is missing or unreadable

    """
    if str(source) == STDIN_SOURCE:
        stream = stdin if stdin is not None else sys.stdin
        try:
            items = parse_listing(stream)
        except (OSError, UnicodeDecodeError) as e:
            msg = f"Cannot read listing from standard input: {e}"
            raise SourceError(msg, cause=e) from e
    else:
        path = Path(source).expanduser()
        try:
            if path.is_dir():
                items = scan_directory(path)
            elif path.is_file():
                with path.open("r", encoding="utf-8", errors="replace") as f:
                    items = parse_listing(f)
            else:
                msg = f"Source does not exist: {path}"
                raise SourceError(msg, file_path=path)
        except OSError as e:
            msg = f"Cannot read source {path}: {e}"
            raise SourceError(msg, file_path=path, cause=e) from e

    kept = filter_min_size(items, min_size)
    if len(kept) < len(items):
        LOG.info("Ignoring %d items smaller than %d bytes", len(items) - len(kept), min_size)
    return kept
