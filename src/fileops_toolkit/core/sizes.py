"""Size string parsing and formatting."""

from __future__ import annotations

import re

from ..config.constants import SIZE_MULTIPLIERS
from .base import SizeParseError

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([KMG])?\s*$", re.IGNORECASE)


def parse_size(text: str | int) -> int:
    """
    Parse a byte count with an optional K/M/G suffix.

    Suffixes are binary: ``K`` is 2**10, ``M`` is 2**20, ``G`` is 2**30.
    Fractions are allowed with a suffix (``1.5G``) and truncated to whole bytes.

    Raises:
        SizeParseError: if the text is not a non-negative size

    """
    if isinstance(text, int):
        if text < 0:
            msg = f"Size must not be negative: {text}"
            raise SizeParseError(msg)
        return text

    match = _SIZE_PATTERN.match(str(text))
    if not match:
        msg = f"Invalid size '{text}': expected a number with optional K, M or G suffix"
        raise SizeParseError(msg)

    number, suffix = match.groups()
    multiplier = SIZE_MULTIPLIERS[suffix.upper()] if suffix else 1
    return int(float(number) * multiplier)


def format_size(size: int) -> str:
    """Format a byte count with thousands separators."""
    return f"{size:,}"


def human_readable_size(size: float) -> str:
    """Convert byte size to human-readable format."""
    for unit in ["B", "KiB", "MiB", "GiB", "TiB"]:
        if abs(size) < 1024:
            return f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} PiB"
