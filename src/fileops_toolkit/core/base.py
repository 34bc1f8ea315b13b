"""Base result types and exceptions shared by all tools."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path

LOG = logging.getLogger(__name__)


class ProcessingStatus(Enum):
    """Status of a file operation."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"
    ERROR = "error"


@dataclass
class ProcessingResult:
    """Result of an operation on a single file."""

    source_file: Path
    status: ProcessingStatus
    message: str = ""
    size: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class ToolkitError(Exception):
    """Base exception for toolkit errors."""

    def __init__(
        self,
        message: str,
        file_path: Path | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.file_path = file_path
        self.cause = cause


class ConfigurationError(ToolkitError):
    """Bad user input or configuration: fatal, reported once, never retried."""


class SizeParseError(ConfigurationError):
    """A size string could not be parsed."""


class SourceError(ConfigurationError):
    """An item source could not be read."""
