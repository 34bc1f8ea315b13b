"""Core abstractions and utilities shared by the toolkit."""

from .base import (
    ConfigurationError,
    ProcessingResult,
    ProcessingStatus,
    SizeParseError,
    SourceError,
    ToolkitError,
)
from .config import ConfigManager, RunOptions, with_config_overrides
from .external import ExternalCommandError, check_availability, run_external
from .sizes import format_size, human_readable_size, parse_size
from .tree_dedup import DedupSummary, DuplicateMatch, FileInfo, TreeDeduplicator
from .workers import get_hash_worker_count

__all__ = [
    "ConfigManager",
    "ConfigurationError",
    "DedupSummary",
    "DuplicateMatch",
    "ExternalCommandError",
    "FileInfo",
    "ProcessingResult",
    "ProcessingStatus",
    "RunOptions",
    "SizeParseError",
    "SourceError",
    "ToolkitError",
    "TreeDeduplicator",
    "check_availability",
    "format_size",
    "get_hash_worker_count",
    "human_readable_size",
    "parse_size",
    "run_external",
    "with_config_overrides",
]
