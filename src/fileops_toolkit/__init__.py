"""File operations toolkit - disc packing, download queue and tree deduplication."""

from __future__ import annotations

__version__ = "0.1.0"
__description__ = "Disc packing, download queue and tree deduplication utilities"

# Public API exports
from .config import DownloadRoute, ToolkitConfig, get_config
from .core import (
    ConfigManager,
    ConfigurationError,
    ExternalCommandError,
    ProcessingResult,
    ProcessingStatus,
    ToolkitError,
    TreeDeduplicator,
    format_size,
    parse_size,
    with_config_overrides,
)
from .downloads import Dispatcher, DownloadQueue, EntryState
from .packing import ContainerClass, Item, ResultSet, find_best_fits, load_items, report_best

__all__ = [
    # Configuration
    "ToolkitConfig",
    "DownloadRoute",
    "get_config",
    "ConfigManager",
    "with_config_overrides",
    # Disc packing
    "Item",
    "ContainerClass",
    "ResultSet",
    "find_best_fits",
    "report_best",
    "load_items",
    # Downloads
    "Dispatcher",
    "DownloadQueue",
    "EntryState",
    # Deduplication
    "TreeDeduplicator",
    # Helpers and data classes
    "ProcessingStatus",
    "ProcessingResult",
    "format_size",
    "parse_size",
    # Exceptions
    "ToolkitError",
    "ConfigurationError",
    "ExternalCommandError",
]
