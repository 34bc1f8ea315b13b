"""CLI module for the file operations toolkit."""

from .commands import DedupCommands, PackCommands, QueueCommands
from .main import ToolkitCLI

__all__ = [
    "DedupCommands",
    "PackCommands",
    "QueueCommands",
    "ToolkitCLI",
]
