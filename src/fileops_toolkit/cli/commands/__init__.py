"""CLI command modules."""

from .dedup import DedupCommands
from .pack import PackCommands
from .queue import QueueCommands

__all__ = ["DedupCommands", "PackCommands", "QueueCommands"]
