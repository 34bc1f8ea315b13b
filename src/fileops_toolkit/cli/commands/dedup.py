"""Tree deduplication CLI command."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from ...config.constants import ERROR_MESSAGE_TRUNCATE_LENGTH
from ...core.base import ConfigurationError, ProcessingStatus
from ...core.sizes import human_readable_size
from ...core.tree_dedup import TreeDeduplicator

if TYPE_CHECKING:
    import argparse

    from ...core import ConfigManager

LOG = logging.getLogger(__name__)


class DedupCommands:
    """Tree deduplication command handler."""

    def __init__(self, config_manager: ConfigManager) -> None:
        """Initialize dedup command handler."""
        self.config_manager = config_manager

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        """Add dedup arguments to parser."""
        parser.add_argument("reference", type=Path, help="Tree whose files are kept")
        parser.add_argument("target", type=Path, help="Tree from which duplicates are deleted")
        parser.add_argument(
            "--workers", "-w", type=int, help="Number of parallel workers for hash calculation"
        )
        parser.add_argument(
            "--prune-empty-dirs", action="store_true", default=None, help="Remove target directories left empty"
        )
        parser.add_argument("--no-progress", action="store_true", help="Hide the hashing progress bar")

    def handle_command(self, args: argparse.Namespace) -> int:
        """Handle dedup command execution."""
        dry_run = getattr(args, "dry_run", False)
        prune = args.prune_empty_dirs
        if prune is None:
            prune = bool(self.config_manager.get_value("dedup.prune_empty_dirs"))

        workers = args.workers if args.workers is not None else self.config_manager.get_value("dedup.workers")
        try:
            deduplicator = TreeDeduplicator(
                args.reference,
                args.target,
                algorithm=str(self.config_manager.get_value("dedup.algorithm", "md5")),
                chunk_size=int(self.config_manager.get_value("dedup.chunk_size", 65536)),
                max_workers=workers,
                show_progress=not args.no_progress,
            )
            results = deduplicator.run(dry_run=dry_run, prune_empty_dirs=prune)
        except ConfigurationError as e:
            LOG.error("%s", e)
            return 1

        self._display_results(deduplicator, results, dry_run=dry_run)
        return 1 if any(r.status == ProcessingStatus.ERROR for r in results) else 0

    def _display_results(self, deduplicator: TreeDeduplicator, results: list, *, dry_run: bool) -> None:
        """Print one line per duplicate and a summary."""
        for result in results:
            if result.status == ProcessingStatus.SKIPPED:
                print(f"would delete {result.source_file}")
            elif result.status == ProcessingStatus.SUCCESS:
                print(f"deleted {result.source_file}")
            else:
                print(f"ERROR {result.source_file}: {result.message[:ERROR_MESSAGE_TRUNCATE_LENGTH]}")

        summary = deduplicator.summarize(results)
        if dry_run:
            would_free = sum(r.size or 0 for r in results)
            print(
                f"{summary.examined} files examined, {summary.duplicates} duplicates, "
                f"{human_readable_size(would_free)} would be reclaimed (dry run)"
            )
        else:
            print(
                f"{summary.examined} files examined, {summary.deleted} deleted, {summary.errors} errors, "
                f"{human_readable_size(summary.reclaimed_bytes)} reclaimed, "
                f"{summary.removed_dirs} empty directories removed"
            )
