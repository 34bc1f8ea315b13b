"""Main CLI interface for the file operations toolkit."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from ..config.constants import VERBOSE_LOGGING_THRESHOLD
from ..core import ConfigManager, RunOptions, with_config_overrides
from .commands import DedupCommands, PackCommands, QueueCommands


class ToolkitCLI:
    """Main CLI interface dispatching to the pack, queue and dedup tools."""

    def __init__(self, config_path: Path | None = None) -> None:
        self.config_manager = ConfigManager(config_path)
        self.pack_commands = PackCommands(self.config_manager)
        self.queue_commands = QueueCommands(self.config_manager)
        self.dedup_commands = DedupCommands(self.config_manager)

    @staticmethod
    def setup_logging(verbosity: int, default_level: str = "WARNING") -> None:
        """Setup logging from -v, or from the configured level when -v is not given."""
        level_map = {
            1: logging.INFO,
            2: logging.DEBUG,
        }

        if verbosity > 0:
            level = level_map.get(verbosity, logging.DEBUG)
        else:
            level = logging.getLevelName(str(default_level).upper())
            if not isinstance(level, int):
                level = logging.WARNING

        log_format = (
            "%(levelname)s: %(name)s: %(message)s"
            if verbosity >= VERBOSE_LOGGING_THRESHOLD
            else "%(levelname)s: %(message)s"
        )

        logging.basicConfig(level=level, format=log_format, handlers=[logging.StreamHandler(sys.stderr)])

    def build_parser(self) -> argparse.ArgumentParser:
        """Build the argument parser."""
        parser = argparse.ArgumentParser(
            prog="fileops-toolkit",
            description="Disc packing, download queue and tree deduplication tools",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Best file combinations for DVD/BD-R, ignoring files under 100 MiB
  fileops-toolkit pack /srv/burn --min-size 100M

  # Same, from a saved listing and with the fast heuristic
  ls -l /srv/burn | fileops-toolkit pack - --fast

  # Queue a video and let cron pick it up
  fileops-toolkit queue add https://example.org/watch?v=x --tag video
  */10 * * * * fileops-toolkit queue run

  # See what would be removed from a copy of an archive
  fileops-toolkit --dry-run dedup /archive /incoming
            """,
        )

        # Global options
        parser.add_argument(
            "-v",
            "--verbose",
            action="count",
            default=0,
            help="Increase verbosity (-v for info, -vv for debug)",
        )

        parser.add_argument("--config", type=Path, help="Path to configuration file")

        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be done without actually doing it",
        )

        subparsers = parser.add_subparsers(dest="command", required=True, help="Available commands")

        pack_parser = subparsers.add_parser("pack", help="Find file combinations that best fill discs")
        self.pack_commands.add_arguments(pack_parser)

        queue_parser = subparsers.add_parser("queue", help="Download queue commands")
        self.queue_commands.add_subcommands(queue_parser)

        dedup_parser = subparsers.add_parser("dedup", help="Delete target files identical to reference files")
        self.dedup_commands.add_arguments(dedup_parser)

        return parser

    @staticmethod
    def create_run_options(args: argparse.Namespace) -> RunOptions:
        """Create run options from CLI arguments."""
        return RunOptions(
            workers=getattr(args, "workers", None),
            timeout=getattr(args, "timeout", None),
            queue_file=getattr(args, "queue_file", None),
            dry_run=getattr(args, "dry_run", False),
            verbose=getattr(args, "verbose", 0) > 0,
        )

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parser = self.build_parser()
        parsed_args = parser.parse_args(args)

        if getattr(parsed_args, "config", None):
            self.config_manager = ConfigManager(parsed_args.config)
            self.pack_commands.config_manager = self.config_manager
            self.queue_commands.config_manager = self.config_manager
            self.dedup_commands.config_manager = self.config_manager

        self.setup_logging(parsed_args.verbose, self.config_manager.config.global_.log_level)

        run_options = self.create_run_options(parsed_args)

        try:
            with with_config_overrides(self.config_manager) as config_mgr:
                config_mgr.apply_run_options(run_options)

                if parsed_args.command == "pack":
                    return self.pack_commands.handle_command(parsed_args)
                if parsed_args.command == "queue":
                    return self.queue_commands.handle_command(parsed_args)
                if parsed_args.command == "dedup":
                    return self.dedup_commands.handle_command(parsed_args)
                parser.error(f"Unknown command: {parsed_args.command}")

        except KeyboardInterrupt:
            logging.getLogger(__name__).info("Operation cancelled by user")
            return 130
        except Exception as e:
            logging.getLogger(__name__).exception(f"Unexpected error: {e}")
            return 1

        return 0


def main() -> int:
    """Entry point for the CLI."""
    cli = ToolkitCLI()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
