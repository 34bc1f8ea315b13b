"""Disc packing CLI command."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from ...core.base import ConfigurationError
from ...core.sizes import parse_size
from ...packing import containers_from_mapping, find_best_fits, load_items, print_report, report_best

if TYPE_CHECKING:
    import argparse

    from ...core import ConfigManager

LOG = logging.getLogger(__name__)


class PackCommands:
    """Disc packing command handler."""

    def __init__(self, config_manager: ConfigManager) -> None:
        """Initialize pack command handler."""
        self.config_manager = config_manager

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        """Add pack arguments to parser."""
        parser.add_argument("source", help="Directory, ls -l listing file, or - to read a listing from stdin")
        parser.add_argument(
            "--fast",
            "-f",
            action="store_true",
            default=None,
            help="Stop extending combinations of 2+ items once they fill a disc (faster, may miss tighter fits)",
        )
        parser.add_argument("--min-size", "-m", help="Ignore files smaller than this (bytes, or with K/M/G suffix)")
        parser.add_argument("--top", "-n", type=int, help="Number of combinations to show")

    def handle_command(self, args: argparse.Namespace) -> int:
        """Handle pack command execution."""
        start_time = time.time()
        try:
            min_size_text = args.min_size
            if min_size_text is None:
                min_size_text = self.config_manager.get_value("packing.min_size", "0")
            min_size = parse_size(str(min_size_text))
            fast_mode = args.fast if args.fast is not None else bool(self.config_manager.get_value("packing.fast_mode"))
            top_n = args.top if args.top is not None else int(self.config_manager.get_value("packing.top_n", 10))

            containers = containers_from_mapping(self.config_manager.get_value("packing.containers"))
            items = load_items(args.source, min_size=min_size)
            result_set = find_best_fits(items, containers, fast_mode=fast_mode)
        except ConfigurationError as e:
            LOG.error("%s", e)
            return 1

        print_report(report_best(result_set, top_n), time.time() - start_time)
        return 0
