"""Download queue CLI commands."""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING

from ...core.base import ConfigurationError
from ...downloads import DispatchStatus, Dispatcher, DownloadQueue, queue_lock

if TYPE_CHECKING:
    import argparse

    from ...core import ConfigManager

LOG = logging.getLogger(__name__)


class QueueCommands:
    """Download queue command handlers."""

    def __init__(self, config_manager: ConfigManager) -> None:
        """Initialize queue commands handler."""
        self.config_manager = config_manager

    def add_subcommands(self, parser: argparse.ArgumentParser) -> None:
        """Add queue subcommands to parser."""
        parser.add_argument("--queue-file", "-q", type=Path, help="Queue file (default from config)")
        subparsers = parser.add_subparsers(dest="queue_command", help="Queue commands")

        add_parser = subparsers.add_parser("add", help="Queue a URL")
        add_parser.add_argument("url", help="URL to download")
        add_parser.add_argument("--tag", "-t", default="", help="Routing tag (selects downloader and destination)")

        run_parser = subparsers.add_parser("run", help="Start the next due download (run this from crontab)")
        run_parser.add_argument("--timeout", type=int, help="Kill the downloader after this many seconds")
        subparsers.add_parser("list", help="Show queued URLs and their state")

        reset_parser = subparsers.add_parser("reset", help="Retry a failed URL from scratch")
        reset_parser.add_argument("url", help="Queued URL")

        subparsers.add_parser("purge", help="Remove finished downloads from the queue")

    def handle_command(self, args: argparse.Namespace) -> int:
        """Handle queue command execution."""
        if not hasattr(args, "queue_command") or args.queue_command is None:
            LOG.error("No queue command specified")
            return 1

        handlers = {
            "add": self._handle_add,
            "run": self._handle_run,
            "list": self._handle_list,
            "reset": self._handle_reset,
            "purge": self._handle_purge,
        }
        handler = handlers.get(args.queue_command)
        if handler is None:
            LOG.error("Unknown queue command: %s", args.queue_command)
            return 1

        try:
            return handler(args)
        except ConfigurationError as e:
            LOG.error("%s", e)
            return 1
        except OSError:
            LOG.exception("Queue file update failed")
            return 1

    def _queue_file(self, _args: argparse.Namespace) -> Path:
        # --queue-file arrives as a config override
        return Path(self.config_manager.get_value("downloads.queue_file"))

    def _handle_add(self, args: argparse.Namespace) -> int:
        queue_file = self._queue_file(args)
        with queue_lock(queue_file):
            queue = DownloadQueue.load(queue_file)
            if queue.add(args.url, args.tag) is not None:
                queue.save()
                LOG.info("Queued %s", args.url)
        return 0

    def _handle_run(self, args: argparse.Namespace) -> int:
        timeout = self.config_manager.get_value("downloads.timeout")
        download_config = replace(
            self.config_manager.config.downloads,
            queue_file=self._queue_file(args),
            timeout=int(timeout) if timeout is not None else None,
        )

        dispatcher = Dispatcher(download_config, self.config_manager.config.get_route)
        result = dispatcher.run_once()
        if result.status in {DispatchStatus.RETRY, DispatchStatus.FAILED}:
            return 1
        return 0

    def _handle_list(self, args: argparse.Namespace) -> int:
        queue = DownloadQueue.load(self._queue_file(args))
        now = time.time()
        for entry in queue.entries:
            line = f"{entry.state.value:<8} {entry.retries:>2}  {entry.tag or '-':<10} {entry.url}"
            if entry.state.value == "retry":
                line += f"  (next attempt in {max(0, int(entry.next_attempt - now))}s)"
            print(line)
        counts = ", ".join(f"{count} {state.value}" for state, count in queue.counts().items() if count)
        print(f"{len(queue.entries)} entries" + (f": {counts}" if counts else ""))
        return 0

    def _handle_reset(self, args: argparse.Namespace) -> int:
        queue_file = self._queue_file(args)
        with queue_lock(queue_file):
            queue = DownloadQueue.load(queue_file)
            if not queue.reset(args.url):
                LOG.error("No failed or retrying entry for %s", args.url)
                return 1
            queue.save()
        return 0

    def _handle_purge(self, args: argparse.Namespace) -> int:
        queue_file = self._queue_file(args)
        with queue_lock(queue_file):
            queue = DownloadQueue.load(queue_file)
            removed = queue.purge()
            queue.save()
        LOG.info("Removed %d finished entries", removed)
        return 0
