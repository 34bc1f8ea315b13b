"""One-download-per-invocation dispatcher, meant to be run from crontab."""

from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING

import psutil

from ..core.base import ConfigurationError
from ..core.external import ExternalCommandError
from .downloaders import get_downloader
from .queue import DownloadQueue, EntryState, QueueEntry, queue_lock

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from ..config.settings import DownloadConfig, DownloadRoute

LOG = logging.getLogger(__name__)


class DispatchStatus(Enum):
    """What a dispatcher run did."""

    BUSY = "busy"
    IDLE = "idle"
    DONE = "done"
    RETRY = "retry"
    FAILED = "failed"


@dataclass
class DispatchResult:
    """Outcome of one dispatcher run."""

    status: DispatchStatus
    entry: QueueEntry | None = None
    message: str = ""


def backoff_delay(retries: int, base: int, maximum: int) -> int:
    """Seconds to wait before attempt ``retries + 1``: doubles per failure, capped."""
    return min(base * 2 ** max(retries - 1, 0), maximum)


class Dispatcher:
    """Runs the next due download from the queue file."""

    def __init__(
        self,
        config: DownloadConfig,
        route_for: Callable[[str], DownloadRoute],
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            config: Download queue configuration
            route_for: Resolves an entry's tag to its route
            clock: Time source, in epoch seconds

        """
        self.config = config
        self.route_for = route_for
        self.clock = clock

    def _record_failure(self, entry: QueueEntry, reason: str) -> DispatchStatus:
        entry.retries += 1
        entry.pid = 0
        if entry.retries >= self.config.max_retries:
            entry.state = EntryState.FAILED
            entry.next_attempt = 0
            LOG.error("Giving up on %s after %d attempts: %s", entry.url, entry.retries, reason)
            return DispatchStatus.FAILED

        delay = backoff_delay(entry.retries, self.config.backoff_base, self.config.backoff_max)
        entry.state = EntryState.RETRY
        entry.next_attempt = int(self.clock()) + delay
        LOG.warning("Attempt %d for %s failed (%s), retrying in %ds", entry.retries, entry.url, reason, delay)
        return DispatchStatus.RETRY

    def _recover_stale(self, queue: DownloadQueue) -> bool:
        """Handle active entries; returns True while another download is still running."""
        busy = False
        for entry in queue.active():
            if entry.pid and entry.pid != os.getpid() and psutil.pid_exists(entry.pid):
                LOG.info("Download of %s still running in pid %d", entry.url, entry.pid)
                busy = True
            else:
                self._record_failure(entry, f"interrupted (pid {entry.pid} gone)")
        return busy

    @contextmanager
    def _locked_queue(self) -> Iterator[DownloadQueue]:
        """Load the queue under the lock and save it when the block completes."""
        with queue_lock(self.config.queue_file):
            queue = DownloadQueue.load(self.config.queue_file)
            yield queue
            queue.save()

    def _claim_next(self) -> tuple[DispatchResult | None, QueueEntry | None, DownloadRoute | None]:
        """Pick the next due entry and mark it active, or report why nothing runs."""
        with self._locked_queue() as queue:
            if self._recover_stale(queue):
                return DispatchResult(DispatchStatus.BUSY, message="another download is running"), None, None

            entry = queue.next_due(self.clock())
            if entry is None:
                LOG.info("Nothing due in %s", self.config.queue_file)
                return DispatchResult(DispatchStatus.IDLE, message="nothing due"), None, None

            try:
                route = self.route_for(entry.tag)
            except ValueError as e:
                msg = str(e)
                raise ConfigurationError(msg, cause=e) from e

            claimed = replace(entry)
            entry.state = EntryState.ACTIVE
            entry.pid = os.getpid()
            return None, claimed, route

    def run_once(self) -> DispatchResult:
        """
        Start at most one download and record its outcome.

        The queue is only locked while it is read and written, never during
        the download, so entries can be added or reset meanwhile.

        Raises:
            ConfigurationError: if the queue file is unreadable, the entry's
                route cannot be resolved or the downloader is missing

        """
        skipped, claimed, route = self._claim_next()
        if skipped is not None:
            return skipped

        try:
            downloader = get_downloader(route.downloader, self.config.executables, timeout=self.config.timeout)
            outcome = downloader.download(claimed.url, route)
        except ConfigurationError:
            # Missing executable: not the URL's fault
            with self._locked_queue() as queue:
                entry = queue.find(claimed.url)
                if entry is not None:
                    entry.state = claimed.state
                    entry.pid = 0
            raise
        except ExternalCommandError as e:
            with self._locked_queue() as queue:
                entry = queue.find(claimed.url)
                if entry is None:
                    LOG.warning("%s was removed from the queue while downloading", claimed.url)
                    return DispatchResult(DispatchStatus.FAILED, entry=claimed, message=str(e))
                status = self._record_failure(entry, str(e))
            return DispatchResult(status, entry=entry, message=str(e))

        with self._locked_queue() as queue:
            entry = queue.find(claimed.url)
            if entry is None:
                LOG.warning("%s was removed from the queue while downloading", claimed.url)
                entry = claimed
            else:
                entry.state = EntryState.DONE
                entry.pid = 0
        LOG.info("Finished %s", claimed.url)
        return DispatchResult(DispatchStatus.DONE, entry=entry, message=outcome.saved_path or "")
