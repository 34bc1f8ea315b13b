"""
Download queue persisted as a tab-delimited text file.

Each line holds ``state  retries  next_attempt  pid  tag  url``. Lines holding
only ``url`` or ``tag<TAB>url`` are accepted so entries can be added by hand;
they load as pending.
"""

from __future__ import annotations

import fcntl
import logging
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from ..config.constants import QUEUE_FIELD_COUNT
from ..core.base import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Iterator

LOG = logging.getLogger(__name__)


class EntryState(Enum):
    """Lifecycle of a queued URL."""

    PENDING = "pending"
    ACTIVE = "active"
    RETRY = "retry"
    DONE = "done"
    FAILED = "failed"


@dataclass
class QueueEntry:
    """One URL and its retry bookkeeping."""

    url: str
    tag: str = ""
    state: EntryState = EntryState.PENDING
    retries: int = 0
    next_attempt: int = 0
    pid: int = 0

    def is_due(self, now: float) -> bool:
        """Whether the dispatcher may start this entry now."""
        if self.state == EntryState.PENDING:
            return True
        return self.state == EntryState.RETRY and self.next_attempt <= now

    def to_line(self) -> str:
        fields = [self.state.value, str(self.retries), str(self.next_attempt), str(self.pid), self.tag, self.url]
        return "\t".join(fields)

    @classmethod
    def from_line(cls, line: str) -> QueueEntry:
        """
        Parse a queue line.

        Raises:
            ValueError: if the line is malformed

        """
        fields = line.split("\t")
        if len(fields) == 1:
            return cls(url=fields[0].strip())
        if len(fields) == 2:
            return cls(url=fields[1].strip(), tag=fields[0].strip())
        if len(fields) != QUEUE_FIELD_COUNT:
            msg = f"expected 1, 2 or {QUEUE_FIELD_COUNT} tab-separated fields, got {len(fields)}"
            raise ValueError(msg)

        state, retries, next_attempt, pid, tag, url = fields
        return cls(
            url=url.strip(),
            tag=tag.strip(),
            state=EntryState(state.strip()),
            retries=int(retries),
            next_attempt=int(next_attempt),
            pid=int(pid),
        )


class DownloadQueue:
    """In-memory view of the queue file."""

    def __init__(self, path: Path, entries: list[QueueEntry] | None = None) -> None:
        self.path = Path(path)
        self.entries: list[QueueEntry] = entries or []

    @classmethod
    def load(cls, path: Path) -> DownloadQueue:
        """
        Load the queue; a missing file is an empty queue.

        Raises:
            ConfigurationError: if the file is unreadable or a line is malformed

        """
        path = Path(path)
        if not path.exists():
            LOG.debug("Queue file %s does not exist yet", path)
            return cls(path)

        entries = []
        try:
            with path.open("r", encoding="utf-8") as f:
                for line_number, raw_line in enumerate(f, 1):
                    line = raw_line.rstrip("\n")
                    if not line.strip() or line.lstrip().startswith("#"):
                        continue
                    try:
                        entries.append(QueueEntry.from_line(line))
                    except ValueError as e:
                        msg = f"{path}:{line_number}: bad queue entry: {e}"
                        raise ConfigurationError(msg, file_path=path, cause=e) from e
        except OSError as e:
            msg = f"Cannot read queue file {path}: {e}"
            raise ConfigurationError(msg, file_path=path, cause=e) from e

        return cls(path, entries)

    def save(self) -> None:
        """Write the queue atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.writelines(entry.to_line() + "\n" for entry in self.entries)
            Path(tmp_name).replace(self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def find(self, url: str) -> QueueEntry | None:
        for entry in self.entries:
            if entry.url == url:
                return entry
        return None

    def add(self, url: str, tag: str = "") -> QueueEntry | None:
        """Append a URL; returns None when it is already queued."""
        if self.find(url) is not None:
            LOG.info("Already queued: %s", url)
            return None
        entry = QueueEntry(url=url, tag=tag)
        self.entries.append(entry)
        return entry

    def active(self) -> list[QueueEntry]:
        return [entry for entry in self.entries if entry.state == EntryState.ACTIVE]

    def next_due(self, now: float) -> QueueEntry | None:
        """First entry that may be started now, in queue order."""
        for entry in self.entries:
            if entry.is_due(now):
                return entry
        return None

    def reset(self, url: str) -> bool:
        """Put a retrying or failed entry back to pending."""
        entry = self.find(url)
        if entry is None or entry.state not in {EntryState.RETRY, EntryState.FAILED}:
            return False
        entry.state = EntryState.PENDING
        entry.retries = 0
        entry.next_attempt = 0
        entry.pid = 0
        return True

    def purge(self) -> int:
        """Drop finished entries, returning how many were removed."""
        before = len(self.entries)
        self.entries = [entry for entry in self.entries if entry.state != EntryState.DONE]
        return before - len(self.entries)

    def counts(self) -> dict[EntryState, int]:
        counts = dict.fromkeys(EntryState, 0)
        for entry in self.entries:
            counts[entry.state] += 1
        return counts


@contextmanager
def queue_lock(path: Path) -> Iterator[None]:
    """
    Hold an exclusive lock for one load-modify-save of the queue file.

    The lock lives in a ``.lock`` file next to the queue because saving
    replaces the queue file itself.
    """
    path = Path(path)
    lock_path = path.with_name(f"{path.name}.lock")
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with lock_path.open("a") as lock_file:
        fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
        LOG.debug("Lock acquired on %s", lock_path)
        try:
            yield
        finally:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
            LOG.debug("Lock released on %s", lock_path)
