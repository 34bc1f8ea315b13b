"""Crontab-driven download queue."""

from .dispatcher import DispatchResult, DispatchStatus, Dispatcher, backoff_delay
from .downloaders import DOWNLOADERS, Downloader, DownloadOutcome, WgetDownloader, YoutubeDlDownloader, get_downloader
from .queue import DownloadQueue, EntryState, QueueEntry, queue_lock

__all__ = [
    "DOWNLOADERS",
    "DispatchResult",
    "DispatchStatus",
    "Dispatcher",
    "DownloadOutcome",
    "DownloadQueue",
    "Downloader",
    "EntryState",
    "QueueEntry",
    "WgetDownloader",
    "YoutubeDlDownloader",
    "backoff_delay",
    "get_downloader",
    "queue_lock",
]
