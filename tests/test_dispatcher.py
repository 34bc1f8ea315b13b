"""Tests for the crontab download dispatcher."""

import os
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from fileops_toolkit.config.settings import DownloadConfig, DownloadRoute
from fileops_toolkit.core.base import ConfigurationError
from fileops_toolkit.core.external import ExternalCommandError
from fileops_toolkit.downloads import (
    DispatchStatus,
    Dispatcher,
    DownloadQueue,
    EntryState,
    QueueEntry,
    backoff_delay,
    queue_lock,
)

NOW = 1_700_000_000
RUN_EXTERNAL = "fileops_toolkit.downloads.downloaders.run_external"
PID_EXISTS = "fileops_toolkit.downloads.dispatcher.psutil.pid_exists"


class FakeClock:
    """Settable time source."""

    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def queue_file(tmp_path: Path) -> Path:
    return tmp_path / "downloads.queue"


@pytest.fixture
def download_config(queue_file: Path) -> DownloadConfig:
    return DownloadConfig(queue_file=queue_file, max_retries=3, backoff_base=60, backoff_max=600)


def _route_for(tmp_path: Path):
    def route_for(tag: str) -> DownloadRoute:
        downloader = "youtube-dl" if tag == "video" else "wget"
        return DownloadRoute(downloader=downloader, destination=tmp_path / (tag or "files"))

    return route_for


def _write_queue(queue_file: Path, *entries: QueueEntry) -> None:
    DownloadQueue(queue_file, list(entries)).save()


def _completed(stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=0, stdout=stdout, stderr=stderr)


def test_backoff_doubles_and_caps() -> None:
    """Delays double per failure up to the maximum."""
    assert [backoff_delay(n, 60, 600) for n in range(1, 6)] == [60, 120, 240, 480, 600]


def test_idle_when_nothing_due(tmp_path: Path, download_config: DownloadConfig) -> None:
    """An empty queue does nothing."""
    dispatcher = Dispatcher(download_config, _route_for(tmp_path), clock=FakeClock())

    with patch(RUN_EXTERNAL) as mock_run:
        result = dispatcher.run_once()

    assert result.status == DispatchStatus.IDLE
    mock_run.assert_not_called()


def test_successful_download(tmp_path: Path, queue_file: Path, download_config: DownloadConfig) -> None:
    """The first due entry is downloaded with its route and marked done."""
    _write_queue(queue_file, QueueEntry(url="https://example.org/a.iso", tag="iso"))
    dispatcher = Dispatcher(download_config, _route_for(tmp_path), clock=FakeClock())
    saved = str(tmp_path / "iso" / "a.iso")

    with patch(RUN_EXTERNAL, return_value=_completed(stderr=f"Saving to: ‘{saved}’\n")) as mock_run:
        result = dispatcher.run_once()

    assert result.status == DispatchStatus.DONE
    assert result.message == saved
    command = mock_run.call_args[0][0]
    assert command[0] == "wget"
    assert command[-1] == "https://example.org/a.iso"
    assert str(tmp_path / "iso") in command
    assert (tmp_path / "iso").is_dir()

    entry = DownloadQueue.load(queue_file).entries[0]
    assert entry.state == EntryState.DONE
    assert entry.pid == 0


def test_failures_back_off_then_give_up(tmp_path: Path, queue_file: Path, download_config: DownloadConfig) -> None:
    """Each failure schedules a later retry until max_retries is reached."""
    _write_queue(queue_file, QueueEntry(url="https://example.org/flaky"))
    clock = FakeClock()
    dispatcher = Dispatcher(download_config, _route_for(tmp_path), clock=clock)
    error = ExternalCommandError("wget failed with return code 8", command=["wget"], return_code=8)

    with patch(RUN_EXTERNAL, side_effect=error):
        first = dispatcher.run_once()
        entry = DownloadQueue.load(queue_file).entries[0]
        assert first.status == DispatchStatus.RETRY
        assert (entry.state, entry.retries, entry.next_attempt) == (EntryState.RETRY, 1, NOW + 60)

        # Not due yet
        assert dispatcher.run_once().status == DispatchStatus.IDLE

        clock.now = NOW + 60
        second = dispatcher.run_once()
        entry = DownloadQueue.load(queue_file).entries[0]
        assert second.status == DispatchStatus.RETRY
        assert (entry.retries, entry.next_attempt) == (2, NOW + 60 + 120)

        clock.now = NOW + 1_000
        third = dispatcher.run_once()

    entry = DownloadQueue.load(queue_file).entries[0]
    assert third.status == DispatchStatus.FAILED
    assert (entry.state, entry.retries) == (EntryState.FAILED, 3)


def test_busy_while_previous_download_runs(
    tmp_path: Path, queue_file: Path, download_config: DownloadConfig
) -> None:
    """A live active entry blocks new downloads."""
    _write_queue(
        queue_file,
        QueueEntry(url="https://example.org/running", state=EntryState.ACTIVE, pid=os.getpid() + 1),
        QueueEntry(url="https://example.org/next"),
    )
    dispatcher = Dispatcher(download_config, _route_for(tmp_path), clock=FakeClock())

    with patch(PID_EXISTS, return_value=True), patch(RUN_EXTERNAL) as mock_run:
        result = dispatcher.run_once()

    assert result.status == DispatchStatus.BUSY
    mock_run.assert_not_called()
    states = [entry.state for entry in DownloadQueue.load(queue_file).entries]
    assert states == [EntryState.ACTIVE, EntryState.PENDING]


def test_stale_active_entry_counts_as_failure(
    tmp_path: Path, queue_file: Path, download_config: DownloadConfig
) -> None:
    """An active entry whose process is gone goes to retry and the next entry runs."""
    _write_queue(
        queue_file,
        QueueEntry(url="https://example.org/crashed", state=EntryState.ACTIVE, pid=os.getpid() + 1),
        QueueEntry(url="https://example.org/next"),
    )
    dispatcher = Dispatcher(download_config, _route_for(tmp_path), clock=FakeClock())

    with patch(PID_EXISTS, return_value=False), patch(RUN_EXTERNAL, return_value=_completed()):
        result = dispatcher.run_once()

    assert result.status == DispatchStatus.DONE
    assert result.entry.url == "https://example.org/next"
    crashed, done = DownloadQueue.load(queue_file).entries
    assert (crashed.state, crashed.retries, crashed.pid) == (EntryState.RETRY, 1, 0)
    assert done.state == EntryState.DONE


def test_missing_executable_keeps_entry(tmp_path: Path, queue_file: Path, download_config: DownloadConfig) -> None:
    """A missing tool is a configuration problem and costs the entry no retry."""
    _write_queue(queue_file, QueueEntry(url="https://example.org/v", tag="video"))
    dispatcher = Dispatcher(download_config, _route_for(tmp_path), clock=FakeClock())

    with (
        patch(RUN_EXTERNAL, side_effect=ConfigurationError("Missing executable: youtube-dl")),
        pytest.raises(ConfigurationError, match="Missing executable"),
    ):
        dispatcher.run_once()

    entry = DownloadQueue.load(queue_file).entries[0]
    assert (entry.state, entry.retries, entry.pid) == (EntryState.PENDING, 0, 0)


def test_unknown_route_is_configuration_error(queue_file: Path, download_config: DownloadConfig) -> None:
    """A tag without a route and no default route stops the run."""
    _write_queue(queue_file, QueueEntry(url="https://example.org/x", tag="nowhere"))

    def route_for(tag: str) -> DownloadRoute:
        msg = f"Unknown download tag '{tag}'"
        raise ValueError(msg)

    dispatcher = Dispatcher(download_config, route_for, clock=FakeClock())

    with pytest.raises(ConfigurationError, match="nowhere"):
        dispatcher.run_once()

    assert DownloadQueue.load(queue_file).entries[0].state == EntryState.PENDING


def test_entries_added_during_download_are_kept(
    tmp_path: Path, queue_file: Path, download_config: DownloadConfig
) -> None:
    """The outcome is written to the queue as it is after the download, not before."""
    _write_queue(queue_file, QueueEntry(url="https://example.org/a.iso"))
    dispatcher = Dispatcher(download_config, _route_for(tmp_path), clock=FakeClock())

    def add_while_downloading(*_args: object, **_kwargs: object) -> subprocess.CompletedProcess:
        with queue_lock(queue_file):
            queue = DownloadQueue.load(queue_file)
            queue.add("https://example.org/b.iso")
            queue.save()
        return _completed()

    with patch(RUN_EXTERNAL, side_effect=add_while_downloading):
        result = dispatcher.run_once()

    assert result.status == DispatchStatus.DONE
    entries = DownloadQueue.load(queue_file).entries
    assert [(e.url, e.state) for e in entries] == [
        ("https://example.org/a.iso", EntryState.DONE),
        ("https://example.org/b.iso", EntryState.PENDING),
    ]


def test_failure_recorded_on_current_queue(
    tmp_path: Path, queue_file: Path, download_config: DownloadConfig
) -> None:
    """A failed download keeps a purge made while it was running."""
    _write_queue(
        queue_file,
        QueueEntry(url="https://example.org/old", state=EntryState.DONE),
        QueueEntry(url="https://example.org/flaky"),
    )
    dispatcher = Dispatcher(download_config, _route_for(tmp_path), clock=FakeClock())

    def purge_then_fail(*_args: object, **_kwargs: object) -> subprocess.CompletedProcess:
        with queue_lock(queue_file):
            queue = DownloadQueue.load(queue_file)
            queue.purge()
            queue.save()
        raise ExternalCommandError("wget failed with return code 4", command=["wget"], return_code=4)

    with patch(RUN_EXTERNAL, side_effect=purge_then_fail):
        result = dispatcher.run_once()

    assert result.status == DispatchStatus.RETRY
    entries = DownloadQueue.load(queue_file).entries
    assert [(e.url, e.state, e.retries) for e in entries] == [("https://example.org/flaky", EntryState.RETRY, 1)]


def test_entry_is_active_while_downloading(
    tmp_path: Path, queue_file: Path, download_config: DownloadConfig
) -> None:
    """Other runs see the claimed entry as active with this process's pid."""
    _write_queue(queue_file, QueueEntry(url="https://example.org/a.iso"))
    dispatcher = Dispatcher(download_config, _route_for(tmp_path), clock=FakeClock())
    seen = []

    def inspect_queue(*_args: object, **_kwargs: object) -> subprocess.CompletedProcess:
        entry = DownloadQueue.load(queue_file).entries[0]
        seen.append((entry.state, entry.pid))
        return _completed()

    with patch(RUN_EXTERNAL, side_effect=inspect_queue):
        dispatcher.run_once()

    assert seen == [(EntryState.ACTIVE, os.getpid())]
