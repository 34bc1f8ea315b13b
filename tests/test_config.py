"""Tests for YAML configuration and CLI overrides."""

import logging
from pathlib import Path

import pytest

from fileops_toolkit.config.constants import DEFAULT_CONTAINERS
from fileops_toolkit.config.settings import DownloadRoute, ToolkitConfig
from fileops_toolkit.core.config import ConfigManager, RunOptions, with_config_overrides

CONFIG_YAML = """
packing:
  containers:
    cd: 737280000
    dvd: 4700000000
  min_size: 10M
  top_n: 5
downloads:
  queue_file: /var/spool/fileops/downloads.queue
  max_retries: 3
  executables:
    youtube-dl: yt-dlp
  routes:
    default:
      destination: /srv/downloads
    video:
      downloader: youtube-dl
      destination: /srv/videos
      args: ["--format", "best"]
    broken:
      downloader: wget
dedup:
  algorithm: sha256
  workers: 4
"""


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    return path


def test_load_from_file(config_file: Path) -> None:
    """Sections are read into their dataclasses."""
    config = ToolkitConfig.load_from_file(config_file)

    assert config.packing.containers == {"cd": 737_280_000, "dvd": 4_700_000_000}
    assert config.packing.min_size == "10M"
    assert config.packing.top_n == 5
    assert config.downloads.queue_file == Path("/var/spool/fileops/downloads.queue")
    assert config.downloads.max_retries == 3
    assert config.downloads.executables == {"wget": "wget", "youtube-dl": "yt-dlp"}
    assert config.dedup.algorithm == "sha256"
    assert config.dedup.workers == 4


def test_routes_and_fallback(config_file: Path, caplog: pytest.LogCaptureFixture) -> None:
    """Unknown tags use the default route; routes without a destination are dropped."""
    with caplog.at_level(logging.WARNING):
        config = ToolkitConfig.load_from_file(config_file)

    assert "broken" not in config.downloads.routes
    assert "missing destination" in caplog.text

    video = config.get_route("video")
    assert video == DownloadRoute(downloader="youtube-dl", destination=Path("/srv/videos"), args=["--format", "best"])
    assert config.get_route("podcast").destination == Path("/srv/downloads")
    assert config.get_route("").destination == Path("/srv/downloads")


def test_route_without_default_raises() -> None:
    """Without a default route an unknown tag cannot be placed."""
    config = ToolkitConfig()
    config.downloads.routes = {"video": DownloadRoute(downloader="youtube-dl")}

    with pytest.raises(ValueError, match="Unknown download tag 'iso'"):
        config.get_route("iso")


def test_defaults_when_file_unreadable(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    """A broken config file is reported and the defaults are used."""
    bad = tmp_path / "config.yaml"
    bad.write_text("packing: [unclosed\n", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        config = ToolkitConfig.load_from_file(bad)

    assert "Failed to load config" in caplog.text
    assert config.packing.containers == DEFAULT_CONTAINERS
    assert config.downloads.max_retries == 5


def test_invalid_hash_algorithm_falls_back(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    """Only md5, sha1 and sha256 are accepted."""
    path = tmp_path / "config.yaml"
    path.write_text("dedup:\n  algorithm: crc32\n", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        config = ToolkitConfig.load_from_file(path)

    assert config.dedup.algorithm == "md5"
    assert "Invalid hash algorithm 'crc32'" in caplog.text


def test_run_options_override_config(config_file: Path) -> None:
    """Command line values win over the file inside an override context."""
    manager = ConfigManager(config_file)

    with with_config_overrides(manager) as mgr:
        mgr.apply_run_options(RunOptions(workers=1, queue_file=Path("other.queue")))
        assert mgr.get_value("dedup.workers") == 1
        assert mgr.get_value("downloads.queue_file") == Path("other.queue")
        assert mgr.get_value("packing.top_n") == 5

    assert manager.get_value("dedup.workers") == 4
    assert manager.get_value("no.such.key", "fallback") == "fallback"


def test_bad_value_falls_back_to_defaults(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    """A value of the wrong type is reported instead of raising."""
    path = tmp_path / "config.yaml"
    path.write_text("packing:\n  top_n: ten\n", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        config = ToolkitConfig.load_from_file(path)

    assert "Invalid value in config" in caplog.text
    assert config.packing.top_n == 10
    assert ConfigManager(path).get_value("packing.top_n") == 10
