"""Command builders and output scrapers for the supported downloaders."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from ..core.base import ConfigurationError
from ..core.external import run_external

if TYPE_CHECKING:
    from ..config.settings import DownloadRoute

LOG = logging.getLogger(__name__)


@dataclass
class DownloadOutcome:
    """What a finished download reported."""

    url: str
    saved_path: str | None
    output: str


class Downloader(ABC):
    """An external download tool."""

    kind: ClassVar[str]

    def __init__(self, executable: str, timeout: int | None = None) -> None:
        self.executable = executable
        self.timeout = timeout

    @abstractmethod
    def build_command(self, url: str, route: DownloadRoute) -> list[str]:
        """Build the command line for one URL."""

    @abstractmethod
    def parse_saved_path(self, output: str) -> str | None:
        """Extract the saved file name from the tool's output."""

    def download(self, url: str, route: DownloadRoute) -> DownloadOutcome:
        """
        Download a URL into the route's destination.

        Raises:
            ConfigurationError: if the executable is missing
            ExternalCommandError: if the download fails or times out

        """
        route.destination.mkdir(parents=True, exist_ok=True)
        result = run_external(self.build_command(url, route), timeout=self.timeout)
        # wget reports progress on stderr, youtube-dl on stdout
        output = "\n".join(part for part in (result.stdout, result.stderr) if part)
        saved_path = self.parse_saved_path(output)
        if saved_path:
            LOG.info("Saved %s to %s", url, saved_path)
        return DownloadOutcome(url=url, saved_path=saved_path, output=output)


class WgetDownloader(Downloader):
    """Plain HTTP/FTP downloads with resume support."""

    kind = "wget"
    _SAVED = re.compile(r"Saving to: [‘'`\"](.+?)[’'\"]\s*$", re.MULTILINE)

    def build_command(self, url: str, route: DownloadRoute) -> list[str]:
        return [self.executable, "--continue", "--directory-prefix", str(route.destination), *route.args, url]

    def parse_saved_path(self, output: str) -> str | None:
        matches = self._SAVED.findall(output)
        return matches[-1] if matches else None


class YoutubeDlDownloader(Downloader):
    """Video site downloads through youtube-dl or a compatible fork."""

    kind = "youtube-dl"
    _SAVED_PATTERNS = (
        re.compile(r"^\[download\] Destination: (.+?)\s*$"),
        re.compile(r"^\[download\] (.+?) has already been downloaded"),
        re.compile(r"^\[Merger\] Merging formats into \"(.+?)\"\s*$"),
    )

    def build_command(self, url: str, route: DownloadRoute) -> list[str]:
        template = str(route.destination / "%(title)s.%(ext)s")
        return [self.executable, "--newline", "--output", template, *route.args, url]

    def parse_saved_path(self, output: str) -> str | None:
        saved = None
        for line in output.splitlines():
            for pattern in self._SAVED_PATTERNS:
                match = pattern.match(line)
                if match:
                    saved = match.group(1)
                    break
        return saved


DOWNLOADERS: dict[str, type[Downloader]] = {
    WgetDownloader.kind: WgetDownloader,
    YoutubeDlDownloader.kind: YoutubeDlDownloader,
}


def get_downloader(kind: str, executables: dict[str, str], timeout: int | None = None) -> Downloader:
    """
    Create the downloader for a route.

    Raises:
        ConfigurationError: for an unknown downloader kind

    """
    if kind not in DOWNLOADERS:
        available = ", ".join(DOWNLOADERS)
        msg = f"Unknown downloader '{kind}'. Available: {available}"
        raise ConfigurationError(msg)
    return DOWNLOADERS[kind](executables.get(kind, kind), timeout=timeout)
