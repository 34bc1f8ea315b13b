"""Configuration management for the file operations toolkit."""

from __future__ import annotations

from .constants import *  # noqa: F403, F401
from .settings import DownloadRoute, ToolkitConfig, get_config

__all__ = [
    "DownloadRoute",
    "ToolkitConfig",
    "get_config",
]
