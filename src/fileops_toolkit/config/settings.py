"""Configuration management for the file operations toolkit."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .constants import DEFAULT_CONTAINERS, DEFAULT_ROUTE, DEFAULT_TOP_N

LOG = logging.getLogger(__name__)


# Configuration singleton
class _ConfigSingleton:
    """Configuration singleton holder."""

    _instance: ToolkitConfig | None = None

    @classmethod
    def get_instance(cls) -> ToolkitConfig:
        """Get the configuration instance."""
        if cls._instance is None:
            config_path = Path.cwd() / "config.yaml"
            if config_path.exists():
                cls._instance = ToolkitConfig.load_from_file(config_path)
            else:
                cls._instance = ToolkitConfig()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the configuration instance."""
        cls._instance = None


_config_singleton = _ConfigSingleton()


@dataclass
class DownloadRoute:
    """Where and how downloads carrying one tag are fetched."""

    downloader: str = "wget"
    destination: Path = field(default_factory=Path.cwd)
    args: list[str] = field(default_factory=list)


@dataclass
class PackingConfig:
    """Disc packing configuration."""

    containers: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_CONTAINERS))
    min_size: str = "0"
    top_n: int = DEFAULT_TOP_N
    fast_mode: bool = False


@dataclass
class DownloadConfig:
    """Download queue configuration."""

    queue_file: Path = Path("downloads.queue")
    max_retries: int = 5
    backoff_base: int = 300
    backoff_max: int = 86400
    timeout: int | None = None
    executables: dict[str, str] = field(default_factory=lambda: {"wget": "wget", "youtube-dl": "youtube-dl"})
    routes: dict[str, DownloadRoute] = field(default_factory=lambda: {DEFAULT_ROUTE: DownloadRoute()})


@dataclass
class DedupConfig:
    """Tree deduplication configuration."""

    algorithm: str = "md5"
    chunk_size: int = 65536
    workers: int | None = None
    prune_empty_dirs: bool = False


@dataclass
class GlobalConfig:
    """Global settings."""

    log_level: str = "WARNING"


@dataclass
class ToolkitConfig:
    """Main configuration class."""

    packing: PackingConfig = field(default_factory=PackingConfig)
    downloads: DownloadConfig = field(default_factory=DownloadConfig)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    global_: GlobalConfig = field(default_factory=GlobalConfig)

    @classmethod
    def load_from_file(cls, config_path: Path) -> ToolkitConfig:
        """Load configuration from YAML file."""
        try:
            with config_path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)

            return cls._from_dict(data or {})
        except (OSError, yaml.YAMLError) as e:
            LOG.warning("Failed to load config from %s: %s", config_path, e)
            return cls()
        except (AttributeError, TypeError, ValueError) as e:
            LOG.warning("Invalid value in config %s: %s. Using defaults.", config_path, e)
            return cls()

    def get_route(self, tag: str) -> DownloadRoute:
        """Get the download route for a tag, falling back to the default route."""
        routes = self.downloads.routes
        if tag and tag in routes:
            return routes[tag]
        if DEFAULT_ROUTE in routes:
            if tag:
                LOG.debug("No route for tag '%s', using '%s'", tag, DEFAULT_ROUTE)
            return routes[DEFAULT_ROUTE]
        available = ", ".join(routes.keys())
        msg = f"Unknown download tag '{tag}' and no '{DEFAULT_ROUTE}' route. Available: {available}"
        raise ValueError(msg)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> ToolkitConfig:
        """Create config from dictionary."""
        return cls(
            packing=cls._parse_packing_config(data.get("packing") or {}),
            downloads=cls._parse_download_config(data.get("downloads") or {}),
            dedup=cls._parse_dedup_config(data.get("dedup") or {}),
            global_=GlobalConfig(log_level=(data.get("global") or {}).get("log_level", "WARNING")),
        )

    @classmethod
    def _parse_packing_config(cls, packing_data: dict[str, Any]) -> PackingConfig:
        """Parse disc packing configuration."""
        containers = {}
        for name, capacity in (packing_data.get("containers") or {}).items():
            try:
                containers[str(name)] = int(capacity)
            except (TypeError, ValueError) as e:
                LOG.warning("Ignoring container '%s' with bad capacity %r: %s", name, capacity, e)

        return PackingConfig(
            containers=containers or dict(DEFAULT_CONTAINERS),
            min_size=str(packing_data.get("min_size", "0")),
            top_n=int(packing_data.get("top_n", DEFAULT_TOP_N)),
            fast_mode=bool(packing_data.get("fast_mode", False)),
        )

    @classmethod
    def _parse_download_config(cls, download_data: dict[str, Any]) -> DownloadConfig:
        """Parse download queue configuration."""
        routes = {}
        for tag, route_data in (download_data.get("routes") or {}).items():
            if not isinstance(route_data, dict) or "destination" not in route_data:
                LOG.warning("Incomplete route data for tag '%s': missing destination", tag)
                continue
            routes[str(tag)] = DownloadRoute(
                downloader=route_data.get("downloader", "wget"),
                destination=Path(route_data["destination"]).expanduser(),
                args=[str(a) for a in route_data.get("args", [])],
            )

        executables = {"wget": "wget", "youtube-dl": "youtube-dl"}
        executables.update(download_data.get("executables") or {})

        timeout = download_data.get("timeout")
        return DownloadConfig(
            queue_file=Path(download_data.get("queue_file", "downloads.queue")).expanduser(),
            max_retries=int(download_data.get("max_retries", 5)),
            backoff_base=int(download_data.get("backoff_base", 300)),
            backoff_max=int(download_data.get("backoff_max", 86400)),
            timeout=int(timeout) if timeout is not None else None,
            executables=executables,
            routes=routes or {DEFAULT_ROUTE: DownloadRoute()},
        )

    @classmethod
    def _parse_dedup_config(cls, dedup_data: dict[str, Any]) -> DedupConfig:
        """Parse tree deduplication configuration."""
        algorithm = dedup_data.get("algorithm", "md5")
        valid_algorithms = {"md5", "sha1", "sha256"}
        if algorithm not in valid_algorithms:
            LOG.warning(
                "Invalid hash algorithm '%s'. Using 'md5'. Valid options: %s",
                algorithm,
                ", ".join(sorted(valid_algorithms)),
            )
            algorithm = "md5"

        workers = dedup_data.get("workers")
        return DedupConfig(
            algorithm=algorithm,
            chunk_size=int(dedup_data.get("chunk_size", 65536)),
            workers=int(workers) if workers else None,
            prune_empty_dirs=bool(dedup_data.get("prune_empty_dirs", False)),
        )


def get_config() -> ToolkitConfig:
    """Get the global configuration instance."""
    return _config_singleton.get_instance()
