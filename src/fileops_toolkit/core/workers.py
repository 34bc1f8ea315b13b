"""Worker count selection for parallel file hashing."""

from __future__ import annotations

import logging

import psutil

LOG = logging.getLogger(__name__)

# Hashing is mostly I/O bound; more threads than this only thrash the disk
MAX_HASH_WORKERS = 8
FALLBACK_WORKERS = 2
HIGH_CPU_PERCENT = 80


def get_hash_worker_count(configured_workers: int | None = None) -> int:
    """
    Get a sensible number of hashing threads.

    Args:
        configured_workers: The configured worker count, or None for auto-detection

    Returns:
        Number of workers to use, at least 1

    """
    if configured_workers is not None and configured_workers > 0:
        return configured_workers

    try:
        logical_cores = psutil.cpu_count(logical=True) or 1
        cpu_percent = psutil.cpu_percent(interval=0.1)
    except (OSError, AttributeError, ValueError) as e:
        LOG.warning("Failed to detect system specs with psutil: %s. Using %d workers.", e, FALLBACK_WORKERS)
        return FALLBACK_WORKERS

    workers = min(MAX_HASH_WORKERS, logical_cores)
    if cpu_percent > HIGH_CPU_PERCENT:
        workers = max(1, workers // 2)
        LOG.warning("High CPU load detected (%.1f%%), reducing hash workers to %d", cpu_percent, workers)

    LOG.info("%d logical cores, CPU load %.1f%%: using %d hash workers", logical_cores, cpu_percent, workers)
    return workers
