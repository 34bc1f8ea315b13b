"""
Best-fit combination search for disc packing.

The search enumerates item orderings breadth-first over an explicit work list.
Whenever adding one more candidate to an accumulated ``base`` pushes it past a
container's capacity while ``base`` itself still fits, ``base`` is recorded
for that container: it is as full as that branch can get for that container.
The tightest recorded combinations are the best candidates for a disc.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..config.constants import DEFAULT_TOP_N
from ..core.base import ConfigurationError
from .models import ContainerClass, Item, normalize_containers

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

LOG = logging.getLogger(__name__)

# Fast mode only prunes branches whose base already holds this many items
FAST_MODE_MIN_BASE = 2


@dataclass(frozen=True)
class ResultEntry:
    """A recorded combination for one container class."""

    container: ContainerClass
    names: tuple[str, ...]
    size: int

    @property
    def remaining(self) -> int:
        """Free space left on the container."""
        return self.container.capacity - self.size


@dataclass
class SearchStats:
    """Counters collected while searching."""

    states_explored: int = 0
    states_pruned: int = 0  # extensions skipped by fast mode
    states_oversized: int = 0  # extensions larger than every container
    crossings: int = 0


class ResultSet:
    """Boundary crossings keyed by (container name, sorted item names)."""

    def __init__(self, containers: Iterable[ContainerClass] = ()) -> None:
        self._containers = {c.name: c for c in containers}
        self._entries: dict[tuple[str, tuple[str, ...]], int] = {}
        self.stats = SearchStats()

    def record(self, container: ContainerClass, names: Sequence[str], size: int) -> None:
        """Record or overwrite the entry for ``container`` and the given names."""
        self._containers.setdefault(container.name, container)
        self._entries[(container.name, tuple(sorted(names)))] = size
        self.stats.crossings += 1

    def get(self, container_name: str, names: Iterable[str]) -> int | None:
        """Size recorded for a combination, or None."""
        return self._entries.get((container_name, tuple(sorted(names))))

    def entries_for(self, container_name: str) -> list[ResultEntry]:
        """Entries recorded for a single container class, in discovery order."""
        return [entry for entry in self if entry.container.name == container_name]

    def __iter__(self) -> Iterator[ResultEntry]:
        for (container_name, names), size in self._entries.items():
            yield ResultEntry(container=self._containers[container_name], names=names, size=size)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple) or len(key) != 2:
            return False
        container_name, names = key
        return (container_name, tuple(sorted(names))) in self._entries


@dataclass(frozen=True)
class _SearchState:
    base: tuple[int, ...]
    tail: tuple[int, ...]
    base_size: int


def _check_unique_names(items: Sequence[Item]) -> None:
    seen: set[str] = set()
    for item in items:
        if item.name in seen:
            msg = f"Duplicate item name: {item.name}"
            raise ConfigurationError(msg)
        seen.add(item.name)


def find_best_fits(
    items: Sequence[Item],
    containers: Iterable[ContainerClass],
    *,
    fast_mode: bool = False,
) -> ResultSet:
    """
    Search item combinations that best fill each container class.

    Args:
        items: Items to combine; names must be unique
        containers: Container classes with distinct capacities
        fast_mode: Stop extending a branch of two or more items once it has
            crossed some container boundary. Much faster, but may miss a
            tighter fit built from more, smaller items.

    Returns:
        The result set of every boundary crossing found

    """
    classes = normalize_containers(containers)
    result = ResultSet(classes)
    if not items:
        LOG.info("No items to combine")
        return result

    _check_unique_names(items)
    ordered = sorted(items, key=lambda item: item.size, reverse=True)
    max_capacity = classes[-1].capacity

    LOG.info(
        "Searching combinations of %d items for %d container classes (fast mode: %s)",
        len(ordered),
        len(classes),
        "on" if fast_mode else "off",
    )

    # Tail is always every item outside base, so a base set reached through
    # another ordering would repeat the same work.
    queued: set[frozenset[int]] = {frozenset()}
    work = deque([_SearchState(base=(), tail=tuple(range(len(ordered))), base_size=0)])

    while work:
        state = work.popleft()
        result.stats.states_explored += 1
        base_names = [ordered[i].name for i in state.base]

        for candidate in state.tail:
            new_size = state.base_size + ordered[candidate].size

            crossed = False
            for container in classes:
                if state.base_size <= container.capacity < new_size:
                    result.record(container, base_names, state.base_size)
                    crossed = True

            if fast_mode and crossed and len(state.base) >= FAST_MODE_MIN_BASE:
                result.stats.states_pruned += 1
                continue

            if new_size > max_capacity:
                result.stats.states_oversized += 1
                continue

            key = frozenset(state.base) | {candidate}
            if key in queued:
                continue
            queued.add(key)
            work.append(
                _SearchState(
                    base=(*state.base, candidate),
                    tail=tuple(i for i in state.tail if i != candidate),
                    base_size=new_size,
                )
            )

    LOG.info(
        "Explored %d states, %d combinations recorded (%d pruned, %d oversized)",
        result.stats.states_explored,
        len(result),
        result.stats.states_pruned,
        result.stats.states_oversized,
    )
    return result


def report_best(
    result_set: ResultSet,
    top_n: int = DEFAULT_TOP_N,
    *,
    include_empty: bool = True,
) -> list[ResultEntry]:
    """
    Rank recorded combinations by remaining space, tightest fit first.

    All container classes are ranked together. Ties keep discovery order.
    Empty combinations mean a lone item overflowed the container. Nothing is
    used, so they follow every real fit for the same container;
    ``include_empty=False`` leaves them out.
    """
    entries = [entry for entry in result_set if include_empty or entry.names]
    entries.sort(key=lambda entry: entry.remaining)
    return entries[: max(top_n, 0)]
