"""Item and container models for disc packing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..core.base import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


@dataclass(frozen=True)
class Item:
    """
    A file (or directory burned as a unit) to place on a disc.

    Attributes:
        name: Unique identifier, usually the file name
        size: Size in bytes

    """

    name: str
    size: int

    def __post_init__(self) -> None:
        if not self.name:
            msg = "Item name must be non-empty"
            raise ConfigurationError(msg)
        if self.size < 0:
            msg = f"Item '{self.name}' size must be >= 0"
            raise ConfigurationError(msg)


@dataclass(frozen=True)
class ContainerClass:
    """A named capacity tier, e.g. a disc format."""

    name: str
    capacity: int

    def __post_init__(self) -> None:
        if not self.name:
            msg = "Container name must be non-empty"
            raise ConfigurationError(msg)
        if self.capacity <= 0:
            msg = f"Container '{self.name}' capacity must be > 0"
            raise ConfigurationError(msg)


def containers_from_mapping(table: Mapping[str, int]) -> list[ContainerClass]:
    """Build container classes from a ``{name: capacity}`` table, ascending by capacity."""
    return normalize_containers(ContainerClass(name=name, capacity=int(cap)) for name, cap in table.items())


def normalize_containers(containers: Iterable[ContainerClass]) -> list[ContainerClass]:
    """
    Sort container classes ascending by capacity and validate them.

    Raises:
        ConfigurationError: on an empty table, repeated names or repeated capacities

    """
    ordered = sorted(containers, key=lambda c: c.capacity)
    if not ordered:
        msg = "At least one container class is required"
        raise ConfigurationError(msg)

    names = [c.name for c in ordered]
    if len(set(names)) != len(names):
        msg = f"Container names must be unique: {', '.join(names)}"
        raise ConfigurationError(msg)

    capacities = [c.capacity for c in ordered]
    if len(set(capacities)) != len(capacities):
        msg = "Container capacities must be distinct: " + ", ".join(f"{c.name}={c.capacity}" for c in ordered)
        raise ConfigurationError(msg)

    return ordered
