"""Disc packing: best-fit file combinations for fixed-capacity containers."""

from .combinations import ResultEntry, ResultSet, SearchStats, find_best_fits, report_best
from .models import ContainerClass, Item, containers_from_mapping, normalize_containers
from .report import format_report, print_report
from .sources import filter_min_size, load_items, parse_listing, scan_directory

__all__ = [
    "ContainerClass",
    "Item",
    "ResultEntry",
    "ResultSet",
    "SearchStats",
    "containers_from_mapping",
    "filter_min_size",
    "find_best_fits",
    "format_report",
    "load_items",
    "normalize_containers",
    "parse_listing",
    "print_report",
    "report_best",
    "scan_directory",
]
