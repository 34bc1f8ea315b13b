"""Delete files in a target tree that already exist byte-for-byte in a reference tree."""

from __future__ import annotations

import filecmp
import hashlib
import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path

from tqdm import tqdm

from ..config.constants import HASH_PROGRESS_MIN_FILES, MIN_FILES_FOR_DUPLICATE_DETECTION
from .base import ConfigurationError, ProcessingResult, ProcessingStatus
from .workers import get_hash_worker_count

LOG = logging.getLogger(__name__)


@dataclass
class FileInfo:
    """Information about a file for duplicate detection."""

    path: Path
    size: int
    hash: str | None = None


@dataclass(frozen=True)
class DuplicateMatch:
    """A target file and the reference file holding the same bytes."""

    target: Path
    reference: Path
    size: int


@dataclass
class DedupSummary:
    """Totals for one deduplication run."""

    examined: int = 0
    duplicates: int = 0
    deleted: int = 0
    skipped: int = 0
    errors: int = 0
    reclaimed_bytes: int = 0
    removed_dirs: int = 0


class TreeDeduplicator:
    """Find and remove target files duplicated in a reference tree."""

    def __init__(
        self,
        reference: Path,
        target: Path,
        *,
        algorithm: str = "md5",
        chunk_size: int = 65536,
        max_workers: int | None = None,
        show_progress: bool = True,
    ) -> None:
        """
        Initialize the deduplicator.

        Args:
            reference: Tree whose files are kept
            target: Tree whose duplicate files are deleted
            algorithm: hashlib algorithm used to pre-group candidates
            chunk_size: Size of chunks to read when calculating hash
            max_workers: Maximum number of threads for hashing
            show_progress: Show a progress bar while hashing

        """
        self.reference = Path(reference)
        self.target = Path(target)
        self.algorithm = algorithm
        self.chunk_size = chunk_size
        self.max_workers = get_hash_worker_count(max_workers)
        self.show_progress = show_progress
        self.removed_dirs: list[Path] = []
        self.files_examined = 0

    def validate_trees(self) -> None:
        """
        Check that both trees exist and neither contains the other.

        Raises:
            ConfigurationError: if the trees cannot be deduplicated safely

        """
        for label, root in (("Reference", self.reference), ("Target", self.target)):
            if not root.is_dir():
                msg = f"{label} directory does not exist: {root}"
                raise ConfigurationError(msg, file_path=root)

        reference = self.reference.resolve()
        target = self.target.resolve()
        if reference == target or reference.is_relative_to(target) or target.is_relative_to(reference):
            msg = f"Reference {reference} and target {target} must not overlap"
            raise ConfigurationError(msg)

    def _collect_files(self, root: Path) -> list[FileInfo]:
        """Collect regular, non-empty files below root."""
        files = []
        for file_path in root.rglob("*"):
            try:
                if file_path.is_symlink() or not file_path.is_file():
                    continue
                size = file_path.stat().st_size
            except OSError as e:
                LOG.warning("Skipping %s: %s", file_path, e)
                continue
            if size == 0:
                continue
            files.append(FileInfo(path=file_path, size=size))
        return files

    def _calculate_file_hash(self, file_path: Path) -> str:
        """Calculate the digest of a file."""
        hash_obj = hashlib.new(self.algorithm)
        with file_path.open("rb") as f:
            while chunk := f.read(self.chunk_size):
                hash_obj.update(chunk)
        return hash_obj.hexdigest()

    def _calculate_hashes_parallel(self, files: list[FileInfo]) -> list[FileInfo]:
        """Calculate hashes for files in parallel; unreadable files are dropped."""
        LOG.info("Calculating hashes for %d files using %d workers...", len(files), self.max_workers)
        hashed = []

        with (
            ThreadPoolExecutor(max_workers=self.max_workers) as executor,
            tqdm(
                total=len(files),
                desc="Hashing",
                unit="file",
                disable=not self.show_progress or len(files) < HASH_PROGRESS_MIN_FILES,
            ) as progress_bar,
        ):
            future_to_file = {executor.submit(self._calculate_file_hash, info.path): info for info in files}
            for future in as_completed(future_to_file):
                file_info = future_to_file[future]
                try:
                    file_info.hash = future.result()
                    hashed.append(file_info)
                except OSError as e:
                    LOG.warning("Failed to calculate hash for %s: %s", file_info.path, e)
                finally:
                    progress_bar.update(1)

        return hashed

    def _files_identical(self, first: Path, second: Path) -> bool:
        try:
            return filecmp.cmp(first, second, shallow=False)
        except OSError as e:
            LOG.warning("Could not compare %s with %s: %s", first, second, e)
            return False

    def find_duplicates(self) -> list[DuplicateMatch]:
        """Find target files whose content exists in the reference tree."""
        self.validate_trees()
        LOG.info("Comparing %s against reference %s", self.target, self.reference)

        # Step 1: collect both trees
        reference_files = self._collect_files(self.reference)
        target_files = self._collect_files(self.target)
        self.files_examined = len(target_files)
        LOG.info("Found %d reference files and %d target files", len(reference_files), len(target_files))

        # Step 2: only target files with a same-sized reference file can be duplicates
        reference_by_size: dict[int, list[FileInfo]] = defaultdict(list)
        for info in reference_files:
            reference_by_size[info.size].append(info)

        candidates = [info for info in target_files if info.size in reference_by_size]
        if len(candidates) < MIN_FILES_FOR_DUPLICATE_DETECTION:
            LOG.info("No target files with matching sizes found")
            return []

        candidate_sizes = {info.size for info in candidates}
        references_to_hash = [info for size in candidate_sizes for info in reference_by_size[size]]

        # Step 3: hash both sides of each size match
        hashed = self._calculate_hashes_parallel(references_to_hash + candidates)
        hashed_paths = {info.path for info in hashed}

        reference_by_hash: dict[tuple[int, str], list[Path]] = defaultdict(list)
        for info in references_to_hash:
            if info.path in hashed_paths:
                reference_by_hash[(info.size, info.hash)].append(info.path)

        # Step 4: confirm byte-for-byte before trusting a hash match
        matches = []
        for info in sorted(candidates, key=lambda i: i.path):
            if info.path not in hashed_paths:
                continue
            for reference_path in reference_by_hash.get((info.size, info.hash), []):
                if self._files_identical(info.path, reference_path):
                    matches.append(DuplicateMatch(target=info.path, reference=reference_path, size=info.size))
                    break

        LOG.info("Found %d duplicate files in %s", len(matches), self.target)
        return matches

    def run(self, *, dry_run: bool = False, prune_empty_dirs: bool = False) -> list[ProcessingResult]:
        """Delete duplicate target files, or report what would be deleted."""
        results = []
        for match in self.find_duplicates():
            if dry_run:
                results.append(
                    ProcessingResult(
                        source_file=match.target,
                        status=ProcessingStatus.SKIPPED,
                        message=f"Would delete, duplicate of {match.reference}",
                        size=match.size,
                        metadata={"reference": match.reference},
                    )
                )
                continue

            try:
                match.target.unlink()
            except OSError as e:
                LOG.warning("Failed to delete %s: %s", match.target, e)
                results.append(
                    ProcessingResult(
                        source_file=match.target,
                        status=ProcessingStatus.ERROR,
                        message=str(e),
                        size=match.size,
                        metadata={"reference": match.reference},
                    )
                )
            else:
                LOG.debug("Deleted %s (duplicate of %s)", match.target, match.reference)
                results.append(
                    ProcessingResult(
                        source_file=match.target,
                        status=ProcessingStatus.SUCCESS,
                        message=f"Deleted, duplicate of {match.reference}",
                        size=match.size,
                        metadata={"reference": match.reference},
                    )
                )

        if prune_empty_dirs and not dry_run:
            self._prune_empty_dirs()

        return results

    def _prune_empty_dirs(self) -> None:
        """Remove directories below the target root left empty, deepest first."""
        directories = sorted(
            (d for d in self.target.rglob("*") if d.is_dir() and not d.is_symlink()),
            key=lambda d: len(d.parts),
            reverse=True,
        )
        for directory in directories:
            try:
                if not any(directory.iterdir()):
                    directory.rmdir()
                    self.removed_dirs.append(directory)
                    LOG.debug("Removed empty directory %s", directory)
            except OSError as e:
                LOG.warning("Failed to remove directory %s: %s", directory, e)

    def summarize(self, results: list[ProcessingResult]) -> DedupSummary:
        """Summarize the results of a run."""
        summary = DedupSummary(
            examined=self.files_examined,
            duplicates=len(results),
            removed_dirs=len(self.removed_dirs),
        )
        for result in results:
            if result.status == ProcessingStatus.SUCCESS:
                summary.deleted += 1
                summary.reclaimed_bytes += result.size or 0
            elif result.status == ProcessingStatus.SKIPPED:
                summary.skipped += 1
            else:
                summary.errors += 1
        return summary
