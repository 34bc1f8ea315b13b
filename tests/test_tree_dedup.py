"""Tests for reference/target tree deduplication."""

from pathlib import Path
from unittest.mock import patch

import pytest

from fileops_toolkit.core.base import ConfigurationError, ProcessingStatus
from fileops_toolkit.core.tree_dedup import TreeDeduplicator


@pytest.fixture
def trees(tmp_path: Path) -> tuple[Path, Path]:
    """A reference tree and a target tree sharing some files."""
    reference = tmp_path / "reference"
    target = tmp_path / "target"
    (reference / "sub").mkdir(parents=True)
    (target / "nested").mkdir(parents=True)

    (reference / "a.txt").write_text("same", encoding="utf-8")
    (reference / "sub" / "b.bin").write_bytes(b"\x00\x01\x02" * 100)
    (reference / "empty").write_bytes(b"")

    (target / "copy.txt").write_text("same", encoding="utf-8")
    (target / "other.txt").write_text("diff", encoding="utf-8")
    (target / "nested" / "b-copy.bin").write_bytes(b"\x00\x01\x02" * 100)
    (target / "empty").write_bytes(b"")
    return reference, target


def _deduplicator(reference: Path, target: Path) -> TreeDeduplicator:
    return TreeDeduplicator(reference, target, max_workers=2, show_progress=False)


def test_find_duplicates(trees: tuple[Path, Path]) -> None:
    """Only byte-identical, non-empty target files match."""
    reference, target = trees

    matches = _deduplicator(reference, target).find_duplicates()

    assert [(m.target, m.reference) for m in matches] == [
        (target / "copy.txt", reference / "a.txt"),
        (target / "nested" / "b-copy.bin", reference / "sub" / "b.bin"),
    ]


def test_dry_run_deletes_nothing(trees: tuple[Path, Path]) -> None:
    """A dry run reports what would go and leaves the tree alone."""
    reference, target = trees

    results = _deduplicator(reference, target).run(dry_run=True, prune_empty_dirs=True)

    assert [r.status for r in results] == [ProcessingStatus.SKIPPED, ProcessingStatus.SKIPPED]
    assert results[0].message.startswith("Would delete")
    assert (target / "copy.txt").exists()
    assert (target / "nested" / "b-copy.bin").exists()


def test_run_deletes_duplicates_and_prunes(trees: tuple[Path, Path]) -> None:
    """Duplicates are removed; unique and zero-byte files stay."""
    reference, target = trees
    deduplicator = _deduplicator(reference, target)

    results = deduplicator.run(prune_empty_dirs=True)
    summary = deduplicator.summarize(results)

    assert summary.examined == 3
    assert summary.deleted == 2
    assert summary.errors == 0
    assert summary.reclaimed_bytes == 4 + 300
    assert summary.removed_dirs == 1
    assert not (target / "copy.txt").exists()
    assert not (target / "nested").exists()
    assert (target / "other.txt").exists()
    assert (target / "empty").exists()
    assert (reference / "a.txt").exists()
    assert (reference / "sub" / "b.bin").exists()


def test_hash_collision_is_confirmed_byte_for_byte(trees: tuple[Path, Path]) -> None:
    """Equal digests alone never cause a deletion."""
    reference, target = trees
    deduplicator = _deduplicator(reference, target)

    with patch.object(TreeDeduplicator, "_calculate_file_hash", return_value="collision"):
        matches = deduplicator.find_duplicates()

    assert target / "other.txt" not in [m.target for m in matches]
    assert target / "copy.txt" in [m.target for m in matches]


def test_delete_failure_is_reported(trees: tuple[Path, Path]) -> None:
    """A file that cannot be removed is an error result, not an exception."""
    reference, target = trees

    with patch.object(Path, "unlink", side_effect=PermissionError("read-only")):
        results = _deduplicator(reference, target).run()

    assert {r.status for r in results} == {ProcessingStatus.ERROR}
    assert results[0].message == "read-only"


def test_overlapping_trees_rejected(trees: tuple[Path, Path]) -> None:
    """A target inside the reference could delete the reference's own files."""
    reference, _ = trees

    with pytest.raises(ConfigurationError, match="must not overlap"):
        _deduplicator(reference, reference / "sub").find_duplicates()

    with pytest.raises(ConfigurationError, match="must not overlap"):
        _deduplicator(reference, reference).find_duplicates()


def test_missing_tree_rejected(tmp_path: Path) -> None:
    """Both trees must exist."""
    (tmp_path / "reference").mkdir()

    with pytest.raises(ConfigurationError, match="Target directory does not exist"):
        _deduplicator(tmp_path / "reference", tmp_path / "missing").run()
