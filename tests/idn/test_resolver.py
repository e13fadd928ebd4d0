"""Tests for hostcert.idn.resolver -- numeric selection of versioned libraries."""

from __future__ import annotations

from pathlib import Path

import pytest

from hostcert.idn.resolver import (
    SuffixSortedFileSet,
    parse_suffix,
    resolve_versioned_library,
)


def _touch(directory: Path, *names: str) -> None:
    for name in names:
        (directory / name).write_bytes(b"")


# ---------------------------------------------------------------------------
# parse_suffix
# ---------------------------------------------------------------------------


class TestParseSuffix:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("libidn.so.0", 0),
            ("libidn.so.12", 12),
            ("libidn.so.007", 7),
        ],
    )
    def test_valid(self, name, expected):
        assert parse_suffix(name, "libidn.so") == expected

    @pytest.mark.parametrize(
        "name",
        [
            "libidn.so",
            "libidn.so.",
            "libidn.so.x",
            "libidn.so.-1",
            "libidn.so.+3",
            "libidn.so. 3",
            "libidn.so.11.6.16",
            "libidn.so.٣",  # Arabic-Indic digit three
            "libother.so.4",
        ],
    )
    def test_invalid(self, name):
        assert parse_suffix(name, "libidn.so") is None


# ---------------------------------------------------------------------------
# SuffixSortedFileSet
# ---------------------------------------------------------------------------


class TestSuffixSortedFileSet:
    def test_iterates_in_numeric_order(self):
        files = SuffixSortedFileSet("lib.so")
        for name in ("lib.so.10", "lib.so.2", "lib.so.9"):
            assert files.add(name) is True

        assert [p.name for p in files] == ["lib.so.2", "lib.so.9", "lib.so.10"]
        assert files.highest() == Path("lib.so.10")

    def test_rejects_invalid_suffix(self):
        files = SuffixSortedFileSet("lib.so")
        assert files.add("lib.so.x") is False
        assert len(files) == 0

    def test_equal_suffix_keeps_first(self):
        files = SuffixSortedFileSet("lib.so")
        assert files.add("lib.so.7") is True
        assert files.add("lib.so.07") is False

        assert len(files) == 1
        assert "lib.so.7" in files
        assert "lib.so.07" not in files

    def test_suffix_of(self):
        files = SuffixSortedFileSet("lib.so")
        files.add("/usr/lib/lib.so.3")
        assert files.suffix_of("/usr/lib/lib.so.3") == 3
        assert files.suffix_of("/usr/lib/lib.so.4") is None

    def test_empty(self):
        files = SuffixSortedFileSet("lib.so")
        assert files.highest() is None
        assert list(files) == []
        assert 42 not in files

    def test_repr_lists_names(self):
        files = SuffixSortedFileSet("lib.so")
        files.add("lib.so.1")
        assert "lib.so.1" in repr(files)


# ---------------------------------------------------------------------------
# resolve_versioned_library
# ---------------------------------------------------------------------------


class TestResolveVersionedLibrary:
    def test_numeric_not_lexical(self, tmp_path: Path):
        _touch(tmp_path, "lib.so.3", "lib.so.10", "lib.so.x")
        assert resolve_versioned_library(tmp_path, "lib.so") == tmp_path / "lib.so.10"

    def test_ignores_bare_and_dotted_names(self, tmp_path: Path):
        _touch(tmp_path, "lib.so", "lib.so.4", "lib.so.11.6.16")
        assert resolve_versioned_library(tmp_path, "lib.so") == tmp_path / "lib.so.4"

    def test_ignores_other_base_names(self, tmp_path: Path):
        _touch(tmp_path, "libidn.so.11", "libidn2.so.99", "libidnx.so.50")
        assert resolve_versioned_library(tmp_path, "libidn.so") == tmp_path / "libidn.so.11"

    def test_ignores_directories(self, tmp_path: Path):
        _touch(tmp_path, "lib.so.1")
        (tmp_path / "lib.so.99").mkdir()
        assert resolve_versioned_library(tmp_path, "lib.so") == tmp_path / "lib.so.1"

    def test_follows_symlinks_to_files(self, tmp_path: Path):
        _touch(tmp_path, "lib.so.12.0.0")
        (tmp_path / "lib.so.12").symlink_to(tmp_path / "lib.so.12.0.0")
        assert resolve_versioned_library(tmp_path, "lib.so") == tmp_path / "lib.so.12"

    def test_leading_zero_duplicate_is_deterministic(self, tmp_path: Path):
        _touch(tmp_path, "lib.so.07", "lib.so.7")
        # Entries are visited in name order, so "lib.so.07" is kept.
        assert resolve_versioned_library(tmp_path, "lib.so") == tmp_path / "lib.so.07"

    def test_no_candidates(self, tmp_path: Path):
        _touch(tmp_path, "unrelated.txt", "lib.so.x")
        assert resolve_versioned_library(tmp_path, "lib.so") is None

    def test_missing_directory(self, tmp_path: Path):
        assert resolve_versioned_library(tmp_path / "nope", "lib.so") is None

    def test_directory_is_a_file(self, tmp_path: Path):
        _touch(tmp_path, "plain")
        assert resolve_versioned_library(tmp_path / "plain", "lib.so") is None
