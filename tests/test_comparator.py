"""Tests for tree_sync.comparator.

Covers the six classification rules, the tolerance boundary and
attribute reading from disk.
"""

import os
import sys

import pytest

from tree_sync.comparator import Attributes, PathComparator, SyncStatus, classify, read_attributes
from tree_sync.errors import MetadataError

from conftest import BASE_MTIME_MS, set_mtime, write_file


def _file(size=10, mtime_ms=BASE_MTIME_MS):
    return Attributes(is_dir=False, size=size, mtime_ms=mtime_ms)


def _dir():
    return Attributes(is_dir=True, size=4096, mtime_ms=BASE_MTIME_MS)


class TestClassify:
    """Test the classification rules in order."""

    def test_neither_exists(self):
        assert classify(False, False) is SyncStatus.SYNCHRONIZED

    def test_only_source(self):
        assert classify(True, False, _file(), None) is SyncStatus.ADDED

    def test_only_destination(self):
        assert classify(False, True, None, _file()) is SyncStatus.DELETED

    def test_folder_is_now_a_file(self):
        assert classify(True, True, _file(), _dir()) is SyncStatus.MODIFIED

    def test_file_is_now_a_folder(self):
        assert classify(True, True, _dir(), _file()) is SyncStatus.MODIFIED

    def test_folders_are_same(self):
        older = Attributes(is_dir=True, size=0, mtime_ms=1)
        assert classify(True, True, _dir(), older) is SyncStatus.SYNCHRONIZED

    def test_files_are_same(self):
        assert classify(True, True, _file(), _file()) is SyncStatus.SYNCHRONIZED

    def test_size_differs(self):
        assert classify(True, True, _file(size=1), _file(size=2)) is SyncStatus.MODIFIED

    def test_source_newer(self):
        newer = _file(mtime_ms=BASE_MTIME_MS + 1)
        assert classify(True, True, newer, _file()) is SyncStatus.MODIFIED

    def test_source_older(self):
        older = _file(mtime_ms=BASE_MTIME_MS - 1)
        assert classify(True, True, older, _file()) is SyncStatus.MODIFIED

    def test_missing_attributes_rejected(self):
        with pytest.raises(ValueError):
            classify(True, True, _file(), None)

    def test_negative_tolerance_rejected(self):
        with pytest.raises(ValueError):
            classify(True, True, _file(), _file(), tolerance_ms=-1)


class TestTolerance:
    """The tolerance is inclusive: only a larger difference counts."""

    def test_difference_equal_to_tolerance_is_synchronized(self):
        source = _file(mtime_ms=BASE_MTIME_MS + 2000)
        assert classify(True, True, source, _file(), 2000) is SyncStatus.SYNCHRONIZED

    def test_difference_above_tolerance_is_modified(self):
        source = _file(mtime_ms=BASE_MTIME_MS + 2001)
        assert classify(True, True, source, _file(), 2000) is SyncStatus.MODIFIED

    def test_tolerance_works_both_ways(self):
        source = _file(mtime_ms=BASE_MTIME_MS - 1500)
        assert classify(True, True, source, _file(), 2000) is SyncStatus.SYNCHRONIZED

    def test_tolerance_does_not_hide_size_change(self):
        source = _file(size=11, mtime_ms=BASE_MTIME_MS + 10)
        assert classify(True, True, source, _file(), 2000) is SyncStatus.MODIFIED

    def test_comparator_rejects_negative(self):
        with pytest.raises(ValueError):
            PathComparator(-5)


class TestReadAttributes:
    """Test attribute snapshots taken from disk."""

    def test_missing_path(self, tmp_path):
        assert read_attributes(tmp_path / "nope") is None

    def test_missing_parent_is_missing(self, tmp_path):
        write_file(tmp_path / "file", b"x")
        assert read_attributes(tmp_path / "file" / "child") is None

    def test_file(self, tmp_path):
        path = write_file(tmp_path / "f.txt", b"12345", BASE_MTIME_MS + 123)
        attrs = read_attributes(path)
        assert attrs == Attributes(is_dir=False, size=5, mtime_ms=BASE_MTIME_MS + 123)

    def test_directory(self, tmp_path):
        assert read_attributes(tmp_path).is_dir is True

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges")
    def test_symlink_to_directory_is_not_a_directory(self, tmp_path):
        (tmp_path / "target").mkdir()
        os.symlink(tmp_path / "target", tmp_path / "link")
        assert read_attributes(tmp_path / "link").is_dir is False

    def test_unexpected_failure_raises(self, tmp_path, monkeypatch):
        def boom(path):
            raise PermissionError(13, "denied", str(path))

        monkeypatch.setattr(os, "lstat", boom)
        with pytest.raises(MetadataError) as info:
            read_attributes(tmp_path / "x")
        assert info.value.path == tmp_path / "x"


class TestPathComparator:
    """Test classification of real paths."""

    def test_status_reads_both_sides(self, tmp_dirs):
        src = write_file(tmp_dirs["source"] / "a.txt", b"abc", BASE_MTIME_MS)
        dst = write_file(tmp_dirs["dest"] / "a.txt", b"abc", BASE_MTIME_MS + 900)
        assert PathComparator(0).status(src, dst) is SyncStatus.MODIFIED
        assert PathComparator(1000).status(src, dst) is SyncStatus.SYNCHRONIZED

    def test_same_size_and_time_ignores_content(self, tmp_dirs):
        src = write_file(tmp_dirs["source"] / "a.txt", b"abc", BASE_MTIME_MS)
        dst = write_file(tmp_dirs["dest"] / "a.txt", b"xyz", BASE_MTIME_MS)
        assert PathComparator().status(src, dst) is SyncStatus.SYNCHRONIZED

    def test_new_folder(self, tmp_dirs):
        (tmp_dirs["source"] / "new").mkdir()
        status = PathComparator().status(tmp_dirs["source"] / "new", tmp_dirs["dest"] / "new")
        assert status is SyncStatus.ADDED

    def test_folder_gone(self, tmp_dirs):
        (tmp_dirs["dest"] / "old").mkdir()
        status = PathComparator().status(tmp_dirs["source"] / "old", tmp_dirs["dest"] / "old")
        assert status is SyncStatus.DELETED

    def test_file_modified_after_copy(self, tmp_dirs):
        src = write_file(tmp_dirs["source"] / "a.txt", b"abc", BASE_MTIME_MS)
        dst = write_file(tmp_dirs["dest"] / "a.txt", b"abc", BASE_MTIME_MS)
        set_mtime(src, BASE_MTIME_MS + 5000)
        assert PathComparator(2000).status(src, dst) is SyncStatus.MODIFIED
