"""Shared pytest fixtures for Tree Sync tests.

Provides temporary source/destination trees and small helpers for
building trees, pinning modification times and snapshotting results.
"""

import os
import random
from pathlib import Path

import pytest


BASE_MTIME_MS = 1_600_000_000_000


def set_mtime(path: Path, mtime_ms: int) -> None:
    """Pin the modification (and access) time of *path* to *mtime_ms*."""
    ns = mtime_ms * 1_000_000
    os.utime(path, ns=(ns, ns))


def write_file(path: Path, content: bytes = b"", mtime_ms: int | None = None) -> Path:
    """Create *path* (and its parents) with *content*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    if mtime_ms is not None:
        set_mtime(path, mtime_ms)
    return path


def snapshot(root: Path) -> dict[str, bytes | None]:
    """Map every path under *root* to its bytes (``None`` for directories)."""
    result = {}
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root).as_posix()
        result[rel] = None if path.is_dir() else path.read_bytes()
    return result


def build_random_tree(root: Path, seed: int, base_mtime_ms: int, depth: int = 3) -> None:
    """
    Fill *root* with a pseudo-random tree.

    Names come from a small pool so two trees built with different seeds
    overlap and disagree on entry types.  Every file gets an mtime derived
    from *base_mtime_ms*, so trees built from different bases never look
    identical by size and time alone.
    """
    rng = random.Random(seed)
    root.mkdir(parents=True, exist_ok=True)
    stack = [(root, 0)]
    while stack:
        directory, level = stack.pop()
        for name in rng.sample(["a", "b", "c", "d", "e"], rng.randint(0, 4)):
            path = directory / name
            if level < depth and rng.random() < 0.4:
                path.mkdir()
                stack.append((path, level + 1))
            else:
                content = bytes(rng.getrandbits(8) for _ in range(rng.randint(0, 64)))
                write_file(path, content, base_mtime_ms + rng.randint(0, 10_000))


@pytest.fixture
def tmp_dirs(tmp_path):
    """Create empty source and destination directories."""
    source = tmp_path / "source"
    dest = tmp_path / "dest"
    source.mkdir()
    dest.mkdir()
    return {"source": source, "dest": dest, "root": tmp_path}


@pytest.fixture
def populated_dirs(tmp_dirs):
    """Source tree with files, nested folders and an empty folder."""
    source = tmp_dirs["source"]
    write_file(source / "file1.txt", b"hello world", BASE_MTIME_MS)
    write_file(source / "data.bin", b"\x00\x01\x02\x03" * 100, BASE_MTIME_MS)
    write_file(source / "subdir" / "nested.txt", b"nested content", BASE_MTIME_MS)
    write_file(source / "subdir" / "deeper" / "leaf.txt", b"leaf", BASE_MTIME_MS)
    (source / "empty").mkdir()
    return tmp_dirs
