"""Ordered directory listings and root checks.

Both sides of a comparison must be listed in the same strict total order
or the merge-join in :mod:`tree_sync.diff` is wrong.  Entries are sorted
by name using plain string ordering.
"""

from __future__ import annotations

import os
from pathlib import Path

from tree_sync.errors import ListingError


def list_entries(directory: Path) -> list[os.DirEntry]:
    """Return the entries of *directory* sorted by name."""
    try:
        with os.scandir(directory) as it:
            entries = list(it)
    except OSError as exc:
        raise ListingError(directory, exc) from exc
    entries.sort(key=lambda entry: entry.name)
    return entries


def list_names(directory: Path) -> list[str]:
    """Return the entry names of *directory* in sorted order."""
    return [entry.name for entry in list_entries(directory)]


def is_real_dir(entry: os.DirEntry) -> bool:
    """True for a directory that is not reached through a symlink."""
    try:
        return entry.is_dir(follow_symlinks=False)
    except OSError:
        return False


def check_roots(source_root: Path, dest_root: Path) -> str | None:
    """Return why the two roots cannot be synchronized, or ``None``."""
    if not os.path.isdir(source_root):
        return f"Source directory does not exist: {source_root}"
    source = Path(source_root).resolve()
    dest = Path(dest_root).resolve()
    if source == dest:
        return f"Source and destination are the same directory: {source}"
    if source in dest.parents:
        return f"Destination {dest} is inside source {source}"
    if dest in source.parents:
        return f"Source {source} is inside destination {dest}"
    return None
