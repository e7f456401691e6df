"""Increment file enumeration.

``list_increment_files(directory)`` returns the names of the regular files
directly inside *directory*, sorted lexicographically.  Increments are
named so that this order is the order they must be applied in
(``20160129_192339.sql``, ``20160130_090000.sql``, …).

Subdirectories are not descended into.  A missing directory yields an
empty list so a fresh checkout with no increments validates cleanly.
"""

from __future__ import annotations

from pathlib import Path


def list_increment_files(directory: Path) -> list[str]:
    """Return sorted filenames of the regular files in *directory*."""
    if not directory.is_dir():
        return []
    return sorted(p.name for p in directory.iterdir() if p.is_file())
