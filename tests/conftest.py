"""Shared pytest helpers and fixtures for the increments test suite.

make_header(current, previous)     — encoded two-line header for an increment
write_increment(dir, name, …)      — write an increment file with an optional body
TrackingSource                     — in-memory ByteSource that records reads/close
increments_dir                     — fixture: empty increments directory under tmp_path
"""

from __future__ import annotations

from pathlib import Path

import pytest

CURRENT_PREFIX = "-- Increment timestamp:"
PREVIOUS_PREFIX = "-- Previous timestamp:"


def make_header(current: str, previous: str, *, newline: str = "\n") -> bytes:
    """Return the two header lines of an increment, terminated by *newline*."""
    return (
        f"{CURRENT_PREFIX} {current}{newline}{PREVIOUS_PREFIX} {previous}{newline}"
    ).encode("utf-8")


def write_increment(
    directory: Path,
    name: str,
    current: str,
    previous: str,
    *,
    body: str = "UPDATE accounts SET active = 1;\n",
    newline: str = "\n",
) -> Path:
    """Write an increment file and return its path."""
    path = directory / name
    path.write_bytes(make_header(current, previous, newline=newline) + body.encode("utf-8"))
    return path


class TrackingSource:
    """In-memory byte source: *head* followed by *filler* virtual ``x`` bytes.

    The filler is generated per read, so a source can pretend to be
    hundreds of megabytes without allocating them.

    Args:
        budget:  Raise AssertionError if a read starts at or past this offset.
        fail_at: Raise OSError if a read starts at or past this offset.
    """

    def __init__(
        self,
        head: bytes,
        filler: int = 0,
        *,
        budget: int | None = None,
        fail_at: int | None = None,
    ) -> None:
        self._head = head
        self._size = len(head) + filler
        self.budget = budget
        self.fail_at = fail_at
        self.position = 0
        self.read_calls = 0
        self.closed = False

    def read(self, size: int = -1, /) -> bytes:
        if self.closed:
            raise ValueError("read from closed source")
        if self.fail_at is not None and self.position >= self.fail_at:
            raise OSError(5, "Input/output error")
        if self.budget is not None and self.position >= self.budget:
            raise AssertionError(f"read at offset {self.position} is past budget {self.budget}")
        remaining = self._size - self.position
        n = remaining if size < 0 else min(size, remaining)
        start, end = self.position, self.position + n
        chunk = self._head[start:end]
        chunk += b"x" * (n - len(chunk))
        self.position = end
        self.read_calls += 1
        return chunk

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def increments_dir(tmp_path: Path) -> Path:
    """An empty increments directory."""
    d = tmp_path / "incrementals"
    d.mkdir()
    return d
