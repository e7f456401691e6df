"""Byte sources: the minimal read/close surface the header extractor needs.

A :class:`ByteSource` is anything with ``read(size) -> bytes`` (returning
``b""`` at end of stream) and ``close()``.  Binary file objects satisfy it
directly, so do ``io.BytesIO`` buffers in tests.

``file_source_factory(directory)`` returns a :data:`SourceFactory` that opens
``directory / name`` in unbuffered binary mode.  ``OSError`` on open is
re-raised as :class:`~increments.errors.SourceReadError`.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import BinaryIO, Protocol

from increments.errors import SourceReadError


class ByteSource(Protocol):
    """Sequential byte stream that can be abandoned before its end."""

    def read(self, size: int = -1, /) -> bytes: ...

    def close(self) -> None: ...


SourceFactory = Callable[[str], ByteSource]


def open_file_source(path: Path) -> BinaryIO:
    """Open *path* for unbuffered binary reading.

    ``buffering=0`` keeps Python's own read-ahead out of the picture, so the
    number of bytes pulled from the OS is exactly what the caller asks for.
    """
    try:
        return path.open("rb", buffering=0)
    except OSError as exc:
        raise SourceReadError(f"cannot open {path}: {exc.strerror or exc}") from exc


def file_source_factory(directory: Path) -> SourceFactory:
    """Return a factory opening files by name inside *directory*."""

    def _open(name: str) -> ByteSource:
        return open_file_source(directory / name)

    return _open
