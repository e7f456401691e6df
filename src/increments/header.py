"""Two-line header extraction over an incremental byte stream.

``extract_header(source)`` is the single entry point.  It pulls fixed-size
chunks from a :class:`~increments.source.ByteSource`, feeds them to a
:class:`LineScanner`, and stops reading the moment the second line
terminator has been seen.  The source is closed before the function
returns, on every path, so a multi-hundred-megabyte increment costs one or
two small reads and one file descriptor for the duration of the call.

Header layout (line terminator ``\\n`` or ``\\r\\n``)::

    -- Increment timestamp: 20160129_192339
    -- Previous timestamp: 20160128_192500
    ...rest of the file, never read...

The token is the text after the last space on the line, whitespace-trimmed.
"""

from __future__ import annotations

import contextlib
from dataclasses import dataclass

from increments.errors import MalformedHeaderError, SourceReadError
from increments.source import ByteSource

HEADER_LINES = 2
DEFAULT_CHUNK_SIZE = 4096
# Upper bound on a single header line; keeps the scanner's buffer bounded
# even when a file has no line terminator at all.
DEFAULT_MAX_LINE_BYTES = 64 * 1024


@dataclass(frozen=True)
class HeaderFormat:
    """Literal prefixes expected on the two header lines.

    An empty prefix disables the prefix check for that line; only the
    trailing token is required then.
    """

    current_prefix: str = "-- Increment timestamp:"
    previous_prefix: str = "-- Previous timestamp:"


@dataclass(frozen=True)
class HeaderPair:
    """Tokens read from the first two lines of an increment file."""

    current_token: str  # line 1
    previous_token: str  # line 2


class LineScanner:
    """Incremental line splitter that stops after *limit* lines.

    Feed it chunks as they arrive; each call to :meth:`feed` returns the
    lines completed by that chunk, terminators stripped.  Once *limit* lines
    are complete the scanner is :attr:`done` and ignores further input;
    whatever followed the last terminator is dropped, never buffered.

    Only the current partial line is held in memory, and it may not grow
    past *max_line_bytes*.
    """

    def __init__(
        self, limit: int = HEADER_LINES, max_line_bytes: int = DEFAULT_MAX_LINE_BYTES
    ) -> None:
        self._limit = limit
        self._max_line_bytes = max_line_bytes
        self._partial = bytearray()
        self._lines: list[bytes] = []

    @property
    def done(self) -> bool:
        return len(self._lines) >= self._limit

    @property
    def lines(self) -> list[bytes]:
        return list(self._lines)

    @property
    def buffered(self) -> int:
        """Bytes currently held for the unfinished line."""
        return len(self._partial)

    def feed(self, chunk: bytes) -> list[bytes]:
        completed: list[bytes] = []
        start = 0
        while not self.done:
            end = chunk.find(b"\n", start)
            stop = len(chunk) if end == -1 else end
            if len(self._partial) + (stop - start) > self._max_line_bytes:
                raise MalformedHeaderError(
                    f"header line {len(self._lines) + 1} exceeds {self._max_line_bytes} bytes"
                )
            self._partial += chunk[start:stop]
            if end == -1:
                break
            completed.append(self._complete())
            start = end + 1
        return completed

    def finish(self) -> list[bytes]:
        """Signal end of stream; an unterminated trailing line still counts."""
        if self.done or not self._partial:
            return []
        return [self._complete()]

    def _complete(self) -> bytes:
        line = bytes(self._partial)
        self._partial.clear()
        if line.endswith(b"\r"):
            line = line[:-1]
        self._lines.append(line)
        return line


def parse_token(line: str, prefix: str = "") -> str:
    """Return the token after the last space of *line*.

    Raises :class:`MalformedHeaderError` when *line* does not start with a
    non-empty *prefix*, or has no space-separated token after it.
    """
    text = line.strip()
    if prefix and not text.startswith(prefix):
        raise MalformedHeaderError(f"expected {prefix!r}, got {text[:80]!r}")
    head, sep, token = text.rpartition(" ")
    # A head shorter than the prefix means the "token" is part of the prefix.
    if not sep or len(head) < len(prefix):
        raise MalformedHeaderError(f"no token found in header line {text[:80]!r}")
    return token


def extract_header(
    source: ByteSource,
    *,
    header_format: HeaderFormat | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
) -> HeaderPair:
    """Read the two header lines from *source*, then close it.

    Args:
        source:         Open byte source; always closed on return.
        header_format:  Expected line prefixes.  Defaults to
                        :class:`HeaderFormat` ``()``.
        chunk_size:     Bytes requested per ``read`` call.
        max_line_bytes: Longest acceptable header line.

    Returns:
        :class:`HeaderPair` with the current (line 1) and previous (line 2)
        tokens.

    Raises:
        MalformedHeaderError: fewer than two lines, an unparseable line, a
            line longer than *max_line_bytes* or one that is not UTF-8.
        SourceReadError: the source failed before two lines were read, or
            could not be closed.
    """
    fmt = header_format or HeaderFormat()
    scanner = LineScanner(HEADER_LINES, max_line_bytes)
    try:
        while not scanner.done:
            try:
                chunk = source.read(chunk_size)
            except OSError as exc:
                raise SourceReadError(f"read failed: {exc}") from exc
            if not chunk:
                scanner.finish()
                break
            scanner.feed(chunk)
    except BaseException:
        # The error already in flight outranks a failing close.
        with contextlib.suppress(OSError):
            source.close()
        raise
    try:
        source.close()
    except OSError as exc:
        raise SourceReadError(f"close failed: {exc}") from exc

    lines = scanner.lines
    if len(lines) < HEADER_LINES:
        raise MalformedHeaderError(
            f"expected {HEADER_LINES} header lines, found {len(lines)}"
        )
    return HeaderPair(
        current_token=parse_token(_decode(lines[0], 1), fmt.current_prefix),
        previous_token=parse_token(_decode(lines[1], 2), fmt.previous_prefix),
    )


def _decode(raw: bytes, line_number: int) -> str:
    # utf-8-sig drops a byte-order mark written by some editors.
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise MalformedHeaderError(f"header line {line_number} is not UTF-8: {exc.reason}") from exc
