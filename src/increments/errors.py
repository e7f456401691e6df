"""Exception hierarchy for header extraction and chain validation.

    IncrementsError
    ├── SourceReadError        — a byte source could not be opened or read
    ├── MalformedHeaderError   — the two header lines are missing or unparseable
    └── ChainValidationError   — a run halted on one file (wraps the cause)

A token mismatch between two files is *not* an error.  It is an ordinary
rejection and never raises.
"""

from __future__ import annotations

from typing import Literal

HaltKind = Literal["source", "header", "chain_break", "cancelled"]


class IncrementsError(Exception):
    """Base class for every error raised by the increments package."""


class SourceReadError(IncrementsError):
    """Raised when a byte source cannot be opened or fails mid-read.

    The underlying ``OSError`` is attached as ``__cause__``.
    """


class MalformedHeaderError(IncrementsError):
    """Raised when a file does not start with two parseable header lines."""


class ChainValidationError(IncrementsError):
    """A validation run stopped on *filename*.

    Attributes:
        filename: Name of the file the run halted on.
        kind:     ``"source"`` (open/read failure), ``"header"`` (malformed
                  header), ``"chain_break"`` (mismatch under the strict
                  policy) or ``"cancelled"``.
        reason:   Human-readable description, taken from the cause when
                  there is one.
        cause:    The underlying exception, also set as ``__cause__`` so
                  re-raising keeps the chain.
    """

    def __init__(
        self,
        filename: str,
        kind: HaltKind,
        reason: str,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(f"{filename}: {reason}")
        self.filename = filename
        self.kind = kind
        self.reason = reason
        self.cause = cause
        self.__cause__ = cause
