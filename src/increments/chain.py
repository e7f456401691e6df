"""Sequential chain validation across increment files.

``validate_chain(filenames, baseline, open_source)`` is the single entry
point; :class:`ChainValidator` bundles the same call with settings.

Files are sorted by name and processed strictly one at a time, because the
token accepted from file *N* decides whether file *N+1* links.  For each
file:

1. Names matching an ignore glob (``.gitkeep`` by default) are skipped.
2. The file is opened and its two header lines read (see
   :mod:`increments.header`); the handle is closed straight after.
3. If the running ``latest_token`` is set and differs from the file's
   previous token the file is *rejected*: left out of the result, state
   untouched, and processing moves on.  Under ``policy="strict"`` a
   mismatch halts the run instead.
4. Otherwise the file is *accepted* and its current token becomes the new
   ``latest_token``.

An unreadable file or a malformed header halts the run.  Nothing after the
halting file is opened, and the result keeps everything accepted so far
together with the :class:`~increments.errors.ChainValidationError`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from fnmatch import fnmatch
from pathlib import Path
from typing import Literal

from increments.config import Settings
from increments.errors import (
    ChainValidationError,
    HaltKind,
    MalformedHeaderError,
    SourceReadError,
)
from increments.header import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_LINE_BYTES,
    HeaderFormat,
    extract_header,
)
from increments.logging import get_logger
from increments.source import SourceFactory, file_source_factory

Policy = Literal["skip", "strict"]

DEFAULT_IGNORE: tuple[str, ...] = (".gitkeep",)

_log = get_logger(__name__)


@dataclass
class ChainState:
    """Running position of one validation run; never shared between runs."""

    latest_token: str | None = None

    def links(self, previous_token: str) -> bool:
        """True if a file declaring *previous_token* extends the chain."""
        return self.latest_token is None or self.latest_token == previous_token


@dataclass(frozen=True)
class ChainResult:
    """Outcome of a validation run.

    Attributes:
        accepted:     Accepted filenames, in processing (= sort) order.
        latest_token: Current token of the last accepted file, or the
                      baseline if nothing was accepted.
        rejected:     Files whose previous token did not match.
        skipped:      Files matching an ignore pattern.
        halt:         Set when the run stopped early; ``None`` otherwise.
    """

    accepted: tuple[str, ...]
    latest_token: str | None
    rejected: tuple[str, ...] = ()
    skipped: tuple[str, ...] = ()
    halt: ChainValidationError | None = None

    @property
    def ok(self) -> bool:
        return self.halt is None

    def raise_for_halt(self) -> None:
        """Re-raise the halting error, if any."""
        if self.halt is not None:
            raise self.halt


@dataclass
class _Run:
    state: ChainState
    accepted: list[str] = field(default_factory=list)
    rejected: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    def result(self, halt: ChainValidationError | None = None) -> ChainResult:
        return ChainResult(
            accepted=tuple(self.accepted),
            latest_token=self.state.latest_token,
            rejected=tuple(self.rejected),
            skipped=tuple(self.skipped),
            halt=halt,
        )


def validate_chain(
    filenames: Iterable[str],
    baseline: str | None,
    open_source: SourceFactory,
    *,
    ignore: Sequence[str] = DEFAULT_IGNORE,
    policy: Policy = "skip",
    header_format: HeaderFormat | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
    should_cancel: Callable[[], bool] | None = None,
) -> ChainResult:
    """Validate *filenames* as a chain starting from *baseline*.

    Args:
        filenames:      Increment filenames in any order; sorted here.
        baseline:       Token the first file must point back to, or
                        ``None`` to accept whatever comes first.
        open_source:    Opens a :class:`~increments.source.ByteSource` for
                        a filename.  Expected to raise
                        :class:`SourceReadError` on failure.
        ignore:         ``fnmatch`` globs for names to skip.
        policy:         ``"skip"`` rejects a mismatching file and carries
                        on; ``"strict"`` halts the run on the first one.
        header_format:  Expected header prefixes.
        chunk_size:     Bytes per read while scanning a header.
        max_line_bytes: Longest acceptable header line.
        should_cancel:  Checked once before each file; a true result halts
                        the run with kind ``"cancelled"``.

    Returns:
        :class:`ChainResult`.  Halts are reported in ``result.halt``, not
        raised.
    """
    run = _Run(state=ChainState(latest_token=baseline))

    for name in sorted(filenames):
        if should_cancel is not None and should_cancel():
            return _halt(run, name, "cancelled", "run cancelled")

        if any(fnmatch(name, pattern) for pattern in ignore):
            run.skipped.append(name)
            _log.debug("file skipped", file=name)
            continue

        try:
            source = open_source(name)
        except (SourceReadError, OSError) as exc:
            return _halt(run, name, "source", str(exc), exc)

        try:
            header = extract_header(
                source,
                header_format=header_format,
                chunk_size=chunk_size,
                max_line_bytes=max_line_bytes,
            )
        except SourceReadError as exc:
            return _halt(run, name, "source", str(exc), exc)
        except MalformedHeaderError as exc:
            return _halt(run, name, "header", str(exc), exc)

        if not run.state.links(header.previous_token):
            if policy == "strict":
                return _halt(
                    run,
                    name,
                    "chain_break",
                    f"previous token {header.previous_token!r} "
                    f"does not follow {run.state.latest_token!r}",
                )
            run.rejected.append(name)
            _log.debug(
                "file rejected",
                file=name,
                previous=header.previous_token,
                expected=run.state.latest_token,
            )
            continue

        run.accepted.append(name)
        run.state.latest_token = header.current_token
        _log.debug("file accepted", file=name, token=header.current_token)

    _log.info(
        "chain validated",
        accepted=len(run.accepted),
        rejected=len(run.rejected),
        latest_token=run.state.latest_token,
    )
    return run.result()


def _halt(
    run: _Run,
    name: str,
    kind: HaltKind,
    reason: str,
    cause: BaseException | None = None,
) -> ChainResult:
    _log.warning(
        "chain halted",
        file=name,
        kind=kind,
        reason=reason,
        accepted=len(run.accepted),
    )
    return run.result(ChainValidationError(name, kind, reason, cause))


class ChainValidator:
    """Validator bound to one increments directory and its settings.

    Usage::

        validator = ChainValidator.from_settings(get_settings())
        result = validator.run(list_increment_files(validator.directory), baseline)
    """

    def __init__(
        self,
        directory: Path,
        *,
        open_source: SourceFactory | None = None,
        ignore: Sequence[str] = DEFAULT_IGNORE,
        policy: Policy = "skip",
        header_format: HeaderFormat | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
    ) -> None:
        self.directory = directory
        self.policy = policy
        self._open_source = open_source or file_source_factory(directory)
        self._ignore = tuple(ignore)
        self._header_format = header_format
        self._chunk_size = chunk_size
        self._max_line_bytes = max_line_bytes

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        directory: Path | None = None,
        *,
        policy: Policy | None = None,
    ) -> ChainValidator:
        """Build a validator from resolved settings.

        *directory* and *policy* override ``paths.increments_dir`` and
        ``chain.policy`` respectively.
        """
        return cls(
            directory if directory is not None else settings.paths.increments_dir,
            ignore=settings.chain.ignore,
            policy=policy or settings.chain.policy,
            header_format=HeaderFormat(
                current_prefix=settings.header.current_prefix,
                previous_prefix=settings.header.previous_prefix,
            ),
            chunk_size=settings.header.chunk_size,
            max_line_bytes=settings.header.max_line_bytes,
        )

    def run(
        self,
        filenames: Iterable[str],
        baseline: str | None,
        *,
        should_cancel: Callable[[], bool] | None = None,
    ) -> ChainResult:
        return validate_chain(
            filenames,
            baseline,
            self._open_source,
            ignore=self._ignore,
            policy=self.policy,
            header_format=self._header_format,
            chunk_size=self._chunk_size,
            max_line_bytes=self._max_line_bytes,
            should_cancel=should_cancel,
        )
