"""Baseline token store: the chain position last applied downstream.

The baseline is kept as a single line of text in
``<state_dir>/baseline`` so operators can read or hand-edit it.

``read_baseline(path)`` returns the stored token, or ``None`` when the file
is missing or blank.  ``write_baseline(path, token)`` replaces the file
atomically (temp file + ``os.replace``) so a crash mid-write never leaves a
truncated token behind.
"""

from __future__ import annotations

import os
from pathlib import Path

BASELINE_FILE = "baseline"


def baseline_path(state_dir: Path) -> Path:
    return state_dir / BASELINE_FILE


def read_baseline(path: Path) -> str | None:
    """Return the token stored at *path*, or None if missing or blank."""
    try:
        token = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return None
    return token or None


def write_baseline(path: Path, token: str) -> None:
    """Atomically write *token* to *path*, creating parent directories."""
    token = token.strip()
    if not token:
        raise ValueError("baseline token must not be empty")
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.{os.getpid()}.tmp")
    try:
        tmp.write_text(token + "\n", encoding="utf-8")
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def resolve_baseline(state_file: Path, fallback: str | None) -> str | None:
    """Saved baseline if there is one, else *fallback* (``chain.baseline``)."""
    saved = read_baseline(state_file)
    return saved if saved is not None else fallback
