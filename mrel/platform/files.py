"""Filesystem helpers for in-place manifest edits.

Manifests are read and written without newline translation so a file with
CRLF line endings comes back byte-for-byte the same apart from the edited
field.
"""

from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path

__all__ = ["atomic_write_text", "read_text_exact"]


def read_text_exact(path: Path, *, encoding: str = "utf-8") -> str:
    """Read text without translating line endings."""
    with path.open("r", encoding=encoding, newline="") as handle:
        return handle.read()


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write text atomically (temp file in the same directory + replace).

    The permission bits of an existing file are carried over to the new one; a
    new file gets ``0o666`` minus the umask, like a plain ``open(path, "w")``.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    if path.exists():
        mode = stat.S_IMODE(path.stat().st_mode)
    else:
        mode = 0o666 & ~_current_umask()

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=str(path.parent),
    )
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def _current_umask() -> int:
    # os.umask can only be read by setting it.
    mask = os.umask(0)
    os.umask(mask)
    return mask
