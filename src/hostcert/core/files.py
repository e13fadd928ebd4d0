"""Atomic, permission-controlled file writes."""

from __future__ import annotations

import contextlib
import os
import stat
import tempfile
from pathlib import Path

KEY_FILE_MODE = 0o600
PUBLIC_FILE_MODE = 0o644


def write_file_atomic(path: Path, data: bytes, mode: int) -> None:
    """Write *data* to *path* through a temp file in the same directory.

    The temp file gets *mode* before any data is written, so a key file
    is never readable by group or others, whatever the process umask.
    The target only appears once the write is complete; on failure the
    temp file is removed and the :class:`OSError` propagates.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=path.parent,
    )
    try:
        with os.fdopen(fd, "wb") as f:
            os.fchmod(f.fileno(), mode)
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


def is_private(path: Path) -> bool:
    """Return True if *path* grants no group or other permissions."""
    mode = os.stat(path).st_mode
    return not mode & (stat.S_IRWXG | stat.S_IRWXO)
