"""
Crash-safe file writes for state that is replaced whole.

Writes go to a .tmp sibling, are fsynced, then renamed over the target, so a
reader sees either the previous blob or the new one, never half of either.

Usage:
    from security.file_io import atomic_text_write

    atomic_text_write(path, blob)
"""

import logging
import os
from pathlib import Path

logger = logging.getLogger("wish_granter.security.file_io")


def atomic_text_write(path: Path, text: str, *, mode: int = 0o600) -> None:
    """
    Write text to a file atomically.

    On any OS-level failure the original file is left intact and the
    exception propagates to the caller.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(".tmp")

    fd = os.open(str(tmp_path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    try:
        os.write(fd, text.encode("utf-8"))
        os.fsync(fd)
    finally:
        os.close(fd)

    os.replace(str(tmp_path), str(path))


def remove_file(path: Path) -> bool:
    """Delete a file. Returns False if it didn't exist."""
    try:
        Path(path).unlink()
    except FileNotFoundError:
        return False
    logger.debug(f"Removed {path}")
    return True
