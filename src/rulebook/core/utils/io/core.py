"""Crash-safe text I/O.

Rule files, history snapshots and platform outputs are all written through
``atomic_write``: content lands in a sibling temp file which is fsync'd and
then renamed over the target, so readers never observe a partial file.
"""
from __future__ import annotations

import fcntl
import hashlib
import os
import tempfile
from pathlib import Path
from typing import Callable, Optional, TextIO, Union

PathLike = Union[str, Path]


def ensure_directory(path: PathLike) -> Path:
    """Create ``path`` (and parents) if needed and return it.

    Raises:
        NotADirectoryError: If ``path`` exists and is a file.
    """
    directory = Path(path)
    if directory.exists() and not directory.is_dir():
        raise NotADirectoryError(f"Path exists but is not a directory: {directory}")
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def atomic_write(path: PathLike, write_fn: Callable[[TextIO], None], *, encoding: str = "utf-8") -> None:
    """Write ``path`` atomically via temp file, fsync and ``os.replace``.

    Args:
        path: Target file path; parent directories are created.
        write_fn: Callable receiving the open temp file.
        encoding: Text encoding for the temp file.
    """
    target = Path(path)
    ensure_directory(target.parent)

    tmp_path: Optional[Path] = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding=encoding,
            dir=str(target.parent),
            prefix=f".{target.name}.",
            delete=False,
        ) as handle:
            tmp_path = Path(handle.name)
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            write_fn(handle)
            handle.flush()
            os.fsync(handle.fileno())
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        os.replace(tmp_path, target)
        tmp_path = None
    finally:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()


def read_text(path: PathLike) -> str:
    """Read a UTF-8 text file.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Text file not found: {source}")
    return source.read_text(encoding="utf-8")


def write_text(path: PathLike, content: str) -> None:
    """Atomically write UTF-8 text to ``path``."""
    atomic_write(path, lambda handle: handle.write(content))


def content_hash(text: str) -> str:
    """Stable fingerprint of file content (sha256 hex)."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


__all__ = [
    "PathLike",
    "ensure_directory",
    "atomic_write",
    "read_text",
    "write_text",
    "content_hash",
]
