"""File I/O helpers: atomic writes and YAML documents."""
from __future__ import annotations

from .core import (
    PathLike,
    atomic_write,
    content_hash,
    ensure_directory,
    read_text,
    write_text,
)
from .yaml import (
    dump_yaml_string,
    iter_yaml_files,
    load_yaml_document,
    read_yaml,
    write_yaml,
)

__all__ = [
    "PathLike",
    "atomic_write",
    "content_hash",
    "ensure_directory",
    "read_text",
    "write_text",
    "dump_yaml_string",
    "iter_yaml_files",
    "load_yaml_document",
    "read_yaml",
    "write_yaml",
]
