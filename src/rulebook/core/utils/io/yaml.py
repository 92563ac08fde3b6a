"""YAML documents for rules, configs and history snapshots."""
from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional

import yaml

from ...exceptions import ParseError
from .core import PathLike, atomic_write, read_text


class _RuleDumper(yaml.SafeDumper):
    """SafeDumper that renders multiline strings as literal blocks."""


def _str_representer(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


_RuleDumper.add_representer(str, _str_representer)


def load_yaml_document(content: str, *, file: Optional[str] = None) -> Any:
    """Parse YAML text, converting syntax errors into :class:`ParseError`.

    Raises:
        ParseError: With line, column and a snippet around the problem.
    """
    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ParseError.from_yaml_error(exc, file or "<string>", content) from exc


def read_yaml(path: PathLike, default: Any = None, raise_on_error: bool = False) -> Any:
    """Read a YAML file.

    Returns ``default`` when the file is missing, empty or malformed, unless
    ``raise_on_error`` is set.

    Raises:
        FileNotFoundError: Missing file with ``raise_on_error``.
        ParseError: Malformed YAML with ``raise_on_error``.
    """
    source = Path(path)
    if not source.exists():
        if raise_on_error:
            raise FileNotFoundError(f"File not found: {source}")
        return default
    try:
        data = load_yaml_document(read_text(source), file=str(source))
    except ParseError:
        if raise_on_error:
            raise
        return default
    return default if data is None else data


def dump_yaml_string(data: Any, sort_keys: bool = False) -> str:
    return yaml.dump(
        data,
        Dumper=_RuleDumper,
        default_flow_style=False,
        sort_keys=sort_keys,
        allow_unicode=True,
    )


def write_yaml(path: PathLike, data: Any, sort_keys: bool = False) -> None:
    """Atomically write ``data`` as YAML, keeping key order by default."""
    text = dump_yaml_string(data, sort_keys=sort_keys)
    atomic_write(path, lambda handle: handle.write(text))


def iter_yaml_files(directory: PathLike, *, recursive: bool = True) -> List[Path]:
    """Return ``*.yaml``/``*.yml`` files under ``directory`` in sorted order.

    Hidden files and anything inside hidden directories (``.history``) are
    skipped. When ``x.yaml`` and ``x.yml`` coexist, only ``x.yaml`` is kept.
    """
    root = Path(directory)
    if not root.is_dir():
        return []
    walker = root.rglob if recursive else root.glob
    found = {}
    for pattern in ("*.yml", "*.yaml"):
        for path in walker(pattern):
            relative = path.relative_to(root)
            if any(part.startswith(".") for part in relative.parts):
                continue
            if not path.is_file():
                continue
            # .yaml is globbed second and wins on the same stem.
            found[path.with_suffix("")] = path
    return [found[key] for key in sorted(found)]


__all__ = [
    "load_yaml_document",
    "read_yaml",
    "dump_yaml_string",
    "write_yaml",
    "iter_yaml_files",
]
