"""
Rulebook data resource helpers.

Provides access to bundled configuration defaults and schemas using
importlib.resources.
"""

from __future__ import annotations

import copy
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml


def get_data_path(subpackage: str, filename: str = "") -> Path:
    """
    Get absolute path to a data file or directory.

    Args:
        subpackage: Name of the data subpackage (e.g., "config", "schemas")
        filename: Optional filename within the subpackage

    Returns:
        Absolute path to the file or directory

    Example:
        >>> get_data_path("config", "defaults.yaml")
        PosixPath('/path/to/rulebook/data/config/defaults.yaml')
    """
    pkg = resources.files("rulebook.data")
    base = Path(str(pkg / subpackage))
    return base / filename if filename else base


@lru_cache(maxsize=32)
def _read_yaml_cached(subpackage: str, filename: str) -> Any:
    path = get_data_path(subpackage, filename)
    return yaml.safe_load(path.read_text(encoding="utf-8"))


def read_yaml(subpackage: str, filename: str) -> Any:
    """
    Read and parse a bundled YAML file.

    The parsed document is cached; callers receive a deep copy so they may
    mutate it freely.
    """
    return copy.deepcopy(_read_yaml_cached(subpackage, filename))


__all__ = [
    "get_data_path",
    "read_yaml",
]
