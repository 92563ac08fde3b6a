"""Shared helpers for command modules."""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Tuple

from rulebook.core.rules.loader import LoadResult
from rulebook.core.rules.manager import RulebookManager

from ._output import OutputFormatter


def get_root(args: argparse.Namespace) -> Path:
    root = getattr(args, "root", None)
    return Path(root).expanduser().resolve() if root else Path.cwd()


def load_manager(args: argparse.Namespace, formatter: OutputFormatter) -> Tuple[RulebookManager, LoadResult]:
    """Build a manager for ``--root`` and load its rules.

    Per-file load errors are reported as warnings; they never abort a command.
    """
    manager = RulebookManager(get_root(args))
    result = manager.load_rules_for_path()
    if result.errors and not formatter.json_mode:
        formatter.warn(f"{len(result.errors)} rule file problem(s); run `rulebook rules validate` for details")
    return manager, result


__all__ = ["get_root", "load_manager"]
