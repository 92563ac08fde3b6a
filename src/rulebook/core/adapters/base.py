"""Base class for platform adapters.

An adapter owns one platform surface (a file inside the project) and knows
how to render rules into that platform's format:

- ``read()`` returns the raw file text ("" when absent)
- ``format(rules)`` renders rules to text
- ``write(text)`` stores text atomically
- ``sync(rules)`` is format + write, reported as an :class:`AdapterSyncResult`

Parsing text back into rules lives in :mod:`rulebook.core.sync.parsers`.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from ..exceptions import SyncError
from ..rules.models import Rule
from ..utils.io import read_text, write_text

logger = logging.getLogger(__name__)


@dataclass
class AdapterSyncResult:
    success: bool
    platform: str
    rules_count: int = 0
    output_path: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "success": self.success,
            "platform": self.platform,
            "rulesCount": self.rules_count,
            "outputPath": self.output_path,
        }
        if self.error:
            data["error"] = self.error
        return data


class PlatformAdapter(ABC):
    """Unified base for platform adapters.

    Subclasses must implement:
    - ``name``: unique platform identifier
    - ``relative_path``: output file, relative to the project root
    - ``format(rules)``: render rules to the platform text

    Example:
        class MyAdapter(PlatformAdapter):
            name = "mine"
            relative_path = ".mine/rules.md"

            def format(self, rules):
                return "\\n".join(rule.name for rule in rules)
    """

    name: str = ""
    relative_path: str = ""

    def __init__(self, project_root: Optional[Path] = None) -> None:
        self.project_root = Path(project_root or Path.cwd()).expanduser().resolve()

    @property
    def output_path(self) -> Path:
        return self.project_root / self.relative_path

    # ---------- I/O ----------

    def read(self) -> str:
        """Current platform text, or an empty string when nothing was written yet."""
        path = self.output_path
        if not path.exists():
            return ""
        try:
            return read_text(path)
        except (OSError, UnicodeDecodeError) as exc:
            raise SyncError.parse_error(self.name, str(path), str(exc)) from exc

    def write(self, content: str) -> Path:
        path = self.output_path
        try:
            write_text(path, content)
        except OSError as exc:
            raise SyncError.write_error(self.name, str(path), str(exc)) from exc
        logger.debug("Wrote %s (%d bytes)", path, len(content))
        return path

    @abstractmethod
    def format(self, rules: Sequence[Rule]) -> str:
        """Render ``rules`` as the platform text."""

    # ---------- sync ----------

    def render(self, rules: Sequence[Rule]) -> str:
        """Text that :meth:`sync` would write (hook for adapters that merge)."""
        return self.format(rules)

    def sync(self, rules: Sequence[Rule]) -> AdapterSyncResult:
        """Format and write ``rules``; I/O failures are reported, not raised."""
        try:
            path = self.write(self.render(rules))
        except SyncError as exc:
            logger.error("Sync to %s failed: %s", self.name, exc)
            return AdapterSyncResult(False, self.name, 0, str(self.output_path), str(exc))
        logger.info("Synced %d rules to %s", len(rules), path)
        return AdapterSyncResult(True, self.name, len(rules), str(path))


__all__ = ["AdapterSyncResult", "PlatformAdapter"]
