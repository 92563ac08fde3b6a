"""Name to adapter-factory mapping.

The registry is an explicit value handed to whoever needs adapters; there
is no process-wide instance.
"""
from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..exceptions import SyncError
from .base import PlatformAdapter
from .claude import ClaudeAdapter
from .cursor import CursorAdapter

AdapterFactory = Callable[[Path], PlatformAdapter]


class AdapterRegistry:
    def __init__(self, factories: Optional[Dict[str, AdapterFactory]] = None) -> None:
        self._factories: Dict[str, AdapterFactory] = dict(factories or {})

    @classmethod
    def with_defaults(cls) -> "AdapterRegistry":
        """Registry preloaded with the built-in cursor and claude adapters."""
        return cls({CursorAdapter.name: CursorAdapter, ClaudeAdapter.name: ClaudeAdapter})

    def register(self, name: str, factory: AdapterFactory) -> None:
        self._factories[name] = factory

    def names(self) -> List[str]:
        return sorted(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def create(self, name: str, project_root: Path) -> PlatformAdapter:
        """Instantiate the adapter for ``name``.

        Raises:
            SyncError: When no adapter is registered under ``name``.
        """
        factory = self._factories.get(name)
        if factory is None:
            raise SyncError.unknown_platform(name)
        return factory(project_root)


__all__ = ["AdapterFactory", "AdapterRegistry"]
