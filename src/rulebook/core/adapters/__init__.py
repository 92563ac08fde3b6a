"""Platform adapters (Cursor, Claude) and their registry."""
from __future__ import annotations

from .base import AdapterSyncResult, PlatformAdapter
from .claude import ClaudeAdapter
from .cursor import CursorAdapter
from .registry import AdapterRegistry

__all__ = [
    "AdapterSyncResult",
    "PlatformAdapter",
    "CursorAdapter",
    "ClaudeAdapter",
    "AdapterRegistry",
]
