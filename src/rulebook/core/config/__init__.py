"""Scope configuration: bundled defaults, per-scope files, env overrides."""
from __future__ import annotations

from .manager import ConfigManager, ScopeConfig

__all__ = ["ConfigManager", "ScopeConfig"]
