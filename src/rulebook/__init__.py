"""Rulebook: hierarchical coding-guideline management engine.

Loads rules from layered scopes (global → project → package), merges and
validates them, tracks dependency/conflict relationships, versions rules and
keeps platform rule files (Cursor, Claude) in sync with the canonical set.
"""
from __future__ import annotations

__version__ = "0.3.0"

__all__ = ["__version__"]
