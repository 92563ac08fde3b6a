"""Synchronisation with platform rule files."""
from __future__ import annotations

from .manager import DEFAULT_COMPARE_FIELDS, SyncManager, compare_rules, format_conflicts, format_sync_diff
from .models import BidirectionalSyncResult, MergeOutcome, PullResult, SyncConflict, SyncDiffResult
from .parsers import (
    DEFAULT_PARSERS,
    complete_partial_rule,
    generate_id_from_name,
    parse_claude_content,
    parse_cursor_content,
)

__all__ = [
    "DEFAULT_COMPARE_FIELDS",
    "SyncManager",
    "compare_rules",
    "format_conflicts",
    "format_sync_diff",
    "BidirectionalSyncResult",
    "MergeOutcome",
    "PullResult",
    "SyncConflict",
    "SyncDiffResult",
    "DEFAULT_PARSERS",
    "complete_partial_rule",
    "generate_id_from_name",
    "parse_claude_content",
    "parse_cursor_content",
]
