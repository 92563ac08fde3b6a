"""Shared helpers used across the rulebook engine."""
from __future__ import annotations

from .merge import deep_merge, merge_arrays, union_lists
from .profiling import Profiler, enable_profiler, span
from .time import utc_date, utc_timestamp

__all__ = [
    "deep_merge",
    "merge_arrays",
    "union_lists",
    "Profiler",
    "enable_profiler",
    "span",
    "utc_date",
    "utc_timestamp",
]
