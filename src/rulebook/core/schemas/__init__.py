"""JSON Schema (YAML-encoded) loading and validation."""
from __future__ import annotations

from .validation import SchemaIssue, iter_schema_issues, load_schema

__all__ = [
    "SchemaIssue",
    "iter_schema_issues",
    "load_schema",
]
