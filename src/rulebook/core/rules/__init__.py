"""Rule model, loading, analysis, versioning and search."""
from __future__ import annotations

from .graph import (
    ConflictReport,
    DependencyGraph,
    DependencyValidation,
    build_dependency_graph,
    check_conflicts,
    find_cycles,
    sort_by_dependencies,
    topological_order,
    validate_all_dependencies,
    validate_dependencies,
)
from .loader import LoadResult, RuleLoader
from .manager import RulebookManager
from .merge import MergeConflict, MergeResult, ScopedRule, merge_scoped_rules
from .models import PartialRule, Rule, RuleDependencies, RuleExamples, RuleMetadata
from .search import RuleSearch
from .store import RuleStore
from .versioning import RuleVersioning, compare_versions, increment_version

__all__ = [
    "ConflictReport",
    "DependencyGraph",
    "DependencyValidation",
    "build_dependency_graph",
    "check_conflicts",
    "find_cycles",
    "sort_by_dependencies",
    "topological_order",
    "validate_all_dependencies",
    "validate_dependencies",
    "LoadResult",
    "RuleLoader",
    "RulebookManager",
    "MergeConflict",
    "MergeResult",
    "ScopedRule",
    "merge_scoped_rules",
    "PartialRule",
    "Rule",
    "RuleDependencies",
    "RuleExamples",
    "RuleMetadata",
    "RuleSearch",
    "RuleStore",
    "RuleVersioning",
    "compare_versions",
    "increment_version",
]
