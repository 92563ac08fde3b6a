"""High-level facade over loading, analysis, versioning and search.

One :class:`RulebookManager` owns one :class:`RuleStore` for a base path.
Derived views (dependency graph, search index) are rebuilt from the store;
the search index is cached until the store revision changes.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..config import ConfigManager, ScopeConfig
from ..exceptions import ValidationError
from . import graph as graph_ops
from .conditions import get_applicable_rules
from .graph import ConflictReport, DependencyGraph, DependencyValidation
from .loader import LoadResult, RuleLoader
from .merge import MergeConflict
from .models import ChangelogEntry, Rule
from .repository import FileRuleRepository, RuleRepository, build_rule_index
from .search import RuleSearch, SearchResult, SimilarRule
from .store import RuleStore
from .validation import validate_rule
from .versioning import RuleDiff, RuleVersioning

if TYPE_CHECKING:
    from ..adapters import AdapterRegistry
    from ..sync import SyncManager

logger = logging.getLogger(__name__)

SYNC_STATE_FILE = ".sync-state.yaml"


class RulebookManager:
    """Entry point for library and CLI use.

    Example:
        manager = RulebookManager(Path("."))
        manager.load_rules_for_path()
        for rule in manager.sort_by_dependencies():
            print(rule.id)
    """

    def __init__(
        self,
        base_path: Optional[Path] = None,
        *,
        repository: Optional[RuleRepository] = None,
        config_manager: Optional[ConfigManager] = None,
    ) -> None:
        self.base_path = Path(base_path or Path.cwd()).expanduser().resolve()
        self.config_manager = config_manager or ConfigManager(self.base_path)
        self.loader = RuleLoader(self.config_manager)
        self.store = RuleStore()
        self.config: Dict[str, Any] = self.config_manager.load_config()

        paths = self.config["paths"]
        self.repository: RuleRepository = repository or FileRuleRepository(
            self.base_path,
            rules_dir_name=str(paths["rulesDir"]),
            index_file=str(paths["indexFile"]),
            history_dir=str(paths["historyDir"]),
            history_limit=self.settings.history_limit,
        )
        self.versioning = RuleVersioning(self.store, self.repository)
        self.last_load: Optional[LoadResult] = None
        self._pending: Dict[str, MergeConflict] = {}
        self._search: Optional[RuleSearch] = None
        self._search_revision = -1

    @property
    def settings(self) -> ScopeConfig:
        return ScopeConfig.from_dict(self.config)

    @property
    def rules_dir(self) -> Path:
        return self.config_manager.rules_dir(self.base_path)

    # ---------- loading ----------

    def load_rules_for_path(self, target: Optional[Path] = None) -> LoadResult:
        """Load and merge every scope for ``target`` into the store."""
        result = self.loader.load(Path(target) if target else self.base_path)
        self.store.replace_all(result.rules)
        self.config = result.config
        self._pending = {c.rule_id: c for c in result.conflicts if c.pending}
        self.last_load = result
        return result

    def pending_conflicts(self) -> List[MergeConflict]:
        return list(self._pending.values())

    def resolve_merge_conflict(self, rule_id: str, source: str) -> Rule:
        """Install the candidate of a pending manual conflict that came from ``source``.

        Raises:
            ValidationError: No pending conflict for ``rule_id`` or no
                candidate from ``source``.
        """
        conflict = self._pending.get(rule_id)
        if conflict is None:
            raise ValidationError(f"No pending merge conflict for rule '{rule_id}'", field="id", rule_id=rule_id)
        for candidate in conflict.candidates:
            if candidate.source == source or Path(candidate.source) == Path(source):
                self.store.put(candidate.rule)
                conflict.winner = candidate.source
                del self._pending[rule_id]
                logger.info("Resolved merge conflict for %s with %s", rule_id, candidate.source)
                return candidate.rule
        raise ValidationError.invalid_value("source", conflict.sources, source, rule_id=rule_id)

    # ---------- queries ----------

    def get_rule(self, rule_id: str) -> Optional[Rule]:
        return self.store.get(rule_id)

    def get_all_rules(self) -> List[Rule]:
        return self.store.all()

    def get_rules_by_category(self, category: str) -> List[Rule]:
        return self.store.by_category(category)

    def get_applicable_rules(self, **context: Any) -> List[Rule]:
        """Rules whose conditions match ``file_path``/``branch``/``environment``/``now``."""
        return get_applicable_rules(self.store, **context)

    def _require(self, rule_id: str) -> Rule:
        rule = self.store.get(rule_id)
        if rule is None:
            raise ValidationError.invalid_value("id", "a loaded rule id", rule_id, rule_id=rule_id)
        return rule

    # ---------- dependencies ----------

    def build_dependency_graph(self) -> DependencyGraph:
        return graph_ops.build_dependency_graph(self.store.all())

    def detect_circular_dependencies(self) -> List[List[str]]:
        return self.build_dependency_graph().cycles

    def sort_by_dependencies(self) -> List[Rule]:
        return graph_ops.sort_by_dependencies(self.store.all())

    def check_conflicts(self) -> ConflictReport:
        return graph_ops.check_conflicts(self.store.all())

    def validate_dependencies(self, rule_id: str) -> DependencyValidation:
        return graph_ops.validate_dependencies(self._require(rule_id), self.store.all())

    def validate_all_dependencies(self) -> DependencyValidation:
        return graph_ops.validate_all_dependencies(self.store.all())

    # ---------- persistence & versioning ----------

    def save_rule(self, rule: Rule) -> Path:
        """Validate and persist ``rule``, then install it in the store.

        Raises:
            ValidationError: Schema violation, or the id still has a pending
                manual merge conflict.
        """
        if rule.id in self._pending:
            raise ValidationError(
                f"Rule '{rule.id}' has an unresolved merge conflict",
                field="id",
                rule_id=rule.id,
            )
        problems = validate_rule(rule.to_dict(), file=rule.source)
        if problems:
            raise problems[0]
        path = self.repository.save_rule(rule)
        stored = rule.copy()
        stored.source = str(path)
        self.store.put(stored)
        return path

    def update_rule(
        self,
        rule_id: str,
        updates: Dict[str, Any],
        *,
        changes: str,
        author: str,
        bump: str = "patch",
    ) -> Rule:
        """Apply ``updates`` as a new version and persist it.

        History is written only once the rule file has been validated and saved.
        """
        current = self._require(rule_id)
        updated = self.versioning.create_version(current, changes, author, bump=bump, updates=updates, persist=False)
        self.save_rule(updated)
        self.versioning.persist_history(updated)
        return self.store.get(rule_id) or updated

    def rollback_rule(self, rule_id: str, version: str, author: str = "system") -> Rule:
        restored = self.versioning.rollback(rule_id, version, author=author, persist=False)
        self.save_rule(restored)
        self.versioning.persist_history(restored)
        return self.store.get(rule_id) or restored

    def diff_versions(self, rule_id: str, from_version: str, to_version: str) -> RuleDiff:
        return self.versioning.diff(rule_id, from_version, to_version)

    def get_history(self, rule_id: str) -> List[ChangelogEntry]:
        return self.versioning.get_history(rule_id)

    def update_index(self, scope: Optional[str] = None) -> Path:
        """Rebuild ``rules/index.yaml`` from the store."""
        files: Dict[str, str] = {}
        for rule in self.store:
            if rule.source:
                try:
                    files[rule.id] = Path(rule.source).resolve().relative_to(self.rules_dir.resolve()).as_posix()
                except ValueError:
                    continue
        index = build_rule_index(self.store.all(), scope or self.settings.scope, files=files)
        return self.repository.save_index(index)

    # ---------- search ----------

    @property
    def search_index(self) -> RuleSearch:
        if self._search is None or self._search_revision != self.store.revision:
            self._search = RuleSearch(self.store.all(), self.settings.search_weights)
            self._search_revision = self.store.revision
        return self._search

    def search(self, **criteria: Any) -> List[SearchResult]:
        return self.search_index.search(**criteria)

    def find_similar(self, rule_id: str, threshold: Optional[float] = None) -> List[SimilarRule]:
        limit = self.settings.similarity_threshold if threshold is None else threshold
        return self.search_index.find_similar(self._require(rule_id), limit)

    # ---------- sync ----------

    def sync_manager(self, registry: Optional["AdapterRegistry"] = None) -> "SyncManager":
        """Sync manager over this store, persisting through the repository."""
        from ..sync import SyncManager

        return SyncManager(
            self.store,
            self.base_path,
            registry=registry,
            versioning=self.versioning,
            repository=self.repository,
            state_path=self.rules_dir / SYNC_STATE_FILE,
            compare_fields=self.settings.compare_fields or None,
            blocked_ids=lambda: set(self._pending),
        )


__all__ = ["RulebookManager", "SYNC_STATE_FILE"]
