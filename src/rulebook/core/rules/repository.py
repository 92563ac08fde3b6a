"""Persistence boundary for rules, the rule index and version history.

The engine only talks to :class:`RuleRepository`; ``FileRuleRepository`` is
the bundled filesystem implementation::

    rules/
      index.yaml
      code/naming.yaml        # rules grouped by id prefix
      .history/naming-001.yaml
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

from ..utils.io import read_yaml, write_yaml
from ..utils.time import utc_timestamp
from .models import Rule

logger = logging.getLogger(__name__)


class RuleRepository(Protocol):
    """Where rules, the index and history snapshots are persisted."""

    def save_rule(self, rule: Rule) -> Path:
        ...

    def save_index(self, index: Dict[str, Any]) -> Path:
        ...

    def load_history(self, rule_id: str) -> List[Dict[str, Any]]:
        ...

    def save_history(self, rule_id: str, entries: List[Dict[str, Any]]) -> None:
        ...


class FileRuleRepository:
    """YAML files under ``<base_path>/rules`` written atomically."""

    def __init__(
        self,
        base_path: Path,
        *,
        rules_dir_name: str = "rules",
        index_file: str = "index.yaml",
        history_dir: str = ".history",
        history_limit: int = 50,
    ) -> None:
        self.base_path = Path(base_path)
        self.rules_dir = self.base_path / rules_dir_name
        self.index_path = self.rules_dir / index_file
        self.history_dir = self.rules_dir / history_dir
        self.history_limit = history_limit

    def rule_path(self, rule: Rule) -> Path:
        """Default file for ``rule``: category parent dirs + id prefix.

        ``code/naming`` + ``naming-001`` -> ``rules/code/naming.yaml``.
        """
        parent = Path(*rule.category.split("/")[:-1]) if "/" in rule.category else Path()
        prefix = rule.id.split("-")[0] or rule.id
        return self.rules_dir / parent / f"{prefix}.yaml"

    def _target_for(self, rule: Rule) -> Path:
        if rule.source:
            source = Path(rule.source)
            try:
                source.resolve().relative_to(self.rules_dir.resolve())
            except ValueError:
                pass
            else:
                if source.suffix in (".yaml", ".yml"):
                    return source
        return self.rule_path(rule)

    def save_rule(self, rule: Rule) -> Path:
        """Write ``rule`` into its file, replacing an entry with the same id."""
        path = self._target_for(rule)
        document = rule.to_dict()
        existing = read_yaml(path, default=None)

        if isinstance(existing, dict) and isinstance(existing.get("rules"), list):
            existing["rules"] = _replace_entry(existing["rules"], document)
            payload: Any = existing
        elif isinstance(existing, list):
            payload = _replace_entry(existing, document)
        elif isinstance(existing, dict) and existing.get("id") not in (None, rule.id):
            payload = [existing, document]
        else:
            payload = document

        write_yaml(path, payload)
        logger.debug("Saved rule %s to %s", rule.id, path)
        return path

    def save_index(self, index: Dict[str, Any]) -> Path:
        write_yaml(self.index_path, index)
        return self.index_path

    def load_index(self) -> Dict[str, Any]:
        return read_yaml(self.index_path, default={}) or {}

    def _history_path(self, rule_id: str) -> Path:
        return self.history_dir / f"{rule_id}.yaml"

    def load_history(self, rule_id: str) -> List[Dict[str, Any]]:
        data = read_yaml(self._history_path(rule_id), default={}) or {}
        entries = data.get("entries") if isinstance(data, dict) else None
        return list(entries or [])

    def save_history(self, rule_id: str, entries: List[Dict[str, Any]]) -> None:
        """Persist newest-first history, keeping at most ``history_limit`` entries."""
        kept = list(entries)[: self.history_limit]
        write_yaml(self._history_path(rule_id), {"ruleId": rule_id, "entries": kept})


def _replace_entry(entries: List[Any], document: Dict[str, Any]) -> List[Any]:
    out: List[Any] = []
    replaced = False
    for entry in entries:
        if isinstance(entry, dict) and entry.get("id") == document["id"]:
            out.append(document)
            replaced = True
        else:
            out.append(entry)
    if not replaced:
        out.append(document)
    return out


def build_rule_index(
    rules: Iterable[Rule],
    scope: str = "package",
    *,
    version: str = "1.0.0",
    files: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Index document: categories with counts, sorted tags and rule refs.

    Args:
        rules: Rules to index.
        scope: Scope label recorded in the index metadata.
        version: Index format version.
        files: Optional rule id -> relative file path mapping for the refs.
    """
    rules = list(rules)
    roots: Dict[str, Dict[str, Any]] = {}
    for rule in rules:
        parts = rule.category.split("/")
        root = roots.setdefault(parts[0], {"count": 0, "subs": {}})
        root["count"] += 1
        if len(parts) > 1:
            sub = "/".join(parts[:2])
            root["subs"][sub] = root["subs"].get(sub, 0) + 1

    categories = []
    for root_id, info in roots.items():
        entry: Dict[str, Any] = {"id": root_id, "name": root_id, "ruleCount": info["count"]}
        if info["subs"]:
            entry["subcategories"] = [
                {"id": sub_id, "name": sub_id.split("/")[-1], "ruleCount": count}
                for sub_id, count in info["subs"].items()
            ]
        categories.append(entry)

    tags = sorted({tag for rule in rules for tag in rule.tags})
    files = files or {}
    refs = [
        {
            "id": rule.id,
            "file": files.get(rule.id, f"{rule.category.split('/')[-1]}.yaml"),
            "category": rule.category,
            "tags": list(rule.tags),
        }
        for rule in rules
    ]
    return {
        "metadata": {"version": version, "lastUpdated": utc_timestamp(), "scope": scope},
        "categories": categories,
        "tags": tags,
        "rules": refs,
    }


__all__ = ["RuleRepository", "FileRuleRepository", "build_rule_index"]
