"""Semantic versions, changelog snapshots, diff and rollback for rules.

Every accepted change appends a :class:`ChangelogEntry` (newest first) whose
snapshot is the rule as it was *before* the change. The document state at
version ``V`` is therefore the current rule when ``V`` is current, else the
snapshot whose ``metadata.version`` is ``V``. History only ever grows:
rollback restores an old state as a brand new version.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..exceptions import VersionError
from ..utils.time import utc_timestamp
from .models import ChangelogEntry, DiffChange, Rule, RuleMetadata, diff_documents
from .repository import RuleRepository
from .store import RuleStore

logger = logging.getLogger(__name__)

VERSION_PATTERN = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")
BUMP_TYPES = ("major", "minor", "patch")
INITIAL_VERSION = "1.0.0"


def validate_version(version: str) -> bool:
    return bool(VERSION_PATTERN.match(str(version)))


def parse_version(version: str) -> Tuple[int, int, int]:
    """Split ``major.minor.patch`` into integers.

    Raises:
        VersionError: If ``version`` is not strict semver.
    """
    match = VERSION_PATTERN.match(str(version))
    if not match:
        raise VersionError.invalid_format(str(version))
    major, minor, patch = (int(part) for part in match.groups())
    return major, minor, patch


def increment_version(version: str, bump: str = "patch") -> str:
    """Bump one component and zero the lower ones.

    Example:
        >>> increment_version("1.2.3", "major")
        '2.0.0'
    """
    major, minor, patch = parse_version(version)
    if bump == "major":
        return f"{major + 1}.0.0"
    if bump == "minor":
        return f"{major}.{minor + 1}.0"
    if bump == "patch":
        return f"{major}.{minor}.{patch + 1}"
    raise VersionError(f"Unknown version bump '{bump}' (expected one of {', '.join(BUMP_TYPES)})", version=version)


def compare_versions(a: str, b: str) -> int:
    """Numeric comparison: -1 if ``a < b``, 0 if equal, 1 if ``a > b``."""
    left, right = parse_version(a), parse_version(b)
    return (left > right) - (left < right)


def initialize_versioning(rule: Rule, author: Optional[str] = None) -> Rule:
    """Return a copy of ``rule`` at 1.0.0 (draft) with an initial entry."""
    versioned = rule.copy()
    versioned.metadata = RuleMetadata(
        status="draft",
        version=INITIAL_VERSION,
        author=author,
        changelog=[
            ChangelogEntry(
                version=INITIAL_VERSION,
                date=utc_timestamp(),
                author=author or "unknown",
                changes="Initial version",
            )
        ],
    )
    return versioned


@dataclass
class RuleDiff:
    rule_id: str
    from_version: str
    to_version: str
    changes: List[DiffChange] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ruleId": self.rule_id,
            "fromVersion": self.from_version,
            "toVersion": self.to_version,
            "changes": [c.to_dict() for c in self.changes],
        }


def format_diff(diff: RuleDiff) -> str:
    """Render a diff as ``+``/``-``/``~`` lines."""
    lines = [f"Rule: {diff.rule_id}", f"Version: {diff.from_version} -> {diff.to_version}", ""]
    if not diff.changes:
        lines.append("No changes")
        return "\n".join(lines)
    for change in diff.changes:
        icon = {"added": "+", "removed": "-"}.get(change.type, "~")
        lines.append(f"{icon} {change.field}:")
        if change.type != "added":
            lines.append(f"  - {json.dumps(change.old_value, ensure_ascii=False, default=str)}")
        if change.type != "removed":
            lines.append(f"  + {json.dumps(change.new_value, ensure_ascii=False, default=str)}")
        lines.append("")
    return "\n".join(lines)


class RuleVersioning:
    """Version operations over the rules of one store.

    Methods return new :class:`Rule` values; the caller installs them in the
    store. When a repository is given, history is also persisted there.
    """

    def __init__(self, store: RuleStore, repository: Optional[RuleRepository] = None) -> None:
        self.store = store
        self.repository = repository

    def _require(self, rule_id: str) -> Rule:
        rule = self.store.get(rule_id)
        if rule is None:
            raise VersionError(f"Unknown rule '{rule_id}'", rule_id=rule_id)
        return rule

    def create_version(
        self,
        rule: Rule,
        changes: str,
        author: str,
        bump: str = "patch",
        updates: Optional[Dict[str, Any]] = None,
        persist: bool = True,
    ) -> Rule:
        """Snapshot ``rule``, apply ``updates`` and assign the next version.

        Args:
            rule: Current state; it is not mutated.
            changes: Human summary recorded in the changelog.
            author: Change author.
            bump: ``major``, ``minor`` or ``patch``.
            updates: Optional document-key updates (``{"severity": "error"}``).
            persist: Write the history now. Callers that validate or save the
                rule first pass ``False`` and call :meth:`persist_history` after.

        Returns:
            The new rule state.
        """
        if rule.metadata is None:
            rule = initialize_versioning(rule, author)
        snapshot = rule.snapshot()
        new_version = increment_version(rule.metadata.version, bump)

        if updates:
            document = rule.to_dict()
            document.update(updates)
            document["id"] = rule.id
            updated = Rule.from_dict(document, source=rule.source)
            updated.metadata = rule.copy().metadata
        else:
            updated = rule.copy()

        entry = ChangelogEntry(
            version=new_version,
            date=utc_timestamp(),
            author=author,
            changes=changes,
            snapshot=snapshot,
        )
        updated.metadata.version = new_version
        updated.metadata.changelog.insert(0, entry)
        updated.updated = entry.date
        if persist:
            self.persist_history(updated)
        logger.info("Rule %s: %s -> %s (%s)", rule.id, rule.metadata.version, new_version, changes)
        return updated

    def get_history(self, rule_id: str) -> List[ChangelogEntry]:
        """Changelog entries, newest first."""
        rule = self.store.get(rule_id)
        if rule is not None and rule.metadata is not None:
            return list(rule.metadata.changelog)
        if self.repository is not None:
            return [ChangelogEntry.from_dict(e) for e in self.repository.load_history(rule_id)]
        return []

    def state_at(self, rule: Rule, version: str) -> Dict[str, Any]:
        """Rule document as it was at ``version``.

        Raises:
            VersionError: Malformed version, or no state recorded for it.
        """
        parse_version(version)
        if rule.version == version:
            return rule.snapshot()
        for entry in rule.metadata.changelog if rule.metadata else []:
            snap = entry.snapshot or {}
            if (snap.get("metadata") or {}).get("version") == version:
                return dict(snap)
        raise VersionError.not_found(rule.id, version)

    def diff(self, rule_id: str, from_version: str, to_version: str) -> RuleDiff:
        rule = self._require(rule_id)
        old = _content(self.state_at(rule, from_version))
        new = _content(self.state_at(rule, to_version))
        return RuleDiff(rule_id, from_version, to_version, diff_documents(old, new))

    def rollback(self, rule_id: str, target_version: str, author: str = "system", persist: bool = True) -> Rule:
        """Restore the state at ``target_version`` as a new patch version."""
        current = self._require(rule_id)
        snapshot = self.state_at(current, target_version)
        if current.metadata is None:
            current = initialize_versioning(current, author)

        restored = Rule.from_dict({**snapshot, "id": rule_id}, source=current.source)
        new_version = increment_version(current.metadata.version, "patch")
        entry = ChangelogEntry(
            version=new_version,
            date=utc_timestamp(),
            author=author,
            changes=f"Rolled back to version {target_version}",
            snapshot=current.snapshot(),
        )
        metadata = current.copy().metadata
        metadata.version = new_version
        metadata.status = "active"
        metadata.changelog.insert(0, entry)
        restored.metadata = metadata
        restored.updated = entry.date
        if persist:
            self.persist_history(restored)
        logger.info("Rule %s rolled back to %s as %s", rule_id, target_version, new_version)
        return restored

    def persist_history(self, rule: Rule) -> None:
        if self.repository is None or rule.metadata is None:
            return
        self.repository.save_history(rule.id, [e.to_dict() for e in rule.metadata.changelog])


def _content(document: Dict[str, Any]) -> Dict[str, Any]:
    return Rule.from_dict(document).content()


__all__ = [
    "VERSION_PATTERN",
    "BUMP_TYPES",
    "validate_version",
    "parse_version",
    "increment_version",
    "compare_versions",
    "initialize_versioning",
    "RuleDiff",
    "format_diff",
    "RuleVersioning",
]
