"""Rule entity models.

Rule documents are YAML mappings with camelCase keys (``replacedBy``,
``filePatterns``...). The dataclasses here expose snake_case attributes
and convert both ways with ``from_dict``/``to_dict``. ``to_dict`` omits
empty optional sections so a loaded document round-trips without noise.
"""
from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set

from ..utils.time import utc_timestamp

SEVERITIES = ("error", "warning", "info")
SCOPES = ("global", "project", "package")
STATUSES = ("draft", "active", "deprecated")
ENVIRONMENTS = ("development", "staging", "production")

# Fields that change on every save and never count as a content change.
BOOKKEEPING_FIELDS = ("metadata", "updated", "source")


def _str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _unique(values: Iterable[str]) -> List[str]:
    out: List[str] = []
    for value in values:
        if value not in out:
            out.append(value)
    return out


@dataclass
class RuleExamples:
    good: List[str] = field(default_factory=list)
    bad: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RuleExamples":
        return cls(good=_str_list(data.get("good")), bad=_str_list(data.get("bad")))

    def to_dict(self) -> Dict[str, Any]:
        return {"good": list(self.good), "bad": list(self.bad)}

    def is_empty(self) -> bool:
        return not self.good and not self.bad


@dataclass
class RuleDependencies:
    """Relations to other rules by id."""

    requires: List[str] = field(default_factory=list)
    conflicts: List[str] = field(default_factory=list)
    extends: Optional[str] = None
    replaced_by: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RuleDependencies":
        return cls(
            requires=_unique(_str_list(data.get("requires"))),
            conflicts=_unique(_str_list(data.get("conflicts"))),
            extends=data.get("extends") or None,
            replaced_by=data.get("replacedBy") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.requires:
            data["requires"] = list(self.requires)
        if self.conflicts:
            data["conflicts"] = list(self.conflicts)
        if self.extends:
            data["extends"] = self.extends
        if self.replaced_by:
            data["replacedBy"] = self.replaced_by
        return data


@dataclass
class RuleCondition:
    """Gating for where and when a rule applies."""

    file_patterns: List[str] = field(default_factory=list)
    exclude_patterns: List[str] = field(default_factory=list)
    branches: List[str] = field(default_factory=list)
    environments: List[str] = field(default_factory=list)
    active_from: Optional[str] = None
    active_until: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RuleCondition":
        return cls(
            file_patterns=_str_list(data.get("filePatterns")),
            exclude_patterns=_str_list(data.get("excludePatterns")),
            branches=_str_list(data.get("branches")),
            environments=_str_list(data.get("environments")),
            active_from=str(data["activeFrom"]) if data.get("activeFrom") else None,
            active_until=str(data["activeUntil"]) if data.get("activeUntil") else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.file_patterns:
            data["filePatterns"] = list(self.file_patterns)
        if self.exclude_patterns:
            data["excludePatterns"] = list(self.exclude_patterns)
        if self.branches:
            data["branches"] = list(self.branches)
        if self.environments:
            data["environments"] = list(self.environments)
        if self.active_from:
            data["activeFrom"] = self.active_from
        if self.active_until:
            data["activeUntil"] = self.active_until
        return data


@dataclass
class ChangelogEntry:
    """One immutable history record.

    ``snapshot`` is the rule document as it was *before* this change, without
    its nested changelog. The initial entry carries no snapshot.
    """

    version: str
    date: str
    author: str
    changes: str
    snapshot: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChangelogEntry":
        return cls(
            version=str(data.get("version", "")),
            date=str(data.get("date", "")),
            author=str(data.get("author", "")),
            changes=str(data.get("changes", "")),
            snapshot=copy.deepcopy(data.get("snapshot")) if data.get("snapshot") else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "version": self.version,
            "date": self.date,
            "author": self.author,
            "changes": self.changes,
        }
        if self.snapshot:
            data["snapshot"] = copy.deepcopy(self.snapshot)
        return data


@dataclass
class RuleMetadata:
    status: str = "draft"
    version: str = "1.0.0"
    author: Optional[str] = None
    reviewed_by: Optional[str] = None
    changelog: List[ChangelogEntry] = field(default_factory=list)
    approved_at: Optional[str] = None
    deprecated_at: Optional[str] = None
    deprecation_reason: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RuleMetadata":
        return cls(
            status=str(data.get("status", "draft")),
            version=str(data.get("version", "1.0.0")),
            author=data.get("author"),
            reviewed_by=data.get("reviewedBy"),
            changelog=[ChangelogEntry.from_dict(e) for e in data.get("changelog") or [] if isinstance(e, dict)],
            approved_at=data.get("approvedAt"),
            deprecated_at=data.get("deprecatedAt"),
            deprecation_reason=data.get("deprecationReason"),
        )

    def to_dict(self, include_changelog: bool = True) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status, "version": self.version}
        if self.author:
            data["author"] = self.author
        if self.reviewed_by:
            data["reviewedBy"] = self.reviewed_by
        if self.approved_at:
            data["approvedAt"] = self.approved_at
        if self.deprecated_at:
            data["deprecatedAt"] = self.deprecated_at
        if self.deprecation_reason:
            data["deprecationReason"] = self.deprecation_reason
        if include_changelog and self.changelog:
            data["changelog"] = [entry.to_dict() for entry in self.changelog]
        return data


@dataclass
class Rule:
    """A single coding-guideline record.

    Attributes:
        id: Unique identifier, stable across versions (e.g. ``naming-001``)
        name: Short human title
        description: Full guideline text
        category: Slash-delimited path (``code/naming``)
        tags: Ordered, de-duplicated labels
        severity: ``error``, ``warning`` or ``info``
        scope: Layer the rule was defined in, when known
        source: File path or origin label (not persisted)
        enabled: Disabled rules stay in the store but never apply
    """

    id: str
    name: str
    description: str
    category: str
    severity: str = "info"
    tags: List[str] = field(default_factory=list)
    examples: Optional[RuleExamples] = None
    exceptions: List[str] = field(default_factory=list)
    related: List[str] = field(default_factory=list)
    scope: Optional[str] = None
    enabled: bool = True
    auto_apply: Optional[bool] = None
    platforms: Dict[str, Any] = field(default_factory=dict)
    dependencies: Optional[RuleDependencies] = None
    conditions: Optional[RuleCondition] = None
    metadata: Optional[RuleMetadata] = None
    created: str = ""
    updated: str = ""
    source: Optional[str] = None

    def __post_init__(self) -> None:
        self.tags = _unique(self.tags)

    @property
    def version(self) -> Optional[str]:
        return self.metadata.version if self.metadata else None

    @property
    def requires(self) -> List[str]:
        return list(self.dependencies.requires) if self.dependencies else []

    @property
    def conflicts(self) -> List[str]:
        return list(self.dependencies.conflicts) if self.dependencies else []

    @property
    def extends(self) -> Optional[str]:
        return self.dependencies.extends if self.dependencies else None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], *, source: Optional[str] = None) -> "Rule":
        """Build a Rule from a (validated) document mapping."""
        examples = data.get("examples")
        dependencies = data.get("dependencies")
        conditions = data.get("conditions")
        metadata = data.get("metadata")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            description=str(data.get("description", "")),
            category=str(data.get("category", "")),
            severity=str(data.get("severity", "info")),
            tags=_str_list(data.get("tags")),
            examples=RuleExamples.from_dict(examples) if isinstance(examples, dict) else None,
            exceptions=_str_list(data.get("exceptions")),
            related=_str_list(data.get("related")),
            scope=data.get("scope"),
            enabled=bool(data.get("enabled", True)),
            auto_apply=data.get("autoApply"),
            platforms=copy.deepcopy(data.get("platforms") or {}),
            dependencies=RuleDependencies.from_dict(dependencies) if isinstance(dependencies, dict) else None,
            conditions=RuleCondition.from_dict(conditions) if isinstance(conditions, dict) else None,
            metadata=RuleMetadata.from_dict(metadata) if isinstance(metadata, dict) else None,
            created=str(data.get("created") or ""),
            updated=str(data.get("updated") or ""),
            source=source if source is not None else data.get("source"),
        )

    def to_dict(self, *, include_changelog: bool = True, include_source: bool = False) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "tags": list(self.tags),
            "severity": self.severity,
        }
        if self.examples and not self.examples.is_empty():
            data["examples"] = self.examples.to_dict()
        if self.exceptions:
            data["exceptions"] = list(self.exceptions)
        if self.related:
            data["related"] = list(self.related)
        if self.scope:
            data["scope"] = self.scope
        data["enabled"] = self.enabled
        if self.auto_apply is not None:
            data["autoApply"] = self.auto_apply
        if self.platforms:
            data["platforms"] = copy.deepcopy(self.platforms)
        if self.dependencies:
            deps = self.dependencies.to_dict()
            if deps:
                data["dependencies"] = deps
        if self.conditions:
            conds = self.conditions.to_dict()
            if conds:
                data["conditions"] = conds
        if self.metadata:
            data["metadata"] = self.metadata.to_dict(include_changelog=include_changelog)
        if self.created:
            data["created"] = self.created
        if self.updated:
            data["updated"] = self.updated
        if include_source and self.source:
            data["source"] = self.source
        return data

    def snapshot(self) -> Dict[str, Any]:
        """Document form used for changelog snapshots (no nested history)."""
        return self.to_dict(include_changelog=False)

    def content(self) -> Dict[str, Any]:
        """Document form without bookkeeping fields, used for comparisons."""
        data = self.to_dict(include_changelog=False)
        for key in BOOKKEEPING_FIELDS:
            data.pop(key, None)
        return data

    def copy(self) -> "Rule":
        return copy.deepcopy(self)


@dataclass
class PartialRule:
    """A rule parsed from a lossy platform format.

    Only the attributes named in ``provided`` were present in the source
    text; the rest hold placeholders until the rule is completed.
    """

    name: str
    id: Optional[str] = None
    description: str = ""
    category: Optional[str] = None
    severity: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    enabled: Optional[bool] = None
    examples: Optional[RuleExamples] = None
    exceptions: List[str] = field(default_factory=list)
    provided: Set[str] = field(default_factory=set)

    def has(self, name: str) -> bool:
        return name in self.provided


@dataclass(frozen=True)
class DiffChange:
    """One field-level difference between two rule states."""

    field: str
    old_value: Any
    new_value: Any
    type: str  # added | removed | modified

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "oldValue": self.old_value,
            "newValue": self.new_value,
            "type": self.type,
        }


def diff_documents(old: Dict[str, Any], new: Dict[str, Any], fields: Optional[Iterable[str]] = None) -> List[DiffChange]:
    """Field-level diff of two rule documents using deep equality.

    Keys are compared in first-seen order (``old`` then ``new``) unless
    ``fields`` restricts and orders them.
    """
    if fields is None:
        keys = _unique([*old.keys(), *new.keys()])
    else:
        keys = list(fields)
    changes: List[DiffChange] = []
    for key in keys:
        in_old, in_new = key in old, key in new
        if in_old and not in_new:
            changes.append(DiffChange(key, old[key], None, "removed"))
        elif in_new and not in_old:
            changes.append(DiffChange(key, None, new[key], "added"))
        elif in_old and old[key] != new[key]:
            changes.append(DiffChange(key, old[key], new[key], "modified"))
    return changes


def generate_rule_id(category: str, existing_ids: Iterable[str]) -> str:
    """Next free ``<last-category-segment>-NNN`` id.

    Example:
        >>> generate_rule_id("code/naming", ["naming-001"])
        'naming-002'
    """
    prefix = (category.rstrip("/").split("/")[-1] or "rule").strip() or "rule"
    prefix = re.sub(r"\s+", "-", prefix)
    taken = set(existing_ids)
    counter = 1
    while f"{prefix}-{counter:03d}" in taken:
        counter += 1
    return f"{prefix}-{counter:03d}"


def create_rule_template(rule_id: str, name: str, category: str) -> Rule:
    """Blank, enabled, package-scoped rule for authoring tools."""
    now = utc_timestamp()
    return Rule(
        id=rule_id,
        name=name,
        description="",
        category=category,
        severity="info",
        tags=[],
        scope="package",
        enabled=True,
        created=now,
        updated=now,
    )


__all__ = [
    "SEVERITIES",
    "SCOPES",
    "STATUSES",
    "ENVIRONMENTS",
    "BOOKKEEPING_FIELDS",
    "RuleExamples",
    "RuleDependencies",
    "RuleCondition",
    "ChangelogEntry",
    "RuleMetadata",
    "Rule",
    "PartialRule",
    "DiffChange",
    "diff_documents",
    "generate_rule_id",
    "create_rule_template",
]
