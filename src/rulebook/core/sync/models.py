"""Result types for platform synchronisation."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..rules.models import DiffChange, Rule

DIRECTIONS = ("push", "pull", "both")
RESOLUTION_MODES = ("local", "remote", "manual")
FIELD_RESOLUTIONS = ("local", "remote", "merge", "skip")


@dataclass
class SyncConflict:
    """One field that differs between the local rule and its remote copy.

    ``resolution`` stays ``None`` until a caller decides; only then is the
    store touched (see ``SyncManager.apply_resolutions``).
    """

    rule_id: str
    field: str
    local_value: Any
    remote_value: Any
    local_version: Optional[str] = None
    remote_version: Optional[str] = None
    resolution: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.resolution is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ruleId": self.rule_id,
            "field": self.field,
            "localValue": self.local_value,
            "remoteValue": self.remote_value,
            "localVersion": self.local_version,
            "remoteVersion": self.remote_version,
            "resolution": self.resolution,
        }


@dataclass
class SyncDiffResult:
    """Three-way partition of local against remote rules."""

    platform: str
    local_only: List[Rule] = field(default_factory=list)
    remote_only: List[Rule] = field(default_factory=list)
    different: List[Tuple[str, List[DiffChange]]] = field(default_factory=list)
    identical: List[str] = field(default_factory=list)

    @property
    def in_sync(self) -> bool:
        return not (self.local_only or self.remote_only or self.different)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "platform": self.platform,
            "localOnly": [r.id for r in self.local_only],
            "remoteOnly": [r.id for r in self.remote_only],
            "different": [
                {"id": rule_id, "differences": [c.to_dict() for c in changes]}
                for rule_id, changes in self.different
            ],
            "identical": list(self.identical),
        }


@dataclass
class PullResult:
    rules: List[Rule] = field(default_factory=list)
    new_rules: List[str] = field(default_factory=list)
    updated_rules: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    blocked: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.rules)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "newRules": list(self.new_rules),
            "updatedRules": list(self.updated_rules),
            "unchanged": list(self.unchanged),
            "blocked": list(self.blocked),
        }


@dataclass
class MergeOutcome:
    """Merged rule list; ``conflicts`` holds only what is still undecided."""

    rules: List[Rule] = field(default_factory=list)
    conflicts: List[SyncConflict] = field(default_factory=list)
    resolved: List[SyncConflict] = field(default_factory=list)


@dataclass
class BidirectionalSyncResult:
    success: bool
    direction: str
    platform: str
    pushed: int = 0
    pulled: Optional[PullResult] = None
    conflicts: List[SyncConflict] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "direction": self.direction,
            "platform": self.platform,
            "pushed": self.pushed,
            "pulled": self.pulled.to_dict() if self.pulled else None,
            "conflicts": [c.to_dict() for c in self.conflicts],
            "errors": list(self.errors),
        }


__all__ = [
    "DIRECTIONS",
    "RESOLUTION_MODES",
    "FIELD_RESOLUTIONS",
    "SyncConflict",
    "SyncDiffResult",
    "PullResult",
    "MergeOutcome",
    "BidirectionalSyncResult",
]
