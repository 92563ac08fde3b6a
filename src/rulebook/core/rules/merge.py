"""Combine same-id rules coming from several scope layers.

Candidates are passed lowest priority first (global, inherited, project,
package). The outcome for an id defined more than once depends on the
merge strategy and the conflict-resolution policy:

- ``manual`` resolution: never pick a winner. The id is left out of the
  merged rules and reported as a pending :class:`MergeConflict` carrying
  every candidate.
- ``override``: the highest-priority definition wins outright.
- ``merge``: field-wise combination; lists concatenate without duplicates
  (lower layer first), mappings merge recursively, scalars come from the
  higher layer.
- ``append``: a literal id collision falls back to the resolution policy
  (``local-wins`` keeps the higher layer, ``parent-wins`` the lower one).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..utils.merge import union_lists
from .models import Rule

logger = logging.getLogger(__name__)

MERGE_STRATEGIES = ("override", "merge", "append")
CONFLICT_RESOLUTIONS = ("local-wins", "parent-wins", "manual")

# Mappings that are replaced whole rather than merged key by key.
_ATOMIC_FIELDS = ("metadata",)


@dataclass
class ScopedRule:
    """A rule together with the layer it was loaded from."""

    rule: Rule
    scope: str
    source: str
    priority: int = 0


@dataclass
class MergeConflict:
    """Same-id collision across layers.

    Attributes:
        rule_id: Contested id
        sources: Contributing sources, lowest priority first
        resolution: ``auto`` when a policy picked the outcome, ``manual``
            when an external decision is required
        winner: Source whose definition won (``None`` for manual)
        candidates: The competing definitions, same order as ``sources``
    """

    rule_id: str
    sources: List[str]
    resolution: str
    winner: Optional[str] = None
    strategy: str = "override"
    candidates: List[ScopedRule] = field(default_factory=list)

    @property
    def pending(self) -> bool:
        return self.resolution == "manual" and self.winner is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ruleId": self.rule_id,
            "sources": list(self.sources),
            "resolution": self.resolution,
            "winner": self.winner,
            "strategy": self.strategy,
        }


@dataclass
class MergeResult:
    rules: List[Rule] = field(default_factory=list)
    conflicts: List[MergeConflict] = field(default_factory=list)

    @property
    def pending(self) -> List[MergeConflict]:
        return [c for c in self.conflicts if c.pending]


def merge_scoped_rules(
    candidates: Sequence[ScopedRule],
    *,
    strategy: str = "override",
    conflict_resolution: str = "local-wins",
) -> MergeResult:
    """Merge candidate rules from all layers into one effective list.

    The output keeps the order in which ids were first seen, so the result
    is deterministic for the same inputs.

    Raises:
        ValueError: For an unknown strategy or resolution policy.
    """
    if strategy not in MERGE_STRATEGIES:
        raise ValueError(f"Unknown merge strategy: {strategy}")
    if conflict_resolution not in CONFLICT_RESOLUTIONS:
        raise ValueError(f"Unknown conflict resolution: {conflict_resolution}")

    grouped: Dict[str, List[ScopedRule]] = {}
    for candidate in candidates:
        grouped.setdefault(candidate.rule.id, []).append(candidate)

    result = MergeResult()
    for rule_id, group in grouped.items():
        if len(group) == 1:
            result.rules.append(group[0].rule)
            continue

        sources = [c.source for c in group]
        if conflict_resolution == "manual":
            logger.info("Rule %s defined in %d layers; waiting for manual resolution", rule_id, len(group))
            result.conflicts.append(
                MergeConflict(rule_id, sources, "manual", None, strategy, list(group))
            )
            continue

        if strategy == "merge":
            merged = group[0].rule
            for candidate in group[1:]:
                merged = merge_rule_fields(merged, candidate.rule)
            winner = group[-1]
            result.rules.append(merged)
        else:
            if strategy == "append" and conflict_resolution == "parent-wins":
                winner = group[0]
            else:
                winner = group[-1]
            result.rules.append(winner.rule)

        logger.debug("Rule %s: %s strategy, winner %s", rule_id, strategy, winner.source)
        result.conflicts.append(
            MergeConflict(rule_id, sources, "auto", winner.source, strategy, list(group))
        )
    return result


def merge_rule_fields(lower: Rule, higher: Rule) -> Rule:
    """Field-wise combination of two definitions of the same rule."""
    combined = _merge_values(lower.to_dict(), higher.to_dict())
    return Rule.from_dict(combined, source=higher.source or lower.source)


def _merge_values(lower: Dict[str, Any], higher: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = dict(lower)
    for key, value in higher.items():
        current = out.get(key)
        if key in _ATOMIC_FIELDS:
            out[key] = value
        elif isinstance(current, list) and isinstance(value, list):
            out[key] = union_lists(current, value)
        elif isinstance(current, dict) and isinstance(value, dict):
            out[key] = _merge_values(current, value)
        else:
            out[key] = value
    return out


__all__ = [
    "MERGE_STRATEGIES",
    "CONFLICT_RESOLUTIONS",
    "ScopedRule",
    "MergeConflict",
    "MergeResult",
    "merge_scoped_rules",
    "merge_rule_fields",
]
