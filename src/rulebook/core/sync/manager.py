"""Bidirectional synchronisation between the rule store and platforms.

Phases:

- **push**: format every local rule through the platform adapter and write
- **pull**: parse the platform text, complete each partial rule, add rules
  that only exist remotely and classify the rest as updated or unchanged
- **merge**: compare local and remote field by field; differing fields
  become :class:`SyncConflict` values and nothing is overwritten until a
  resolution is applied

``sync(platform, "both")`` runs push, pull and merge in that order. The
push is skipped when the platform text changed since rulebook last wrote
(or acknowledged) it and no longer matches the local rules, so remote
edits are surfaced as conflicts instead of being overwritten. It runs after
the pull once a resolution has settled every conflict.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from ..adapters import AdapterRegistry, AdapterSyncResult, PlatformAdapter
from ..exceptions import SyncError
from ..rules.models import DiffChange, Rule
from ..rules.repository import RuleRepository
from ..rules.store import RuleStore
from ..rules.versioning import RuleVersioning, initialize_versioning
from ..utils.io import content_hash, read_yaml, write_yaml
from ..utils.merge import union_lists
from ..utils.profiling import span
from ..utils.time import utc_timestamp
from .models import (
    DIRECTIONS,
    RESOLUTION_MODES,
    BidirectionalSyncResult,
    MergeOutcome,
    PullResult,
    SyncConflict,
    SyncDiffResult,
)
from .parsers import DEFAULT_PARSERS, Parser, complete_partial_rule

logger = logging.getLogger(__name__)

DEFAULT_COMPARE_FIELDS = ("name", "description", "category", "severity", "enabled", "tags")
# Compared as sets; order on the platform side is not significant.
_SET_FIELDS = ("tags",)


def _normalize(field_name: str, value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    if field_name in _SET_FIELDS and isinstance(value, list):
        return sorted(set(value))
    return value


def compare_rules(local: Rule, remote: Rule, fields: Sequence[str] = DEFAULT_COMPARE_FIELDS) -> List[DiffChange]:
    """Field differences between the local and remote copy of a rule."""
    left, right = local.to_dict(), remote.to_dict()
    changes: List[DiffChange] = []
    for name in fields:
        old, new = left.get(name), right.get(name)
        if _normalize(name, old) == _normalize(name, new):
            continue
        if old is None:
            kind = "added"
        elif new is None:
            kind = "removed"
        else:
            kind = "modified"
        changes.append(DiffChange(name, old, new, kind))
    return changes


class SyncManager:
    """Push, pull, diff and merge for the rules of one store.

    Args:
        store: Local rules; pull and resolution results are installed here
        project_root: Root handed to adapters (they write relative to it)
        registry: Adapter factories, :meth:`AdapterRegistry.with_defaults` if omitted
        parsers: Platform name to text parser
        versioning: Used to record accepted remote changes
        repository: When given, imported and updated rules are persisted
        state_path: YAML file remembering the last written remote hash per
            platform; in-memory only when omitted
        compare_fields: Rule fields that take part in diff and merge
        blocked_ids: Ids that must not be written yet (pending manual merge
            conflicts); pull and resolutions leave them alone
    """

    def __init__(
        self,
        store: RuleStore,
        project_root: Path,
        *,
        registry: Optional[AdapterRegistry] = None,
        parsers: Optional[Mapping[str, Parser]] = None,
        versioning: Optional[RuleVersioning] = None,
        repository: Optional[RuleRepository] = None,
        state_path: Optional[Path] = None,
        compare_fields: Optional[Sequence[str]] = None,
        blocked_ids: Optional[Callable[[], Iterable[str]]] = None,
    ) -> None:
        self.store = store
        self.project_root = Path(project_root)
        self.registry = registry or AdapterRegistry.with_defaults()
        self.parsers: Dict[str, Parser] = dict(parsers or DEFAULT_PARSERS)
        self.repository = repository
        self.versioning = versioning or RuleVersioning(store, repository)
        self.state_path = state_path
        self.compare_fields = tuple(compare_fields or DEFAULT_COMPARE_FIELDS)
        self._blocked_ids = blocked_ids
        self._remote_hashes: Dict[str, str] = self._load_state()

    def blocked(self) -> Set[str]:
        return set(self._blocked_ids()) if self._blocked_ids is not None else set()

    # ---------- adapters ----------

    def adapter(self, platform: str) -> PlatformAdapter:
        return self.registry.create(platform, self.project_root)

    def _parser(self, platform: str) -> Parser:
        parser = self.parsers.get(platform)
        if parser is None:
            raise SyncError.unknown_platform(platform)
        return parser

    def _baseline(self, rule_id: Optional[str], name: str) -> Optional[Rule]:
        if rule_id:
            return self.store.get(rule_id)
        folded = name.casefold()
        for rule in self.store:
            if rule.name.casefold() == folded:
                return rule
        return None

    def parse_remote(self, platform: str, text: str) -> List[Rule]:
        """Complete every rule parsed from ``text``; later duplicate ids are dropped."""
        rules: List[Rule] = []
        seen = set()
        for partial in self._parser(platform)(text):
            rule = complete_partial_rule(partial, self._baseline(partial.id, partial.name))
            if rule.id in seen:
                logger.warning("Duplicate rule id %s in %s text; keeping the first", rule.id, platform)
                continue
            seen.add(rule.id)
            rules.append(rule)
        return rules

    def read_remote(self, platform: str) -> Tuple[str, List[Rule]]:
        text = self.adapter(platform).read()
        return text, self.parse_remote(platform, text)

    # ---------- remote state ----------

    def _load_state(self) -> Dict[str, str]:
        if self.state_path is None:
            return {}
        data = read_yaml(self.state_path, default={}) or {}
        platforms = data.get("platforms") or {}
        return {name: str(entry.get("hash")) for name, entry in platforms.items() if isinstance(entry, dict)}

    def acknowledge(self, platform: str, text: str) -> None:
        """Remember ``text`` as the last known remote state of ``platform``."""
        self._remote_hashes[platform] = content_hash(text)
        if self.state_path is None:
            return
        write_yaml(
            self.state_path,
            {
                "platforms": {
                    name: {"hash": value, "syncedAt": utc_timestamp()}
                    for name, value in sorted(self._remote_hashes.items())
                }
            },
        )

    def remote_changed(self, platform: str, text: str) -> bool:
        """True when ``text`` differs from what was last written or acknowledged."""
        known = self._remote_hashes.get(platform)
        if known is None:
            return bool(text.strip())
        return known != content_hash(text)

    # ---------- phases ----------

    def push(self, platform: str) -> AdapterSyncResult:
        adapter = self.adapter(platform)
        with span("sync.push", platform=platform):
            result = adapter.sync(self.store.all())
        if result.success:
            self.acknowledge(platform, adapter.read())
        return result

    def pull(self, platform: str, remote: Optional[List[Rule]] = None) -> PullResult:
        """Import remote-only rules and classify the others.

        Rules present on both sides are never overwritten here; differences
        surface through :meth:`merge`. Blocked ids are reported, not imported.
        """
        if remote is None:
            _, remote = self.read_remote(platform)
        result = PullResult(rules=list(remote))
        blocked = self.blocked()
        with span("sync.pull", platform=platform, rules=len(remote)):
            for rule in remote:
                local = self.store.get(rule.id)
                if rule.id in blocked:
                    result.blocked.append(rule.id)
                elif local is None:
                    imported = initialize_versioning(rule, author=f"sync:{platform}")
                    self.store.put(imported)
                    if self.repository is not None:
                        self.repository.save_rule(imported)
                    result.new_rules.append(rule.id)
                elif compare_rules(local, rule, self.compare_fields):
                    result.updated_rules.append(rule.id)
                else:
                    result.unchanged.append(rule.id)
        logger.info(
            "Pulled %d rules from %s (%d new, %d updated)",
            result.count,
            platform,
            len(result.new_rules),
            len(result.updated_rules),
        )
        return result

    def diff(self, platform: str, remote: Optional[List[Rule]] = None) -> SyncDiffResult:
        if remote is None:
            _, remote = self.read_remote(platform)
        remote_by_id = {rule.id: rule for rule in remote}
        result = SyncDiffResult(platform=platform)
        for local in self.store:
            other = remote_by_id.get(local.id)
            if other is None:
                result.local_only.append(local)
                continue
            changes = compare_rules(local, other, self.compare_fields)
            if changes:
                result.different.append((local.id, changes))
            else:
                result.identical.append(local.id)
        result.remote_only = [rule for rule in remote if rule.id not in self.store]
        return result

    def merge(
        self,
        local: Sequence[Rule],
        remote: Sequence[Rule],
        resolution: Optional[str] = None,
    ) -> MergeOutcome:
        """Combine two rule lists without losing either side.

        Each differing field of a shared id becomes a :class:`SyncConflict`;
        the merged rule keeps the local value for it. With ``resolution`` the
        conflicts are resolved up front and applied to the merged rules.
        """
        remote_by_id = {rule.id: rule for rule in remote}
        local_ids = {rule.id for rule in local}
        conflicts: List[SyncConflict] = []
        for rule in local:
            other = remote_by_id.get(rule.id)
            if other is None:
                continue
            for change in compare_rules(rule, other, self.compare_fields):
                conflicts.append(
                    SyncConflict(
                        rule_id=rule.id,
                        field=change.field,
                        local_value=change.old_value,
                        remote_value=change.new_value,
                        local_version=rule.version,
                        remote_version=other.version,
                    )
                )
        if resolution is not None:
            conflicts = self.resolve_conflicts(conflicts, resolution)

        outcome = MergeOutcome()
        by_rule: Dict[str, List[SyncConflict]] = {}
        for conflict in conflicts:
            if conflict.resolved:
                outcome.resolved.append(conflict)
                by_rule.setdefault(conflict.rule_id, []).append(conflict)
            else:
                outcome.conflicts.append(conflict)

        for rule in local:
            updates = _resolution_updates(by_rule.get(rule.id, []))
            if updates:
                outcome.rules.append(Rule.from_dict({**rule.to_dict(), **updates}, source=rule.source))
            else:
                outcome.rules.append(rule)
        outcome.rules.extend(rule for rule in remote if rule.id not in local_ids)
        return outcome

    def resolve_conflicts(self, conflicts: Sequence[SyncConflict], mode: str) -> List[SyncConflict]:
        """Apply one resolution mode to every conflict.

        ``manual`` returns the conflicts untouched for an external decision.

        Raises:
            ValueError: For an unknown mode.
        """
        if mode not in RESOLUTION_MODES:
            raise ValueError(f"Unknown resolution mode: {mode}")
        if mode == "manual":
            return list(conflicts)
        return [
            SyncConflict(
                rule_id=c.rule_id,
                field=c.field,
                local_value=c.local_value,
                remote_value=c.remote_value,
                local_version=c.local_version,
                remote_version=c.remote_version,
                resolution=mode,
            )
            for c in conflicts
        ]

    def apply_resolutions(self, platform: str, conflicts: Sequence[SyncConflict]) -> List[SyncConflict]:
        """Install resolved values in the store and return what is still open.

        ``remote`` copies the remote value and ``merge`` unions list values;
        a scalar under ``merge`` stays unresolved. ``local`` and ``skip``
        leave the store as it is. The current platform text is acknowledged
        once nothing is left open or skipped.
        """
        unresolved: List[SyncConflict] = []
        skipped = False
        blocked = self.blocked()
        grouped: Dict[str, List[SyncConflict]] = {}
        for conflict in conflicts:
            if conflict.resolution is None or conflict.rule_id in blocked:
                unresolved.append(conflict)
                continue
            if conflict.resolution == "skip":
                skipped = True
            if conflict.resolution == "merge" and not (
                isinstance(conflict.local_value, list) and isinstance(conflict.remote_value, list)
            ):
                unresolved.append(
                    SyncConflict(
                        rule_id=conflict.rule_id,
                        field=conflict.field,
                        local_value=conflict.local_value,
                        remote_value=conflict.remote_value,
                        local_version=conflict.local_version,
                        remote_version=conflict.remote_version,
                    )
                )
                continue
            grouped.setdefault(conflict.rule_id, []).append(conflict)

        for rule_id, items in grouped.items():
            rule = self.store.get(rule_id)
            updates = _resolution_updates(items)
            if rule is None or not updates:
                continue
            updated = self.versioning.create_version(
                rule,
                changes=f"Accepted {platform} changes to {', '.join(sorted(updates))}",
                author=f"sync:{platform}",
                updates=updates,
                persist=False,
            )
            self.store.put(updated)
            if self.repository is not None:
                self.repository.save_rule(updated)
            self.versioning.persist_history(updated)

        if not unresolved and not skipped:
            self.acknowledge(platform, self.adapter(platform).read())
        return unresolved

    # ---------- orchestration ----------

    def sync(self, platform: str, direction: str = "both", resolution: Optional[str] = None) -> BidirectionalSyncResult:
        """Run the phases for ``direction``; failures are reported on the result."""
        result = BidirectionalSyncResult(success=True, direction=direction, platform=platform)
        if direction not in DIRECTIONS:
            result.success = False
            result.errors.append(f"Unknown sync direction: {direction}")
            return result

        try:
            with span("sync.run", platform=platform, direction=direction):
                if direction == "push":
                    self._run_push(platform, result)
                elif direction == "pull":
                    self._run_pull(platform, result, resolution)
                else:
                    text, remote = self.read_remote(platform)
                    blocker = self._push_blocker(platform, text, remote)
                    if blocker is None:
                        self._run_push(platform, result)
                        self._run_pull(platform, result, resolution)
                    else:
                        logger.warning("%s", blocker)
                        self._run_pull(platform, result, resolution)
                        # Resolving every conflict acknowledges the remote text.
                        if self.remote_changed(platform, text):
                            result.errors.append(str(blocker))
                        else:
                            self._run_push(platform, result)
        except SyncError as exc:
            logger.error("Sync with %s failed: %s", platform, exc)
            result.errors.append(str(exc))

        result.success = not result.errors
        return result

    def _push_blocker(self, platform: str, text: str, remote: List[Rule]) -> Optional[SyncError]:
        if not self.remote_changed(platform, text):
            return None
        diff = self.diff(platform, remote)
        if diff.in_sync:
            return None
        ids = [rule_id for rule_id, _ in diff.different] + [rule.id for rule in diff.remote_only]
        return SyncError.push_blocked(platform, ids)

    def _run_push(self, platform: str, result: BidirectionalSyncResult) -> None:
        pushed = self.push(platform)
        if pushed.success:
            result.pushed = pushed.rules_count
        else:
            result.errors.append(pushed.error or f"Push to {platform} failed")

    def _run_pull(self, platform: str, result: BidirectionalSyncResult, resolution: Optional[str]) -> None:
        text, remote = self.read_remote(platform)
        result.pulled = self.pull(platform, remote)
        with span("sync.merge", platform=platform):
            outcome = self.merge(self.store.all(), remote)
        conflicts = outcome.conflicts
        if resolution is not None and conflicts:
            conflicts = self.apply_resolutions(platform, self.resolve_conflicts(conflicts, resolution))
        elif not conflicts and not result.pulled.blocked:
            self.acknowledge(platform, text)
        result.conflicts = conflicts


def _resolution_updates(conflicts: Sequence[SyncConflict]) -> Dict[str, Any]:
    updates: Dict[str, Any] = {}
    for conflict in conflicts:
        if conflict.resolution == "remote":
            updates[conflict.field] = conflict.remote_value
        elif conflict.resolution == "merge" and isinstance(conflict.local_value, list):
            updates[conflict.field] = union_lists(conflict.local_value, conflict.remote_value or [])
    return updates


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _value(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


def format_sync_diff(diff: SyncDiffResult) -> str:
    lines = [f"Sync diff: {diff.platform}", ""]
    if diff.in_sync:
        lines.append(f"In sync ({len(diff.identical)} identical rules)")
        return "\n".join(lines)
    if diff.local_only:
        lines.append(f"Local only ({len(diff.local_only)}):")
        lines.extend(f"  + {rule.id}: {rule.name}" for rule in diff.local_only)
        lines.append("")
    if diff.remote_only:
        lines.append(f"Remote only ({len(diff.remote_only)}):")
        lines.extend(f"  - {rule.id}: {rule.name}" for rule in diff.remote_only)
        lines.append("")
    if diff.different:
        lines.append(f"Different ({len(diff.different)}):")
        for rule_id, changes in diff.different:
            lines.append(f"  ~ {rule_id}")
            lines.extend(f"      {change.field}: changed" for change in changes)
        lines.append("")
    lines.append(f"Identical: {len(diff.identical)}")
    return "\n".join(lines)


def format_conflicts(conflicts: Sequence[SyncConflict]) -> str:
    if not conflicts:
        return "No conflicts"
    grouped: Dict[str, List[SyncConflict]] = {}
    for conflict in conflicts:
        grouped.setdefault(conflict.rule_id, []).append(conflict)
    lines = [f"{len(conflicts)} conflict(s) in {len(grouped)} rule(s)", ""]
    for rule_id, items in grouped.items():
        lines.append(f"Rule: {rule_id}")
        for conflict in items:
            suffix = f" [{conflict.resolution}]" if conflict.resolution else ""
            lines.append(f"  {conflict.field}{suffix}")
            lines.append(f"    local:  {_value(conflict.local_value)}")
            lines.append(f"    remote: {_value(conflict.remote_value)}")
        lines.append("")
    return "\n".join(lines).rstrip()


__all__ = [
    "DEFAULT_COMPARE_FIELDS",
    "compare_rules",
    "SyncManager",
    "format_sync_diff",
    "format_conflicts",
]
