"""Hierarchical rule loading.

For a target directory the loader visits every applicable scope layer,
lowest priority first:

1. the global rules directory (``includeGlobal``, relocated by ``RULEBOOK_HOME``)
2. ``inheritance`` entries of the target config, by ascending ``priority``
3. ancestor directories carrying ``rules/.rulebook-config.yaml``, outermost
   first (``discoverAncestors``)
4. ``<target>/rules``

Every rule file is parsed and schema-checked on its own; failures are
collected in :class:`LoadResult.errors` and never abort the batch.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..config import ConfigManager, ScopeConfig
from ..exceptions import ParseError, RulebookError, ValidationError
from ..utils.io import iter_yaml_files, load_yaml_document, read_text
from ..utils.profiling import span
from .merge import MergeConflict, ScopedRule, merge_scoped_rules
from .models import Rule
from .validation import validate_rule

logger = logging.getLogger(__name__)


@dataclass
class ScopeLayer:
    """One rules directory taking part in a load."""

    path: Path
    scope: str
    priority: int
    config: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LoadResult:
    """Outcome of :meth:`RuleLoader.load`.

    ``rules`` is the effective (merged) rule list. ``conflicts`` lists every
    same-id collision, including pending manual ones whose ids are absent
    from ``rules``. ``config`` is the effective merged configuration.
    """

    rules: List[Rule] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)
    errors: List[RulebookError] = field(default_factory=list)
    conflicts: List[MergeConflict] = field(default_factory=list)
    config: Dict[str, Any] = field(default_factory=dict)
    layers: List[ScopeLayer] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rules": [rule.id for rule in self.rules],
            "sources": list(self.sources),
            "errors": [err.to_json_error() for err in self.errors],
            "conflicts": [c.to_dict() for c in self.conflicts],
        }


class RuleLoader:
    """Discover scope layers for a path and merge their rules."""

    def __init__(self, config_manager: Optional[ConfigManager] = None) -> None:
        self.config_manager = config_manager or ConfigManager()

    # ---------- public API ----------

    def load(self, target: Path) -> LoadResult:
        target = Path(target).expanduser().resolve()
        result = LoadResult()

        with span("loader.discover", target=str(target)):
            layers = self.discover_layers(target, result.errors)
        result.layers = layers

        candidates: List[ScopedRule] = []
        with span("loader.read", layers=len(layers)):
            for layer in layers:
                rules, errors = self.load_directory(layer.path)
                result.errors.extend(errors)
                result.sources.append(str(layer.path))
                candidates.extend(
                    ScopedRule(rule, layer.scope, rule.source or str(layer.path), layer.priority)
                    for rule in rules
                )

        result.config = self.config_manager.load_config([layer.config for layer in layers])
        effective = ScopeConfig.from_dict(result.config)

        with span("loader.merge", candidates=len(candidates)):
            merged = merge_scoped_rules(
                candidates,
                strategy=effective.merge_strategy,
                conflict_resolution=effective.conflict_resolution,
            )
        result.rules = merged.rules
        result.conflicts = merged.conflicts

        logger.info(
            "Loaded %d rules from %d layers (%d errors, %d conflicts)",
            len(result.rules),
            len(layers),
            len(result.errors),
            len(result.conflicts),
        )
        return result

    def discover_layers(self, target: Path, errors: Optional[List[RulebookError]] = None) -> List[ScopeLayer]:
        """Return the scope layers for ``target``, lowest priority first."""
        cm = self.config_manager
        errors = errors if errors is not None else []
        target_rules = cm.rules_dir(target)

        target_layer_cfg, err = cm.read_layer(target_rules)
        if err is not None:
            errors.append(err)
        target_cfg = cm.load_config([target_layer_cfg])
        settings = ScopeConfig.from_dict(target_cfg)

        planned: List[Tuple[Path, str]] = []
        if target_cfg["hierarchy"].get("enabled", True):
            if settings.include_global:
                global_dir = cm.global_rules_dir()
                if global_dir.is_dir():
                    planned.append((global_dir, "global"))

            entries = sorted(
                (e for e in settings.inheritance if isinstance(e, dict) and e.get("path")),
                key=lambda e: int(e.get("priority", 0)),
            )
            for entry in entries:
                inherited = _resolve_path(str(entry["path"]), target)
                if inherited.is_dir():
                    planned.append((inherited, "project"))
                else:
                    logger.debug("Skipping missing inherited rules dir %s", inherited)

            if settings.discover_ancestors:
                for ancestor in reversed(target.parents):
                    if cm.has_scope_config(ancestor):
                        planned.append((cm.rules_dir(ancestor), "project"))

        planned.append((target_rules, "package"))

        layers: List[ScopeLayer] = []
        seen = set()
        for priority, (path, positional_scope) in enumerate(planned):
            key = path.resolve()
            if key in seen:
                continue
            seen.add(key)
            if path == target_rules:
                layer_cfg = target_layer_cfg
            else:
                layer_cfg, err = cm.read_layer(path)
                if err is not None:
                    errors.append(err)
            scope = (layer_cfg.get("metadata") or {}).get("scope") or positional_scope
            layers.append(ScopeLayer(path=path, scope=str(scope), priority=priority, config=layer_cfg))
        return layers

    def load_directory(self, rules_dir: Path) -> Tuple[List[Rule], List[RulebookError]]:
        """Load every rule file below ``rules_dir`` in sorted path order."""
        rules: List[Rule] = []
        errors: List[RulebookError] = []
        if not Path(rules_dir).is_dir():
            return rules, errors

        index_name = str(self.config_manager.defaults()["paths"]["indexFile"])
        for path in iter_yaml_files(rules_dir):
            if path.parent == Path(rules_dir) and path.name == index_name:
                continue
            file_rules, file_errors = load_rule_file(path)
            rules.extend(file_rules)
            errors.extend(file_errors)
        return rules, errors


def load_rule_file(path: Path) -> Tuple[List[Rule], List[RulebookError]]:
    """Parse one rule document (a rule, a list of rules, or ``rules:``)."""
    rules: List[Rule] = []
    errors: List[RulebookError] = []
    file = str(path)
    try:
        content = read_text(path)
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Skipping unreadable %s: %s", file, exc)
        return rules, [ParseError(f"Cannot read rule file: {exc}", file=file)]
    try:
        data = load_yaml_document(content, file=file)
    except ParseError as exc:
        logger.warning("Skipping %s: %s", file, exc)
        return rules, [exc]

    if data is None:
        return rules, errors
    if isinstance(data, dict) and isinstance(data.get("rules"), list):
        documents = data["rules"]
    elif isinstance(data, list):
        documents = data
    elif isinstance(data, dict):
        documents = [data]
    else:
        return rules, [ValidationError.invalid_value("<root>", "rule mapping or list", type(data).__name__, file=file)]

    for document in documents:
        problems = validate_rule(document, file=file)
        if problems:
            errors.extend(problems)
            continue
        rules.append(Rule.from_dict(document, source=file))
    return rules, errors


def _resolve_path(raw: str, base: Path) -> Path:
    candidate = Path(raw).expanduser()
    if not candidate.is_absolute():
        candidate = base / candidate
    return candidate.resolve()


__all__ = ["ScopeLayer", "LoadResult", "RuleLoader", "load_rule_file"]
