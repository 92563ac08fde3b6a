"""
Rulebook configuration management.

Configuration sources (highest to lowest priority):
1. Environment variables: ``RULEBOOK_<section>__<key>``
2. Scope config files ``<scope>/rules/.rulebook-config.yaml``, most specific last
3. Bundled defaults: ``rulebook.data/config/defaults.yaml``
"""
from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from rulebook.data import read_yaml as read_data_yaml

from ..exceptions import ConfigError, ParseError
from ..schemas import iter_schema_issues
from ..utils.io import read_yaml
from ..utils.merge import deep_merge
from ..utils.profiling import span

logger = logging.getLogger(__name__)

ENV_PREFIX = "RULEBOOK_"
HOME_ENV = "RULEBOOK_HOME"


@dataclass
class ScopeConfig:
    """Typed view over a merged config dict."""

    scope: str = "package"
    version: str = "1.0.0"
    merge_strategy: str = "override"
    conflict_resolution: str = "local-wins"
    include_global: bool = True
    discover_ancestors: bool = True
    inheritance: List[Dict[str, Any]] = field(default_factory=list)
    similarity_threshold: float = 0.5
    search_weights: Dict[str, float] = field(default_factory=dict)
    history_limit: int = 50
    compare_fields: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any]) -> "ScopeConfig":
        metadata = cfg.get("metadata") or {}
        hierarchy = cfg.get("hierarchy") or {}
        search = cfg.get("search") or {}
        return cls(
            scope=str(metadata.get("scope", "package")),
            version=str(metadata.get("version", "1.0.0")),
            merge_strategy=str(hierarchy.get("mergeStrategy", "override")),
            conflict_resolution=str(hierarchy.get("conflictResolution", "local-wins")),
            include_global=bool(hierarchy.get("includeGlobal", True)),
            discover_ancestors=bool(hierarchy.get("discoverAncestors", True)),
            inheritance=list(cfg.get("inheritance") or []),
            similarity_threshold=float(search.get("similarityThreshold", 0.5)),
            search_weights=dict(search.get("weights") or {}),
            history_limit=int((cfg.get("versioning") or {}).get("historyLimit", 50)),
            compare_fields=list((cfg.get("sync") or {}).get("compareFields") or []),
        )


class ConfigManager:
    """Load, layer and validate rulebook configuration for one base path."""

    def __init__(self, base_path: Optional[Path] = None) -> None:
        self.base_path = Path(base_path or Path.cwd()).resolve()

    # ---------- defaults & paths ----------

    def defaults(self) -> Dict[str, Any]:
        return read_data_yaml("config", "defaults.yaml")

    def config_filename(self) -> str:
        return str(self.defaults()["paths"]["configFile"])

    def rules_dir(self, root: Optional[Path] = None) -> Path:
        """``<root>/rules`` (root defaults to the base path)."""
        return Path(root or self.base_path) / str(self.defaults()["paths"]["rulesDir"])

    def global_rules_dir(self) -> Path:
        """Global scope directory, relocated by ``RULEBOOK_HOME`` when set."""
        home = os.environ.get(HOME_ENV)
        if home:
            return Path(home).expanduser() / str(self.defaults()["paths"]["rulesDir"])
        return Path(str(self.defaults()["paths"]["globalDir"])).expanduser()

    # ---------- scope files ----------

    def read_layer(self, rules_dir: Path) -> Tuple[Dict[str, Any], Optional[ConfigError]]:
        """Read one scope's config file without defaults.

        Returns the raw document (``{}`` when absent) and the error that made
        it unusable, if any. An invalid document is replaced by ``{}``.
        """
        path = Path(rules_dir) / self.config_filename()
        if not path.exists():
            return {}, None
        try:
            data = read_yaml(path, default={}, raise_on_error=True)
        except ParseError as exc:
            logger.warning("Ignoring unparsable scope config %s: %s", path, exc)
            return {}, ConfigError(f"Malformed scope config: {exc}", file=str(path))
        if not isinstance(data, dict):
            return {}, ConfigError("Scope config must be a mapping", file=str(path))

        issues = iter_schema_issues(data, "scope-config")
        if issues:
            details = "; ".join(f"{i.field}: {i.message}" for i in issues)
            logger.warning("Ignoring invalid scope config %s: %s", path, details)
            return {}, ConfigError(f"Invalid scope config: {details}", file=str(path))
        return data, None

    def has_scope_config(self, root: Path) -> bool:
        return (self.rules_dir(root) / self.config_filename()).exists()

    def load_scope_config(self, rules_dir: Path) -> Dict[str, Any]:
        """Defaults merged with one scope's config file and env overrides."""
        layer, _ = self.read_layer(rules_dir)
        return self.load_config([layer])

    def load_config(self, layers: Optional[Sequence[Dict[str, Any]]] = None) -> Dict[str, Any]:
        """Merge ``layers`` (lowest priority first) over the defaults.

        With no layers, the base path's own scope config is used.
        """
        with span("config.load"):
            if layers is None:
                layer, _ = self.read_layer(self.rules_dir())
                layers = [layer]
            cfg = self.defaults()
            for layer in layers:
                cfg = deep_merge(cfg, layer or {})
            self.apply_env_overrides(cfg)
            return cfg

    def scope_config(self, layers: Optional[Sequence[Dict[str, Any]]] = None) -> ScopeConfig:
        return ScopeConfig.from_dict(self.load_config(layers))

    # ---------- environment overrides ----------

    def apply_env_overrides(self, cfg: Dict[str, Any]) -> None:
        for path, value in self._iter_env_overrides():
            self._set_nested(cfg, path, value)

    def _iter_env_overrides(self) -> Iterator[Tuple[List[str], Any]]:
        for key in sorted(os.environ):
            if not key.startswith(ENV_PREFIX):
                continue
            raw = key[len(ENV_PREFIX):]
            if "__" not in raw:
                continue
            parts = raw.split("__")
            if any(not p for p in parts):
                logger.warning("Ignoring malformed override %s", key)
                continue
            yield parts, self._coerce(os.environ[key])

    def _set_nested(self, root: Dict[str, Any], path: List[str], value: Any) -> None:
        current = root
        for part in path[:-1]:
            key = self._match_key(current, part)
            child = current.get(key)
            if not isinstance(child, dict):
                child = {}
                current[key] = child
            current = child
        current[self._match_key(current, path[-1])] = value

    @staticmethod
    def _match_key(container: Dict[str, Any], name: str) -> str:
        # Env var names are often upper-cased; match existing keys case-insensitively.
        lowered = {k.lower(): k for k in container if isinstance(k, str)}
        return lowered.get(name.lower(), name)

    @staticmethod
    def _coerce(value: str) -> Any:
        text = value.strip()
        low = text.lower()
        if low in ("true", "false"):
            return low == "true"
        if re.fullmatch(r"[-+]?\d+", text):
            return int(text)
        if re.fullmatch(r"[-+]?(\d+\.\d*|\d*\.\d+)", text):
            return float(text)
        if (text.startswith("[") and text.endswith("]")) or (text.startswith("{") and text.endswith("}")):
            try:
                return json.loads(text)
            except json.JSONDecodeError:
                return text
        return text


__all__ = ["ConfigManager", "ScopeConfig", "ENV_PREFIX", "HOME_ENV"]
