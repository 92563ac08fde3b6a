"""Scope config layering, schema validation and env overrides."""
from __future__ import annotations

from pathlib import Path

from helpers.factories import write_yaml_file
from rulebook.core.config import ConfigManager, ScopeConfig
from rulebook.core.exceptions import ConfigError


def _write_config(root: Path, data) -> Path:
    return write_yaml_file(root / "rules" / ".rulebook-config.yaml", data)


def test_defaults_without_scope_file(tmp_path: Path):
    cfg = ConfigManager(tmp_path).load_config()
    assert cfg["hierarchy"]["mergeStrategy"] == "override"
    assert cfg["paths"]["rulesDir"] == "rules"
    assert cfg["search"]["similarityThreshold"] == 0.5


def test_scope_file_overrides_defaults(tmp_path: Path):
    _write_config(tmp_path, {"hierarchy": {"mergeStrategy": "merge", "includeGlobal": False}})

    settings = ConfigManager(tmp_path).scope_config()

    assert settings.merge_strategy == "merge"
    assert settings.include_global is False
    assert settings.conflict_resolution == "local-wins"


def test_layers_merge_lowest_priority_first(tmp_path: Path):
    manager = ConfigManager(tmp_path)
    cfg = manager.load_config(
        [
            {"hierarchy": {"conflictResolution": "parent-wins"}},
            {"hierarchy": {"conflictResolution": "manual"}},
        ]
    )
    assert cfg["hierarchy"]["conflictResolution"] == "manual"


def test_load_scope_config_reads_another_directory(tmp_path: Path):
    other = tmp_path / "shared"
    _write_config(other, {"hierarchy": {"mergeStrategy": "append"}})

    cfg = ConfigManager(tmp_path).load_scope_config(other / "rules")

    assert cfg["hierarchy"]["mergeStrategy"] == "append"
    assert cfg["hierarchy"]["conflictResolution"] == "local-wins"


def test_env_override_wins_over_files(tmp_path: Path, monkeypatch):
    _write_config(tmp_path, {"hierarchy": {"mergeStrategy": "merge"}})
    monkeypatch.setenv("RULEBOOK_HIERARCHY__MERGESTRATEGY", "append")
    monkeypatch.setenv("RULEBOOK_versioning__historyLimit", "5")
    monkeypatch.setenv("RULEBOOK_sync__compareFields", '["name", "tags"]')

    cfg = ConfigManager(tmp_path).load_config()

    assert cfg["hierarchy"]["mergeStrategy"] == "append"
    assert "MERGESTRATEGY" not in cfg["hierarchy"]
    assert cfg["versioning"]["historyLimit"] == 5
    assert cfg["sync"]["compareFields"] == ["name", "tags"]


def test_env_override_coercion():
    coerce = ConfigManager._coerce
    assert coerce("true") is True
    assert coerce("FALSE") is False
    assert coerce("12") == 12
    assert coerce("0.75") == 0.75
    assert coerce("[broken") == "[broken"
    assert coerce("plain") == "plain"


def test_invalid_scope_config_is_reported_and_ignored(tmp_path: Path):
    _write_config(tmp_path, {"hierarchy": {"mergeStrategy": "shuffle"}})
    manager = ConfigManager(tmp_path)

    layer, err = manager.read_layer(manager.rules_dir())

    assert layer == {}
    assert isinstance(err, ConfigError)
    assert "mergeStrategy" in str(err)
    assert manager.scope_config().merge_strategy == "override"


def test_malformed_yaml_scope_config(tmp_path: Path):
    path = tmp_path / "rules" / ".rulebook-config.yaml"
    path.parent.mkdir(parents=True)
    path.write_text("hierarchy: [\n", encoding="utf-8")
    manager = ConfigManager(tmp_path)

    layer, err = manager.read_layer(manager.rules_dir())

    assert layer == {}
    assert err is not None
    assert err.context["file"] == str(path)


def test_global_dir_follows_rulebook_home(rulebook_home: Path, tmp_path: Path):
    assert ConfigManager(tmp_path).global_rules_dir() == rulebook_home / "rules"


def test_scope_config_from_dict_reads_sections():
    settings = ScopeConfig.from_dict(
        {
            "metadata": {"scope": "project"},
            "inheritance": [{"path": "../shared", "priority": 1}],
            "search": {"similarityThreshold": 0.7, "weights": {"name": 0.5}},
            "sync": {"compareFields": ["name"]},
        }
    )
    assert settings.scope == "project"
    assert settings.inheritance == [{"path": "../shared", "priority": 1}]
    assert settings.similarity_threshold == 0.7
    assert settings.search_weights == {"name": 0.5}
    assert settings.compare_fields == ["name"]
