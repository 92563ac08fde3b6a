"""In-memory store and the YAML file repository."""
from __future__ import annotations

from pathlib import Path

import yaml

from helpers.factories import rule_obj, write_yaml_file
from rulebook.core.rules.repository import FileRuleRepository, build_rule_index
from rulebook.core.rules.store import RuleStore


def test_store_tracks_revision_and_order():
    store = RuleStore([rule_obj("b-001"), rule_obj("a-001")])
    start = store.revision

    store.put(rule_obj("c-001"))
    store.remove("missing")
    store.remove("b-001")

    assert store.ids() == ["a-001", "c-001"]
    assert store.revision == start + 2
    assert "a-001" in store
    assert len(store) == 2


def test_store_by_category_matches_prefix_segments():
    store = RuleStore(
        [
            rule_obj("a-001", category="code"),
            rule_obj("b-001", category="code/naming"),
            rule_obj("c-001", category="codebase"),
        ]
    )
    assert [r.id for r in store.by_category("code")] == ["a-001", "b-001"]
    assert [r.id for r in store.by_category("code/")] == ["a-001", "b-001"]


def test_rule_path_groups_by_category_and_prefix(tmp_path: Path):
    repo = FileRuleRepository(tmp_path)
    assert repo.rule_path(rule_obj("naming-001", category="code/naming")) == tmp_path / "rules" / "code" / "naming.yaml"
    assert repo.rule_path(rule_obj("git-001", category="git")) == tmp_path / "rules" / "git.yaml"


def test_save_rule_replaces_entry_in_grouped_file(tmp_path: Path):
    target = tmp_path / "rules" / "code" / "naming.yaml"
    write_yaml_file(
        target,
        {"rules": [
            {"id": "naming-001", "name": "Old"},
            {"id": "naming-002", "name": "Other"},
        ]},
    )
    repo = FileRuleRepository(tmp_path)

    path = repo.save_rule(rule_obj("naming-001", name="New", category="code/naming"))

    assert path == target
    data = yaml.safe_load(target.read_text(encoding="utf-8"))
    assert [r["name"] for r in data["rules"]] == ["New", "Other"]


def test_save_rule_keeps_existing_source_file(tmp_path: Path):
    source = tmp_path / "rules" / "custom.yaml"
    write_yaml_file(source, [{"id": "naming-001", "name": "Old"}])
    rule = rule_obj("naming-001", category="code/naming")
    rule.source = str(source)

    path = FileRuleRepository(tmp_path).save_rule(rule)

    assert path == source
    assert yaml.safe_load(source.read_text(encoding="utf-8"))[0]["name"] == rule.name


def test_save_rule_next_to_single_document(tmp_path: Path):
    target = tmp_path / "rules" / "git.yaml"
    write_yaml_file(target, {"id": "git-001", "name": "First"})

    FileRuleRepository(tmp_path).save_rule(rule_obj("git-002", category="git"))

    data = yaml.safe_load(target.read_text(encoding="utf-8"))
    assert [d["id"] for d in data] == ["git-001", "git-002"]


def test_history_is_capped_at_limit(tmp_path: Path):
    repo = FileRuleRepository(tmp_path, history_limit=2)
    entries = [{"version": f"1.0.{n}"} for n in (3, 2, 1)]

    repo.save_history("a-001", entries)

    assert repo.load_history("a-001") == entries[:2]
    assert (tmp_path / "rules" / ".history" / "a-001.yaml").exists()
    assert repo.load_history("unknown") == []


def test_build_rule_index():
    rules = [
        rule_obj("naming-001", category="code/naming", tags=["naming", "style"]),
        rule_obj("naming-002", category="code/naming", tags=["naming"]),
        rule_obj("git-001", category="git", tags=["git"]),
    ]

    index = build_rule_index(rules, "project", files={"git-001": "git.yaml"})

    assert index["metadata"]["scope"] == "project"
    code = index["categories"][0]
    assert code["id"] == "code"
    assert code["ruleCount"] == 2
    assert code["subcategories"] == [{"id": "code/naming", "name": "naming", "ruleCount": 2}]
    assert "subcategories" not in index["categories"][1]
    assert index["tags"] == ["git", "naming", "style"]
    assert index["rules"][0]["file"] == "naming.yaml"
    assert index["rules"][2]["file"] == "git.yaml"


def test_save_and_load_index(tmp_path: Path):
    repo = FileRuleRepository(tmp_path)
    repo.save_index({"tags": ["a"]})
    assert repo.load_index() == {"tags": ["a"]}
