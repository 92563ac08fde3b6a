"""The RulebookManager facade over a real rules tree."""
from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from helpers.factories import make_rule, rule_obj
from rulebook.core.adapters import CursorAdapter
from rulebook.core.exceptions import ValidationError
from rulebook.core.rules import RulebookManager


@pytest.fixture
def project(rule_tree):
    return rule_tree(
        {
            "code/naming.yaml": [
                make_rule("naming-001", category="code/naming", tags=["naming"]),
                make_rule(
                    "naming-002",
                    category="code/naming",
                    dependencies={"requires": ["naming-001"]},
                    conditions={"filePatterns": ["*.ts"]},
                ),
            ],
            "git.yaml": [make_rule("git-001", category="git", tags=["git"])],
        }
    )


def _loaded(root: Path) -> RulebookManager:
    manager = RulebookManager(root)
    manager.load_rules_for_path()
    return manager


def test_queries(project):
    manager = _loaded(project)

    assert {r.id for r in manager.get_all_rules()} == {"naming-001", "naming-002", "git-001"}
    assert manager.get_rule("git-001").category == "git"
    assert manager.get_rule("missing") is None
    assert [r.id for r in manager.get_rules_by_category("code")] == ["naming-001", "naming-002"]
    assert [r.id for r in manager.get_applicable_rules(file_path="a.py")] == ["naming-001", "git-001"]


def test_dependency_views(project):
    manager = _loaded(project)

    order = [r.id for r in manager.sort_by_dependencies()]
    assert order.index("naming-001") < order.index("naming-002")
    assert manager.detect_circular_dependencies() == []
    assert not manager.check_conflicts().has_conflicts
    assert manager.validate_dependencies("naming-002").valid
    assert manager.validate_all_dependencies().valid
    with pytest.raises(ValidationError):
        manager.validate_dependencies("ghost")


def test_update_rule_persists_version_and_history(project):
    manager = _loaded(project)

    updated = manager.update_rule("git-001", {"severity": "error"}, changes="Escalate", author="ana")

    assert updated.version == "1.0.1"
    assert updated.source.endswith("git.yaml")
    on_disk = yaml.safe_load((project / "rules" / "git.yaml").read_text(encoding="utf-8"))
    assert on_disk["rules"][0]["severity"] == "error"
    assert on_disk["rules"][0]["metadata"]["version"] == "1.0.1"
    assert (project / "rules" / ".history" / "git-001.yaml").exists()
    assert [e.version for e in manager.get_history("git-001")] == ["1.0.1", "1.0.0"]

    restored = manager.rollback_rule("git-001", "1.0.0", author="bo")
    assert restored.severity == "warning"
    assert manager.diff_versions("git-001", "1.0.0", restored.version).changes == []

    # The saved tree reloads cleanly.
    reloaded = _loaded(project)
    assert reloaded.last_load.ok
    assert reloaded.get_rule("git-001").version == "1.0.2"


def test_save_rule_rejects_invalid_documents(project):
    manager = _loaded(project)
    broken = manager.get_rule("git-001").copy()
    broken.severity = "fatal"

    with pytest.raises(ValidationError):
        manager.save_rule(broken)


def test_rejected_update_leaves_no_history(project):
    manager = _loaded(project)

    with pytest.raises(ValidationError):
        manager.update_rule("git-001", {"severity": "bogus"}, changes="Bad", author="ana")

    assert not (project / "rules" / ".history" / "git-001.yaml").exists()
    assert manager.get_rule("git-001").severity == "warning"
    assert [e.version for e in manager.get_history("git-001")] == []
    on_disk = yaml.safe_load((project / "rules" / "git.yaml").read_text(encoding="utf-8"))
    assert "metadata" not in on_disk["rules"][0]


def test_update_index(project):
    manager = _loaded(project)

    path = manager.update_index()

    index = yaml.safe_load(path.read_text(encoding="utf-8"))
    files = {ref["id"]: ref["file"] for ref in index["rules"]}
    assert files["naming-001"] == "code/naming.yaml"
    assert index["metadata"]["scope"] == "package"
    # The index is not itself loaded as a rule file.
    assert _loaded(project).last_load.ok


def test_search_index_is_rebuilt_after_changes(project):
    manager = _loaded(project)
    first = manager.search_index
    assert manager.search_index is first

    manager.update_rule("git-001", {"tags": ["git", "commits"]}, changes="Tag", author="ana")

    assert manager.search_index is not first
    assert [r.rule.id for r in manager.search(tags=["commits"])] == ["git-001"]


def test_find_similar_uses_configured_threshold(project):
    manager = _loaded(project)
    similar = manager.find_similar("naming-001", threshold=0.3)
    assert similar[0].rule.id == "naming-002"


@pytest.fixture
def manual_conflict(rule_tree, tmp_path: Path) -> Path:
    rule_tree({"naming.yaml": [make_rule("naming-001", name="Project")]}, config={"metadata": {"scope": "project"}})
    return rule_tree(
        {"naming.yaml": [make_rule("naming-001", name="Package")]},
        root=tmp_path / "pkg",
        config={"hierarchy": {"conflictResolution": "manual"}},
    )


def test_pending_conflict_blocks_save_until_resolved(manual_conflict: Path, tmp_path: Path):
    manager = _loaded(manual_conflict)
    [pending] = manager.pending_conflicts()
    assert manager.get_rule("naming-001") is None

    with pytest.raises(ValidationError):
        manager.save_rule(pending.candidates[0].rule)

    project_source = str(tmp_path / "rules" / "naming.yaml")
    winner = manager.resolve_merge_conflict("naming-001", project_source)

    assert winner.name == "Project"
    assert manager.get_rule("naming-001").name == "Project"
    assert manager.pending_conflicts() == []


def test_sync_leaves_pending_conflict_ids_alone(manual_conflict: Path):
    adapter = CursorAdapter(manual_conflict)
    adapter.write(adapter.format([rule_obj("naming-001", name="Remote")]))
    manager = _loaded(manual_conflict)
    sync = manager.sync_manager()

    pulled = sync.sync("cursor", "pull").pulled

    assert pulled.new_rules == []
    assert pulled.blocked == ["naming-001"]
    assert manager.get_rule("naming-001") is None
    assert len(manager.pending_conflicts()) == 1
    local = yaml.safe_load((manual_conflict / "rules" / "naming.yaml").read_text(encoding="utf-8"))
    assert local["rules"][0]["name"] == "Package"

    result = sync.sync("cursor", "both")

    assert not result.success
    assert "naming-001" in result.errors[0]
    assert "naming-001" in adapter.read()


def test_resolve_merge_conflict_errors(manual_conflict: Path):
    manager = _loaded(manual_conflict)
    with pytest.raises(ValidationError):
        manager.resolve_merge_conflict("naming-001", "/nowhere.yaml")
    with pytest.raises(ValidationError):
        manager.resolve_merge_conflict("other-001", "/nowhere.yaml")
