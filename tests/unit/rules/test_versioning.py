"""Semantic versions, changelog snapshots, diff and rollback."""
from __future__ import annotations

from pathlib import Path

import pytest

from helpers.factories import rule_obj
from rulebook.core.exceptions import VersionError
from rulebook.core.rules.repository import FileRuleRepository
from rulebook.core.rules.store import RuleStore
from rulebook.core.rules.versioning import (
    RuleVersioning,
    compare_versions,
    format_diff,
    increment_version,
    initialize_versioning,
    parse_version,
    validate_version,
)


@pytest.mark.parametrize(
    "bump,expected",
    [("major", "2.0.0"), ("minor", "1.3.0"), ("patch", "1.2.4")],
)
def test_increment_version(bump, expected):
    assert increment_version("1.2.3", bump) == expected


def test_increment_rejects_unknown_bump():
    with pytest.raises(VersionError):
        increment_version("1.0.0", "micro")


def test_compare_versions_is_numeric():
    assert compare_versions("1.10.0", "1.9.0") == 1
    assert compare_versions("1.0.0", "1.0.0") == 0
    assert compare_versions("0.9.9", "1.0.0") == -1


@pytest.mark.parametrize("bad", ["1.0", "v1.0.0", "1.0.0-beta", ""])
def test_malformed_versions(bad):
    assert not validate_version(bad)
    with pytest.raises(VersionError):
        parse_version(bad)


def test_initialize_versioning():
    rule = initialize_versioning(rule_obj("a-001"), author="ana")
    assert rule.version == "1.0.0"
    assert rule.metadata.status == "draft"
    assert rule.metadata.changelog[0].changes == "Initial version"
    assert rule.metadata.changelog[0].snapshot is None


@pytest.fixture
def versioned(tmp_path: Path):
    store = RuleStore([initialize_versioning(rule_obj("a-001", severity="warning"), author="ana")])
    repo = FileRuleRepository(tmp_path)
    return store, repo, RuleVersioning(store, repo)


def test_create_version_snapshots_previous_state(versioned):
    store, repo, versioning = versioned
    before = store.get("a-001")

    updated = versioning.create_version(before, "Escalate", "bo", bump="minor", updates={"severity": "error"})

    assert updated.version == "1.1.0"
    assert updated.severity == "error"
    assert before.severity == "warning"
    entry = updated.metadata.changelog[0]
    assert entry.version == "1.1.0"
    assert entry.author == "bo"
    assert entry.snapshot["severity"] == "warning"
    assert entry.snapshot["metadata"]["version"] == "1.0.0"
    assert "changelog" not in entry.snapshot["metadata"]
    assert updated.updated == entry.date
    assert [e["version"] for e in repo.load_history("a-001")] == ["1.1.0", "1.0.0"]


def test_create_version_initializes_unversioned_rule(tmp_path: Path):
    store = RuleStore([rule_obj("a-001")])
    updated = RuleVersioning(store).create_version(store.get("a-001"), "Touch", "ana")
    assert updated.version == "1.0.1"
    assert [e.version for e in updated.metadata.changelog] == ["1.0.1", "1.0.0"]


def test_diff_between_versions(versioned):
    store, _, versioning = versioned
    store.put(versioning.create_version(store.get("a-001"), "Escalate", "bo", updates={"severity": "error"}))

    diff = versioning.diff("a-001", "1.0.0", "1.0.1")

    assert [(c.field, c.old_value, c.new_value, c.type) for c in diff.changes] == [
        ("severity", "warning", "error", "modified")
    ]
    text = format_diff(diff)
    assert "~ severity:" in text
    assert '+ "error"' in text


def test_rollback_creates_new_active_version(versioned):
    store, _, versioning = versioned
    store.put(versioning.create_version(store.get("a-001"), "Escalate", "bo", updates={"severity": "error"}))

    restored = versioning.rollback("a-001", "1.0.0", author="cy")
    store.put(restored)

    assert restored.version == "1.0.2"
    assert restored.severity == "warning"
    assert restored.metadata.status == "active"
    assert restored.metadata.changelog[0].changes == "Rolled back to version 1.0.0"
    assert len(restored.metadata.changelog) == 3
    assert versioning.diff("a-001", "1.0.0", "1.0.2").changes == []


def test_unknown_version_and_rule(versioned):
    _, _, versioning = versioned
    with pytest.raises(VersionError) as excinfo:
        versioning.rollback("a-001", "9.9.9")
    assert excinfo.value.version == "9.9.9"
    with pytest.raises(VersionError):
        versioning.diff("a-001", "1.0", "1.0.0")
    with pytest.raises(VersionError):
        versioning.rollback("ghost-001", "1.0.0")


def test_history_falls_back_to_repository(versioned):
    store, _, versioning = versioned
    store.put(versioning.create_version(store.get("a-001"), "Escalate", "bo"))
    store.remove("a-001")

    assert [e.version for e in versioning.get_history("a-001")] == ["1.0.1", "1.0.0"]
    assert versioning.get_history("never-001") == []
