"""Structured error payloads and rendering."""
from __future__ import annotations

import pytest
import yaml

from rulebook.core.exceptions import (
    ConfigError,
    DependencyError,
    ParseError,
    RulebookError,
    SyncError,
    ValidationError,
    VersionError,
    categorize_error,
    format_error,
)


def test_parse_error_from_yaml_error_has_location_and_snippet():
    content = "rules:\n  - id: a\n    name: [unclosed\n"
    with pytest.raises(yaml.YAMLError) as excinfo:
        yaml.safe_load(content)

    error = ParseError.from_yaml_error(excinfo.value, "rules/a.yaml", content)

    assert error.file == "rules/a.yaml"
    assert error.line is not None
    rendered = error.format()
    assert rendered.startswith("[PARSE_ERROR]")
    assert "at: rules/a.yaml:" in rendered
    assert "hint:" in rendered


def test_to_json_error_keeps_plain_context_values():
    error = ValidationError.invalid_value("severity", ["error", "warning", "info"], "fatal", rule_id="a-001")

    payload = error.to_json_error()

    assert payload["code"] == "VALIDATION_ERROR"
    assert payload["type"] == "ValidationError"
    assert payload["context"]["field"] == "severity"
    assert payload["context"]["rule_id"] == "a-001"


def test_dependency_error_helpers():
    cycle = DependencyError.circular_dependency(["a", "b", "a"])
    assert cycle.cycle == ["a", "b", "a"]
    assert cycle.reason == "cycle"
    assert "a -> b -> a" in cycle.format()

    missing = DependencyError.missing_dependency("a", ["ghost"])
    assert missing.missing == ["ghost"]

    conflict = DependencyError.rule_conflict("a", "b", reason="transitive", path=["a", "c", "b"])
    assert conflict.conflicts == [("a", "b")]
    assert "via a -> c -> b" in str(conflict)


def test_sync_error_suggestion_depends_on_direction():
    assert "format" in SyncError.parse_error("cursor", ".cursorrules").context["suggestion"]
    assert "permissions" in SyncError.write_error("cursor", ".cursorrules").context["suggestion"]
    assert "naming-001" in str(SyncError.push_blocked("cursor", ["naming-001"]))


@pytest.mark.parametrize(
    "error, category",
    [
        (ParseError("bad"), "yaml"),
        (ValidationError("bad"), "validation"),
        (DependencyError("bad"), "dependency"),
        (SyncError("bad"), "sync"),
        (VersionError.invalid_format("1.0"), "version"),
        (ConfigError("bad"), "config"),
        (RulebookError("bad"), "rulebook"),
        (KeyError("bad"), "unknown"),
    ],
)
def test_categorize_error(error, category):
    assert categorize_error(error) == category


def test_format_error():
    assert format_error(ValueError("plain")) == "plain"
    assert format_error(VersionError.not_found("a", "9.9.9")).startswith("[VERSION_ERROR]")
