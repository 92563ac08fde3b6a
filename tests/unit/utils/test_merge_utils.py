"""Layered merge helpers used for scope configs and rule fields."""
from __future__ import annotations

from rulebook.core.utils.merge import deep_merge, merge_arrays, union_lists


def test_deep_merge_recurses_into_mappings():
    base = {"hierarchy": {"mergeStrategy": "override", "includeGlobal": True}}
    override = {"hierarchy": {"mergeStrategy": "merge"}}

    merged = deep_merge(base, override)

    assert merged == {"hierarchy": {"mergeStrategy": "merge", "includeGlobal": True}}


def test_deep_merge_does_not_mutate_inputs():
    base = {"a": {"b": 1}}
    override = {"a": {"c": 2}}
    deep_merge(base, override)
    assert base == {"a": {"b": 1}}
    assert override == {"a": {"c": 2}}


def test_scalar_override_replaces_mapping():
    assert deep_merge({"a": {"b": 1}}, {"a": 3}) == {"a": 3}


def test_merge_arrays_replaces_by_default():
    assert merge_arrays([1, 2], [3]) == [3]


def test_merge_arrays_plus_marker_appends():
    assert merge_arrays(["name"], ["+", "tags"]) == ["name", "tags"]


def test_merge_arrays_equals_marker_replaces():
    assert merge_arrays(["name"], ["=", "tags"]) == ["tags"]


def test_empty_override_keeps_base():
    assert merge_arrays(["x"], []) == ["x"]


def test_deep_merge_applies_list_markers():
    base = {"sync": {"compareFields": ["name", "description"]}}
    merged = deep_merge(base, {"sync": {"compareFields": ["+", "tags"]}})
    assert merged["sync"]["compareFields"] == ["name", "description", "tags"]


def test_union_lists_keeps_first_occurrence_order():
    assert union_lists(["a", "b"], ["b", "c"], None, ["a", "d"]) == ["a", "b", "c", "d"]
