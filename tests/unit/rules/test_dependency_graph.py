"""Dependency graph: cycles, ordering, conflicts and reference checks."""
from __future__ import annotations

import pytest

from helpers.factories import rule_obj
from rulebook.core.exceptions import DependencyError
from rulebook.core.rules.graph import (
    build_dependency_graph,
    check_conflicts,
    find_cycles,
    sort_by_dependencies,
    topological_order,
    validate_all_dependencies,
    validate_dependencies,
)


def _rule(rule_id: str, requires=(), conflicts=(), extends=None, **kw):
    deps = {}
    if requires:
        deps["requires"] = list(requires)
    if conflicts:
        deps["conflicts"] = list(conflicts)
    if extends:
        deps["extends"] = extends
    if deps:
        kw["dependencies"] = deps
    return rule_obj(rule_id, **kw)


def test_topological_order_puts_requirements_first():
    rules = [_rule("a", requires=["b"]), _rule("b", requires=["c"]), _rule("d"), _rule("c")]
    assert topological_order(rules) == ["c", "b", "a", "d"]


def test_missing_requirements_are_ignored_for_ordering():
    rules = [_rule("a", requires=["ghost"]), _rule("b")]
    assert topological_order(rules) == ["a", "b"]


def test_sort_by_dependencies_returns_rules():
    rules = [_rule("a", requires=["b"]), _rule("b")]
    assert [r.id for r in sort_by_dependencies(rules)] == ["b", "a"]


def test_requires_cycle_raises_with_path():
    rules = [_rule("a", requires=["b"]), _rule("b", requires=["a"]), _rule("c")]

    with pytest.raises(DependencyError) as excinfo:
        topological_order(rules)

    assert excinfo.value.cycle == ["a", "b", "a"]
    assert "a -> b -> a" in str(excinfo.value)


def test_extends_cycle_is_also_rejected():
    rules = [_rule("a", extends="b"), _rule("b", extends="a")]
    with pytest.raises(DependencyError):
        topological_order(rules)


def test_graph_reports_cycles_once():
    rules = [_rule("a", requires=["b"]), _rule("b", requires=["c"]), _rule("c", requires=["a"])]

    graph = build_dependency_graph(rules)

    assert graph.cycles == [["a", "b", "c", "a"]]
    assert set(graph.nodes) == {"a", "b", "c"}


def test_find_cycles_detects_self_reference():
    graph = build_dependency_graph([_rule("a", requires=["a"])])
    assert find_cycles(graph.nodes) == [["a", "a"]]


def test_conflict_pairs_are_normalized():
    graph = build_dependency_graph([_rule("b", conflicts=["a"]), _rule("a", conflicts=["b"])])
    assert graph.conflict_pairs == [("a", "b")]


def test_check_conflicts_reasons():
    rules = [
        _rule("a", conflicts=["b"]),
        _rule("b"),
        _rule("c", conflicts=["d"]),
        _rule("d", conflicts=["c"]),
        _rule("e", requires=["f"]),
        _rule("f", conflicts=["g"]),
        _rule("g"),
    ]

    report = check_conflicts(rules)

    found = {(d.rule_a, d.rule_b): d for d in report.conflicts}
    assert report.has_conflicts
    assert found[("a", "b")].reason == "explicit"
    assert found[("c", "d")].reason == "mutual"
    assert ("d", "c") not in found
    assert found[("f", "g")].reason == "explicit"
    assert found[("e", "g")].reason == "transitive"
    assert found[("e", "g")].path == ["e", "f", "g"]


def test_validate_dependencies_collects_every_problem():
    rules = [
        _rule("a", requires=["ghost", "a"], conflicts=["b", "nobody"], extends="missing"),
        _rule("b"),
    ]

    result = validate_dependencies(rules[0], rules)

    reasons = [e.reason for e in result.errors]
    assert not result.valid
    assert reasons == ["missing", "dangling:extends", "dangling:conflicts", "cycle", "explicit"]
    assert result.errors[0].missing == ["ghost"]


def test_disabled_rule_conflicts_are_allowed():
    rules = [_rule("a", conflicts=["b"]), _rule("b", enabled=False)]
    assert validate_dependencies(rules[0], rules).valid


def test_validate_all_dependencies_adds_cycles_and_transitive_conflicts():
    rules = [
        _rule("a", requires=["b"]),
        _rule("b", requires=["a"]),
        _rule("e", requires=["f"]),
        _rule("f", conflicts=["g"]),
        _rule("g"),
    ]

    result = validate_all_dependencies(rules)

    reasons = sorted(e.reason for e in result.errors)
    assert reasons == ["cycle", "explicit", "transitive"]


def test_valid_graph_passes():
    rules = [_rule("a", requires=["b"]), _rule("b")]
    assert validate_all_dependencies(rules).valid
