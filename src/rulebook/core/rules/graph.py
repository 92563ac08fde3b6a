"""Dependency analysis over ``requires``, ``conflicts`` and ``extends``.

The graph is a derived view: it is rebuilt from a rule list on demand and
never persisted. Edges to ids missing from the rule list are ignored for
traversal and reported by :func:`validate_dependencies` instead.
"""
from __future__ import annotations

import heapq
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..exceptions import DependencyError
from ..utils.profiling import span
from .models import Rule

WHITE, GREY, BLACK = 0, 1, 2


@dataclass
class DependencyNode:
    rule_id: str
    requires: List[str] = field(default_factory=list)
    conflicts: List[str] = field(default_factory=list)
    extends: Optional[str] = None

    def hard_edges(self) -> List[str]:
        """Outgoing ``requires`` then ``extends`` targets."""
        edges = list(self.requires)
        if self.extends:
            edges.append(self.extends)
        return edges


@dataclass
class DependencyGraph:
    nodes: Dict[str, DependencyNode] = field(default_factory=dict)
    cycles: List[List[str]] = field(default_factory=list)
    conflict_pairs: List[Tuple[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "nodes": {
                rid: {"requires": n.requires, "conflicts": n.conflicts, "extends": n.extends}
                for rid, n in self.nodes.items()
            },
            "cycles": [list(c) for c in self.cycles],
            "conflictPairs": [list(p) for p in self.conflict_pairs],
        }


@dataclass
class ConflictDetail:
    rule_a: str
    rule_b: str
    reason: str  # explicit | mutual | transitive
    path: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {"ruleA": self.rule_a, "ruleB": self.rule_b, "reason": self.reason}
        if self.path:
            data["path"] = list(self.path)
        return data


@dataclass
class ConflictReport:
    conflicts: List[ConflictDetail] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


@dataclass
class DependencyValidation:
    valid: bool
    errors: List[DependencyError] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Graph construction and cycles
# ---------------------------------------------------------------------------


def build_dependency_graph(rules: Iterable[Rule]) -> DependencyGraph:
    with span("graph.build"):
        graph = DependencyGraph()
        for rule in rules:
            graph.nodes[rule.id] = DependencyNode(
                rule_id=rule.id,
                requires=rule.requires,
                conflicts=rule.conflicts,
                extends=rule.extends,
            )
        graph.cycles = find_cycles(graph.nodes)

        seen: Set[Tuple[str, str]] = set()
        for rule_id, node in graph.nodes.items():
            for other in node.conflicts:
                pair = (rule_id, other) if rule_id < other else (other, rule_id)
                if pair not in seen:
                    seen.add(pair)
                    graph.conflict_pairs.append(pair)
        return graph


def find_cycles(nodes: Dict[str, DependencyNode], *, requires_only: bool = False) -> List[List[str]]:
    """Cycles over ``requires``/``extends`` edges, each as ``[a, ..., a]``.

    Iterative depth-first search with white/grey/black marking. A grey
    target closes a cycle made of the current path suffix. Rotations of the
    same cycle are reported once.
    """
    color: Dict[str, int] = {node_id: WHITE for node_id in nodes}
    cycles: List[List[str]] = []
    seen: Set[Tuple[str, ...]] = set()

    def edges(node_id: str) -> List[str]:
        node = nodes[node_id]
        targets = node.requires if requires_only else node.hard_edges()
        return [t for t in targets if t in nodes]

    for root in nodes:
        if color[root] != WHITE:
            continue
        path: List[str] = [root]
        stack: List[Tuple[str, int]] = [(root, 0)]
        color[root] = GREY
        while stack:
            node_id, index = stack[-1]
            children = edges(node_id)
            if index >= len(children):
                stack.pop()
                path.pop()
                color[node_id] = BLACK
                continue
            stack[-1] = (node_id, index + 1)
            child = children[index]
            if color[child] == GREY:
                cycle = path[path.index(child):] + [child]
                key = _canonical(cycle)
                if key not in seen:
                    seen.add(key)
                    cycles.append(cycle)
            elif color[child] == WHITE:
                color[child] = GREY
                path.append(child)
                stack.append((child, 0))
    return cycles


def _canonical(cycle: Sequence[str]) -> Tuple[str, ...]:
    body = list(cycle[:-1])
    start = body.index(min(body))
    return tuple(body[start:] + body[:start])


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


def topological_order(rules: Sequence[Rule]) -> List[str]:
    """Rule ids ordered so each rule follows everything it requires.

    Kahn's algorithm over ``requires`` edges; ready ids are emitted in
    lexicographic order. Cycles through ``extends`` also make the order
    undefined and are rejected as well.

    Raises:
        DependencyError: With the offending cycle when one exists.
    """
    with span("graph.sort", rules=len(rules)):
        ids = {rule.id for rule in rules}
        indegree: Dict[str, int] = {rule.id: 0 for rule in rules}
        dependents: Dict[str, List[str]] = {rule.id: [] for rule in rules}
        for rule in rules:
            for required in dict.fromkeys(rule.requires):
                if required not in ids:
                    continue
                indegree[rule.id] += 1
                dependents[required].append(rule.id)

        ready = [rid for rid, degree in indegree.items() if degree == 0]
        heapq.heapify(ready)
        order: List[str] = []
        while ready:
            current = heapq.heappop(ready)
            order.append(current)
            for dependent in dependents[current]:
                indegree[dependent] -= 1
                if indegree[dependent] == 0:
                    heapq.heappush(ready, dependent)

        graph = build_dependency_graph(rules)
        if len(order) < len(indegree):
            remaining = {rid: graph.nodes[rid] for rid in indegree if rid not in order}
            cycles = find_cycles(remaining, requires_only=True) or find_cycles(remaining)
            raise DependencyError.circular_dependency(cycles[0] if cycles else sorted(remaining))
        if graph.cycles:
            raise DependencyError.circular_dependency(graph.cycles[0])
        return order


def sort_by_dependencies(rules: Sequence[Rule]) -> List[Rule]:
    by_id = {rule.id: rule for rule in rules}
    return [by_id[rid] for rid in topological_order(rules)]


# ---------------------------------------------------------------------------
# Conflicts and validation
# ---------------------------------------------------------------------------


def check_conflicts(rules: Sequence[Rule]) -> ConflictReport:
    """Report explicit, mutual and transitive conflict pairs once each."""
    by_id = {rule.id: rule for rule in rules}
    report = ConflictReport()
    reported: Set[frozenset] = set()

    for rule in rules:
        for other in rule.conflicts:
            if other not in by_id or other == rule.id:
                continue
            pair = frozenset((rule.id, other))
            if pair in reported:
                continue
            reported.add(pair)
            reason = "mutual" if rule.id in by_id[other].conflicts else "explicit"
            report.conflicts.append(ConflictDetail(rule.id, other, reason))

    for rule in rules:
        for via, path in _reachable(rule.id, by_id):
            for other in by_id[via].conflicts:
                if other not in by_id or other == rule.id:
                    continue
                pair = frozenset((rule.id, other))
                if pair in reported:
                    continue
                reported.add(pair)
                report.conflicts.append(ConflictDetail(rule.id, other, "transitive", path + [other]))
    return report


def _reachable(start: str, by_id: Dict[str, Rule]) -> List[Tuple[str, List[str]]]:
    """Breadth-first walk along requires/extends, returning (id, path) pairs."""
    found: List[Tuple[str, List[str]]] = []
    visited = {start}
    queue = deque([(start, [start])])
    while queue:
        current, path = queue.popleft()
        rule = by_id[current]
        targets = list(rule.requires) + ([rule.extends] if rule.extends else [])
        for target in targets:
            if target in visited or target not in by_id:
                continue
            visited.add(target)
            next_path = path + [target]
            found.append((target, next_path))
            queue.append((target, next_path))
    return found


def validate_dependencies(rule: Rule, rules: Sequence[Rule]) -> DependencyValidation:
    """Check one rule's references against ``rules``."""
    by_id = {r.id: r for r in rules}
    errors: List[DependencyError] = []

    missing = [rid for rid in rule.requires if rid not in by_id and rid != rule.id]
    if missing:
        errors.append(DependencyError.missing_dependency(rule.id, missing))
    if rule.extends and rule.extends not in by_id:
        errors.append(DependencyError.dangling_reference(rule.id, "extends", rule.extends))
    for target in rule.conflicts:
        if target not in by_id:
            errors.append(DependencyError.dangling_reference(rule.id, "conflicts", target))
    if rule.id in rule.requires:
        errors.append(DependencyError.circular_dependency([rule.id, rule.id]))
    if rule.enabled:
        for target in rule.conflicts:
            other = by_id.get(target)
            if other is not None and other.enabled:
                errors.append(DependencyError.rule_conflict(rule.id, target))
    return DependencyValidation(valid=not errors, errors=errors)


def validate_all_dependencies(rules: Sequence[Rule]) -> DependencyValidation:
    """Per-rule checks plus cycles and transitive conflicts."""
    errors: List[DependencyError] = []
    for rule in rules:
        errors.extend(validate_dependencies(rule, rules).errors)
    graph = build_dependency_graph(rules)
    for cycle in graph.cycles:
        if len(cycle) == 2 and cycle[0] == cycle[1]:
            # Self-requires is already reported per rule.
            continue
        errors.append(DependencyError.circular_dependency(cycle))
    for detail in check_conflicts(rules).conflicts:
        if detail.reason == "transitive":
            errors.append(
                DependencyError.rule_conflict(detail.rule_a, detail.rule_b, reason="transitive", path=detail.path)
            )
    return DependencyValidation(valid=not errors, errors=errors)


__all__ = [
    "DependencyNode",
    "DependencyGraph",
    "ConflictDetail",
    "ConflictReport",
    "DependencyValidation",
    "build_dependency_graph",
    "find_cycles",
    "topological_order",
    "sort_by_dependencies",
    "check_conflicts",
    "validate_dependencies",
    "validate_all_dependencies",
]
