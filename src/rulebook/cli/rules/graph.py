"""
Rulebook rules graph command.

SUMMARY: Show dependencies, cycles, conflicts and the dependency order
"""
from __future__ import annotations

import argparse

from rulebook.cli import OutputFormatter, add_standard_flags, load_manager
from rulebook.core.exceptions import DependencyError

SUMMARY = "Show dependencies, cycles, conflicts and the dependency order"


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--order", action="store_true", help="Print rules in dependency order")
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    manager, _ = load_manager(args, formatter)
    graph = manager.build_dependency_graph()
    report = manager.check_conflicts()

    order = None
    order_error = None
    if args.order:
        try:
            order = [rule.id for rule in manager.sort_by_dependencies()]
        except DependencyError as exc:
            order_error = exc

    if formatter.json_mode:
        payload = graph.to_dict()
        payload["conflicts"] = [c.to_dict() for c in report.conflicts]
        if args.order:
            payload["order"] = order
            payload["orderError"] = order_error.to_json_error() if order_error else None
        formatter.json_output(payload)
        return 1 if order_error else 0

    formatter.text(f"Rules: {len(graph.nodes)}")
    for rule_id, node in graph.nodes.items():
        edges = []
        if node.requires:
            edges.append(f"requires {', '.join(node.requires)}")
        if node.extends:
            edges.append(f"extends {node.extends}")
        if node.conflicts:
            edges.append(f"conflicts {', '.join(node.conflicts)}")
        if edges:
            formatter.text(f"  {rule_id}: {'; '.join(edges)}")
    formatter.text("")
    formatter.text(f"Cycles: {len(graph.cycles)}")
    for cycle in graph.cycles:
        formatter.text(f"  {' -> '.join(cycle)}")
    formatter.text(f"Conflicts: {len(report.conflicts)}")
    for detail in report.conflicts:
        via = f" via {' -> '.join(detail.path)}" if detail.path else ""
        formatter.text(f"  {detail.rule_a} x {detail.rule_b} ({detail.reason}){via}")
    if args.order:
        formatter.text("")
        if order_error is not None:
            formatter.text(order_error.format())
            return 1
        formatter.text("Order:")
        for index, rule_id in enumerate(order or [], start=1):
            formatter.text(f"  {index:3d}. {rule_id}")
    return 0
