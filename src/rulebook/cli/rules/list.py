"""
Rulebook rules list command.

SUMMARY: List effective rules for the project
"""
from __future__ import annotations

import argparse

from rulebook.cli import OutputFormatter, add_standard_flags, load_manager
from rulebook.core.adapters.markdown import severity_icon
from rulebook.core.rules.models import SEVERITIES

SUMMARY = "List effective rules for the project"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    parser.add_argument("--category", help="Only rules in this category (prefix match)")
    parser.add_argument("--tag", action="append", dest="tags", help="Only rules with this tag (repeatable)")
    parser.add_argument("--severity", choices=SEVERITIES, help="Only rules with this severity")
    parser.add_argument("--file", dest="file_path", help="Only rules applicable to this file path")
    parser.add_argument("--branch", help="Only rules applicable on this branch")
    parser.add_argument("--env", dest="environment", help="Only rules applicable in this environment")
    parser.add_argument(
        "--format",
        choices=["short", "full"],
        default="short",
        help="Output format (default: short)",
    )
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    manager, _ = load_manager(args, formatter)

    if args.file_path or args.branch or args.environment:
        rules = manager.get_applicable_rules(
            file_path=args.file_path,
            branch=args.branch,
            environment=args.environment,
        )
    else:
        rules = manager.get_all_rules()
    if args.category:
        rules = [r for r in rules if r.category.startswith(args.category)]
    if args.tags:
        wanted = set(args.tags)
        rules = [r for r in rules if wanted & set(r.tags)]
    if args.severity:
        rules = [r for r in rules if r.severity == args.severity]

    if formatter.json_mode:
        formatter.json_output({"rules": [r.to_dict(include_changelog=False) for r in rules], "count": len(rules)})
        return 0

    formatter.text(f"Rules ({len(rules)}):")
    for rule in rules:
        marker = "" if rule.enabled else " (disabled)"
        formatter.text(f"  {severity_icon(rule.severity)} {rule.id} [{rule.category}] {rule.name}{marker}")
        if args.format == "full":
            formatter.text_kv("Tags", ", ".join(rule.tags) or "-", prefix="      ")
            formatter.text_kv("Version", rule.version or "-", prefix="      ")
            if rule.source:
                formatter.text_kv("Source", rule.source, prefix="      ")
    pending = manager.pending_conflicts()
    if pending:
        formatter.text("")
        formatter.text(f"{len(pending)} rule(s) awaiting manual merge resolution:")
        for conflict in pending:
            formatter.text(f"  {conflict.rule_id}: {', '.join(conflict.sources)}")
    return 0
