"""
Rulebook rules show command.

SUMMARY: Show one rule, its history or a diff between versions
"""
from __future__ import annotations

import argparse

from rulebook.cli import OutputFormatter, add_rule_id_arg, add_standard_flags, load_manager
from rulebook.core.exceptions import ValidationError
from rulebook.core.rules.versioning import format_diff
from rulebook.core.utils.io import dump_yaml_string

SUMMARY = "Show one rule, its history or a diff between versions"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_rule_id_arg(parser)
    parser.add_argument("--history", action="store_true", help="List changelog entries")
    parser.add_argument(
        "--diff",
        nargs=2,
        metavar=("FROM", "TO"),
        help="Field-level diff between two versions",
    )
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    manager, _ = load_manager(args, formatter)
    rule = manager.get_rule(args.rule_id)
    if rule is None:
        formatter.error(ValidationError.invalid_value("id", "a loaded rule id", args.rule_id))
        return 1

    if args.diff:
        diff = manager.diff_versions(rule.id, args.diff[0], args.diff[1])
        if formatter.json_mode:
            formatter.json_output(diff.to_dict())
        else:
            formatter.text(format_diff(diff))
        return 0

    if args.history:
        history = manager.get_history(rule.id)
        if formatter.json_mode:
            formatter.json_output({"ruleId": rule.id, "history": [e.to_dict() for e in history]})
            return 0
        formatter.text(f"History of {rule.id} ({len(history)} entries):")
        for entry in history:
            formatter.text(f"  {entry.version}  {entry.date}  {entry.author}: {entry.changes}")
        return 0

    if formatter.json_mode:
        formatter.json_output(rule.to_dict(include_source=True))
    else:
        formatter.text(dump_yaml_string(rule.to_dict(include_changelog=False, include_source=True)).rstrip())
    return 0
