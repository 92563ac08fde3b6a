"""
Rulebook rules validate command.

SUMMARY: Validate rule files, dependencies and merge conflicts
"""
from __future__ import annotations

import argparse

from rulebook.cli import OutputFormatter, add_standard_flags, load_manager

SUMMARY = "Validate rule files, dependencies and merge conflicts"


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--skip-dependencies",
        action="store_true",
        help="Only check that rule files parse and match the schema",
    )
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    """Exit 0 when every check passes, 1 otherwise."""
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    manager, result = load_manager(args, formatter)

    dependency_errors = []
    if not args.skip_dependencies:
        dependency_errors = manager.validate_all_dependencies().errors
    pending = manager.pending_conflicts()
    valid = result.ok and not dependency_errors and not pending

    if formatter.json_mode:
        formatter.json_output(
            {
                "valid": valid,
                "rules": len(result.rules),
                "loadErrors": [e.to_json_error() for e in result.errors],
                "dependencyErrors": [e.to_json_error() for e in dependency_errors],
                "pendingConflicts": [c.to_dict() for c in pending],
            }
        )
        return 0 if valid else 1

    formatter.text(f"Checked {len(result.rules)} rules from {len(result.sources)} scope(s)")
    for error in result.errors:
        formatter.text("")
        formatter.text(error.format())
    for error in dependency_errors:
        formatter.text("")
        formatter.text(error.format())
    for conflict in pending:
        formatter.text("")
        formatter.text(f"[MERGE_CONFLICT] {conflict.rule_id} defined in: {', '.join(conflict.sources)}")
    formatter.text("")
    formatter.text("All checks passed" if valid else "Validation failed")
    return 0 if valid else 1
