"""
Rulebook rules similar command.

SUMMARY: Find rules similar to one rule, or near-duplicate pairs
"""
from __future__ import annotations

import argparse

from rulebook.cli import OutputFormatter, add_standard_flags, load_manager

SUMMARY = "Find rules similar to one rule, or near-duplicate pairs"


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("rule_id", nargs="?", help="Rule to compare against")
    parser.add_argument("--duplicates", action="store_true", help="List every pair above the threshold")
    parser.add_argument("--threshold", type=float, help="Minimum similarity in [0, 1]")
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    if not args.duplicates and not args.rule_id:
        formatter.error(ValueError("Give a rule id or --duplicates"))
        return 2
    manager, _ = load_manager(args, formatter)

    if args.duplicates:
        threshold = 0.8 if args.threshold is None else args.threshold
        pairs = manager.search_index.find_duplicates(threshold)
        if formatter.json_mode:
            formatter.json_output({"threshold": threshold, "duplicates": [p.to_dict() for p in pairs]})
            return 0
        formatter.text(f"{len(pairs)} pair(s) at or above {threshold:.2f}:")
        for pair in pairs:
            formatter.text(f"  {pair.similarity:.2f}  {pair.rule_a} ~ {pair.rule_b}")
        return 0

    similar = manager.find_similar(args.rule_id, args.threshold)
    if formatter.json_mode:
        formatter.json_output({"ruleId": args.rule_id, "similar": [s.to_dict() for s in similar]})
        return 0
    if not similar:
        formatter.text(f"No rules similar to {args.rule_id}")
        return 0
    formatter.text(f"Rules similar to {args.rule_id}:")
    for item in similar:
        formatter.text(f"  {item.similarity:.2f}  {item.rule.id}  {item.rule.name} [{', '.join(item.matching_aspects)}]")
    return 0
