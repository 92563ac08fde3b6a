"""
Rulebook rules search command.

SUMMARY: Search rules by keyword, tags, category or severity
"""
from __future__ import annotations

import argparse

from rulebook.cli import OutputFormatter, add_standard_flags, load_manager
from rulebook.core.rules.models import SEVERITIES

SUMMARY = "Search rules by keyword, tags, category or severity"


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("keyword", nargs="?", help="Case-insensitive text to look for")
    parser.add_argument("--tag", action="append", dest="tags", help="Require one of these tags (repeatable)")
    parser.add_argument("--category", help="Category prefix")
    parser.add_argument("--severity", choices=SEVERITIES)
    parser.add_argument("--enabled-only", action="store_true", help="Skip disabled rules")
    parser.add_argument("--limit", type=int, default=20, help="Maximum results (default: 20)")
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    manager, _ = load_manager(args, formatter)
    results = manager.search(
        keyword=args.keyword,
        tags=args.tags,
        category=args.category,
        severity=args.severity,
        enabled_only=args.enabled_only,
        limit=args.limit,
    )

    if formatter.json_mode:
        formatter.json_output({"results": [r.to_dict() for r in results], "count": len(results)})
        return 0
    if not results:
        formatter.text("No matching rules")
        return 0
    formatter.text(f"Found {len(results)} rule(s):")
    for result in results:
        fields = f" ({', '.join(result.matched_fields)})" if result.matched_fields else ""
        formatter.text(f"  {result.score:6.1f}  {result.rule.id}  {result.rule.name}{fields}")
    return 0
