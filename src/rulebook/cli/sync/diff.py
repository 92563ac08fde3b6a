"""
Rulebook sync diff command.

SUMMARY: Compare local rules with a platform file
"""
from __future__ import annotations

import argparse

from rulebook.cli import OutputFormatter, add_platform_arg, add_standard_flags, load_manager
from rulebook.core.sync import format_sync_diff

SUMMARY = "Compare local rules with a platform file"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_platform_arg(parser)
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    """Exit 0 when in sync, 1 when the two sides differ."""
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    manager, _ = load_manager(args, formatter)
    diff = manager.sync_manager().diff(args.platform)
    if formatter.json_mode:
        formatter.json_output({"inSync": diff.in_sync, **diff.to_dict()})
    else:
        formatter.text(format_sync_diff(diff))
    return 0 if diff.in_sync else 1
