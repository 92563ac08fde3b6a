"""
Rulebook sync run command.

SUMMARY: Push, pull or fully sync rules with a platform file
"""
from __future__ import annotations

import argparse

from rulebook.cli import OutputFormatter, add_platform_arg, add_standard_flags, load_manager
from rulebook.core.adapters import ClaudeAdapter
from rulebook.core.sync import format_conflicts
from rulebook.core.sync.models import DIRECTIONS, RESOLUTION_MODES

SUMMARY = "Push, pull or fully sync rules with a platform file"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_platform_arg(parser, allow_all=True)
    parser.add_argument(
        "--direction",
        choices=DIRECTIONS,
        default="both",
        help="push, pull, or both (push, then pull, then merge). Default: both",
    )
    parser.add_argument(
        "--resolve",
        choices=RESOLUTION_MODES,
        help="Resolve every surfaced conflict this way",
    )
    parser.add_argument(
        "--by-category",
        action="store_true",
        help="Claude only: also write one file per top-level category",
    )
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    manager, _ = load_manager(args, formatter)
    sync = manager.sync_manager()
    platforms = sync.registry.names() if args.platform == "all" else [args.platform]

    results = []
    for platform in platforms:
        result = sync.sync(platform, args.direction, resolution=args.resolve)
        results.append(result)
        if args.by_category and platform == ClaudeAdapter.name and args.direction != "pull":
            adapter = sync.adapter(platform)
            for written in adapter.sync_by_category(manager.get_all_rules()):
                if not written.success:
                    result.errors.append(written.error or f"Cannot write {written.output_path}")
                    result.success = False

    ok = all(r.success and not r.conflicts for r in results)
    if formatter.json_mode:
        formatter.json_output({"success": ok, "results": [r.to_dict() for r in results]})
        return 0 if ok else 1

    for result in results:
        status = "ok" if result.success else "failed"
        formatter.text(f"[{result.platform}] {result.direction}: {status}")
        if result.direction != "pull":
            formatter.text_kv("Pushed", result.pushed)
        if result.pulled is not None:
            pulled = result.pulled
            formatter.text_kv(
                "Pulled",
                f"{pulled.count} ({len(pulled.new_rules)} new, {len(pulled.updated_rules)} updated, "
                f"{len(pulled.unchanged)} unchanged)",
            )
            if pulled.blocked:
                formatter.text_kv("Blocked", f"{', '.join(pulled.blocked)} (pending merge conflict)")
        for error in result.errors:
            formatter.text_kv("Error", error)
        if result.conflicts:
            formatter.text("")
            formatter.text(format_conflicts(result.conflicts))
    return 0 if ok else 1
