"""
Rulebook sync init command.

SUMMARY: Create rules/ with a scope config and write the platform files
"""
from __future__ import annotations

import argparse

from rulebook.cli import OutputFormatter, add_platform_arg, add_standard_flags, get_root, load_manager
from rulebook.core.config import ConfigManager
from rulebook.core.utils.io import ensure_directory, write_yaml

SUMMARY = "Create rules/ with a scope config and write the platform files"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_platform_arg(parser, allow_all=True)
    parser.add_argument(
        "--scope",
        choices=["global", "project", "package"],
        default="package",
        help="Scope label written to the new config (default: package)",
    )
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))
    root = get_root(args)
    config_manager = ConfigManager(root)
    rules_dir = ensure_directory(config_manager.rules_dir(root))
    config_path = rules_dir / config_manager.config_filename()

    created_config = False
    if not config_path.exists():
        defaults = config_manager.defaults()
        write_yaml(
            config_path,
            {
                "metadata": {"version": defaults["metadata"]["version"], "scope": args.scope},
                "hierarchy": dict(defaults["hierarchy"]),
            },
        )
        created_config = True

    manager, _ = load_manager(args, formatter)
    sync = manager.sync_manager()
    platforms = sync.registry.names() if args.platform == "all" else [args.platform]
    results = [sync.push(platform) for platform in platforms]
    ok = all(r.success for r in results)

    if formatter.json_mode:
        formatter.json_output(
            {
                "success": ok,
                "rulesDir": str(rules_dir),
                "createdConfig": created_config,
                "platforms": [r.to_dict() for r in results],
            }
        )
        return 0 if ok else 1

    formatter.text(f"{'Created' if created_config else 'Found'} {config_path}")
    for result in results:
        if result.success:
            formatter.text(f"  {result.platform}: {result.rules_count} rules -> {result.output_path}")
        else:
            formatter.text(f"  {result.platform}: failed ({result.error})")
    return 0 if ok else 1
