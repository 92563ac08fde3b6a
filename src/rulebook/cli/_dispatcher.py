"""
Auto-discovery CLI dispatcher for rulebook.

Scans subfolders for commands and automatically registers them.
Adding a new command = adding a .py file defining SUMMARY, register_args
and main to the appropriate subfolder.
"""
from __future__ import annotations

import argparse
import importlib
import sys
from collections.abc import Callable
from contextlib import nullcontext
from functools import lru_cache
from pathlib import Path
from typing import Any

from rulebook.core.exceptions import RulebookError
from rulebook.core.utils.profiling import Profiler, enable_profiler, span

from ._logging import configure_logging
from ._output import OutputFormatter

# Flags accepted before the domain that take no value.
GLOBAL_FLAGS = ("--json", "--profile")


@lru_cache(maxsize=1)
def discover_domains() -> dict[str, Path]:
    """Map domain name to directory for every subfolder holding commands."""
    cli_dir = Path(__file__).parent
    domains = {}
    for item in cli_dir.iterdir():
        if item.is_dir() and not item.name.startswith("_"):
            has_commands = any(f.suffix == ".py" and not f.name.startswith("_") for f in item.iterdir())
            if has_commands:
                domains[item.name] = item
    return domains


@lru_cache(maxsize=32)
def discover_commands(domain: str) -> dict[str, dict[str, Any]]:
    """Import every command module of ``domain``.

    Returns:
        Dict mapping command name to ``{module, summary, register_args, main}``
    """
    with span("cli.discover.domain_commands", domain=domain):
        domain_dir = Path(__file__).parent / domain
        commands: dict[str, dict[str, Any]] = {}
        for item in sorted(domain_dir.glob("*.py")):
            if item.name.startswith("_"):
                continue
            cmd_name = item.stem
            try:
                with span("cli.discover.import", module=f"rulebook.cli.{domain}.{cmd_name}"):
                    module = importlib.import_module(f"rulebook.cli.{domain}.{cmd_name}")
            except ImportError as e:
                print(f"Warning: Could not import {domain}.{cmd_name}: {e}", file=sys.stderr)
                continue
            commands[cmd_name] = {
                "module": module,
                "summary": getattr(module, "SUMMARY", f"{domain} {cmd_name}"),
                "register_args": getattr(module, "register_args", None),
                "main": getattr(module, "main", None),
            }
    return commands


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with auto-discovered domains and commands."""
    parser = argparse.ArgumentParser(
        prog="rulebook",
        description="Rulebook - hierarchical coding-guideline management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {_get_version()}")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level for diagnostics on stderr (default: WARNING)",
    )
    parser.add_argument("--log-file", type=str, help="Also write log records to this file")
    parser.add_argument("--profile", action="store_true", help="Print span timings to stderr")

    subparsers = parser.add_subparsers(
        dest="domain",
        title="domains",
        description="Available command domains",
        metavar="<domain>",
    )
    for domain_name in sorted(discover_domains()):
        domain_commands = discover_commands(domain_name)
        if not domain_commands:
            continue
        domain_parser = subparsers.add_parser(domain_name, help=f"{domain_name.title()} commands")
        cmd_subparsers = domain_parser.add_subparsers(
            dest="command",
            title="commands",
            description=f"Available {domain_name} commands",
            metavar="<command>",
        )
        for cmd_name, cmd_info in sorted(domain_commands.items()):
            cmd_parser = cmd_subparsers.add_parser(cmd_name, help=cmd_info["summary"])
            if cmd_info["register_args"]:
                cmd_info["register_args"](cmd_parser)
            if cmd_info["main"]:
                cmd_parser.set_defaults(_func=cmd_info["main"])
    return parser


def _get_version() -> str:
    from rulebook import __version__

    return __version__


def _strip_global_flags(argv: list[str]) -> tuple[list[str], set[str]]:
    """Remove value-less global flags that appear before the domain.

    Commands may define their own ``--json``; only occurrences before the
    first non-flag token (the domain) are treated as global.
    """
    domain_index = next((i for i, a in enumerate(argv) if not a.startswith("-")), len(argv))
    found: set[str] = set()
    out: list[str] = []
    for i, arg in enumerate(argv):
        if i < domain_index and arg in GLOBAL_FLAGS:
            found.add(arg)
            continue
        out.append(arg)
    return out, found


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the rulebook CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    if argv is None:
        argv = sys.argv[1:]
    argv, global_flags = _strip_global_flags(list(argv))

    profiler = Profiler() if "--profile" in global_flags else None
    ctx = enable_profiler(profiler) if profiler else nullcontext()

    result = 1
    with ctx:
        with span("cli.total"):
            with span("cli.parser.build"):
                parser = build_parser()
            args = parser.parse_args(argv)
            if "--json" in global_flags:
                args.json = True
            json_mode = bool(getattr(args, "json", False))
            configure_logging(
                args.log_level,
                log_path=Path(args.log_file) if args.log_file else None,
                json_mode=json_mode,
            )

            if not args.domain:
                parser.print_help()
                return 0
            func: Callable[[argparse.Namespace], int] | None = getattr(args, "_func", None)
            if func is None:
                domain_parser = parser._subparsers._group_actions[0].choices.get(args.domain)
                if domain_parser:
                    domain_parser.print_help()
                return 0

            try:
                with span("cli.command.exec", command=f"{args.domain} {args.command}"):
                    result = func(args)
            except KeyboardInterrupt:
                print("\nInterrupted.", file=sys.stderr)
                result = 130
            except RulebookError as e:
                OutputFormatter(json_mode=json_mode).error(e)
                result = 1

    if profiler is not None:
        print("\n" + profiler.render(), file=sys.stderr)
    return result


if __name__ == "__main__":
    sys.exit(main())
