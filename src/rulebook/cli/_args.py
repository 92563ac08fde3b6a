"""Common CLI argument registration utilities."""
from __future__ import annotations

import argparse


def add_json_flag(parser: argparse.ArgumentParser) -> None:
    """Add --json flag for JSON output mode."""
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )


def add_root_flag(parser: argparse.ArgumentParser) -> None:
    """Add --root to point at a project other than the current directory."""
    parser.add_argument(
        "--root",
        type=str,
        help="Project root containing rules/ (default: current directory)",
    )


def add_rule_id_arg(parser: argparse.ArgumentParser, help_text: str = "Rule identifier (e.g. naming-001)") -> None:
    parser.add_argument("rule_id", help=help_text)


def add_platform_arg(parser: argparse.ArgumentParser, *, allow_all: bool = False) -> None:
    choices = ["cursor", "claude"] + (["all"] if allow_all else [])
    parser.add_argument("platform", choices=choices, help="Target platform")


def add_standard_flags(parser: argparse.ArgumentParser) -> None:
    add_json_flag(parser)
    add_root_flag(parser)


__all__ = [
    "add_json_flag",
    "add_root_flag",
    "add_rule_id_arg",
    "add_platform_arg",
    "add_standard_flags",
]
