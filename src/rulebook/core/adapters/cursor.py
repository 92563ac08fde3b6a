"""Cursor adapter: rules rendered into ``.cursorrules``.

The generated content lives between ``RULEBOOK:BEGIN``/``RULEBOOK:END``
markers. Text outside the markers belongs to the user and is kept as-is
on every sync.
"""
from __future__ import annotations

import re
from typing import Dict, List, Sequence, Tuple

from ..rules.models import Rule
from .base import PlatformAdapter
from .markdown import backtick_list, code_block, escape_description, severity_icon

AUTOGEN_BEGIN = "<!-- RULEBOOK:BEGIN -->"
AUTOGEN_END = "<!-- RULEBOOK:END -->"

DO_MARKER = "**Do:**"
DONT_MARKER = "**Don't:**"
EXCEPTIONS_MARKER = "**Exceptions:**"

_BEGIN_LINE = re.compile(r"^[ \t]*(" + re.escape(AUTOGEN_BEGIN) + ")", re.MULTILINE)
_END_LINE = re.compile(r"^[ \t]*(" + re.escape(AUTOGEN_END) + ")", re.MULTILINE)


def split_autogen_block(text: str) -> Tuple[str, str, str]:
    """Split text into (prefix, autogen_block, suffix) using markers.

    Markers only count at the start of a line. When they are not present,
    the entire text is returned as the prefix and the other parts are empty.
    """
    begin = _BEGIN_LINE.search(text)
    if begin is None:
        return text, "", ""
    end = _END_LINE.search(text, begin.end(1))
    if end is None:
        return text, "", ""
    start, stop = begin.start(1), end.end(1)
    return text[:start], text[start:stop], text[stop:]


def autogen_body(text: str) -> str:
    """Content between the markers, or the whole text when unmarked."""
    _, block, _ = split_autogen_block(text)
    if not block:
        return text
    return block[len(AUTOGEN_BEGIN) : -len(AUTOGEN_END)]


def format_cursor_rule(rule: Rule) -> List[str]:
    lines = [
        f"### {severity_icon(rule.severity)} {rule.name}",
        "",
        f"- ID: `{rule.id}`",
        f"- Category: `{rule.category}`",
        f"- Severity: {rule.severity}",
    ]
    if rule.tags:
        lines.append(f"- Tags: {backtick_list(rule.tags)}")
    lines.append(f"- Enabled: {'yes' if rule.enabled else 'no'}")
    lines.append("")
    if rule.description.strip():
        lines.extend([escape_description(rule.description.strip()), ""])

    if rule.examples:
        for marker, examples in ((DO_MARKER, rule.examples.good), (DONT_MARKER, rule.examples.bad)):
            if not examples:
                continue
            lines.append(marker)
            for example in examples:
                lines.extend(code_block(example))
            lines.append("")
    if rule.exceptions:
        lines.append(EXCEPTIONS_MARKER)
        lines.extend(f"- {item}" for item in rule.exceptions)
        lines.append("")
    return lines


class CursorAdapter(PlatformAdapter):
    name = "cursor"
    relative_path = ".cursorrules"

    def format(self, rules: Sequence[Rule]) -> str:
        """Render the marked block, rules grouped under their category."""
        groups: Dict[str, List[Rule]] = {}
        for rule in rules:
            groups.setdefault(rule.category, []).append(rule)

        lines = [
            AUTOGEN_BEGIN,
            "# Project Rules",
            "",
            "> Generated by rulebook. Edit the rule files, not this block.",
            "",
        ]
        for category, members in groups.items():
            lines.extend([f"## {category}", ""])
            for rule in members:
                lines.extend(format_cursor_rule(rule))
        lines.append(AUTOGEN_END)
        return "\n".join(lines)

    def render(self, rules: Sequence[Rule]) -> str:
        """Splice the generated block into the current file."""
        block = self.format(rules)
        current = self.read()
        prefix, existing, suffix = split_autogen_block(current)
        if existing:
            return prefix + block + suffix
        if current.strip():
            return current.rstrip() + "\n\n" + block + "\n"
        return block + "\n"


__all__ = [
    "AUTOGEN_BEGIN",
    "AUTOGEN_END",
    "CursorAdapter",
    "split_autogen_block",
    "autogen_body",
    "format_cursor_rule",
]
