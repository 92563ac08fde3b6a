"""Markdown building blocks shared by the platform formats.

Both generated formats are line-oriented so they can be parsed back:
fenced code blocks carry examples, backticked lists carry ids and tags.
"""
from __future__ import annotations

import re
from typing import Iterable, Iterator, List, Optional, Tuple

SEVERITY_ICONS = {"error": "🔴", "warning": "🟡", "info": "🔵"}
ICON_SEVERITIES = {icon: severity for severity, icon in SEVERITY_ICONS.items()}

_FENCE = re.compile(r"^(`{3,})")
_BACKTICKED = re.compile(r"`([^`]*)`")
# Description lines the parsers would otherwise read as structure.
_STRUCTURAL = re.compile(r"^(#|---|\*\*[^*]+:\*\*|```|<!--|\\|-\s+(ID|Category|Severity|Tags|Enabled):)", re.IGNORECASE)


def severity_icon(severity: str) -> str:
    return SEVERITY_ICONS.get(severity, "⚪")


def backtick_list(values: Iterable[str]) -> str:
    return ", ".join(f"`{v}`" for v in values)


def parse_backtick_list(text: str) -> List[str]:
    """Inverse of :func:`backtick_list`; plain comma lists are accepted too."""
    found = _BACKTICKED.findall(text)
    if found:
        return [v.strip() for v in found if v.strip()]
    return [v.strip() for v in text.split(",") if v.strip()]


def fence_for(text: str) -> str:
    """Shortest backtick fence that does not occur inside ``text``."""
    fence = "```"
    while fence in text:
        fence += "`"
    return fence


def code_block(text: str) -> List[str]:
    fence = fence_for(text)
    return [fence, text.rstrip("\n"), fence]


def escape_line(line: str) -> str:
    """Prefix a structural line with a backslash, keeping its indentation."""
    body = line.lstrip()
    if not _STRUCTURAL.match(body):
        return line
    return line[: len(line) - len(body)] + "\\" + body


def unescape_line(line: str) -> str:
    body = line.lstrip()
    if not body.startswith("\\"):
        return line
    return line[: len(line) - len(body)] + body[1:]


def escape_description(text: str) -> str:
    """Escape free text so the parsers read every line of it back verbatim."""
    return "\n".join(escape_line(line) for line in text.split("\n"))


def parse_bool(text: str) -> Optional[bool]:
    low = text.strip().strip("`").lower()
    if low in ("yes", "true", "on", "1"):
        return True
    if low in ("no", "false", "off", "0"):
        return False
    return None


def iter_blocks(lines: List[str]) -> Iterator[Tuple[str, object]]:
    """Yield ``("code", text)`` for fenced blocks and ``("line", text)`` otherwise."""
    i = 0
    while i < len(lines):
        match = _FENCE.match(lines[i].strip())
        if match:
            fence = match.group(1)
            body: List[str] = []
            i += 1
            while i < len(lines) and lines[i].strip() != fence:
                body.append(lines[i])
                i += 1
            yield "code", "\n".join(body)
            i += 1
            continue
        yield "line", lines[i]
        i += 1


def split_sections(text: str, separator: str = "---") -> List[str]:
    """Split on separator lines that sit outside fenced code blocks."""
    sections: List[List[str]] = [[]]
    fence: Optional[str] = None
    for line in text.splitlines():
        stripped = line.strip()
        match = _FENCE.match(stripped)
        if fence is None and match:
            fence = match.group(1)
        elif fence is not None and stripped == fence:
            fence = None
        elif fence is None and stripped == separator:
            sections.append([])
            continue
        sections[-1].append(line)
    return ["\n".join(s) for s in sections if "\n".join(s).strip()]


def join_paragraph(lines: List[str]) -> str:
    """Trim blank lines at both ends and join the rest."""
    while lines and not lines[0].strip():
        lines = lines[1:]
    while lines and not lines[-1].strip():
        lines = lines[:-1]
    return "\n".join(line.rstrip() for line in lines)


__all__ = [
    "SEVERITY_ICONS",
    "ICON_SEVERITIES",
    "severity_icon",
    "backtick_list",
    "parse_backtick_list",
    "fence_for",
    "code_block",
    "escape_line",
    "unescape_line",
    "escape_description",
    "parse_bool",
    "iter_blocks",
    "split_sections",
    "join_paragraph",
]
