"""Parse platform rule text back into rules.

Platform formats are lossy: a hand-edited file may lack ids, tags or
severity. Parsers therefore return :class:`PartialRule` values recording
which attributes the text actually provided; :func:`complete_partial_rule`
fills the gaps from the matching local rule or from defaults.
"""
from __future__ import annotations

import hashlib
import re
from typing import Callable, Dict, List, Optional, Pattern, Tuple

from ..adapters.cursor import DO_MARKER, DONT_MARKER, EXCEPTIONS_MARKER, autogen_body
from ..adapters.markdown import (
    ICON_SEVERITIES,
    iter_blocks,
    join_paragraph,
    parse_backtick_list,
    parse_bool,
    split_sections,
    unescape_line,
)
from ..rules.models import SEVERITIES, PartialRule, Rule, RuleExamples

Parser = Callable[[str], List[PartialRule]]

IMPORTED_DEFAULTS = {
    "category": "imported",
    "tags": ["imported"],
    "severity": "info",
    "scope": "package",
    "enabled": True,
}

_HEADING = re.compile(r"^(#{1,6})\s+(.*?)\s*$")
_CURSOR_META = re.compile(r"^-\s+(ID|Category|Severity|Tags|Enabled):\s*(.*)$", re.IGNORECASE)
_CLAUDE_META = re.compile(r"^\*\*(ID|Category|Severity|Tags|Enabled):\*\*\s*(.*)$", re.IGNORECASE)
_BRACKET_SEVERITY = re.compile(r"^\[(error|warning|info)\]\s+", re.IGNORECASE)


def _split_heading(text: str) -> Tuple[str, Optional[str]]:
    """Strip a leading severity icon or ``[severity]`` tag from a heading."""
    for icon, severity in ICON_SEVERITIES.items():
        if text.startswith(icon):
            return text[len(icon) :].strip(), severity
    match = _BRACKET_SEVERITY.match(text)
    if match:
        return text[match.end() :].strip(), match.group(1).lower()
    return text.strip(), None


def _severity_value(text: str) -> Optional[str]:
    for word in reversed(text.replace("`", " ").split()):
        if word.lower() in SEVERITIES:
            return word.lower()
    return None


class _PartialBuilder:
    """Accumulates one rule section line by line."""

    def __init__(self, heading: str, category: Optional[str] = None) -> None:
        name, severity = _split_heading(heading)
        self.partial = PartialRule(name=name, provided={"name"})
        if severity:
            self._set("severity", severity)
        if category:
            self._set("category", category)
        self.mode = "description"
        self.text: List[str] = []
        self.good: List[str] = []
        self.bad: List[str] = []

    def _set(self, attr: str, value: object) -> None:
        setattr(self.partial, attr, value)
        self.partial.provided.add(attr)

    def meta(self, key: str, value: str) -> None:
        key = key.lower()
        value = value.strip()
        if key == "id":
            self._set("id", value.strip("`"))
        elif key == "category":
            self._set("category", value.strip("`"))
        elif key == "severity":
            severity = _severity_value(value)
            if severity:
                self._set("severity", severity)
        elif key == "tags":
            self._set("tags", parse_backtick_list(value))
        elif key == "enabled":
            enabled = parse_bool(value)
            if enabled is not None:
                self._set("enabled", enabled)

    @property
    def in_preamble(self) -> bool:
        return self.mode == "description" and not any(line.strip() for line in self.text)

    def line(self, line: str) -> None:
        stripped = line.strip()
        if self.mode == "exceptions":
            if stripped.startswith(("- ", "* ")):
                self.partial.exceptions.append(stripped[2:].strip())
            return
        if self.mode == "description":
            self.text.append(unescape_line(line))

    def code(self, body: str) -> None:
        if self.mode == "good":
            self.good.append(body)
        elif self.mode == "bad":
            self.bad.append(body)
        elif self.mode == "description":
            self.text.extend(["```", body, "```"])

    def build(self) -> PartialRule:
        description = join_paragraph(self.text)
        if description:
            self._set("description", description)
        if self.good or self.bad:
            self._set("examples", RuleExamples(good=self.good, bad=self.bad))
        if self.partial.exceptions:
            self.partial.provided.add("exceptions")
        return self.partial


def _parse_lines(
    lines: List[str],
    *,
    rule_level: int,
    meta: Pattern[str],
    markers: Dict[str, str],
    category_level: Optional[int] = None,
) -> List[PartialRule]:
    """Shared scanner: headings at ``rule_level`` open rules, markers switch mode."""
    rules: List[PartialRule] = []
    current: Optional[_PartialBuilder] = None
    category: Optional[str] = None

    for kind, value in iter_blocks(lines):
        if kind == "code":
            if current is not None:
                current.code(str(value))
            continue
        line = str(value)
        stripped = line.strip()

        if stripped in markers and current is not None:
            current.mode = markers[stripped]
            continue

        heading = _HEADING.match(stripped)
        if heading:
            level = len(heading.group(1))
            if level == rule_level:
                if current is not None:
                    rules.append(current.build())
                current = _PartialBuilder(heading.group(2), category)
                continue
            if level < rule_level:
                if current is not None:
                    rules.append(current.build())
                    current = None
                if category_level is not None and level == category_level:
                    category = heading.group(2)
                continue

        if current is None:
            continue
        if current.in_preamble:
            match = meta.match(stripped)
            if match:
                current.meta(match.group(1), match.group(2))
                continue
        current.line(line)

    if current is not None:
        rules.append(current.build())
    return rules


def parse_cursor_content(text: str) -> List[PartialRule]:
    """Rules from ``.cursorrules`` text.

    Only the generated block is read when markers are present; otherwise the
    whole file is scanned, ``##`` headings acting as categories.
    """
    return _parse_lines(
        autogen_body(text).splitlines(),
        rule_level=3,
        meta=_CURSOR_META,
        markers={DO_MARKER: "good", DONT_MARKER: "bad", EXCEPTIONS_MARKER: "exceptions"},
        category_level=2,
    )


def parse_claude_section(section: str) -> Optional[PartialRule]:
    """One ``---``-delimited section; ``None`` when it carries no ``##`` rule."""
    parsed = _parse_lines(
        section.splitlines(),
        rule_level=2,
        meta=_CLAUDE_META,
        markers={"### Good": "good", "### Bad": "bad", "### Exceptions": "exceptions"},
    )
    return parsed[0] if parsed else None


def parse_claude_content(text: str) -> List[PartialRule]:
    rules = []
    for section in split_sections(text):
        partial = parse_claude_section(section)
        if partial is not None:
            rules.append(partial)
    return rules


DEFAULT_PARSERS: Dict[str, Parser] = {
    "cursor": parse_cursor_content,
    "claude": parse_claude_content,
}


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------


def generate_id_from_name(name: str) -> str:
    """Deterministic id: a short slug of the name plus a 6-char hash.

    Example:
        >>> generate_id_from_name("Use camelCase")[:13]
        'use-camelcase'
    """
    slug = re.sub(r"[^\w\s-]", "", name.lower())
    slug = re.sub(r"\s+", "-", slug.strip())[:20].strip("-") or "rule"
    digest = hashlib.sha1(name.encode("utf-8")).hexdigest()[:6]
    return f"{slug}-{digest}"


def complete_partial_rule(partial: PartialRule, baseline: Optional[Rule] = None) -> Rule:
    """Turn a parsed partial rule into a full :class:`Rule`.

    Attributes present in the text win. Missing ones come from ``baseline``
    (the local rule with the same id or name) when given, else from
    :data:`IMPORTED_DEFAULTS`. A rule without text uses its name as description.
    """
    if baseline is not None:
        document = baseline.to_dict()
    else:
        document = {
            "id": partial.id or generate_id_from_name(partial.name),
            "name": partial.name,
            "description": partial.name,
            **{key: (list(value) if isinstance(value, list) else value) for key, value in IMPORTED_DEFAULTS.items()},
        }

    for attr in ("id", "name", "description", "category", "severity", "enabled"):
        if partial.has(attr):
            document[attr] = getattr(partial, attr)
    if partial.has("tags"):
        document["tags"] = list(partial.tags)
    if partial.has("exceptions"):
        document["exceptions"] = list(partial.exceptions)
    if partial.has("examples") and partial.examples is not None:
        document["examples"] = partial.examples.to_dict()

    source = baseline.source if baseline is not None else None
    return Rule.from_dict(document, source=source)


__all__ = [
    "Parser",
    "IMPORTED_DEFAULTS",
    "DEFAULT_PARSERS",
    "parse_cursor_content",
    "parse_claude_content",
    "parse_claude_section",
    "generate_id_from_name",
    "complete_partial_rule",
]
