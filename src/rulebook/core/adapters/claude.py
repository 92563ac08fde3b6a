"""Claude adapter: rules rendered into ``.claude/rules/``.

``rulebook.md`` holds every rule, one section per rule separated by
``---`` lines. :meth:`ClaudeAdapter.sync_by_category` additionally writes
one file per top-level category plus an ``index.md``.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Sequence

from ..exceptions import SyncError
from ..rules.models import Rule
from ..rules.search import group_rules_by_category
from ..utils.io import write_text
from .base import AdapterSyncResult, PlatformAdapter
from .markdown import backtick_list, code_block, escape_description, severity_icon

logger = logging.getLogger(__name__)

SECTION_SEPARATOR = "---"


def format_claude_rule(rule: Rule) -> str:
    lines = [
        f"## {rule.name}",
        "",
        f"**ID:** `{rule.id}`",
        f"**Category:** `{rule.category}`",
        f"**Severity:** {severity_icon(rule.severity)} {rule.severity}",
    ]
    if rule.tags:
        lines.append(f"**Tags:** {backtick_list(rule.tags)}")
    lines.append(f"**Enabled:** {'yes' if rule.enabled else 'no'}")
    lines.append("")
    if rule.description.strip():
        lines.extend([escape_description(rule.description.strip()), ""])
    if rule.examples:
        for title, examples in (("Good", rule.examples.good), ("Bad", rule.examples.bad)):
            if not examples:
                continue
            lines.extend([f"### {title}", ""])
            for example in examples:
                lines.extend(code_block(example))
                lines.append("")
    if rule.exceptions:
        lines.extend(["### Exceptions", ""])
        lines.extend(f"- {item}" for item in rule.exceptions)
        lines.append("")
    return "\n".join(lines).rstrip()


def format_claude_document(rules: Sequence[Rule], title: str = "Project Rules") -> str:
    sections = [f"# {title}\n\n> Generated by rulebook. Edit the rule files, not this document."]
    sections.extend(format_claude_rule(rule) for rule in rules)
    return f"\n\n{SECTION_SEPARATOR}\n\n".join(sections) + "\n"


class ClaudeAdapter(PlatformAdapter):
    name = "claude"
    relative_path = ".claude/rules/rulebook.md"

    @property
    def rules_dir(self) -> Path:
        return self.output_path.parent

    def format(self, rules: Sequence[Rule]) -> str:
        return format_claude_document(rules)

    def sync_by_category(self, rules: Sequence[Rule]) -> List[AdapterSyncResult]:
        """Write one document per top-level category and an index."""
        groups = group_rules_by_category(rules)
        results: List[AdapterSyncResult] = []

        index = ["# Rule Categories", ""]
        for category in sorted(groups):
            index.append(f"- [{category}]({category}.md) ({len(groups[category])} rules)")
        results.append(self._write_file(self.rules_dir / "index.md", "\n".join(index) + "\n", 0))

        for category in sorted(groups):
            members = groups[category]
            document = format_claude_document(members, title=f"{category.title()} Rules")
            results.append(self._write_file(self.rules_dir / f"{category}.md", document, len(members)))
        return results

    def _write_file(self, path: Path, content: str, count: int) -> AdapterSyncResult:
        try:
            write_text(path, content)
        except OSError as exc:
            error = SyncError.write_error(self.name, str(path), str(exc))
            logger.error("%s", error)
            return AdapterSyncResult(False, self.name, 0, str(path), str(error))
        return AdapterSyncResult(True, self.name, count, str(path))


__all__ = ["SECTION_SEPARATOR", "ClaudeAdapter", "format_claude_rule", "format_claude_document"]
