"""Cursor adapter output and preservation of user-owned text."""
from __future__ import annotations

from pathlib import Path

from helpers.factories import rule_obj
from rulebook.core.adapters.cursor import (
    AUTOGEN_BEGIN,
    AUTOGEN_END,
    CursorAdapter,
    autogen_body,
    split_autogen_block,
)


def _rules():
    return [
        rule_obj(
            "naming-001",
            name="Use camelCase",
            category="code/naming",
            severity="error",
            tags=["naming", "style"],
            examples={"good": ["const userName = 1"], "bad": ["const user_name = 1"]},
            exceptions=["Constants"],
        ),
        rule_obj("git-001", name="Small commits", category="git", severity="info", enabled=False),
    ]


def test_format_groups_rules_by_category():
    text = CursorAdapter(Path(".")).format(_rules())

    assert text.startswith(AUTOGEN_BEGIN)
    assert text.endswith(AUTOGEN_END)
    assert "## code/naming" in text
    assert "## git" in text
    assert "### 🔴 Use camelCase" in text
    assert "- ID: `naming-001`" in text
    assert "- Tags: `naming`, `style`" in text
    assert "- Enabled: no" in text
    assert "**Do:**\n```\nconst userName = 1\n```" in text
    assert "**Exceptions:**\n- Constants" in text


def test_sync_creates_file(tmp_path: Path):
    adapter = CursorAdapter(tmp_path)

    result = adapter.sync(_rules())

    assert result.success
    assert result.rules_count == 2
    assert result.output_path == str(tmp_path / ".cursorrules")
    assert adapter.read().endswith(AUTOGEN_END + "\n")


def test_sync_preserves_manual_text_around_block(tmp_path: Path):
    adapter = CursorAdapter(tmp_path)
    (tmp_path / ".cursorrules").write_text(
        f"Manual header\n\n{AUTOGEN_BEGIN}\nstale\n{AUTOGEN_END}\n\nManual footer\n",
        encoding="utf-8",
    )

    adapter.sync(_rules())

    text = adapter.read()
    assert text.startswith("Manual header\n\n" + AUTOGEN_BEGIN)
    assert text.endswith(AUTOGEN_END + "\n\nManual footer\n")
    assert "stale" not in text
    assert text.count(AUTOGEN_BEGIN) == 1


def test_sync_appends_block_to_unmarked_file(tmp_path: Path):
    (tmp_path / ".cursorrules").write_text("Be nice.\n", encoding="utf-8")
    adapter = CursorAdapter(tmp_path)

    adapter.sync(_rules())

    text = adapter.read()
    assert text.startswith("Be nice.\n\n" + AUTOGEN_BEGIN)


def test_split_autogen_block_without_end_marker():
    text = f"a\n{AUTOGEN_BEGIN}\nno end"
    assert split_autogen_block(text) == (text, "", "")
    assert autogen_body(text) == text


def test_autogen_body_extracts_block():
    assert autogen_body(f"x\n{AUTOGEN_BEGIN}\nbody\n{AUTOGEN_END}\ny") == "\nbody\n"


def test_markers_only_count_at_line_start():
    text = f"note: {AUTOGEN_BEGIN} is ours\n{AUTOGEN_BEGIN}\nsee {AUTOGEN_END} below\n{AUTOGEN_END}\n"

    prefix, block, suffix = split_autogen_block(text)

    assert prefix == f"note: {AUTOGEN_BEGIN} is ours\n"
    assert block == f"{AUTOGEN_BEGIN}\nsee {AUTOGEN_END} below\n{AUTOGEN_END}"
    assert suffix == "\n"


def test_read_missing_file_is_empty(tmp_path: Path):
    assert CursorAdapter(tmp_path).read() == ""


def test_write_failure_is_reported(tmp_path: Path):
    # A directory where the file should be makes the write fail.
    (tmp_path / ".cursorrules").mkdir()

    result = CursorAdapter(tmp_path).sync(_rules())

    assert not result.success
    assert result.error
    assert result.to_dict()["success"] is False
