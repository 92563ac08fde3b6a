from __future__ import annotations

from rulebook.core.adapters.markdown import (
    code_block,
    escape_description,
    escape_line,
    fence_for,
    iter_blocks,
    join_paragraph,
    parse_backtick_list,
    parse_bool,
    severity_icon,
    unescape_line,
)


def test_fence_grows_past_embedded_backticks():
    assert fence_for("plain") == "```"
    assert fence_for("has ``` inside") == "````"
    assert code_block("x\n") == ["```", "x", "```"]


def test_iter_blocks_separates_code_and_lines():
    lines = ["intro", "````", "```", "nested", "```", "````", "outro"]
    assert list(iter_blocks(lines)) == [("line", "intro"), ("code", "```\nnested\n```"), ("line", "outro")]


def test_parse_backtick_list():
    assert parse_backtick_list("`a`, `b c`") == ["a", "b c"]
    assert parse_backtick_list("a, b,") == ["a", "b"]


def test_parse_bool():
    assert parse_bool("yes") is True
    assert parse_bool("`false`") is False
    assert parse_bool("maybe") is None


def test_join_paragraph_trims_blank_edges():
    assert join_paragraph(["", "a  ", "b", "", ""]) == "a\nb"


def test_unknown_severity_icon():
    assert severity_icon("fatal") == "⚪"


def test_escape_line_only_touches_structural_lines():
    assert escape_line("## Heading") == "\\## Heading"
    assert escape_line("  ---") == "  \\---"
    assert escape_line("**Don't:**") == "\\**Don't:**"
    assert escape_line("- tags: `x`") == "\\- tags: `x`"
    assert escape_line("**Bold** prose") == "**Bold** prose"
    assert escape_line("- a plain item") == "- a plain item"
    assert unescape_line("  \\---") == "  ---"
    assert unescape_line("plain") == "plain"


def test_escape_description_is_reversible_per_line():
    text = "Intro\n### Why\n\\path\n```"
    escaped = escape_description(text)

    assert escaped == "Intro\n\\### Why\n\\\\path\n\\```"
    assert "\n".join(unescape_line(line) for line in escaped.split("\n")) == text
