"""Glob matching for ``filePatterns``/``excludePatterns``."""
from __future__ import annotations

import pytest

from rulebook.core.utils.patterns import (
    expand_braces,
    find_matching_pattern,
    match_patterns,
    matches_any_pattern,
)


@pytest.mark.parametrize(
    "path,pattern",
    [
        ("src/app.ts", "src/*.ts"),
        ("src/a/b/c.ts", "src/**/*.ts"),
        ("src/c.ts", "src/**/*.ts"),
        ("pkg/mod.py", "*.py"),
        ("./src/app.tsx", "src/*.{ts,tsx}"),
        ("lib/x1.js", "lib/x?.js"),
        ("lib/xb.js", "lib/x[abc].js"),
    ],
)
def test_matches(path, pattern):
    assert matches_any_pattern(path, [pattern])


@pytest.mark.parametrize(
    "path,pattern",
    [
        ("src/a/app.ts", "src/*.ts"),
        ("src/app.js", "src/*.{ts,tsx}"),
        ("lib/x12.js", "lib/x?.js"),
        ("lib/xd.js", "lib/x[abc].js"),
    ],
)
def test_non_matches(path, pattern):
    assert not matches_any_pattern(path, [pattern])


def test_windows_separators_are_normalized():
    assert matches_any_pattern("src\\nested\\file.py", ["src/**/*.py"])


def test_find_matching_pattern_returns_first_hit():
    assert find_matching_pattern("test/a.spec.ts", ["*.js", "**/*.spec.ts", "*.ts"]) == "**/*.spec.ts"
    assert find_matching_pattern("a.md", ["*.py"]) is None


def test_match_patterns_filters_files():
    files = ["a.py", "b.ts", "docs/c.md"]
    assert match_patterns(files, ["*.py", "docs/**"]) == ["a.py", "docs/c.md"]
    assert match_patterns(files, []) == []


def test_expand_braces_nested():
    assert expand_braces("{a,b{1,2}}.txt") == ["a.txt", "b1.txt", "b2.txt"]


def test_single_option_brace_is_literal():
    assert expand_braces("x{a}") == ["x{a}"]
