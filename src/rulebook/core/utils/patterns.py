"""Glob matching for rule ``filePatterns`` and ``excludePatterns``.

Supported syntax:
- ``*`` matches within one path segment
- ``**`` matches across segments (``src/**/x`` also matches ``src/x``)
- ``?`` matches a single non-separator character
- ``[abc]`` character classes
- ``{a,b}`` brace alternatives, nested groups allowed

A pattern without a ``/`` is matched against the file name, so ``*.py``
matches ``pkg/mod.py``.
"""
from __future__ import annotations

import re
from functools import lru_cache
from pathlib import PurePosixPath
from typing import Iterable, List, Optional, Pattern


def matches_any_pattern(file_path: str, patterns: Iterable[str]) -> bool:
    """Return True when ``file_path`` matches at least one pattern."""
    return find_matching_pattern(file_path, patterns) is not None


def find_matching_pattern(file_path: str, patterns: Iterable[str]) -> Optional[str]:
    """Return the first pattern matching ``file_path``, or None."""
    path = _normalize(file_path)
    name = PurePosixPath(path).name
    for pattern in patterns or []:
        target = path if "/" in pattern.strip("/") else name
        if any(rx.match(target) for rx in _compile(pattern)):
            return pattern
    return None


def match_patterns(files: Iterable[str], patterns: List[str]) -> List[str]:
    """Filter ``files`` down to those matching any of ``patterns``."""
    if not patterns:
        return []
    return [f for f in files if matches_any_pattern(f, patterns)]


def _normalize(file_path: str) -> str:
    path = str(file_path).replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path.lstrip("/")


@lru_cache(maxsize=512)
def _compile(pattern: str) -> tuple[Pattern[str], ...]:
    cleaned = _normalize(pattern.strip())
    return tuple(re.compile(_translate(p)) for p in expand_braces(cleaned))


def expand_braces(pattern: str) -> List[str]:
    """Expand ``{a,b}`` groups into every alternative.

    Example:
        >>> expand_braces("src/*.{ts,tsx}")
        ['src/*.ts', 'src/*.tsx']
    """
    start = pattern.find("{")
    if start == -1:
        return [pattern]
    depth = 0
    for end in range(start, len(pattern)):
        ch = pattern[end]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                break
    else:
        return [pattern]

    head, body, tail = pattern[:start], pattern[start + 1 : end], pattern[end + 1 :]
    options = _split_top_level(body)
    if len(options) < 2:
        return [head + "{" + body + "}" + t for t in expand_braces(tail)]

    out: List[str] = []
    for option in options:
        out.extend(expand_braces(head + option + tail))
    return out


def _split_top_level(body: str) -> List[str]:
    parts: List[str] = []
    depth = 0
    current = ""
    for ch in body:
        if ch == "," and depth == 0:
            parts.append(current)
            current = ""
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        current += ch
    parts.append(current)
    return parts


def _translate(pattern: str) -> str:
    i = 0
    n = len(pattern)
    out = ["^"]
    while i < n:
        ch = pattern[i]
        if ch == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    # "**/" may match zero directories.
                    i += 1
                    out.append("(?:.*/)?")
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        elif ch == "[":
            close = pattern.find("]", i + 1)
            if close == -1:
                out.append(re.escape(ch))
            else:
                body = pattern[i + 1 : close]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append("[" + body.replace("\\", "\\\\") + "]")
                i = close
        else:
            out.append(re.escape(ch))
        i += 1
    out.append("$")
    return "".join(out)


__all__ = [
    "matches_any_pattern",
    "find_matching_pattern",
    "match_patterns",
    "expand_braces",
]
