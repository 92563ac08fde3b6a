"""Structured exceptions for the rulebook engine.

Every error carries a ``context`` mapping so callers (CLI, sync results,
load reports) can render location, snippet and a suggestion without
parsing messages.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import yaml


class RulebookError(Exception):
    """Base exception for the rulebook engine."""

    code = "RULEBOOK_ERROR"
    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Store a shallow copy to avoid accidental mutation.
            self.context = dict(context)
        else:
            self.context = {}

    @property
    def message(self) -> str:
        return str(self)

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.code,
            "type": self.__class__.__name__,
            "context": {k: v for k, v in self.context.items() if _is_plain(v)},
        }

    def format(self) -> str:
        """Render the error with location, snippet and suggestion."""
        lines: List[str] = [f"[{self.code}] {self}"]

        file = self.context.get("file")
        if file:
            location = str(file)
            line = self.context.get("line")
            if line:
                location += f":{line}"
                column = self.context.get("column")
                if column:
                    location += f":{column}"
            lines.append(f"  at: {location}")

        snippet = self.context.get("snippet")
        if snippet:
            lines.append("")
            for snippet_line in str(snippet).splitlines():
                lines.append(f"    {snippet_line}")

        suggestion = self.context.get("suggestion")
        if suggestion:
            lines.append("")
            lines.append(f"  hint: {suggestion}")

        return "\n".join(lines)


def _is_plain(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool, list, tuple, dict)) or value is None


# ---------------------------------------------------------------------------
# Load-time errors (collected per file, never fatal to a batch)
# ---------------------------------------------------------------------------


class ParseError(RulebookError):
    """Raised when a rule or config document is not valid YAML."""

    code = "PARSE_ERROR"

    def __init__(
        self,
        message: str,
        *,
        file: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
        snippet: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            context={
                "file": file,
                "line": line,
                "column": column,
                "snippet": snippet,
                "suggestion": "Check YAML syntax: indentation and a space after each colon.",
            },
        )
        self.file = file
        self.line = line
        self.column = column
        self.snippet = snippet

    @classmethod
    def from_yaml_error(
        cls,
        error: yaml.YAMLError,
        file: str,
        content: Optional[str] = None,
    ) -> "ParseError":
        """Build a ParseError from a PyYAML error, extracting the problem mark."""
        line: Optional[int] = None
        column: Optional[int] = None
        mark = getattr(error, "problem_mark", None) or getattr(error, "context_mark", None)
        if mark is not None:
            line = mark.line + 1
            column = mark.column + 1

        snippet = None
        if content is not None and line is not None:
            snippet = _snippet_around(content, line)

        problem = getattr(error, "problem", None) or str(error).splitlines()[0]
        return cls(str(problem), file=file, line=line, column=column, snippet=snippet)


def _snippet_around(content: str, line: int, radius: int = 1) -> str:
    lines = content.splitlines()
    start = max(0, line - 1 - radius)
    end = min(len(lines), line + radius)
    out = []
    for idx in range(start, end):
        number = idx + 1
        marker = "> " if number == line else "  "
        out.append(f"{marker}{number:>4} | {lines[idx]}")
    return "\n".join(out)


class ValidationError(RulebookError):
    """Raised when a rule document violates the rule schema."""

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        expected: Any = None,
        received: Any = None,
        file: Optional[str] = None,
        rule_id: Optional[str] = None,
    ) -> None:
        suggestion = f"Check the '{field}' field." if field else "Check the rule fields."
        if field and expected is not None:
            suggestion += f" Expected: {expected}"
        super().__init__(
            message,
            context={
                "file": file,
                "field": field,
                "rule_id": rule_id,
                "suggestion": suggestion,
            },
        )
        self.field = field
        self.expected = expected
        self.received = received
        self.file = file
        self.rule_id = rule_id

    @classmethod
    def missing_required(
        cls, field: str, *, file: Optional[str] = None, rule_id: Optional[str] = None
    ) -> "ValidationError":
        return cls(f"Missing required field: {field}", field=field, file=file, rule_id=rule_id)

    @classmethod
    def invalid_value(
        cls,
        field: str,
        expected: Any,
        received: Any,
        *,
        file: Optional[str] = None,
        rule_id: Optional[str] = None,
    ) -> "ValidationError":
        return cls(
            f"Invalid value for '{field}': {received!r}",
            field=field,
            expected=expected,
            received=received,
            file=file,
            rule_id=rule_id,
        )


class ConfigError(RulebookError):
    """Raised when a scope config document is invalid."""

    code = "CONFIG_ERROR"

    def __init__(self, message: str, *, file: Optional[str] = None) -> None:
        super().__init__(
            message,
            context={"file": file, "suggestion": "Fix .rulebook-config.yaml; defaults apply meanwhile."},
        )
        self.file = file


# ---------------------------------------------------------------------------
# Dependency errors (returned from validation, raised by topological sort)
# ---------------------------------------------------------------------------


class DependencyError(RulebookError):
    """Dangling reference, rule conflict or dependency cycle."""

    code = "DEPENDENCY_ERROR"

    def __init__(
        self,
        message: str,
        *,
        rule_id: Optional[str] = None,
        cycle: Optional[Sequence[str]] = None,
        missing: Optional[Sequence[str]] = None,
        conflicts: Optional[Sequence[Tuple[str, str]]] = None,
        reason: Optional[str] = None,
    ) -> None:
        if cycle:
            suggestion = f"Break the dependency cycle: {' -> '.join(cycle)}"
        elif missing:
            suggestion = f"Add the missing rules: {', '.join(missing)}"
        elif conflicts:
            suggestion = "Disable one of the conflicting rules."
        else:
            suggestion = "Check the rule dependencies."
        super().__init__(
            message,
            context={
                "rule_id": rule_id,
                "cycle": list(cycle) if cycle else None,
                "missing": list(missing) if missing else None,
                "conflicts": [list(p) for p in conflicts] if conflicts else None,
                "reason": reason,
                "suggestion": suggestion,
            },
        )
        self.rule_id = rule_id
        self.cycle = list(cycle) if cycle else None
        self.missing = list(missing) if missing else None
        self.conflicts = [tuple(p) for p in conflicts] if conflicts else None
        self.reason = reason

    @classmethod
    def circular_dependency(cls, cycle: Sequence[str]) -> "DependencyError":
        return cls(
            f"Circular dependency: {' -> '.join(cycle)}",
            rule_id=cycle[0] if cycle else None,
            cycle=cycle,
            reason="cycle",
        )

    @classmethod
    def missing_dependency(cls, rule_id: str, missing: Sequence[str]) -> "DependencyError":
        return cls(
            f"Rule '{rule_id}' depends on missing rules: {', '.join(missing)}",
            rule_id=rule_id,
            missing=missing,
            reason="missing",
        )

    @classmethod
    def dangling_reference(cls, rule_id: str, relation: str, target: str) -> "DependencyError":
        return cls(
            f"Rule '{rule_id}' {relation} unknown rule '{target}'",
            rule_id=rule_id,
            missing=[target],
            reason=f"dangling:{relation}",
        )

    @classmethod
    def rule_conflict(
        cls,
        rule_a: str,
        rule_b: str,
        *,
        reason: str = "explicit",
        path: Optional[Sequence[str]] = None,
    ) -> "DependencyError":
        message = f"Rules '{rule_a}' and '{rule_b}' conflict ({reason})"
        if path:
            message += f" via {' -> '.join(path)}"
        return cls(message, rule_id=rule_a, conflicts=[(rule_a, rule_b)], reason=reason)


# ---------------------------------------------------------------------------
# Sync and version errors
# ---------------------------------------------------------------------------


class SyncError(RulebookError):
    """Adapter read/write failure or a push blocked by unresolved conflicts."""

    code = "SYNC_ERROR"

    def __init__(
        self,
        message: str,
        *,
        platform: Optional[str] = None,
        direction: Optional[str] = None,
        file: Optional[str] = None,
    ) -> None:
        if direction == "pull":
            suggestion = "Check the platform file format."
        else:
            suggestion = "Check write permissions and the output path."
        super().__init__(
            message,
            context={
                "platform": platform,
                "direction": direction,
                "file": file,
                "suggestion": suggestion,
            },
        )
        self.platform = platform
        self.direction = direction
        self.file = file

    @classmethod
    def unknown_platform(cls, platform: str) -> "SyncError":
        return cls(f"Unknown platform: {platform}", platform=platform)

    @classmethod
    def parse_error(cls, platform: str, file: Optional[str], details: str = "") -> "SyncError":
        suffix = f": {details}" if details else ""
        return cls(
            f"Cannot parse {platform} rules{suffix}",
            platform=platform,
            direction="pull",
            file=file,
        )

    @classmethod
    def write_error(cls, platform: str, file: Optional[str], reason: str = "") -> "SyncError":
        suffix = f": {reason}" if reason else ""
        return cls(
            f"Cannot write {platform} rules{suffix}",
            platform=platform,
            direction="push",
            file=file,
        )

    @classmethod
    def push_blocked(cls, platform: str, rule_ids: Sequence[str]) -> "SyncError":
        ids = ", ".join(rule_ids) if rule_ids else "remote-only changes"
        return cls(
            f"Push to {platform} blocked by unresolved remote changes: {ids}",
            platform=platform,
            direction="push",
        )


class VersionError(RulebookError):
    """Malformed version string or unknown version in a rule history."""

    code = "VERSION_ERROR"

    def __init__(
        self,
        message: str,
        *,
        rule_id: Optional[str] = None,
        version: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            context={
                "rule_id": rule_id,
                "version": version,
                "suggestion": "Check the rule version (semver, e.g. 1.0.0).",
            },
        )
        self.rule_id = rule_id
        self.version = version

    @classmethod
    def not_found(cls, rule_id: str, version: str) -> "VersionError":
        return cls(f"Version '{version}' of rule '{rule_id}' not found", rule_id=rule_id, version=version)

    @classmethod
    def invalid_format(cls, version: str) -> "VersionError":
        return cls(f"Invalid version format: '{version}' (expected major.minor.patch)", version=version)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def categorize_error(error: BaseException) -> str:
    """Classify an exception into a short category label."""
    if isinstance(error, ParseError):
        return "yaml"
    if isinstance(error, ValidationError):
        return "validation"
    if isinstance(error, DependencyError):
        return "dependency"
    if isinstance(error, SyncError):
        return "sync"
    if isinstance(error, VersionError):
        return "version"
    if isinstance(error, ConfigError):
        return "config"
    if isinstance(error, RulebookError):
        return "rulebook"
    return "unknown"


def format_error(error: BaseException) -> str:
    """Render any exception as a user-facing message."""
    if isinstance(error, RulebookError):
        return error.format()
    return str(error)


__all__ = [
    "RulebookError",
    "ParseError",
    "ValidationError",
    "ConfigError",
    "DependencyError",
    "SyncError",
    "VersionError",
    "categorize_error",
    "format_error",
]
