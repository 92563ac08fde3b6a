"""Unified CLI output formatting utilities.

Every command prints through :class:`OutputFormatter` so ``--json`` gives
machine-readable output on stdout and errors on stderr.
"""
from __future__ import annotations

import json
import sys
from typing import Any, Optional

from rulebook.core.exceptions import RulebookError, categorize_error, format_error


class OutputFormatter:
    """Unified output formatter for CLI commands."""

    def __init__(self, json_mode: bool = False, indent: int = 2):
        self.json_mode = json_mode
        self.indent = indent

    def error(self, error: Exception, message: Optional[str] = None) -> None:
        """Report ``error`` on stderr (structured payload in JSON mode)."""
        msg = message or str(error)
        if self.json_mode:
            if isinstance(error, RulebookError):
                payload = error.to_json_error()
            else:
                payload = {"message": msg, "code": "ERROR", "type": type(error).__name__}
            payload["category"] = categorize_error(error)
            print(json.dumps({"status": "error", "error": payload}, indent=self.indent, default=str), file=sys.stderr)
        elif message is None:
            print(format_error(error), file=sys.stderr)
        else:
            print(f"Error: {msg}", file=sys.stderr)

    def json_output(self, data: Any) -> None:
        print(json.dumps(data, indent=self.indent, default=str, ensure_ascii=False))

    def text(self, message: str) -> None:
        if not self.json_mode:
            print(message)

    def text_kv(self, key: str, value: Any, prefix: str = "  ") -> None:
        if not self.json_mode:
            print(f"{prefix}{key}: {value}")

    def warn(self, message: str) -> None:
        """Non-fatal notice; always on stderr."""
        print(f"Warning: {message}", file=sys.stderr)


__all__ = ["OutputFormatter"]
