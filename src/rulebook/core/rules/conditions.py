"""Conditional applicability of rules (files, branches, environments, dates)."""
from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, List, Optional, Union

from ..utils.patterns import matches_any_pattern
from ..utils.time import parse_date, utc_now
from .models import Rule


def is_rule_applicable(
    rule: Rule,
    *,
    file_path: Optional[str] = None,
    branch: Optional[str] = None,
    environment: Optional[str] = None,
    now: Optional[Union[datetime, date]] = None,
) -> bool:
    """Return True when ``rule`` applies in the given context.

    Disabled rules never apply. Each condition only gates when both the rule
    declares it and the caller supplies the matching context value; the
    date window is always checked against ``now`` (UTC today by default).
    """
    if not rule.enabled:
        return False
    cond = rule.conditions
    if cond is None:
        return True

    if file_path is not None:
        if cond.file_patterns and not matches_any_pattern(file_path, cond.file_patterns):
            return False
        if cond.exclude_patterns and matches_any_pattern(file_path, cond.exclude_patterns):
            return False

    if branch is not None and cond.branches:
        if not matches_any_pattern(branch, cond.branches) and branch not in cond.branches:
            return False

    if environment is not None and cond.environments and environment not in cond.environments:
        return False

    today = _as_date(now)
    start = parse_date(cond.active_from) if cond.active_from else None
    if start is not None and today < start:
        return False
    end = parse_date(cond.active_until) if cond.active_until else None
    if end is not None and today > end:
        return False
    return True


def _as_date(value: Optional[Union[datetime, date]]) -> date:
    if value is None:
        return utc_now().date()
    if isinstance(value, datetime):
        return value.date()
    return value


def get_applicable_rules(rules: Iterable[Rule], **context) -> List[Rule]:
    """Filter ``rules`` with :func:`is_rule_applicable`."""
    return [rule for rule in rules if is_rule_applicable(rule, **context)]


__all__ = ["is_rule_applicable", "get_applicable_rules"]
