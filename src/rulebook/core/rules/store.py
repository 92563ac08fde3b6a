"""In-memory rule store for one loaded scope path."""
from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional

from .models import Rule


class RuleStore:
    """Ordered mapping of rule id to :class:`Rule`.

    ``revision`` increases on every mutation so derived views (search index,
    dependency graph) can tell when they are stale.
    """

    def __init__(self, rules: Optional[Iterable[Rule]] = None) -> None:
        self._rules: Dict[str, Rule] = {}
        self.revision = 0
        if rules is not None:
            self.replace_all(rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(list(self._rules.values()))

    def get(self, rule_id: str) -> Optional[Rule]:
        return self._rules.get(rule_id)

    def all(self) -> List[Rule]:
        return list(self._rules.values())

    def ids(self) -> List[str]:
        return list(self._rules)

    def by_category(self, prefix: str) -> List[Rule]:
        """Rules whose category equals ``prefix`` or sits below it."""
        prefix = prefix.rstrip("/")
        return [
            rule
            for rule in self._rules.values()
            if rule.category == prefix or rule.category.startswith(prefix + "/")
        ]

    def put(self, rule: Rule) -> None:
        self._rules[rule.id] = rule
        self.revision += 1

    def remove(self, rule_id: str) -> Optional[Rule]:
        removed = self._rules.pop(rule_id, None)
        if removed is not None:
            self.revision += 1
        return removed

    def replace_all(self, rules: Iterable[Rule]) -> None:
        self._rules = {rule.id: rule for rule in rules}
        self.revision += 1


__all__ = ["RuleStore"]
