"""Tag/keyword search and near-duplicate detection.

``RuleSearch`` is a value object: it indexes a rule list once at
construction and is rebuilt (not patched) when the rules change.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import AbstractSet, Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from ..utils.profiling import span
from .models import Rule

DEFAULT_WEIGHTS: Dict[str, float] = {
    "name": 0.2,
    "description": 0.3,
    "tags": 0.25,
    "category": 0.15,
    "examples": 0.1,
}

# Keyword score per matching field, highest first.
FIELD_SCORES = (("id", 10), ("name", 8), ("tags", 5), ("category", 3), ("description", 2), ("examples", 1))

_NON_WORD = re.compile(r"[\W_]+", re.UNICODE)


@dataclass
class SearchResult:
    rule: Rule
    score: float
    matched_fields: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.rule.id, "name": self.rule.name, "score": self.score, "matchedFields": self.matched_fields}


@dataclass
class SimilarRule:
    rule: Rule
    similarity: float
    matching_aspects: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.rule.id,
            "name": self.rule.name,
            "similarity": round(self.similarity, 4),
            "matchingAspects": self.matching_aspects,
        }


@dataclass
class DuplicatePair:
    rule_a: str
    rule_b: str
    similarity: float

    def to_dict(self) -> Dict[str, Any]:
        return {"ruleA": self.rule_a, "ruleB": self.rule_b, "similarity": round(self.similarity, 4)}


# ---------------------------------------------------------------------------
# Similarity primitives
# ---------------------------------------------------------------------------


def jaccard_similarity(a: AbstractSet[Any], b: AbstractSet[Any]) -> float:
    """``|A & B| / |A | B|``; two empty sets score 0."""
    union = set(a) | set(b)
    if not union:
        return 0.0
    return len(set(a) & set(b)) / len(union)


def char_ngrams(text: str, n: int = 2) -> Set[str]:
    return {text[i : i + n] for i in range(len(text) - n + 1)}


def string_similarity(a: str, b: str) -> float:
    """Case-insensitive character-bigram Jaccard similarity."""
    left, right = a.casefold(), b.casefold()
    if left == right:
        return 1.0
    if not left or not right:
        return 0.0
    return jaccard_similarity(char_ngrams(left), char_ngrams(right))


def category_similarity(a: str, b: str) -> float:
    """Share of leading category segments the two paths have in common."""
    left, right = a.split("/"), b.split("/")
    longest = max(len(left), len(right))
    matching = 0
    for x, y in zip(left, right):
        if x != y:
            break
        matching += 1
    return matching / longest if longest else 0.0


def extract_words(text: str) -> List[str]:
    """Case-folded tokens longer than one character."""
    return [w for w in _NON_WORD.sub(" ", text.casefold()).split() if len(w) > 1]


def _examples_text(rule: Rule) -> str:
    if not rule.examples:
        return ""
    return " ".join([*rule.examples.good, *rule.examples.bad])


def validate_weights(weights: Mapping[str, float]) -> Dict[str, float]:
    """Fill missing weights from the defaults and check they sum to 1.0.

    Raises:
        ValueError: Unknown aspect or a total different from 1.0.
    """
    merged = dict(DEFAULT_WEIGHTS)
    for key, value in (weights or {}).items():
        if key not in DEFAULT_WEIGHTS:
            raise ValueError(f"Unknown similarity aspect: {key}")
        merged[key] = float(value)
    total = sum(merged.values())
    if not math.isclose(total, 1.0, abs_tol=1e-6):
        raise ValueError(f"Similarity weights must sum to 1.0, got {total:.4f}")
    return merged


# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------


class RuleSearch:
    """Inverted tag/keyword indices plus weighted similarity scoring."""

    def __init__(self, rules: Iterable[Rule] = (), weights: Optional[Mapping[str, float]] = None) -> None:
        self.rules: List[Rule] = list(rules)
        self.weights = validate_weights(weights or {})
        self.tag_index: Dict[str, Set[str]] = {}
        self.keyword_index: Dict[str, Set[str]] = {}
        self._build_indices()

    def _build_indices(self) -> None:
        with span("search.index", rules=len(self.rules)):
            for rule in self.rules:
                for tag in rule.tags:
                    self.tag_index.setdefault(tag.casefold(), set()).add(rule.id)
                for word in extract_words(f"{rule.name} {rule.description}"):
                    self.keyword_index.setdefault(word, set()).add(rule.id)

    # ---------- lookups ----------

    def search_by_tags(self, tags: Sequence[str], match_all: bool = False) -> List[Rule]:
        if not tags:
            return []
        sets = [self.tag_index.get(tag.casefold(), set()) for tag in tags]
        ids = set.intersection(*sets) if match_all else set().union(*sets)
        return [rule for rule in self.rules if rule.id in ids]

    def lookup_keywords(self, words: Sequence[str], match_all: bool = False) -> List[Rule]:
        """Rules indexed under any (or all) of ``words``."""
        tokens = [t for w in words for t in extract_words(w)]
        if not tokens:
            return []
        sets = [self.keyword_index.get(token, set()) for token in tokens]
        ids = set.intersection(*sets) if match_all else set().union(*sets)
        return [rule for rule in self.rules if rule.id in ids]

    def search_by_keyword(self, keyword: str) -> List[SearchResult]:
        return self._score(self.rules, keyword)

    def search(
        self,
        *,
        keyword: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        category: Optional[str] = None,
        severity: Optional[str] = None,
        enabled_only: bool = False,
        limit: Optional[int] = None,
    ) -> List[SearchResult]:
        """Composite search; each filter only narrows the candidate set."""
        candidates = list(self.rules)
        if tags:
            tagged = {rule.id for rule in self.search_by_tags(tags)}
            candidates = [r for r in candidates if r.id in tagged]
        if category:
            candidates = [r for r in candidates if r.category.startswith(category)]
        if severity:
            candidates = [r for r in candidates if r.severity == severity]
        if enabled_only:
            candidates = [r for r in candidates if r.enabled]

        if keyword:
            results = self._score(candidates, keyword)
        else:
            results = [SearchResult(rule, 1.0) for rule in candidates]
        if limit and limit > 0:
            results = results[:limit]
        return results

    def _score(self, rules: Iterable[Rule], keyword: str) -> List[SearchResult]:
        needle = keyword.casefold()
        results = []
        for rule in rules:
            score, fields = keyword_score(rule, needle)
            if score > 0:
                results.append(SearchResult(rule, float(score), fields))
        # sorted() is stable, so ties keep store order.
        return sorted(results, key=lambda r: r.score, reverse=True)

    # ---------- similarity ----------

    def calculate_similarity(self, a: Rule, b: Rule) -> float:
        w = self.weights
        total = w["name"] * string_similarity(a.name, b.name)
        total += w["description"] * string_similarity(a.description, b.description)
        total += w["tags"] * jaccard_similarity({t.casefold() for t in a.tags}, {t.casefold() for t in b.tags})
        total += w["category"] * category_similarity(a.category, b.category)
        if a.examples and b.examples:
            total += w["examples"] * string_similarity(_examples_text(a), _examples_text(b))
        return total

    def matching_aspects(self, a: Rule, b: Rule) -> List[str]:
        aspects = []
        if string_similarity(a.name, b.name) > 0.5:
            aspects.append("name")
        if string_similarity(a.description, b.description) > 0.5:
            aspects.append("description")
        if jaccard_similarity(set(a.tags), set(b.tags)) > 0.5:
            aspects.append("tags")
        if a.category == b.category:
            aspects.append("category")
        if a.severity == b.severity:
            aspects.append("severity")
        return aspects

    def find_similar(self, rule: Rule, threshold: float = 0.5) -> List[SimilarRule]:
        """Rules scoring at or above ``threshold``, best first, excluding ``rule``."""
        found = []
        for candidate in self.rules:
            if candidate.id == rule.id:
                continue
            score = self.calculate_similarity(rule, candidate)
            if score >= threshold:
                found.append(SimilarRule(candidate, score, self.matching_aspects(rule, candidate)))
        return sorted(found, key=lambda s: s.similarity, reverse=True)

    def find_duplicates(self, threshold: float = 0.8) -> List[DuplicatePair]:
        """Every pair of rules at or above ``threshold``, listed once."""
        pairs = []
        for i, a in enumerate(self.rules):
            for b in self.rules[i + 1 :]:
                score = self.calculate_similarity(a, b)
                if score >= threshold:
                    pairs.append(DuplicatePair(a.id, b.id, score))
        return sorted(pairs, key=lambda p: p.similarity, reverse=True)

    # ---------- catalogues ----------

    def suggest_tags(self, prefix: str, limit: int = 10) -> List[str]:
        needle = prefix.casefold()
        return sorted(tag for tag in self.tag_index if tag.startswith(needle))[:limit]

    def get_categories(self) -> List[str]:
        """Every category plus its ancestors, sorted."""
        categories: Set[str] = set()
        for rule in self.rules:
            parts = rule.category.split("/")
            for depth in range(1, len(parts) + 1):
                categories.add("/".join(parts[:depth]))
        return sorted(categories)

    def get_all_tags(self) -> List[str]:
        return sorted(self.tag_index)


def keyword_score(rule: Rule, needle: str) -> Tuple[int, List[str]]:
    """Field-weighted substring score of ``needle`` (already case-folded)."""
    haystacks = {
        "id": [rule.id],
        "name": [rule.name],
        "tags": list(rule.tags),
        "category": [rule.category],
        "description": [rule.description],
        "examples": [_examples_text(rule)],
    }
    score = 0
    fields: List[str] = []
    for name, weight in FIELD_SCORES:
        hits = sum(1 for text in haystacks[name] if needle in text.casefold())
        if hits:
            # Each matching tag counts; other fields count once.
            score += weight * hits
            fields.append(name)
    return score, fields


def group_rules_by_category(rules: Iterable[Rule]) -> Dict[str, List[Rule]]:
    """Rules keyed by top-level category segment, first-seen order."""
    groups: Dict[str, List[Rule]] = {}
    for rule in rules:
        groups.setdefault(rule.category.split("/")[0], []).append(rule)
    return groups


def get_rule_stats(rules: Iterable[Rule]) -> Dict[str, Any]:
    rules = list(rules)
    by_category: Dict[str, int] = {}
    by_severity: Dict[str, int] = {}
    by_tag: Dict[str, int] = {}
    for rule in rules:
        root = rule.category.split("/")[0]
        by_category[root] = by_category.get(root, 0) + 1
        by_severity[rule.severity] = by_severity.get(rule.severity, 0) + 1
        for tag in rule.tags:
            by_tag[tag] = by_tag.get(tag, 0) + 1
    return {
        "total": len(rules),
        "byCategory": by_category,
        "bySeverity": by_severity,
        "byTag": by_tag,
    }


__all__ = [
    "DEFAULT_WEIGHTS",
    "SearchResult",
    "SimilarRule",
    "DuplicatePair",
    "jaccard_similarity",
    "string_similarity",
    "category_similarity",
    "extract_words",
    "validate_weights",
    "keyword_score",
    "RuleSearch",
    "group_rules_by_category",
    "get_rule_stats",
]
