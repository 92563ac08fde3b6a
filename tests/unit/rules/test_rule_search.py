"""Keyword/tag search, similarity scoring and duplicate detection."""
from __future__ import annotations

import pytest

from helpers.factories import rule_obj
from rulebook.core.rules.search import (
    RuleSearch,
    category_similarity,
    extract_words,
    get_rule_stats,
    group_rules_by_category,
    jaccard_similarity,
    keyword_score,
    string_similarity,
    validate_weights,
)


@pytest.fixture
def rules():
    return [
        rule_obj(
            "naming-001",
            name="Use camelCase for variables",
            description="Variables must use camelCase naming.",
            category="code/naming",
            tags=["naming", "style"],
            severity="error",
        ),
        rule_obj(
            "naming-002",
            name="Use camelCase for variable names",
            description="Variable names must use camelCase naming.",
            category="code/naming",
            tags=["naming", "style"],
            severity="error",
        ),
        rule_obj(
            "git-001",
            name="Write descriptive commit messages",
            description="Commit messages explain why.",
            category="git",
            tags=["git"],
            severity="info",
            enabled=False,
        ),
    ]


def test_jaccard_similarity():
    assert jaccard_similarity({"a", "b"}, {"b", "c"}) == pytest.approx(1 / 3)
    assert jaccard_similarity(set(), set()) == 0.0


def test_string_similarity_is_case_insensitive():
    assert string_similarity("CamelCase", "camelcase") == 1.0
    assert string_similarity("", "x") == 0.0
    assert 0 < string_similarity("naming", "names") < 1


def test_category_similarity_counts_leading_segments():
    assert category_similarity("code/naming", "code/naming") == 1.0
    assert category_similarity("code/naming", "code/style") == 0.5
    assert category_similarity("git", "code") == 0.0


def test_extract_words_drops_short_tokens():
    assert extract_words("Use a_b camelCase, x!") == ["use", "camelcase"]


def test_validate_weights():
    assert validate_weights({})["description"] == 0.3
    with pytest.raises(ValueError):
        validate_weights({"name": 0.9})
    with pytest.raises(ValueError):
        validate_weights({"colour": 0.0})


def test_keyword_score_weights_fields(rules):
    score, fields = keyword_score(rules[0], "naming")
    # id(10) + tags(5) + category(3) + description(2)
    assert score == 20
    assert fields == ["id", "tags", "category", "description"]


def test_search_by_keyword_orders_by_score(rules):
    results = RuleSearch(rules).search_by_keyword("commit")
    assert [r.rule.id for r in results] == ["git-001"]
    assert results[0].matched_fields == ["name", "description"]


def test_search_by_tags_any_and_all(rules):
    index = RuleSearch(rules)
    assert [r.id for r in index.search_by_tags(["git", "style"])] == ["naming-001", "naming-002", "git-001"]
    assert [r.id for r in index.search_by_tags(["naming", "STYLE"], match_all=True)] == ["naming-001", "naming-002"]
    assert index.search_by_tags([]) == []


def test_lookup_keywords(rules):
    index = RuleSearch(rules)
    assert [r.id for r in index.lookup_keywords(["commit"])] == ["git-001"]
    assert [r.id for r in index.lookup_keywords(["variable", "names"], match_all=True)] == ["naming-002"]


def test_composite_search_filters(rules):
    index = RuleSearch(rules)
    assert [r.rule.id for r in index.search(category="code", severity="error", limit=1)] == ["naming-001"]
    assert [r.rule.id for r in index.search(enabled_only=True)] == ["naming-001", "naming-002"]
    assert index.search(tags=["git"], keyword="camelcase") == []


def test_find_similar_excludes_self(rules):
    similar = RuleSearch(rules).find_similar(rules[0], threshold=0.5)

    assert [s.rule.id for s in similar] == ["naming-002"]
    assert similar[0].similarity > 0.8
    assert {"tags", "category", "severity"} <= set(similar[0].matching_aspects)


def test_find_duplicates_lists_pairs_once(rules):
    pairs = RuleSearch(rules).find_duplicates(threshold=0.7)
    assert [(p.rule_a, p.rule_b) for p in pairs] == [("naming-001", "naming-002")]


def test_custom_weights_change_scores(rules):
    tags_only = RuleSearch(rules, {"name": 0, "description": 0, "tags": 1, "category": 0, "examples": 0})
    assert tags_only.calculate_similarity(rules[0], rules[1]) == pytest.approx(1.0)
    assert tags_only.calculate_similarity(rules[0], rules[2]) == 0.0


def test_catalogues(rules):
    index = RuleSearch(rules)
    assert index.suggest_tags("na") == ["naming"]
    assert index.get_categories() == ["code", "code/naming", "git"]
    assert index.get_all_tags() == ["git", "naming", "style"]


def test_grouping_and_stats(rules):
    assert list(group_rules_by_category(rules)) == ["code", "git"]
    stats = get_rule_stats(rules)
    assert stats["total"] == 3
    assert stats["byCategory"] == {"code": 2, "git": 1}
    assert stats["bySeverity"] == {"error": 2, "info": 1}
    assert stats["byTag"]["naming"] == 2
