"""Unit tests for QueryRewriter and QueryRewriteRules."""

from __future__ import annotations

import pytest

from src.services.retrieval.query_rewriter import QueryRewriter, QueryRewriteRules


def _rules(**overrides) -> QueryRewriteRules:
    base = dict(
        synonyms={}, analysis_dimensions=[], time_frames=[], info_types=[],
        stop_words=frozenset(),
    )
    base.update(overrides)
    return QueryRewriteRules(**base)


class TestQueryRewriter:
    @pytest.mark.parametrize("query", [None, "", "   \n\t"])
    def test_blank_query_yields_nothing(self, query) -> None:
        assert QueryRewriter().rewrite(query) == []

    def test_non_positive_limit_yields_nothing(self) -> None:
        assert QueryRewriter().rewrite("stock outlook", max_candidates=0) == []

    def test_synonyms_come_first(self) -> None:
        variants = QueryRewriter().rewrite("stock outlook", max_candidates=3)
        assert variants == ["equity outlook", "shares outlook", "stock guidance"]

    def test_cjk_synonyms(self) -> None:
        variants = QueryRewriter().rewrite("股票分析", max_candidates=3)
        assert variants == ["证券分析", "股份分析", "股权分析"]

    def test_qualifiers_in_priority_order(self) -> None:
        rules = _rules(
            analysis_dimensions=["fundamentals"], time_frames=["latest"], info_types=["news"]
        )
        variants = QueryRewriter(rules).rewrite("acme", max_candidates=5)
        assert variants == ["acme fundamentals", "acme latest", "acme news"]

    def test_keyword_pairs_then_compact_query(self) -> None:
        rules = _rules(stop_words=frozenset({"the"}))
        variants = QueryRewriter(rules).rewrite("the acme widgets", max_candidates=10)
        assert variants == ["widgets acme", "widgets the", "acme the", "acme widgets"]

    def test_years_count_as_keywords(self) -> None:
        variants = QueryRewriter(_rules()).rewrite("acme 2024", max_candidates=10)
        assert variants == ["acme 2024"]

    def test_variants_are_case_insensitively_distinct(self) -> None:
        rules = _rules(synonyms={"acme": ["ACME corp", "acme CORP"]})
        assert QueryRewriter(rules).rewrite("acme", max_candidates=5) == ["ACME corp"]

    def test_ascii_terms_match_whole_words(self) -> None:
        rules = _rules(synonyms={"ai": ["ML"]})
        variants = QueryRewriter(rules).rewrite("AI芯片 remains", max_candidates=10)
        assert variants[0] == "ML芯片 remains"
        assert not any("remMLns" in v for v in variants)

    def test_whitespace_is_normalised(self) -> None:
        rules = _rules(time_frames=["latest"])
        assert QueryRewriter(rules).rewrite("  acme\n  corp\t ")[0] == "acme corp latest"

    def test_limit_is_respected(self) -> None:
        assert len(QueryRewriter().rewrite("市场 风险 趋势", max_candidates=2)) == 2


class TestQueryRewriteRules:
    def test_from_config_overrides_only_given_keys(self) -> None:
        rules = QueryRewriteRules.from_config({"time_frames": ["now"], "stop_words": ["x"]})
        defaults = QueryRewriteRules()
        assert rules.time_frames == ["now"]
        assert rules.stop_words == frozenset({"x"})
        assert rules.synonyms == defaults.synonyms
        assert rules.info_types == defaults.info_types

    def test_from_empty_config_is_default(self) -> None:
        assert QueryRewriteRules.from_config(None) == QueryRewriteRules()
        assert QueryRewriteRules.from_config({}) == QueryRewriteRules()
