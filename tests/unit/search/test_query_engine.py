"""Tests for the three-pass keyword query engine."""

from __future__ import annotations

import pytest

from cangjie_docs_mcp.domain.model import DocumentCategory
from cangjie_docs_mcp.domain.store import DocumentStore
from cangjie_docs_mcp.search.inverted_index import Indexer
from cangjie_docs_mcp.search.query_engine import QueryEngine, extract_match_text


def _engine(documents) -> QueryEngine:
    store = DocumentStore(documents)
    return QueryEngine(store, Indexer().build(store))


class TestSampleCorpus:
    def test_title_and_description_hits_score_exact(self, sample_snapshot) -> None:
        results = sample_snapshot.query_engine.search("泛型")

        top = results[0]
        assert top.document.id == "manual_generic_generic_overview"
        assert top.match_type == "exact"
        assert top.score >= 16.0

    @pytest.mark.parametrize("query", ["", "   "])
    def test_blank_query_returns_nothing(self, sample_snapshot, query: str) -> None:
        assert sample_snapshot.query_engine.search(query) == []

    @pytest.mark.parametrize("query", ["仓颉", "map", "std", "list resizable", "cjpm package"])
    def test_scores_are_non_increasing(self, sample_snapshot, query: str) -> None:
        scores = [hit.score for hit in sample_snapshot.query_engine.search(query)]

        assert scores == sorted(scores, reverse=True)

    def test_category_filter_excludes_other_categories(self, sample_snapshot) -> None:
        results = sample_snapshot.query_engine.search("std", category=DocumentCategory.LIBS)

        assert results
        assert {hit.document.category for hit in results} == {DocumentCategory.LIBS}
        assert sample_snapshot.query_engine.search("泛型", category=DocumentCategory.TOOLS) == []

    def test_term_matches_score_as_keyword_and_accumulate(self, sample_snapshot) -> None:
        results = sample_snapshot.query_engine.search("list resizable")

        assert [hit.document.id for hit in results] == ["libs_std_array_list"]
        assert results[0].match_type == "keyword"
        # title +8, description +6 twice, then +8 for the second matching term
        assert results[0].score == pytest.approx(28.0)

    def test_min_confidence_and_max_results(self, sample_snapshot) -> None:
        engine = sample_snapshot.query_engine

        assert engine.search("泛型", min_confidence=1_000) == []
        assert len(engine.search("仓颉", max_results=1)) == 1
        assert engine.search("仓颉", max_results=0) == []


class TestScoring:
    def test_fuzzy_pass_reads_content_beyond_indexed_prefix(self, make_document) -> None:
        doc = make_document("manual_animals", title="Animals", content="x" * 1_200 + " zebra zebra")

        results = _engine([doc]).search("zebra")

        assert len(results) == 1
        assert results[0].match_type == "fuzzy"
        assert results[0].score == pytest.approx(6.0)

    def test_equal_scores_are_ordered_by_id(self, make_document) -> None:
        docs = [
            make_document("manual_b", title="Same Title"),
            make_document("manual_a", title="Same Title"),
        ]

        results = _engine(docs).search("same title")

        assert [hit.document.id for hit in results] == ["manual_a", "manual_b"]

    def test_exact_signals_are_additive(self, make_document) -> None:
        doc = make_document(
            "manual_macro",
            title="Macro guide",
            description="About macro expansion",
            keywords=("macro",),
            path="manual/macro/intro.md",
        )

        (hit,) = _engine([doc]).search("macro")

        # title 10 + description 6 + keyword 10 + path 5, then +8 from the term pass
        assert hit.match_type == "exact"
        assert hit.score == pytest.approx(39.0)


class TestMatchText:
    def test_snippet_surrounds_first_occurrence(self, make_document) -> None:
        content = "a" * 80 + "泛型" + "b" * 80
        doc = make_document(content=content)

        snippet = extract_match_text(doc, "泛型")

        assert snippet == "..." + "a" * 50 + "泛型" + "b" * 50 + "..."

    def test_falls_back_to_description_then_title(self, make_document) -> None:
        assert extract_match_text(make_document(description="desc", content="body"), "zzz") == "desc"
        assert extract_match_text(make_document(title="Only title", content="body"), "zzz") == "Only title"
