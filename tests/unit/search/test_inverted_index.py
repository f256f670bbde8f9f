"""Tests for inverted index construction."""

import pytest

from cangjie_docs_mcp.domain.model import DocumentCategory
from cangjie_docs_mcp.search.inverted_index import Indexer, InvertedIndex


def test_index_covers_title_description_keywords_content_and_path(make_document):
    doc = make_document(
        "libs_std_hashmap",
        title="HashMap",
        category=DocumentCategory.LIBS,
        path="libs/std/collection/hashmap.md",
        description="map collection",
        keywords=("c++", "泛型"),
        content="HashMap stores pairs",
    )

    index = Indexer().build([doc])

    for term in ("hashmap", "map", "collection", "c++", "泛型", "stores", "pairs", "libs", "std"):
        assert index.lookup(term) == ("libs_std_hashmap",), term
    assert "c" not in index


def test_content_is_truncated_to_configured_prefix(make_document):
    doc = make_document("manual_t", title="T", content="HashMap stores")

    index = Indexer(content_chars=5).build([doc])

    assert "hashm" in index
    assert "stores" not in index


def test_postings_keep_indexing_order_without_duplicates(make_document):
    first = make_document("b_doc", title="map map", content="map")
    second = make_document("a_doc", title="Map")

    index = Indexer().build([first, second])

    assert index.lookup("map") == ("b_doc", "a_doc")
    assert index.lookup("missing") == ()


def test_inverted_index_is_read_only():
    index = InvertedIndex({"term": ("doc",)})

    assert len(index) == 1
    assert index.terms() == ["term"]
    with pytest.raises(TypeError):
        index._postings["other"] = ("doc",)  # type: ignore[index]
