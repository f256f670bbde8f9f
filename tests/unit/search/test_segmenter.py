"""Tests for splitting oversized documents into section documents."""

from __future__ import annotations

import pytest

from cangjie_docs_mcp.search.segmenter import DocumentSegmenter


def _join(*lines: str) -> str:
    return "\n".join(lines)


@pytest.fixture
def segmenter() -> DocumentSegmenter:
    return DocumentSegmenter()


@pytest.fixture
def large_document(make_document):
    content = _join(
        "# Big",
        "## A",
        "a" * 3_000,
        "## B",
        "b" * 8_000,
        "## C",
        "c" * 9_000,
        "## D",
        "### D1",
        "d" * 6_000,
        "### D2",
        "e" * 6_000,
    )
    return make_document("manual_big", title="Big", path="manual/guide/big.md", subcategory="guide", content=content)


class TestSegmentation:
    def test_oversized_section_is_split_along_subheadings(self, segmenter, large_document) -> None:
        pieces = segmenter.segment(large_document)

        assert [piece.title for piece in pieces] == ["A", "B", "C", "D - D1", "D - D2"]
        assert [piece.id for piece in pieces] == [
            "manual_big_A_1",
            "manual_big_B_2",
            "manual_big_C_3",
            "manual_big_D_4_0",
            "manual_big_D_4_1",
        ]
        assert all(len(piece.content) <= 12_000 for piece in pieces)
        assert pieces[3].content == "d" * 6_000

    def test_every_piece_links_back_to_its_parent(self, segmenter, large_document) -> None:
        pieces = segmenter.segment(large_document)

        for piece in pieces:
            assert piece.prerequisites == ("manual_big",)
            assert piece.is_derived
            assert piece.category is large_document.category
            assert piece.subcategory == "guide"
            assert piece.full_path_id.startswith("manual/guide/big#")
            assert piece.file_size == len(piece.content)

    def test_pieces_cover_all_section_text(self, segmenter, large_document) -> None:
        combined = "".join(piece.content for piece in segmenter.segment(large_document))

        for fill, size in (("a", 3_000), ("b", 8_000), ("c", 9_000), ("d", 6_000), ("e", 6_000)):
            assert fill * size in combined

    def test_text_before_first_subheading_becomes_its_own_piece(self, segmenter, make_document) -> None:
        content = _join(
            "# Big",
            "## A",
            "a" * 3_000,
            "## D",
            "intro " * 500,
            "### D1",
            "d" * 6_000,
            "### D2",
            "e" * 6_000,
        )
        doc = make_document("manual_intro", path="manual/guide/intro.md", content=content)

        pieces = segmenter.segment(doc)

        assert [piece.title for piece in pieces] == ["A", "D", "D - D1", "D - D2"]
        assert pieces[1].id == "manual_intro_D_2_0"
        assert pieces[1].content.strip() == ("intro " * 500).strip()

    def test_small_document_is_returned_unchanged(self, segmenter, make_document) -> None:
        doc = make_document(content="# Small\n\nshort body")

        pieces = segmenter.segment(doc)

        assert pieces == [doc]
        assert pieces[0].prerequisites == ()

    def test_few_moderate_sections_keep_document_whole(self, segmenter, make_document) -> None:
        doc = make_document(content=_join("# T", "## A", "a" * 9_000, "## B", "b" * 9_000))

        assert segmenter.segment(doc) == [doc]

    def test_large_document_without_headings_stays_whole(self, segmenter, make_document) -> None:
        doc = make_document(content="x" * 20_000)

        assert segmenter.segment(doc) == [doc]

    def test_subsection_over_twice_the_limit_falls_back_to_whole_section(self, segmenter, make_document) -> None:
        doc = make_document("manual_huge", content=_join("# Huge", "## D", "### D1", "z" * 21_000))

        pieces = segmenter.segment(doc)

        assert len(pieces) == 1
        assert pieces[0].id == "manual_huge_D_1"
        assert pieces[0].title == "D"
        assert pieces[0].content.startswith("### D1")

    def test_derived_documents_are_not_segmented_again(self, segmenter, large_document) -> None:
        piece = segmenter.segment(large_document)[0]

        assert segmenter.segment(piece) == [piece]

    def test_disabled_segmenter_passes_documents_through(self, large_document) -> None:
        assert DocumentSegmenter(enabled=False).segment(large_document) == [large_document]

    def test_custom_limits(self, make_document) -> None:
        doc = make_document(content=_join("# T", "## A", "a" * 40, "## B", "b" * 40))
        segmenter = DocumentSegmenter(large_document_threshold=50, max_section_size=30)

        pieces = segmenter.segment(doc)

        assert [piece.title for piece in pieces] == ["A", "B"]
