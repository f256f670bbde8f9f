"""Tests for the browsing views: overview, map, tree, listings and content."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from cangjie_docs_mcp.domain.catalog import DEFAULT_CATALOG
from cangjie_docs_mcp.domain.model import Difficulty, DocumentCategory
from cangjie_docs_mcp.domain.store import DocumentStore
from cangjie_docs_mcp.service_layer.navigation import DocumentNotFoundError, NavigationService, extract_section


SECTIONED = "\n".join(
    [
        "# 2 泛型",
        "",
        "intro",
        "",
        "## 2.1 泛型函数",
        "",
        "body21",
        "",
        "### 2.1.1 细节",
        "",
        "deep",
        "",
        "## 2.2 泛型类",
        "",
        "body22",
    ]
)


@pytest.fixture
def navigation(sample_snapshot) -> NavigationService:
    return NavigationService(sample_snapshot.store, DEFAULT_CATALOG)


def _service(documents) -> NavigationService:
    return NavigationService(DocumentStore(documents), DEFAULT_CATALOG)


class TestExtractSection:
    def test_dotted_section_keeps_deeper_headings(self) -> None:
        assert extract_section(SECTIONED, "2.1") == "## 2.1 泛型函数\n\nbody21\n\n### 2.1.1 细节\n\ndeep\n"

    def test_top_level_section_stops_at_next_level_one(self) -> None:
        content = "# 1 A\na\n## 1.1 B\nb\n# 2 C\nc"

        assert extract_section(content, "1") == "# 1 A\na\n## 1.1 B\nb"

    def test_missing_section_returns_none(self) -> None:
        assert extract_section(SECTIONED, "9.9") is None

    def test_section_text_is_matched_literally(self) -> None:
        assert extract_section("## a.b\nx\n## aXb\ny", "a.b") == "## a.b\nx"


class TestOverview:
    def test_counts_every_category(self, navigation) -> None:
        response = navigation.overview(None)

        assert response.total_documents == 8
        counts = {entry.name: entry.count for entry in response.categories}
        assert counts == {
            DocumentCategory.MANUAL: 3,
            DocumentCategory.LIBS: 3,
            DocumentCategory.TOOLS: 1,
            DocumentCategory.EXTRA: 1,
            DocumentCategory.OHOS: 0,
        }

    def test_single_category_lists_sorted_subcategories(self, navigation) -> None:
        (manual,) = navigation.overview(DocumentCategory.MANUAL).categories

        assert manual.display_name == "Language Manual"
        assert [(sub.name, sub.count) for sub in manual.subcategories] == [
            ("basic_data_type", 1),
            ("first_understanding", 1),
            ("generic", 1),
        ]

    def test_documents_without_subcategory_are_grouped(self, navigation) -> None:
        (tools,) = navigation.overview(DocumentCategory.TOOLS).categories

        assert [(sub.name, sub.count) for sub in tools.subcategories] == [("(none)", 1)]

    def test_subcategories_are_capped(self, navigation) -> None:
        (manual,) = navigation.overview(DocumentCategory.MANUAL, max_items=2).categories

        assert len(manual.subcategories) == 2
        assert manual.count == 3


class TestDocumentMap:
    def test_groups_by_category_and_subcategory(self, navigation) -> None:
        response = navigation.document_map(DocumentCategory.LIBS, max_items=5)

        assert response.total_docs == 3
        assert list(response.categories) == ["libs"]
        assert [entry.id for entry in response.categories["libs"]["std"]] == ["libs_std_array_list"]

    def test_derived_documents_are_left_out(self, make_document) -> None:
        service = _service(
            [make_document("manual_big"), make_document("manual_big_A_1", prerequisites=("manual_big",))]
        )

        response = service.document_map(None)

        assert response.total_docs == 1
        assert [entry.id for entry in response.categories["manual"]["(none)"]] == ["manual_big"]


class TestNavigationTree:
    def test_renders_directories_before_documents(self, navigation) -> None:
        response = navigation.navigation_tree(DocumentCategory.LIBS)

        assert response.total_docs == 3
        assert response.view_type == "tree"
        assert response.tree == (
            "Standard Library API (3 docs)\n"
            "\n"
            "└── std (3 docs)\n"
            "    ├── collection\n"
            "    │   ├── ArrayList - ArrayList is a resizable list.\n"
            "    │   └── HashMap - HashMap is a map collection in std. Use put and get.\n"
            "    └── std 概述 - 标准库总览。\n"
        )

    def test_level_limits_depth(self, navigation) -> None:
        response = navigation.navigation_tree(DocumentCategory.LIBS, level=1, view_type="navigation")

        assert response.view_type == "navigation"
        assert response.tree == "Standard Library API (3 docs)\n\n└── std (3 docs)\n"

    def test_extra_documents_are_collapsed(self, make_document) -> None:
        service = _service(
            [
                make_document(f"tools_{name}", title=name.upper(), category=DocumentCategory.TOOLS)
                for name in ("a", "b", "c")
            ]
        )

        response = service.navigation_tree(DocumentCategory.TOOLS, max_items=2)

        assert response.tree.splitlines()[2:] == ["├── A", "├── B", "└── ... 1 more documents"]

    def test_long_descriptions_are_truncated(self, make_document) -> None:
        service = _service(
            [make_document("tools_long", title="Long", category=DocumentCategory.TOOLS, description="d" * 80)]
        )

        tree = service.navigation_tree(DocumentCategory.TOOLS).tree

        assert "└── Long - " + "d" * 57 + "..." in tree

    def test_empty_category(self, navigation) -> None:
        response = navigation.navigation_tree(DocumentCategory.OHOS)

        assert response.tree == "OpenHarmony (0 docs)\n"


class TestListDocuments:
    def test_category_root_lists_subcategories(self, navigation) -> None:
        response = navigation.list_documents(DocumentCategory.LIBS, [])

        assert response.depth == 0
        assert response.total == 1
        assert response.listing == (
            "Standard Library API\n"
            "\n"
            "| Subcategory | Documents |\n"
            "|---|---|\n"
            "| std | 3 |\n"
            "\n"
            "1 subcategories | 3 documents | use '<subcategory>' to drill down\n"
        )

    def test_flat_category_uses_none_row(self, navigation) -> None:
        listing = navigation.list_documents(DocumentCategory.TOOLS, []).listing

        assert "| (none) | 1 |" in listing

    def test_subcategory_lists_directories_and_direct_documents(self, navigation) -> None:
        response = navigation.list_documents(DocumentCategory.LIBS, ["std"])

        assert response.depth == 1
        assert (response.total, response.shown) == (2, 2)
        assert "| collection | 2 |" in response.listing
        assert "| libs_std_overview | std 概述 | intermediate | 标准库总览。 |" in response.listing
        assert response.listing.endswith("1 directories | 1 documents | use 'std/<directory>' to drill down\n")

    def test_directory_lists_documents_sorted_by_title(self, navigation) -> None:
        response = navigation.list_documents(DocumentCategory.LIBS, ["std", "collection"])

        lines = response.listing.splitlines()
        assert lines[0] == "Standard Library API / std/collection (2 docs)"
        assert lines[2] == "| ID | Title | Difficulty | Description |"
        assert lines[4].startswith("| libs_std_array_list | ArrayList |")
        assert lines[5].startswith("| libs_std_hashmap | HashMap |")
        assert lines[-1] == "Sorted by: title | Showing: 2/2"

    def test_max_items_limits_rows(self, navigation) -> None:
        response = navigation.list_documents(DocumentCategory.LIBS, ["std", "collection"], max_items=1)

        assert (response.total, response.shown) == (2, 1)
        assert response.listing.rstrip().endswith("Showing: 1/2")

    def test_unknown_path_lists_nothing(self, navigation) -> None:
        response = navigation.list_documents(DocumentCategory.LIBS, ["std", "nope"])

        assert (response.total, response.shown) == (0, 0)

    def test_preview_column(self, navigation) -> None:
        listing = navigation.list_documents(DocumentCategory.LIBS, ["std"], include_preview=True).listing

        assert "| ID | Title | Difficulty | Description | Preview |" in listing
        assert "| 标准库总览。 | 标准库总览。 |" in listing

    def test_sort_orders(self, make_document) -> None:
        older = datetime(2024, 1, 1, tzinfo=timezone.utc)
        newer = datetime(2025, 6, 1, tzinfo=timezone.utc)
        service = _service(
            [
                make_document(
                    "manual_guide_a",
                    title="Alpha",
                    subcategory="guide",
                    path="manual/guide/topic/a.md",
                    difficulty=Difficulty.ADVANCED,
                    last_modified=older,
                ),
                make_document(
                    "manual_guide_b",
                    title="Beta",
                    subcategory="guide",
                    path="manual/guide/topic/b.md",
                    difficulty=Difficulty.BEGINNER,
                    last_modified=newer,
                ),
            ]
        )

        def ids(sort_by: str) -> list[str]:
            listing = service.list_documents(DocumentCategory.MANUAL, ["guide", "topic"], sort_by=sort_by).listing
            return [line.split(" | ")[0][2:] for line in listing.splitlines() if line.startswith("| manual_")]

        assert ids("title") == ["manual_guide_a", "manual_guide_b"]
        assert ids("difficulty") == ["manual_guide_b", "manual_guide_a"]
        assert ids("last_modified") == ["manual_guide_b", "manual_guide_a"]

    def test_pipes_in_titles_are_escaped(self, make_document) -> None:
        service = _service([make_document("manual_x_pipe", title="a|b", path="manual/x/y/pipe.md")])

        listing = service.list_documents(DocumentCategory.MANUAL, ["x", "y"]).listing

        assert "| manual_x_pipe | a\\|b |" in listing


class TestGetContent:
    def test_unknown_document_raises(self, navigation) -> None:
        with pytest.raises(DocumentNotFoundError, match="Document not found: nope") as excinfo:
            navigation.get_content("nope")

        assert excinfo.value.reference == "nope"

    def test_resolves_full_path_id(self, navigation) -> None:
        response = navigation.get_content("libs/std/collection/hashmap", include_metadata=False)

        assert response.document_id == "libs/std/collection/hashmap"
        assert response.title == "HashMap"
        assert response.content.startswith("# HashMap")

    def test_markdown_header(self, navigation) -> None:
        content = navigation.get_content("libs_std_hashmap").content

        assert content.startswith("# HashMap\n\n## Metadata\n- **Category**: libs\n- **Subcategory**: std\n")
        assert "- **Path**: libs/std/collection/hashmap.md\n" in content
        assert "- **Last modified**: 2025-03-01 12:00:00\n" in content
        assert "- **Keywords**: map\n" in content
        assert "## Description\nHashMap is a map collection in std. Use put and get.\n" in content
        assert content.endswith("## Content\n# HashMap\n\nHashMap is a map collection in std.\n\n## Methods\n\nUse put and get.\n")

    def test_plain_header(self, navigation) -> None:
        content = navigation.get_content("manual_first_understanding_hello_world", output_format="plain").content

        assert content.startswith(
            "Title: 你好仓颉\nCategory: manual/first_understanding\nDifficulty: beginner\nDescription: "
        )
        assert "\n\n# 你好仓颉\n" in content

    def test_json_carries_structured_metadata(self, navigation) -> None:
        response = navigation.get_content("libs_std_hashmap", output_format="json")

        assert response.content.startswith("# HashMap")
        assert response.metadata is not None
        assert response.metadata.relative_path == "libs/std/collection/hashmap.md"
        assert response.metadata.keywords == ["map"]
        assert navigation.get_content("libs_std_hashmap", output_format="json", include_metadata=False).metadata is None

    def test_section_narrows_body(self, navigation) -> None:
        response = navigation.get_content("libs_std_hashmap", include_metadata=False, section="Methods")

        assert response.section == "Methods"
        assert response.content == "## Methods\n\nUse put and get.\n"

    def test_missing_section_reports_it(self, navigation) -> None:
        response = navigation.get_content("libs_std_hashmap", include_metadata=False, section="9.9")

        assert response.content == "Section not found: 9.9"
