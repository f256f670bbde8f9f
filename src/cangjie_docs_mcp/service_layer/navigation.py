"""Browsing views over a corpus snapshot: overview, map, tree, listings and content.

Navigation works on top-level documents; derived section documents are only
reachable through search, suggestions and direct content lookup.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from pathlib import PurePosixPath
import re

from cangjie_docs_mcp.domain.catalog import CorpusCatalog
from cangjie_docs_mcp.domain.model import Document, DocumentCategory
from cangjie_docs_mcp.domain.store import DocumentStore
from cangjie_docs_mcp.utils.markdown_parser import heading_level
from cangjie_docs_mcp.utils.models import (
    CategoryOverview,
    ContentFormat,
    DocumentContentResponse,
    DocumentMapEntry,
    DocumentMapResponse,
    DocumentMetadata,
    ListDocumentsResponse,
    NavigationTreeResponse,
    OverviewResponse,
    SortBy,
    SubcategoryCount,
)


logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 100
TREE_DESCRIPTION_LIMIT = 60
TABLE_DESCRIPTION_LIMIT = 50
TABLE_PREVIEW_LIMIT = 80
NO_SUBCATEGORY = "(none)"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class DocumentNotFoundError(LookupError):
    """Raised when a document id or full path id matches nothing."""

    def __init__(self, reference: str) -> None:
        super().__init__(f"Document not found: {reference}")
        self.reference = reference


def _truncate(text: str, limit: int) -> str:
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


def _cell(text: str) -> str:
    return text.replace("\n", " ").replace("|", "\\|")


def _path_parts(document: Document) -> tuple[str, ...]:
    return PurePosixPath(document.path).parts


def extract_section(content: str, section: str) -> str | None:
    """Return the heading-bounded block whose heading text starts with `section`.

    The block ends at the next heading whose level is at most the depth
    implied by `section` (one plus its number of dots, so "2.1" stops at the
    next level-1 or level-2 heading). Returns None when no heading matches.
    """
    pattern = re.compile(r"^(#{1,6})\s+" + re.escape(section))
    stop_level = 1 + section.count(".")
    collected: list[str] = []
    in_section = False
    for line in content.split("\n"):
        if not in_section:
            if pattern.match(line):
                in_section = True
                collected.append(line)
            continue
        level = heading_level(line)
        if 0 < level <= stop_level:
            break
        collected.append(line)
    return "\n".join(collected) if collected else None


@dataclass
class _TreeNode:
    name: str
    kind: str
    description: str = ""
    count: int = 0
    children: list[int] = field(default_factory=list)


class NavigationTree:
    """Directory tree of one category, stored as an arena of nodes.

    Nodes are addressed by their index in `nodes`; each keeps an explicit
    list of child indexes. Node 0 is the category root.
    """

    def __init__(self, root_name: str) -> None:
        self.nodes: list[_TreeNode] = [_TreeNode(name=root_name, kind="category")]
        self._directories: dict[str, int] = {}

    def _add(self, parent: int, node: _TreeNode) -> int:
        self.nodes.append(node)
        index = len(self.nodes) - 1
        self.nodes[parent].children.append(index)
        return index

    def add_document(self, document: Document) -> None:
        parts = _path_parts(document)
        parent = 0
        for depth, name in enumerate(parts[1:-1]):
            key = "/".join(parts[: depth + 2])
            index = self._directories.get(key)
            if index is None:
                kind = "subcategory" if depth == 0 else "directory"
                index = self._add(parent, _TreeNode(name=name, kind=kind))
                self._directories[key] = index
            self.nodes[index].count += 1
            parent = index
        self._add(parent, _TreeNode(name=document.title, kind="document", description=document.description))

    def _sorted_children(self, index: int) -> list[int]:
        children = self.nodes[index].children
        directories = sorted((i for i in children if self.nodes[i].kind != "document"), key=lambda i: self.nodes[i].name)
        documents = sorted((i for i in children if self.nodes[i].kind == "document"), key=lambda i: self.nodes[i].name)
        return directories + documents

    def render(self, *, max_depth: int = 0, max_documents: int = 0) -> str:
        """Render with box-drawing connectors.

        Args:
            max_depth: Deepest level printed, 1 being the root's children; 0 prints everything
            max_documents: Document leaves shown per node before collapsing the rest; 0 shows all
        """
        lines: list[str] = []
        self._render_children(0, "", 1, lines, max_depth, max_documents)
        return "\n".join(lines)

    def _render_children(
        self, index: int, prefix: str, depth: int, lines: list[str], max_depth: int, max_documents: int
    ) -> None:
        if max_depth and depth > max_depth:
            return
        children = self._sorted_children(index)
        hidden = 0
        if max_documents:
            documents = [i for i in children if self.nodes[i].kind == "document"]
            if len(documents) > max_documents:
                hidden = len(documents) - max_documents
                keep = set(documents[:max_documents])
                children = [i for i in children if self.nodes[i].kind != "document" or i in keep]

        for position, child in enumerate(children):
            is_last = position == len(children) - 1 and not hidden
            lines.append(prefix + ("└── " if is_last else "├── ") + self._label(self.nodes[child]))
            if self.nodes[child].children:
                extension = "    " if is_last else "│   "
                self._render_children(child, prefix + extension, depth + 1, lines, max_depth, max_documents)
        if hidden:
            lines.append(f"{prefix}└── ... {hidden} more documents")

    @staticmethod
    def _label(node: _TreeNode) -> str:
        if node.kind == "subcategory" and node.count:
            return f"{node.name} ({node.count} docs)"
        if node.kind == "document" and node.description:
            return f"{node.name} - {_truncate(node.description, TREE_DESCRIPTION_LIMIT)}"
        return node.name


class NavigationService:
    """Overview, listing and content views over one document store."""

    def __init__(self, store: DocumentStore, catalog: CorpusCatalog) -> None:
        self.store = store
        self.catalog = catalog

    # ------------------------------------------------------------------ overview

    def overview(self, category: DocumentCategory | None, max_items: int = 50) -> OverviewResponse:
        categories = []
        for cat in DocumentCategory:
            if category is not None and cat != category:
                continue
            documents = [doc for doc in self.store if doc.category == cat]
            counts: dict[str, int] = {}
            for doc in documents:
                counts[doc.subcategory] = counts.get(doc.subcategory, 0) + 1
            subcategories = [
                SubcategoryCount(name=name or NO_SUBCATEGORY, count=counts[name]) for name in sorted(counts)
            ][:max_items]
            categories.append(
                CategoryOverview(
                    name=cat,
                    display_name=self.catalog.display_name(cat),
                    description=self.catalog.category_descriptions.get(cat, ""),
                    count=len(documents),
                    subcategories=subcategories,
                )
            )
        return OverviewResponse(
            total_documents=len(self.store),
            categories=categories,
            generated_at=datetime.now(timezone.utc),
        )

    def document_map(self, category: DocumentCategory | None, max_items: int = 50) -> DocumentMapResponse:
        per_subcategory = max(1, max_items // 5)
        hierarchy: dict[str, dict[str, list[DocumentMapEntry]]] = {}
        for doc in self.store.top_level(category):
            bucket = hierarchy.setdefault(doc.category.value, {}).setdefault(doc.subcategory or NO_SUBCATEGORY, [])
            if len(bucket) < per_subcategory:
                bucket.append(
                    DocumentMapEntry(
                        id=doc.id,
                        title=doc.title,
                        description=doc.description,
                        difficulty=doc.difficulty,
                        keywords=list(doc.keywords),
                    )
                )
        return DocumentMapResponse(
            categories=hierarchy,
            total_docs=len(self.store.top_level(category)),
            generated_at=datetime.now(timezone.utc),
        )

    def navigation_tree(
        self,
        category: DocumentCategory,
        *,
        max_items: int = 50,
        level: int = 3,
        view_type: str = "tree",
    ) -> NavigationTreeResponse:
        documents = self.store.top_level(category)
        tree = NavigationTree(self.catalog.display_name(category))
        for doc in documents:
            tree.add_document(doc)
        header = f"{self.catalog.display_name(category)} ({len(documents)} docs)"
        body = tree.render(max_depth=level, max_documents=max_items)
        return NavigationTreeResponse(
            view_type="navigation" if view_type == "navigation" else "tree",
            category=category,
            total_docs=len(documents),
            tree=f"{header}\n\n{body}\n" if body else f"{header}\n",
        )

    # ------------------------------------------------------------------ listings

    def list_documents(
        self,
        category: DocumentCategory,
        path_parts: list[str],
        *,
        sort_by: SortBy = "title",
        include_preview: bool = False,
        max_items: int | None = None,
    ) -> ListDocumentsResponse:
        if not path_parts:
            return self._list_subcategories(category)
        if len(path_parts) == 1:
            return self._list_directories(category, path_parts[0], sort_by, include_preview, max_items)
        return self._list_at_path(category, path_parts, sort_by, include_preview, max_items)

    def _list_subcategories(self, category: DocumentCategory) -> ListDocumentsResponse:
        counts: dict[str, int] = {}
        for doc in self.store.top_level(category):
            parts = _path_parts(doc)
            name = parts[1] if len(parts) >= 3 else NO_SUBCATEGORY
            counts[name] = counts.get(name, 0) + 1

        lines = [f"{self.catalog.display_name(category)}", "", "| Subcategory | Documents |", "|---|---|"]
        lines += [f"| {_cell(name)} | {counts[name]} |" for name in sorted(counts)]
        total = sum(counts.values())
        lines += ["", f"{len(counts)} subcategories | {total} documents | use '<subcategory>' to drill down"]
        return ListDocumentsResponse(
            category=category, path="", depth=0, total=len(counts), shown=len(counts), listing="\n".join(lines) + "\n"
        )

    def _list_directories(
        self,
        category: DocumentCategory,
        subcategory: str,
        sort_by: SortBy,
        include_preview: bool,
        max_items: int | None,
    ) -> ListDocumentsResponse:
        counts: dict[str, int] = {}
        direct: list[Document] = []
        for doc in self.store.top_level(category):
            parts = _path_parts(doc)
            if len(parts) < 3 or parts[1] != subcategory:
                continue
            if len(parts) > 3:
                counts[parts[2]] = counts.get(parts[2], 0) + 1
            else:
                direct.append(doc)

        lines = [f"{self.catalog.display_name(category)} / {subcategory}", ""]
        if counts:
            lines += ["| Directory | Documents |", "|---|---|"]
            lines += [f"| {_cell(name)} | {counts[name]} |" for name in sorted(counts)]
            lines.append("")

        shown = 0
        if direct:
            limit = max_items or DEFAULT_LIST_LIMIT
            selected = self._sorted(direct, sort_by)[:limit]
            shown = len(selected)
            lines += self._document_table(selected, include_preview)
            lines.append("")

        lines.append(
            f"{len(counts)} directories | {len(direct)} documents | "
            f"use '{subcategory}/<directory>' to drill down"
        )
        return ListDocumentsResponse(
            category=category,
            path=subcategory,
            depth=1,
            total=len(counts) + len(direct),
            shown=len(counts) + shown,
            listing="\n".join(lines) + "\n",
        )

    def _list_at_path(
        self,
        category: DocumentCategory,
        path_parts: list[str],
        sort_by: SortBy,
        include_preview: bool,
        max_items: int | None,
    ) -> ListDocumentsResponse:
        width = len(path_parts)
        matches = [
            doc
            for doc in self.store.top_level(category)
            if len(_path_parts(doc)) >= width + 2 and list(_path_parts(doc)[1 : width + 1]) == path_parts
        ]
        limit = max_items or DEFAULT_LIST_LIMIT
        selected = self._sorted(matches, sort_by)[:limit]
        path = "/".join(path_parts)

        lines = [f"{self.catalog.display_name(category)} / {path} ({len(selected)} docs)", ""]
        lines += self._document_table(selected, include_preview)
        lines += ["", f"Sorted by: {sort_by} | Showing: {len(selected)}/{len(matches)}"]
        return ListDocumentsResponse(
            category=category,
            path=path,
            depth=width,
            total=len(matches),
            shown=len(selected),
            listing="\n".join(lines) + "\n",
        )

    @staticmethod
    def _sorted(documents: list[Document], sort_by: SortBy) -> list[Document]:
        if sort_by == "difficulty":
            return sorted(documents, key=lambda doc: (doc.difficulty.rank, doc.title, doc.id))
        if sort_by == "last_modified":
            oldest = datetime.min.replace(tzinfo=timezone.utc)
            ordered = sorted(documents, key=lambda doc: doc.id)
            return sorted(ordered, key=lambda doc: doc.last_modified or oldest, reverse=True)
        return sorted(documents, key=lambda doc: (doc.title, doc.id))

    @staticmethod
    def _document_table(documents: list[Document], include_preview: bool) -> list[str]:
        if include_preview:
            lines = ["| ID | Title | Difficulty | Description | Preview |", "|---|---|---|---|---|"]
        else:
            lines = ["| ID | Title | Difficulty | Description |", "|---|---|---|---|"]
        for doc in documents:
            cells = [
                doc.id,
                _cell(doc.title),
                doc.difficulty.value,
                _cell(_truncate(doc.description, TABLE_DESCRIPTION_LIMIT)),
            ]
            if include_preview:
                preview = doc.content_preview or doc.content
                cells.append(_cell(_truncate(preview.replace("\n", " "), TABLE_PREVIEW_LIMIT)))
            lines.append("| " + " | ".join(cells) + " |")
        return lines

    # ------------------------------------------------------------------ content

    def get_content(
        self,
        doc_id: str,
        *,
        include_metadata: bool = True,
        output_format: ContentFormat = "markdown",
        section: str | None = None,
    ) -> DocumentContentResponse:
        """Return a document body, optionally narrowed to one heading section.

        Raises:
            DocumentNotFoundError: `doc_id` matches neither an id nor a full path id
        """
        document = self.store.resolve(doc_id)
        if document is None:
            raise DocumentNotFoundError(doc_id)

        body = document.content
        if section:
            extracted = extract_section(body, section)
            if extracted is None:
                logger.debug("Section '%s' not found in %s", section, document.id)
                body = f"Section not found: {section}"
            else:
                body = extracted

        metadata = None
        if output_format == "json":
            if include_metadata:
                metadata = DocumentMetadata(
                    description=document.description,
                    difficulty=document.difficulty,
                    keywords=list(document.keywords),
                    relative_path=document.path,
                    file_size=document.file_size,
                    last_modified=document.last_modified,
                )
        elif include_metadata:
            body = self._with_header(document, body, output_format)

        return DocumentContentResponse(
            document_id=doc_id,
            title=document.title,
            category=document.category,
            subcategory=document.subcategory,
            format=output_format,
            section=section or None,
            content=body,
            metadata=metadata,
        )

    @staticmethod
    def _with_header(document: Document, body: str, output_format: ContentFormat) -> str:
        modified = document.last_modified.strftime(TIMESTAMP_FORMAT) if document.last_modified else "unknown"
        if output_format == "plain":
            return (
                f"Title: {document.title}\n"
                f"Category: {document.category.value}/{document.subcategory}\n"
                f"Difficulty: {document.difficulty.value}\n"
                f"Description: {document.description}\n"
                f"\n{body}"
            )
        return (
            f"# {document.title}\n"
            "\n"
            "## Metadata\n"
            f"- **Category**: {document.category.value}\n"
            f"- **Subcategory**: {document.subcategory}\n"
            f"- **Difficulty**: {document.difficulty.value}\n"
            f"- **Path**: {document.path}\n"
            f"- **Last modified**: {modified}\n"
            f"- **Keywords**: {', '.join(document.keywords)}\n"
            "\n"
            "## Description\n"
            f"{document.description}\n"
            "\n"
            "## Content\n"
            f"{body}"
        )
