"""Split oversized markdown documents into addressable section documents.

A document at or above the large-document threshold is cut along its level-1
and level-2 headings. A cut section that is still larger than the maximum
section size is cut once more along its level-3+ headings; pieces that remain
at twice the maximum after that second cut are dropped. Every emitted document
points back at its source through `prerequisites`, and segmentation never
returns an empty list.
"""

from __future__ import annotations

import dataclasses
import logging

from cangjie_docs_mcp.domain.catalog import DEFAULT_CATALOG, CorpusCatalog
from cangjie_docs_mcp.domain.model import Document, Section
from cangjie_docs_mcp.utils.markdown_parser import (
    build_table_of_contents,
    content_preview,
    extract_keywords,
    extract_section_description,
    heading_level,
    sanitize_id,
)


logger = logging.getLogger(__name__)

DEFAULT_LARGE_DOCUMENT_THRESHOLD = 15_000
DEFAULT_MAX_SECTION_SIZE = 10_000
SHORTCUT_SECTION_COUNT = 5


class DocumentSegmenter:
    """Turns one parsed document into the documents that enter the store."""

    def __init__(
        self,
        catalog: CorpusCatalog = DEFAULT_CATALOG,
        *,
        enabled: bool = True,
        large_document_threshold: int = DEFAULT_LARGE_DOCUMENT_THRESHOLD,
        max_section_size: int = DEFAULT_MAX_SECTION_SIZE,
    ) -> None:
        self.catalog = catalog
        self.enabled = enabled
        self.large_document_threshold = large_document_threshold
        self.max_section_size = max_section_size

    def segment(self, document: Document) -> list[Document]:
        """Return the section documents for `document`, or `[document]` when it stays whole."""
        if document.is_derived or not self.enabled:
            return [document]
        if len(document.content) < self.large_document_threshold:
            return [document]

        toc = build_table_of_contents(document.content, document.id, self.large_document_threshold)
        if len(toc.sections) <= SHORTCUT_SECTION_COUNT and all(
            section.char_count < self.max_section_size for section in toc.sections
        ):
            return [document]

        try:
            pieces = self._split(document, toc.sections)
        except ValueError as exc:
            logger.warning("Keeping %s whole, segmentation failed: %s", document.id, exc)
            return [document]

        if not pieces:
            logger.debug("Keeping %s whole, no level-1/2 sections with content", document.id)
            return [document]

        logger.debug("Segmented %s (%d chars) into %d documents", document.id, toc.total_chars, len(pieces))
        return pieces

    def _split(self, document: Document, sections: tuple[Section, ...]) -> list[Document]:
        pieces: list[Document] = []
        for index, section in enumerate(sections):
            if section.level > 2 or not section.content.strip():
                continue
            if section.char_count > self.max_section_size:
                pieces.extend(self._split_large_section(document, section, index))
            else:
                suffix = f"{sanitize_id(section.title)}_{index}"
                pieces.append(self._derive(document, suffix, section.title, section.content))
        return pieces

    def _split_large_section(self, document: Document, section: Section, index: int) -> list[Document]:
        chunks: list[tuple[str, list[str]]] = [(section.title, [])]
        for line in section.content.split("\n"):
            if heading_level(line) >= 3:
                sub_title = line.lstrip("#").strip()
                chunks.append((f"{section.title} - {sub_title}", []))
            else:
                chunks[-1][1].append(line)

        parent_slug = sanitize_id(section.title)
        limit = self.max_section_size * 2
        pieces: list[Document] = []
        for title, lines in chunks:
            body = "\n".join(lines)
            if not body.strip():
                continue
            if len(body) >= limit:
                logger.debug("Dropping oversized subsection '%s' of %s (%d chars)", title, document.id, len(body))
                continue
            suffix = f"{parent_slug}_{index}_{len(pieces)}"
            pieces.append(self._derive(document, suffix, title, body))

        if not pieces:
            suffix = f"{parent_slug}_{index}"
            return [self._derive(document, suffix, section.title, section.content)]
        return pieces

    def _derive(self, parent: Document, suffix: str, title: str, content: str) -> Document:
        return dataclasses.replace(
            parent,
            id=f"{parent.id}_{suffix}",
            title=title,
            description=extract_section_description(content),
            keywords=tuple(extract_keywords(content, self.catalog)),
            file_size=len(content),
            content=content,
            content_preview=content_preview(content),
            full_path_id=f"{parent.full_path_id}#{suffix}",
            prerequisites=(parent.id,),
            related_docs=(),
        )
