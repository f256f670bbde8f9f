"""Read-only document store for one corpus snapshot."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from types import MappingProxyType

from cangjie_docs_mcp.domain.model import Document, DocumentCategory


class DocumentStore:
    """Identifier-keyed documents, frozen at construction.

    Iteration follows insertion order, which the loader makes the sorted crawl
    order, so every consumer sees the same sequence. Identifiers must be
    unique; the loader disambiguates collisions before building the store.
    """

    def __init__(self, documents: Iterable[Document]) -> None:
        by_id: dict[str, Document] = {}
        by_path: dict[str, Document] = {}
        for document in documents:
            if document.id in by_id:
                raise ValueError(f"Duplicate document id: {document.id}")
            by_id[document.id] = document
            if document.full_path_id:
                by_path.setdefault(document.full_path_id, document)
        self._by_id = MappingProxyType(by_id)
        self._by_path = MappingProxyType(by_path)
        self._documents = tuple(by_id.values())

    def __len__(self) -> int:
        return len(self._documents)

    def __iter__(self) -> Iterator[Document]:
        return iter(self._documents)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._by_id

    @property
    def documents(self) -> tuple[Document, ...]:
        return self._documents

    def get(self, doc_id: str) -> Document | None:
        return self._by_id.get(doc_id)

    def resolve(self, reference: str) -> Document | None:
        """Look up by primary id first, then by full path id."""
        return self._by_id.get(reference) or self._by_path.get(reference)

    def top_level(self, category: DocumentCategory | None = None) -> list[Document]:
        """Original (non-derived) documents, optionally limited to one category."""
        return [
            doc
            for doc in self._documents
            if not doc.is_derived and (category is None or doc.category == category)
        ]

    def derived_count(self) -> int:
        return sum(1 for doc in self._documents if doc.is_derived)
