"""Term to document-id inverted index over the document store."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import posixpath
from types import MappingProxyType

from cangjie_docs_mcp.domain.model import Document
from cangjie_docs_mcp.search.analyzers import DocumentAnalyzer


DEFAULT_CONTENT_CHARS = 1_000


class InvertedIndex:
    """Immutable term -> document ids mapping.

    Holds identifiers only, never document content. Posting lists keep the
    order in which documents were indexed.
    """

    def __init__(self, postings: Mapping[str, tuple[str, ...]]) -> None:
        self._postings = MappingProxyType(dict(postings))

    def __len__(self) -> int:
        return len(self._postings)

    def __contains__(self, term: object) -> bool:
        return term in self._postings

    def lookup(self, term: str) -> tuple[str, ...]:
        return self._postings.get(term, ())

    def terms(self) -> list[str]:
        return sorted(self._postings)


class Indexer:
    """Builds a fresh `InvertedIndex` from a full set of documents."""

    def __init__(self, analyzer: DocumentAnalyzer | None = None, *, content_chars: int = DEFAULT_CONTENT_CHARS) -> None:
        self.analyzer = analyzer or DocumentAnalyzer()
        self.content_chars = content_chars

    def build(self, documents: Iterable[Document]) -> InvertedIndex:
        postings: dict[str, dict[str, None]] = {}
        for document in documents:
            for term in self.document_terms(document):
                postings.setdefault(term, {})[document.id] = None
        return InvertedIndex({term: tuple(ids) for term, ids in postings.items()})

    def document_terms(self, document: Document) -> list[str]:
        """Terms under which `document` is indexed."""
        terms = self.analyzer.terms(document.title)
        terms += self.analyzer.terms(document.description)
        for keyword in document.keywords:
            lowered = keyword.lower()
            terms.append(lowered)
            terms += self.analyzer.terms(lowered)
        terms += self.analyzer.terms(document.content[: self.content_chars])
        terms += self.analyzer.terms(posixpath.splitext(document.path)[0])
        return terms
