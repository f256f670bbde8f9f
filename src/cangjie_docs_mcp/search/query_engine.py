"""Three-pass keyword search over a frozen document store.

Passes run in a fixed order and each only adds candidates the previous ones
missed:

1. exact: the whole lower-cased query is a substring of a document's title,
   description, a keyword or its path
2. keyword: a query term is in the inverted index; documents already found
   gain a bonus per matching term instead of being rescored
3. fuzzy: only while fewer than `max_results` candidates exist; scores term
   frequency in the full content

Scores are additive and unbounded. Results are ordered by descending score
with the document id as tie-break, so output is reproducible.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

from cangjie_docs_mcp.domain.model import Document, DocumentCategory, MatchType, ScoredCandidate
from cangjie_docs_mcp.domain.store import DocumentStore
from cangjie_docs_mcp.search.analyzers import DocumentAnalyzer
from cangjie_docs_mcp.search.inverted_index import InvertedIndex


logger = logging.getLogger(__name__)

EXACT_MATCH_WEIGHT = 10.0
TITLE_MATCH_WEIGHT = 8.0
DESCRIPTION_WEIGHT = 6.0
CONTENT_MATCH_WEIGHT = 3.0
FILENAME_MATCH_WEIGHT = 5.0

MATCH_TEXT_CONTEXT = 50


@dataclass
class _Candidate:
    document: Document
    score: float
    match_type: MatchType


def extract_match_text(document: Document, query: str) -> str:
    """Return the content around the first occurrence of `query`.

    Falls back to the description, then the title, when the content does not
    contain the query.
    """
    content = document.content
    needle = query.strip().lower()
    index = content.lower().find(needle) if needle else -1
    if index != -1:
        start = max(0, index - MATCH_TEXT_CONTEXT)
        end = min(len(content), index + len(needle) + MATCH_TEXT_CONTEXT)
        snippet = content[start:end]
        if start > 0:
            snippet = "..." + snippet
        if end < len(content):
            snippet += "..."
        return snippet
    if document.description:
        return document.description
    return document.title


class QueryEngine:
    """Answers keyword queries against one store/index pair."""

    def __init__(
        self,
        store: DocumentStore,
        index: InvertedIndex,
        analyzer: DocumentAnalyzer | None = None,
    ) -> None:
        self.store = store
        self.index = index
        self.analyzer = analyzer or DocumentAnalyzer()

    def search(
        self,
        query: str,
        category: DocumentCategory | None = None,
        max_results: int = 10,
        min_confidence: float = 0.3,
    ) -> list[ScoredCandidate]:
        needle = query.strip().lower()
        if not needle or max_results <= 0:
            return []

        terms = self.analyzer.terms(needle)
        documents = [doc for doc in self.store if category is None or doc.category == category]
        candidates: dict[str, _Candidate] = {}

        for doc in documents:
            score = self._exact_score(doc, needle)
            if score is not None:
                candidates[doc.id] = _Candidate(doc, score, "exact")

        for term in terms:
            for doc_id in self.index.lookup(term):
                existing = candidates.get(doc_id)
                if existing is not None:
                    existing.score += TITLE_MATCH_WEIGHT
                    continue
                doc = self.store.get(doc_id)
                if doc is None or (category is not None and doc.category != category):
                    continue
                candidates[doc_id] = _Candidate(doc, self._keyword_score(doc, needle, terms), "keyword")

        if len(candidates) < max_results:
            for doc in documents:
                if doc.id in candidates:
                    continue
                score = self._fuzzy_score(doc, terms)
                if score > 0:
                    candidates[doc.id] = _Candidate(doc, score, "fuzzy")

        ranked = sorted(
            (candidate for candidate in candidates.values() if candidate.score >= min_confidence),
            key=lambda candidate: (-candidate.score, candidate.document.id),
        )[:max_results]

        logger.debug(
            "Query '%s' (category=%s): %d candidates, %d returned",
            needle,
            category.value if category else "all",
            len(candidates),
            len(ranked),
        )
        return [
            ScoredCandidate(
                document=candidate.document,
                score=candidate.score,
                match_type=candidate.match_type,
                match_text=extract_match_text(candidate.document, needle),
            )
            for candidate in ranked
        ]

    def _exact_score(self, doc: Document, needle: str) -> float | None:
        title_hit = needle in doc.title.lower()
        description_hit = needle in doc.description.lower()
        keyword_hit = any(needle in keyword.lower() for keyword in doc.keywords)
        path_hit = needle in doc.path.lower()
        if not (title_hit or description_hit or keyword_hit or path_hit):
            return None

        score = 0.0
        if title_hit:
            score += EXACT_MATCH_WEIGHT
        if description_hit:
            score += DESCRIPTION_WEIGHT
        if keyword_hit:
            score += EXACT_MATCH_WEIGHT
        if path_hit:
            score += FILENAME_MATCH_WEIGHT
        return score

    def _keyword_score(self, doc: Document, needle: str, terms: list[str]) -> float:
        title = doc.title.lower()
        description = doc.description.lower()
        score = 0.0
        for term in terms:
            if term in title:
                score += TITLE_MATCH_WEIGHT
            if term in description:
                score += DESCRIPTION_WEIGHT
        if needle in doc.path.lower():
            score += FILENAME_MATCH_WEIGHT
        return score

    def _fuzzy_score(self, doc: Document, terms: list[str]) -> float:
        content = doc.content.lower()
        title = doc.title.lower()
        description = doc.description.lower()
        score = 0.0
        for term in terms:
            score += CONTENT_MATCH_WEIGHT * content.count(term)
            if term in title:
                score += TITLE_MATCH_WEIGHT * 0.5
            if term in description:
                score += DESCRIPTION_WEIGHT * 0.5
        return score
