"""Secondary recommendations: learning path, related and prerequisite documents."""

from __future__ import annotations

import logging

from cangjie_docs_mcp.domain.catalog import DEFAULT_CATALOG, CorpusCatalog
from cangjie_docs_mcp.domain.model import Document, DocumentCategory, Suggestion, SuggestionKind
from cangjie_docs_mcp.domain.store import DocumentStore
from cangjie_docs_mcp.search.query_engine import QueryEngine


logger = logging.getLogger(__name__)

SAME_CATEGORY_RELEVANCE = 0.5
SAME_SUBCATEGORY_RELEVANCE = 0.3
SHARED_KEYWORD_RELEVANCE = 0.2
PREREQUISITE_RELEVANCE = 0.8
SCORE_NORMALIZER = 10.0


class SuggestionEngine:
    """Recommends documents around a context string or document id."""

    def __init__(
        self,
        store: DocumentStore,
        query_engine: QueryEngine,
        catalog: CorpusCatalog = DEFAULT_CATALOG,
        *,
        min_confidence: float = 0.3,
    ) -> None:
        self.store = store
        self.query_engine = query_engine
        self.catalog = catalog
        self.min_confidence = min_confidence

    def suggest(self, context: str, kind: SuggestionKind | str = "related", max_suggestions: int = 5) -> list[Suggestion]:
        if max_suggestions <= 0:
            return []
        if kind == "learning_path":
            return self.learning_path(context, max_suggestions)
        if kind == "prerequisite":
            return self.prerequisites(context, max_suggestions)
        if kind != "related":
            logger.debug("Unknown suggestion kind '%s', using related", kind)
        return self.related(context, max_suggestions)

    def learning_path(self, context: str, max_suggestions: int) -> list[Suggestion]:
        """One document per path prefix of the inferred stage, in stage order."""
        stage = self.catalog.learning_stage(context)
        prefixes = self.catalog.learning_paths.get(stage, ())
        suggestions: list[Suggestion] = []
        for position, prefix in enumerate(prefixes[:max_suggestions]):
            document = self._first_under(prefix)
            if document is None:
                continue
            suggestions.append(
                Suggestion(
                    document=document,
                    reason=f"Learning path - {stage} stage",
                    relevance=(len(prefixes) - position) / len(prefixes),
                    kind="learning_path",
                )
            )
        return suggestions

    def related(self, context: str, max_suggestions: int) -> list[Suggestion]:
        target = self._resolve_target(context)
        if target is None:
            return []

        target_keywords = set(target.keywords)
        suggestions: list[Suggestion] = []
        for document in self.store:
            if document.id == target.id:
                continue
            relevance = 0.0
            reasons: list[str] = []
            if document.category == target.category:
                relevance += SAME_CATEGORY_RELEVANCE
                reasons.append("Same category")
            if document.subcategory and document.subcategory == target.subcategory:
                relevance += SAME_SUBCATEGORY_RELEVANCE
                reasons.append("same subcategory")
            shared = sum(1 for keyword in document.keywords if keyword in target_keywords)
            relevance += SHARED_KEYWORD_RELEVANCE * shared
            if relevance <= 0:
                continue
            suggestions.append(
                Suggestion(
                    document=document,
                    reason=" - ".join(reasons) or "Shared keywords",
                    relevance=relevance,
                    kind="related",
                )
            )

        suggestions.sort(key=lambda suggestion: (-suggestion.relevance, suggestion.document.id))
        return suggestions[:max_suggestions]

    def prerequisites(self, context: str, max_suggestions: int) -> list[Suggestion]:
        document = self.store.resolve(context)
        if document is None:
            hits = self.query_engine.search(
                context,
                category=DocumentCategory.MANUAL,
                max_results=max_suggestions,
                min_confidence=self.min_confidence,
            )
            return [
                Suggestion(
                    document=hit.document,
                    reason="Related fundamentals",
                    relevance=hit.score / SCORE_NORMALIZER,
                    kind="prerequisite",
                )
                for hit in hits
            ]

        if document.category == DocumentCategory.MANUAL and document.subcategory == self.catalog.entry_subcategory:
            return []

        suggestions = [
            Suggestion(
                document=candidate,
                reason="Foundational knowledge",
                relevance=PREREQUISITE_RELEVANCE,
                kind="prerequisite",
            )
            for candidate in self.store
            if candidate.id != document.id
            and candidate.category == DocumentCategory.MANUAL
            and candidate.subcategory in self.catalog.beginner_subcategories
        ]
        return suggestions[:max_suggestions]

    def _resolve_target(self, context: str) -> Document | None:
        document = self.store.resolve(context)
        if document is not None:
            return document
        hits = self.query_engine.search(context, max_results=1, min_confidence=self.min_confidence)
        return hits[0].document if hits else None

    def _first_under(self, prefix: str) -> Document | None:
        fallback = None
        for document in self.store:
            if prefix not in document.path:
                continue
            if not document.is_derived:
                return document
            fallback = fallback or document
        return fallback
