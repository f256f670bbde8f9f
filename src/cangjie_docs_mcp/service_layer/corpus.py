"""Corpus loading and snapshot lifecycle.

Loading is a single sequential pass: crawl, parse, segment, store, index.
The result is an immutable `CorpusSnapshot`. `CorpusRuntime` owns the
snapshot that requests read and replaces it wholesale after a successful
rebuild, so in-flight requests keep the snapshot they started with.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from time import perf_counter

from cangjie_docs_mcp.adapters.filesystem_source import AbstractCorpusSource, CorpusAccessError, FilesystemSource
from cangjie_docs_mcp.config import Settings
from cangjie_docs_mcp.domain.catalog import DEFAULT_CATALOG, CorpusCatalog
from cangjie_docs_mcp.domain.model import Document
from cangjie_docs_mcp.domain.store import DocumentStore
from cangjie_docs_mcp.observability.metrics import CORPUS_REBUILDS, INDEX_DOC_COUNT
from cangjie_docs_mcp.search.analyzers import DocumentAnalyzer
from cangjie_docs_mcp.search.inverted_index import DEFAULT_CONTENT_CHARS, Indexer, InvertedIndex
from cangjie_docs_mcp.search.query_engine import QueryEngine
from cangjie_docs_mcp.search.segmenter import DocumentSegmenter
from cangjie_docs_mcp.search.suggestions import SuggestionEngine
from cangjie_docs_mcp.utils.markdown_parser import DocumentParseError, parse_document


logger = logging.getLogger(__name__)

__all__ = ["CorpusAccessError", "CorpusLoader", "CorpusRuntime", "CorpusSnapshot", "LoadStats"]


@dataclass(frozen=True, slots=True)
class LoadStats:
    files_seen: int
    files_skipped: int
    documents: int
    derived_documents: int
    terms: int
    duration_seconds: float


@dataclass(frozen=True, slots=True)
class CorpusSnapshot:
    """Everything one serving generation reads, built together and never mutated."""

    store: DocumentStore
    index: InvertedIndex
    query_engine: QueryEngine
    suggestion_engine: SuggestionEngine
    catalog: CorpusCatalog
    stats: LoadStats
    built_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class CorpusLoader:
    """Builds a `CorpusSnapshot` from a corpus source."""

    def __init__(
        self,
        source: AbstractCorpusSource,
        catalog: CorpusCatalog = DEFAULT_CATALOG,
        *,
        segmenter: DocumentSegmenter | None = None,
        content_chars: int = DEFAULT_CONTENT_CHARS,
        min_confidence: float = 0.3,
    ) -> None:
        self.source = source
        self.catalog = catalog
        self.segmenter = segmenter or DocumentSegmenter(catalog)
        self.content_chars = content_chars
        self.min_confidence = min_confidence

    @classmethod
    def from_settings(cls, settings: Settings, catalog: CorpusCatalog = DEFAULT_CATALOG) -> CorpusLoader:
        segmenter = DocumentSegmenter(
            catalog,
            enabled=settings.enable_document_splitting,
            large_document_threshold=settings.large_document_threshold,
            max_section_size=settings.max_section_size,
        )
        return cls(
            FilesystemSource(settings.docs_root_dir),
            catalog,
            segmenter=segmenter,
            content_chars=settings.content_index_chars,
            min_confidence=settings.default_min_confidence,
        )

    def load(self) -> CorpusSnapshot:
        """Crawl, parse, segment and index the corpus.

        Raises:
            CorpusAccessError: The corpus root cannot be read
        """
        start = perf_counter()
        documents: list[Document] = []
        used_ids: set[str] = set()
        files_seen = 0
        files_skipped = 0

        for raw in self.source.iter_files():
            files_seen += 1
            try:
                parsed = parse_document(raw, self.catalog)
            except DocumentParseError as exc:
                files_skipped += 1
                logger.warning("Skipping malformed document %s: %s", raw.relative_path, exc)
                continue

            unique_id = self._unique_id(parsed.id, used_ids)
            if unique_id != parsed.id:
                logger.debug("Renamed duplicate document id %s -> %s (%s)", parsed.id, unique_id, raw.relative_path)
                parsed = parsed.with_id(unique_id)

            for piece in self.segmenter.segment(parsed):
                piece_id = self._unique_id(piece.id, used_ids) if piece.is_derived else piece.id
                documents.append(piece if piece_id == piece.id else piece.with_id(piece_id))

        store = DocumentStore(documents)
        analyzer = DocumentAnalyzer(stopwords=self.catalog.stop_words)
        index = Indexer(analyzer, content_chars=self.content_chars).build(store)
        query_engine = QueryEngine(store, index, analyzer)
        suggestion_engine = SuggestionEngine(store, query_engine, self.catalog, min_confidence=self.min_confidence)

        stats = LoadStats(
            files_seen=files_seen,
            files_skipped=files_skipped,
            documents=len(store),
            derived_documents=store.derived_count(),
            terms=len(index),
            duration_seconds=perf_counter() - start,
        )
        logger.info(
            "Corpus loaded: files=%d skipped=%d documents=%d derived=%d terms=%d duration=%.2fs",
            stats.files_seen,
            stats.files_skipped,
            stats.documents,
            stats.derived_documents,
            stats.terms,
            stats.duration_seconds,
        )
        return CorpusSnapshot(
            store=store,
            index=index,
            query_engine=query_engine,
            suggestion_engine=suggestion_engine,
            catalog=self.catalog,
            stats=stats,
        )

    @staticmethod
    def _unique_id(candidate: str, used: set[str]) -> str:
        unique = candidate
        suffix = 2
        while unique in used:
            unique = f"{candidate}_{suffix}"
            suffix += 1
        used.add(unique)
        return unique


class CorpusRuntime:
    """Holds the live snapshot and swaps in rebuilt ones."""

    def __init__(self, loader_factory: Callable[[], CorpusLoader]) -> None:
        self._loader_factory = loader_factory
        self._snapshot: CorpusSnapshot | None = None
        self._rebuild_lock = asyncio.Lock()
        self.last_error: str | None = None

    @property
    def snapshot(self) -> CorpusSnapshot:
        if self._snapshot is None:
            raise RuntimeError("Corpus has not been loaded")
        return self._snapshot

    @property
    def is_ready(self) -> bool:
        return self._snapshot is not None

    def load_initial(self) -> CorpusSnapshot:
        """Build the first snapshot synchronously; corpus access errors propagate."""
        snapshot = self._loader_factory().load()
        self._publish(snapshot)
        return snapshot

    async def rebuild(self) -> bool:
        """Build a new snapshot off the event loop and publish it.

        Returns True when the new snapshot was published. On failure the
        previous snapshot keeps serving.
        """
        async with self._rebuild_lock:
            try:
                snapshot = await asyncio.to_thread(lambda: self._loader_factory().load())
            except Exception as exc:
                self.last_error = str(exc)
                CORPUS_REBUILDS.labels(status="error").inc()
                logger.warning("Corpus rebuild failed, keeping previous snapshot: %s", exc, exc_info=True)
                return False
            self._publish(snapshot)
            CORPUS_REBUILDS.labels(status="success").inc()
            return True

    def _publish(self, snapshot: CorpusSnapshot) -> None:
        self._snapshot = snapshot
        self.last_error = None
        INDEX_DOC_COUNT.labels(kind="total").set(snapshot.stats.documents)
        INDEX_DOC_COUNT.labels(kind="derived").set(snapshot.stats.derived_documents)
