"""Domain layer - documents, sections and the corpus catalog.

Pure data with no infrastructure dependencies:
- Entities: Document (original file or derived section)
- Value objects: Section, TableOfContents, ScoredCandidate, Suggestion
- Catalog: immutable category and learning-path tables
"""

from cangjie_docs_mcp.domain.catalog import DEFAULT_CATALOG, CorpusCatalog
from cangjie_docs_mcp.domain.model import (
    Difficulty,
    Document,
    DocumentCategory,
    MatchType,
    RawFile,
    ScoredCandidate,
    Section,
    Suggestion,
    SuggestionKind,
    TableOfContents,
)


__all__ = [
    "DEFAULT_CATALOG",
    "CorpusCatalog",
    "Difficulty",
    "Document",
    "DocumentCategory",
    "MatchType",
    "RawFile",
    "ScoredCandidate",
    "Section",
    "Suggestion",
    "SuggestionKind",
    "TableOfContents",
]
