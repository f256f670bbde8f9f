"""Domain model - entities and value objects of the documentation corpus.

The domain layer has no infrastructure dependencies. Documents are frozen once
built: the store, the inverted index and every engine read them concurrently
without locks, so a changed corpus means a new snapshot, never an in-place edit.
Pydantic dataclasses validate at construction.
"""

from __future__ import annotations

import dataclasses
from datetime import datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import Field
from pydantic.dataclasses import dataclass


MatchType = Literal["exact", "keyword", "fuzzy"]
SuggestionKind = Literal["learning_path", "related", "prerequisite"]


class DocumentCategory(str, Enum):
    """Top-level corpus areas, one per first path component."""

    MANUAL = "manual"
    LIBS = "libs"
    TOOLS = "tools"
    EXTRA = "extra"
    OHOS = "ohos"


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @property
    def rank(self) -> int:
        return _DIFFICULTY_RANK[self]


_DIFFICULTY_RANK = {Difficulty.BEGINNER: 0, Difficulty.INTERMEDIATE: 1, Difficulty.ADVANCED: 2}


@dataclass(frozen=True)
class RawFile:
    """One markdown file as delivered by a corpus source, not yet parsed."""

    path: str
    relative_path: str
    content: bytes
    size: Annotated[int, Field(ge=0)]
    modified_at: datetime


@dataclass(frozen=True)
class Document:
    """A unit of content served by search, listing and content views.

    Either an original markdown file or a section derived from one by the
    segmenter. Derived documents carry their parent's id as the only element
    of `prerequisites`; that back-link is what separates them from top-level
    documents.
    """

    id: Annotated[str, Field(min_length=1)]
    title: str
    category: DocumentCategory
    path: str
    content: str
    subcategory: str = ""
    description: str = ""
    keywords: tuple[str, ...] = ()
    file_size: Annotated[int, Field(ge=0)] = 0
    last_modified: datetime | None = None
    content_preview: str = ""
    difficulty: Difficulty = Difficulty.INTERMEDIATE
    full_path_id: str = ""
    prerequisites: tuple[str, ...] = ()
    related_docs: tuple[str, ...] = ()

    @property
    def is_derived(self) -> bool:
        """True for section documents produced by segmentation."""
        return bool(self.prerequisites)

    @property
    def parent_id(self) -> str | None:
        return self.prerequisites[0] if self.prerequisites else None

    def with_id(self, new_id: str) -> Document:
        """Return a copy carrying a different identifier."""
        return dataclasses.replace(self, id=new_id)


@dataclass(frozen=True)
class Section:
    """One heading-delimited span of a markdown document.

    `content` excludes the heading line itself; `line_number` is the 1-based
    line of the heading.
    """

    id: str
    title: str
    level: Annotated[int, Field(ge=1, le=6)]
    line_number: Annotated[int, Field(ge=1)]
    content: str
    char_count: Annotated[int, Field(ge=0)]


@dataclass(frozen=True)
class TableOfContents:
    document_id: str
    sections: tuple[Section, ...]
    total_chars: int
    is_large: bool


@dataclass(frozen=True)
class ScoredCandidate:
    """A document matched by a query, with its additive score."""

    document: Document
    score: float
    match_type: MatchType
    match_text: str = ""


@dataclass(frozen=True)
class Suggestion:
    document: Document
    reason: str
    relevance: float
    kind: SuggestionKind
