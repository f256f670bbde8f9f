"""Pydantic models for MCP tool requests and responses.

Requests are validated at the tool boundary before anything reaches the
engines; optional numeric fields left as None are filled from `Settings`.
Responses are what FastMCP serializes back to the client.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from cangjie_docs_mcp.domain.model import Difficulty, Document, DocumentCategory, MatchType, SuggestionKind


ViewType = Literal["overview", "map", "navigation", "tree"]
SortBy = Literal["title", "difficulty", "last_modified"]
ContentFormat = Literal["markdown", "json", "plain"]


# ============================================================================
# Requests
# ============================================================================


class _Request(BaseModel):
    model_config = ConfigDict(extra="forbid")


class SearchRequest(_Request):
    """Arguments of `search_documents`.

    An empty or whitespace-only query is valid and yields no results.
    """

    query: str
    category: DocumentCategory | None = None
    max_results: int | None = Field(default=None, gt=0, le=200)
    min_confidence: float | None = Field(default=None, ge=0.0)


class OverviewRequest(_Request):
    category: DocumentCategory
    view_type: ViewType = "overview"
    max_items: int = Field(default=50, gt=0)
    level: int = Field(default=3, ge=0, description="Tree depth for navigation/tree views, 0 for unlimited")


class ListDocumentsRequest(_Request):
    """Arguments of `list_documents`.

    `subcategory` is a slash-separated path below the category: empty lists
    subcategories, one segment lists its directories, two or more list the
    documents under that directory.
    """

    category: DocumentCategory
    subcategory: str = ""
    sort_by: SortBy = "title"
    include_preview: bool = False
    max_items: int | None = Field(default=None, gt=0)

    def path_parts(self) -> list[str]:
        return [part for part in self.subcategory.strip().strip("/").split("/") if part]


class DocumentContentRequest(_Request):
    doc_id: str = Field(min_length=1)
    include_metadata: bool = True
    format: ContentFormat = "markdown"
    section: str | None = None


class SuggestionRequest(_Request):
    context: str = Field(min_length=1)
    kind: SuggestionKind = "related"
    max_suggestions: int | None = Field(default=None, gt=0, le=50)


# ============================================================================
# Responses
# ============================================================================


class DocumentSummary(BaseModel):
    """Document fields returned by search and suggestion tools."""

    id: str
    title: str
    category: DocumentCategory
    subcategory: str
    description: str
    difficulty: Difficulty
    keywords: list[str]
    relative_path: str
    parent_id: str | None = Field(default=None, description="Source document id for derived sections")

    @classmethod
    def from_document(cls, document: Document) -> DocumentSummary:
        return cls(
            id=document.id,
            title=document.title,
            category=document.category,
            subcategory=document.subcategory,
            description=document.description,
            difficulty=document.difficulty,
            keywords=list(document.keywords),
            relative_path=document.path,
            parent_id=document.parent_id,
        )


class SearchResultItem(BaseModel):
    document: DocumentSummary
    score: float
    match_type: MatchType
    match_text: str


class SearchDocumentsResponse(BaseModel):
    """Response model for `search_documents`.

    Example:
        {
            "query": "泛型",
            "count": 1,
            "results": [{"document": {...}, "score": 16.0, "match_type": "exact", "match_text": "..."}]
        }
    """

    query: str
    count: int
    results: list[SearchResultItem] = Field(default_factory=list)


class SubcategoryCount(BaseModel):
    name: str
    count: int


class CategoryOverview(BaseModel):
    name: DocumentCategory
    display_name: str
    description: str
    count: int
    subcategories: list[SubcategoryCount] = Field(default_factory=list)


class OverviewResponse(BaseModel):
    view_type: Literal["overview"] = "overview"
    total_documents: int
    categories: list[CategoryOverview]
    generated_at: datetime


class DocumentMapEntry(BaseModel):
    id: str
    title: str
    description: str
    difficulty: Difficulty
    keywords: list[str]


class DocumentMapResponse(BaseModel):
    view_type: Literal["map"] = "map"
    map_type: Literal["document_hierarchy"] = "document_hierarchy"
    categories: dict[str, dict[str, list[DocumentMapEntry]]]
    total_docs: int
    generated_at: datetime


class NavigationTreeResponse(BaseModel):
    view_type: Literal["navigation", "tree"]
    category: DocumentCategory
    total_docs: int
    tree: str


class ListDocumentsResponse(BaseModel):
    """Markdown listing for one navigation level."""

    category: DocumentCategory
    path: str
    depth: int
    total: int
    shown: int
    listing: str


class DocumentMetadata(BaseModel):
    description: str
    difficulty: Difficulty
    keywords: list[str]
    relative_path: str
    file_size: int
    last_modified: datetime | None


class DocumentContentResponse(BaseModel):
    """Response model for `get_document_content`.

    For markdown and plain formats `content` is the rendered text including
    the optional metadata header. For json, `content` is the bare body and
    `metadata` carries the structured fields.
    """

    document_id: str
    title: str
    category: DocumentCategory
    subcategory: str
    format: ContentFormat
    section: str | None = None
    content: str
    metadata: DocumentMetadata | None = None


class SuggestionItem(BaseModel):
    document: DocumentSummary
    reason: str
    relevance: float
    kind: SuggestionKind


class SuggestionsResponse(BaseModel):
    context: str
    kind: SuggestionKind
    count: int
    suggestions: list[SuggestionItem] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: Literal["ok", "loading"]
    documents: int
    derived_documents: int
    terms: int
    built_at: datetime | None
    last_rebuild_error: str | None = None
