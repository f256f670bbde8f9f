"""FastMCP server exposing search, navigation and suggestion tools over one corpus."""

from __future__ import annotations

import logging
from typing import Annotated, Any, TypeVar

from fastmcp import Context, FastMCP
from fastmcp.exceptions import ToolError
from opentelemetry.trace import SpanKind
from pydantic import BaseModel, ValidationError

from cangjie_docs_mcp.config import Settings
from cangjie_docs_mcp.observability import (
    REQUEST_COUNT,
    REQUEST_LATENCY,
    SEARCH_LATENCY,
    bind_tool,
    create_span,
    track_latency,
)
from cangjie_docs_mcp.service_layer.corpus import CorpusRuntime, CorpusSnapshot
from cangjie_docs_mcp.service_layer.navigation import DocumentNotFoundError, NavigationService
from cangjie_docs_mcp.utils.models import (
    DocumentContentRequest,
    DocumentContentResponse,
    DocumentMapResponse,
    DocumentSummary,
    ListDocumentsRequest,
    ListDocumentsResponse,
    NavigationTreeResponse,
    OverviewRequest,
    OverviewResponse,
    SearchDocumentsResponse,
    SearchRequest,
    SearchResultItem,
    SuggestionItem,
    SuggestionRequest,
    SuggestionsResponse,
)


logger = logging.getLogger(__name__)

RequestT = TypeVar("RequestT", bound=BaseModel)

CATEGORY_HINT = "Category: manual, libs, tools, extra or ohos"

INSTRUCTIONS = (
    "Cangjie language documentation. Use search_documents to find documents, "
    "get_document_overview and list_documents to browse the corpus, "
    "get_document_content to read one document (or one numbered section), "
    "and get_suggestions for learning paths, related and prerequisite documents."
)


def _validate(model: type[RequestT], tool_name: str, **arguments: Any) -> RequestT:
    """Build a request model, reporting validation failures as tool errors."""
    try:
        return model(**{key: value for key, value in arguments.items() if value is not None})
    except ValidationError as exc:
        REQUEST_COUNT.labels(tool=tool_name, status="invalid").inc()
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'request'}: {error['msg']}" for error in exc.errors()
        )
        logger.info("%s rejected invalid arguments: %s", tool_name, problems)
        raise ToolError(f"Invalid arguments for {tool_name}: {problems}") from exc


def _snapshot(runtime: CorpusRuntime, tool_name: str) -> CorpusSnapshot:
    if not runtime.is_ready:
        REQUEST_COUNT.labels(tool=tool_name, status="error").inc()
        raise ToolError("Document corpus is still loading, retry shortly")
    return runtime.snapshot


def create_server(runtime: CorpusRuntime, settings: Settings) -> FastMCP:
    """Create the MCP server bound to a corpus runtime.

    Every tool reads `runtime.snapshot` once per call, so a concurrent rebuild
    never changes the data a call is working on.
    """
    mcp = FastMCP(
        name="Cangjie Docs",
        instructions=INSTRUCTIONS,
        mask_error_details=True,
    )
    _register_search_tools(mcp, runtime, settings)
    _register_navigation_tools(mcp, runtime)
    return mcp


def _register_search_tools(mcp: FastMCP, runtime: CorpusRuntime, settings: Settings) -> None:
    @mcp.tool(name="search_documents", annotations={"title": "Search Cangjie Docs", "readOnlyHint": True})
    async def search_documents(
        query: Annotated[str, "Keywords to search for; several words separated by spaces"],
        category: Annotated[str | None, CATEGORY_HINT] = None,
        max_results: Annotated[int | None, "Maximum number of results (default: 10)"] = None,
        min_confidence: Annotated[float | None, "Minimum result score (default: 0.3)"] = None,
        ctx: Context | None = None,
    ) -> SearchDocumentsResponse:
        """Search the Cangjie documentation.

        Matches whole-phrase occurrences in titles, descriptions, keywords and
        paths first, then individual terms through the keyword index, then a
        fuzzy pass over full content. Results carry a score, the match type
        and a snippet around the first occurrence of the query.

        Examples:
            search_documents("泛型")
            search_documents("HashMap", category="libs", max_results=5)

        Returns:
            {
                "query": "泛型",
                "count": 2,
                "results": [
                    {"document": {"id": "manual_generic_generic_overview", ...},
                     "score": 24.0, "match_type": "exact", "match_text": "..."},
                    ...
                ]
            }
        """
        tool_name = "search_documents"
        bind_tool(tool_name)
        with (
            track_latency(REQUEST_LATENCY, tool=tool_name),
            create_span(
                "mcp.tool.search_documents",
                kind=SpanKind.INTERNAL,
                attributes={"search.query": query[:100], "mcp.tool.name": tool_name},
            ) as span,
        ):
            request = _validate(
                SearchRequest,
                tool_name,
                query=query,
                category=category,
                max_results=max_results,
                min_confidence=min_confidence,
            )
            snapshot = _snapshot(runtime, tool_name)
            category_label = request.category.value if request.category else "all"
            with track_latency(SEARCH_LATENCY, category=category_label):
                hits = snapshot.query_engine.search(
                    request.query,
                    category=request.category,
                    max_results=request.max_results or settings.default_max_results,
                    min_confidence=(
                        settings.default_min_confidence if request.min_confidence is None else request.min_confidence
                    ),
                )
            span.set_attribute("search.result_count", len(hits))
            logger.info("search_documents query='%s' category=%s results=%d", query[:50], category_label, len(hits))
            REQUEST_COUNT.labels(tool=tool_name, status="ok").inc()
            return SearchDocumentsResponse(
                query=request.query,
                count=len(hits),
                results=[
                    SearchResultItem(
                        document=DocumentSummary.from_document(hit.document),
                        score=hit.score,
                        match_type=hit.match_type,
                        match_text=hit.match_text,
                    )
                    for hit in hits
                ],
            )

    @mcp.tool(name="get_suggestions", annotations={"title": "Suggest Cangjie Docs", "readOnlyHint": True})
    async def get_suggestions(
        context: Annotated[str, "Document id or free text describing the current topic"],
        kind: Annotated[str, "Suggestion kind: learning_path, related or prerequisite"] = "related",
        max_suggestions: Annotated[int | None, "Maximum number of suggestions (default: 5)"] = None,
        ctx: Context | None = None,
    ) -> SuggestionsResponse:
        """Recommend documents around a topic or document.

        - learning_path: an ordered reading path for the stage the context
          suggests (beginner, intermediate or advanced)
        - related: documents sharing category, subcategory or keywords with
          the context document (or the best search hit for free text)
        - prerequisite: foundational manual chapters to read first
        """
        tool_name = "get_suggestions"
        bind_tool(tool_name)
        with (
            track_latency(REQUEST_LATENCY, tool=tool_name),
            create_span(
                "mcp.tool.get_suggestions",
                kind=SpanKind.INTERNAL,
                attributes={"suggestion.context": context[:100], "mcp.tool.name": tool_name},
            ) as span,
        ):
            request = _validate(
                SuggestionRequest, tool_name, context=context, kind=kind, max_suggestions=max_suggestions
            )
            snapshot = _snapshot(runtime, tool_name)
            suggestions = snapshot.suggestion_engine.suggest(
                request.context,
                request.kind,
                request.max_suggestions or settings.default_max_suggestions,
            )
            span.set_attribute("suggestion.count", len(suggestions))
            logger.info("get_suggestions kind=%s results=%d", request.kind, len(suggestions))
            REQUEST_COUNT.labels(tool=tool_name, status="ok").inc()
            return SuggestionsResponse(
                context=request.context,
                kind=request.kind,
                count=len(suggestions),
                suggestions=[
                    SuggestionItem(
                        document=DocumentSummary.from_document(item.document),
                        reason=item.reason,
                        relevance=item.relevance,
                        kind=item.kind,
                    )
                    for item in suggestions
                ],
            )


def _register_navigation_tools(mcp: FastMCP, runtime: CorpusRuntime) -> None:
    @mcp.tool(name="get_document_overview", annotations={"title": "Browse Cangjie Docs", "readOnlyHint": True})
    async def get_document_overview(
        category: Annotated[str, CATEGORY_HINT],
        view_type: Annotated[str, "overview, map, navigation or tree (default: overview)"] = "overview",
        max_items: Annotated[int | None, "Maximum entries per group (default: 50)"] = None,
        level: Annotated[int | None, "Tree depth for navigation/tree views (default: 3, 0 for all)"] = None,
        ctx: Context | None = None,
    ) -> OverviewResponse | DocumentMapResponse | NavigationTreeResponse:
        """Summarize one documentation category.

        - overview: document counts per category and subcategory
        - map: category -> subcategory -> a few document summaries each
        - navigation / tree: a text directory tree of the category
        """
        tool_name = "get_document_overview"
        bind_tool(tool_name)
        with (
            track_latency(REQUEST_LATENCY, tool=tool_name),
            create_span(
                "mcp.tool.get_document_overview",
                kind=SpanKind.INTERNAL,
                attributes={"docs.category": category, "docs.view_type": view_type, "mcp.tool.name": tool_name},
            ),
        ):
            request = _validate(
                OverviewRequest, tool_name, category=category, view_type=view_type, max_items=max_items, level=level
            )
            snapshot = _snapshot(runtime, tool_name)
            navigation = NavigationService(snapshot.store, snapshot.catalog)
            if request.view_type == "map":
                result: OverviewResponse | DocumentMapResponse | NavigationTreeResponse = navigation.document_map(
                    request.category, request.max_items
                )
            elif request.view_type in ("navigation", "tree"):
                result = navigation.navigation_tree(
                    request.category, max_items=request.max_items, level=request.level, view_type=request.view_type
                )
            else:
                result = navigation.overview(request.category, request.max_items)
            logger.info("get_document_overview category=%s view=%s", request.category.value, request.view_type)
            REQUEST_COUNT.labels(tool=tool_name, status="ok").inc()
            return result

    @mcp.tool(name="list_documents", annotations={"title": "List Cangjie Docs", "readOnlyHint": True})
    async def list_documents(
        category: Annotated[str, CATEGORY_HINT],
        subcategory: Annotated[str, "Slash-separated path such as 'stdx' or 'stdx/crypto'; empty lists subcategories"] = "",
        sort_by: Annotated[str, "title, difficulty or last_modified (default: title)"] = "title",
        include_preview: Annotated[bool, "Include a short content preview column"] = False,
        max_items: Annotated[int | None, "Maximum documents listed (default: 100)"] = None,
        ctx: Context | None = None,
    ) -> ListDocumentsResponse:
        """List a category like `ls`: subcategories, then directories, then documents.

        Examples:
            list_documents("libs")                    -> subcategories with counts
            list_documents("libs", "stdx")            -> directories under stdx
            list_documents("libs", "stdx/crypto")     -> documents in stdx/crypto
        """
        tool_name = "list_documents"
        bind_tool(tool_name)
        with (
            track_latency(REQUEST_LATENCY, tool=tool_name),
            create_span(
                "mcp.tool.list_documents",
                kind=SpanKind.INTERNAL,
                attributes={"docs.category": category, "docs.path": subcategory[:100], "mcp.tool.name": tool_name},
            ) as span,
        ):
            request = _validate(
                ListDocumentsRequest,
                tool_name,
                category=category,
                subcategory=subcategory,
                sort_by=sort_by,
                include_preview=include_preview,
                max_items=max_items,
            )
            snapshot = _snapshot(runtime, tool_name)
            listing = NavigationService(snapshot.store, snapshot.catalog).list_documents(
                request.category,
                request.path_parts(),
                sort_by=request.sort_by,
                include_preview=request.include_preview,
                max_items=request.max_items,
            )
            span.set_attribute("docs.listed", listing.shown)
            logger.info("list_documents category=%s path='%s' shown=%d", request.category.value, listing.path, listing.shown)
            REQUEST_COUNT.labels(tool=tool_name, status="ok").inc()
            return listing

    @mcp.tool(name="get_document_content", annotations={"title": "Read Cangjie Doc", "readOnlyHint": True})
    async def get_document_content(
        doc_id: Annotated[str, "Document id or full path id from search or listing results"],
        include_metadata: Annotated[bool, "Prepend a metadata header (default: true)"] = True,
        format: Annotated[str, "markdown, json or plain (default: markdown)"] = "markdown",
        section: Annotated[str | None, "Numbered section to extract, e.g. '2.1'"] = None,
        ctx: Context | None = None,
    ) -> DocumentContentResponse:
        """Read one document, or one numbered section of it.

        `section` matches the first heading whose text starts with the given
        value and stops at the next heading of the same or a higher level.
        """
        tool_name = "get_document_content"
        bind_tool(tool_name)
        with (
            track_latency(REQUEST_LATENCY, tool=tool_name),
            create_span(
                "mcp.tool.get_document_content",
                kind=SpanKind.INTERNAL,
                attributes={"docs.doc_id": doc_id[:200], "mcp.tool.name": tool_name},
            ) as span,
        ):
            request = _validate(
                DocumentContentRequest,
                tool_name,
                doc_id=doc_id,
                include_metadata=include_metadata,
                format=format,
                section=section,
            )
            snapshot = _snapshot(runtime, tool_name)
            try:
                content = NavigationService(snapshot.store, snapshot.catalog).get_content(
                    request.doc_id,
                    include_metadata=request.include_metadata,
                    output_format=request.format,
                    section=request.section,
                )
            except DocumentNotFoundError as exc:
                span.set_attribute("error", True)
                logger.warning("get_document_content called with unknown document: %s", request.doc_id)
                REQUEST_COUNT.labels(tool=tool_name, status="not_found").inc()
                raise ToolError(str(exc)) from exc
            logger.info("get_document_content doc=%s format=%s", request.doc_id, request.format)
            REQUEST_COUNT.labels(tool=tool_name, status="ok").inc()
            return content
