"""Segmentation, indexing and query engines for the documentation corpus."""

from cangjie_docs_mcp.search.analyzers import DocumentAnalyzer
from cangjie_docs_mcp.search.inverted_index import Indexer, InvertedIndex
from cangjie_docs_mcp.search.query_engine import QueryEngine, extract_match_text
from cangjie_docs_mcp.search.segmenter import DocumentSegmenter
from cangjie_docs_mcp.search.suggestions import SuggestionEngine


__all__ = [
    "DocumentAnalyzer",
    "DocumentSegmenter",
    "Indexer",
    "InvertedIndex",
    "QueryEngine",
    "SuggestionEngine",
    "extract_match_text",
]
