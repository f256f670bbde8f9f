"""Service layer - corpus lifecycle and browsing use cases.

- `CorpusLoader` turns a corpus source into an immutable snapshot
- `CorpusRuntime` owns the live snapshot and swaps in rebuilt ones
- `NavigationService` renders overview, listing and content views
"""

from .corpus import CorpusAccessError, CorpusLoader, CorpusRuntime, CorpusSnapshot, LoadStats
from .navigation import DocumentNotFoundError, NavigationService, extract_section


__all__ = [
    "CorpusAccessError",
    "CorpusLoader",
    "CorpusRuntime",
    "CorpusSnapshot",
    "DocumentNotFoundError",
    "LoadStats",
    "NavigationService",
    "extract_section",
]
