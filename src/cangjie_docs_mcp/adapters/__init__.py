"""Adapters layer - corpus sources feeding the loader."""

from .filesystem_source import (
    AbstractCorpusSource,
    CorpusAccessError,
    FilesystemSource,
    InMemorySource,
)


__all__ = [
    "AbstractCorpusSource",
    "CorpusAccessError",
    "FilesystemSource",
    "InMemorySource",
]
