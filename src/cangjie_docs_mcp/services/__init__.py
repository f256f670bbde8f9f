"""Background services around the corpus runtime."""

from .refresh_scheduler import CorpusRefreshScheduler


__all__ = [
    "CorpusRefreshScheduler",
]
