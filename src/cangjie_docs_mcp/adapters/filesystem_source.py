"""Corpus sources: deliver raw markdown files to the loader."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from datetime import datetime, timezone
import logging
import os
from pathlib import Path

from cangjie_docs_mcp.domain.model import RawFile


logger = logging.getLogger(__name__)

MARKDOWN_SUFFIX = ".md"


class CorpusAccessError(RuntimeError):
    """Raised when the corpus root is missing or unreadable."""


class AbstractCorpusSource(ABC):
    """Supplier of raw corpus files in a stable order."""

    @abstractmethod
    def iter_files(self) -> Iterator[RawFile]:
        """Yield every markdown file of the corpus.

        Raises:
            CorpusAccessError: The corpus as a whole cannot be read
        """
        raise NotImplementedError


class FilesystemSource(AbstractCorpusSource):
    """Walks a directory tree for `*.md` files (case-insensitive suffix).

    Hidden directories such as `.git` are skipped. Files are yielded sorted by
    relative path, and a file that cannot be read is logged and skipped.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).expanduser()

    def iter_files(self) -> Iterator[RawFile]:
        if not self.root.exists():
            raise CorpusAccessError(f"Corpus root does not exist: {self.root}")
        if not self.root.is_dir():
            raise CorpusAccessError(f"Corpus root is not a directory: {self.root}")
        if not os.access(self.root, os.R_OK | os.X_OK):
            raise CorpusAccessError(f"Corpus root is not readable: {self.root}")

        for path in self._discover():
            relative = path.relative_to(self.root).as_posix()
            try:
                stat = path.stat()
                content = path.read_bytes()
            except OSError as exc:
                logger.warning("Skipping unreadable corpus file %s: %s", relative, exc)
                continue
            yield RawFile(
                path=str(path),
                relative_path=relative,
                content=content,
                size=stat.st_size,
                modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            )

    def _discover(self) -> list[Path]:
        found: list[Path] = []

        def _on_error(error: OSError) -> None:
            logger.warning("Cannot list %s: %s", error.filename, error)

        for dirpath, dirnames, filenames in os.walk(self.root, onerror=_on_error):
            dirnames[:] = [name for name in dirnames if not name.startswith(".")]
            for filename in filenames:
                if filename.lower().endswith(MARKDOWN_SUFFIX):
                    found.append(Path(dirpath) / filename)
        found.sort(key=lambda path: path.relative_to(self.root).as_posix())
        return found


class InMemorySource(AbstractCorpusSource):
    """Serves preloaded files; used by tests and tooling."""

    def __init__(self, files: Iterable[RawFile]) -> None:
        self._files = sorted(files, key=lambda raw: raw.relative_path)

    def iter_files(self) -> Iterator[RawFile]:
        return iter(self._files)

    @classmethod
    def from_texts(cls, texts: dict[str, str], modified_at: datetime | None = None) -> InMemorySource:
        """Build a source from relative path -> markdown text."""
        stamp = modified_at or datetime.now(timezone.utc)
        files = []
        for relative_path, text in texts.items():
            data = text.encode("utf-8")
            files.append(
                RawFile(
                    path=relative_path,
                    relative_path=relative_path,
                    content=data,
                    size=len(data),
                    modified_at=stamp,
                )
            )
        return cls(files)
