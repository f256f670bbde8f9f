"""Analyzer utilities for the keyword index.

Composable tokenizer/filter design: a tokenizer yields `Token` objects and
each filter transforms the stream. The document analyzer splits mixed
Chinese/English text into runs of Han ideographs or ASCII letters, lowercases
them, and drops one-byte tokens and stop words.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
import re
from typing import Protocol

from cangjie_docs_mcp.domain.catalog import DEFAULT_STOP_WORDS
from cangjie_docs_mcp.utils.markdown_parser import HAN_RANGES


WORD_PATTERN = rf"[{HAN_RANGES}A-Za-z]+"


@dataclass
class Token:
    """Represents a token emitted by analyzers."""

    text: str
    position: int
    start_char: int
    end_char: int


class Tokenizer(Protocol):
    def __call__(self, text: str) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class TokenFilter(Protocol):
    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:  # pragma: no cover - interface definition
        ...


class RegexTokenizer:
    """Regex-based tokenizer that yields maximal word runs."""

    def __init__(self, pattern: str = WORD_PATTERN) -> None:
        self.pattern = re.compile(pattern)

    def __call__(self, text: str) -> Iterator[Token]:
        for position, match in enumerate(self.pattern.finditer(text)):
            yield Token(
                text=match.group(0),
                position=position,
                start_char=match.start(),
                end_char=match.end(),
            )


class LowercaseFilter:
    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            if not token.text.islower():
                token.text = token.text.lower()
            yield token


class MinLengthFilter:
    """Drops tokens whose UTF-8 encoding is shorter than `min_bytes`.

    Measured in bytes, so a single ASCII letter is dropped while a single
    CJK ideograph (three bytes) survives.
    """

    def __init__(self, min_bytes: int = 2) -> None:
        self.min_bytes = min_bytes

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            if len(token.text.encode("utf-8")) >= self.min_bytes:
                yield token


class StopFilter:
    """Removes stopwords from the stream."""

    def __init__(self, stopwords: Iterable[str] | None = None) -> None:
        vocab = stopwords if stopwords is not None else DEFAULT_STOP_WORDS
        self.stopwords = frozenset(word.lower() for word in vocab)

    def __call__(self, tokens: Iterable[Token]) -> Iterator[Token]:
        for token in tokens:
            if token.text not in self.stopwords:
                yield token


class AnalyzerPipeline:
    """Composable analyzer pipeline (tokenizer + filters)."""

    def __init__(self, tokenizer: Tokenizer, filters: Sequence[TokenFilter] | None = None) -> None:
        self.tokenizer = tokenizer
        self.filters = list(filters or [])

    def __call__(self, text: str) -> list[Token]:
        stream: Iterable[Token] = self.tokenizer(text)
        for token_filter in self.filters:
            stream = token_filter(stream)
        tokens = list(stream)
        for idx, token in enumerate(tokens):
            token.position = idx
        return tokens


class DocumentAnalyzer:
    """Analyzer shared by the indexer and the query engine."""

    def __init__(self, *, stopwords: Iterable[str] | None = None) -> None:
        self.pipeline = AnalyzerPipeline(
            RegexTokenizer(),
            [LowercaseFilter(), MinLengthFilter(), StopFilter(stopwords)],
        )

    def __call__(self, text: str) -> list[Token]:
        return self.pipeline(text)

    def terms(self, text: str) -> list[str]:
        """Return token texts in order, duplicates kept."""
        if not text:
            return []
        return [token.text for token in self.pipeline(text)]
