"""Shared test fixtures and configuration."""

from datetime import datetime, timezone
import os

import pytest


# Complete test environment that overrides every config value read from env
TEST_ENV = {
    "DOCS_ROOT_DIR": "/nonexistent/cangjie-corpus",
    "DOCS_REPO_URL": "https://example.com/CangjieCorpus.git",
    "DOCS_SYNC_ENABLED": "false",  # Never clone in tests
    "DOCS_AUTO_UPDATE": "false",
    "REFRESH_SCHEDULE": "",
    "ENABLE_DOCUMENT_SPLITTING": "true",
    "LARGE_DOCUMENT_THRESHOLD": "15000",
    "MAX_SECTION_SIZE": "10000",
    "CONTENT_INDEX_CHARS": "1000",
    "DEFAULT_MAX_RESULTS": "10",
    "DEFAULT_MIN_CONFIDENCE": "0.3",
    "DEFAULT_MAX_SUGGESTIONS": "5",
    "MCP_TRANSPORT": "stdio",
    "MCP_HOST": "127.0.0.1",
    "MCP_PORT": "15005",
    "LOG_LEVEL": "info",
    "LOG_JSON": "true",
    "OTEL_COLLECTOR_ENDPOINT": "",
}


# Set environment variables immediately when conftest.py is loaded
for key, value in TEST_ENV.items():
    os.environ[key] = value

from cangjie_docs_mcp.adapters.filesystem_source import InMemorySource
from cangjie_docs_mcp.domain.catalog import DEFAULT_CATALOG
from cangjie_docs_mcp.domain.model import Difficulty, Document, DocumentCategory
from cangjie_docs_mcp.service_layer.corpus import CorpusLoader, CorpusSnapshot


FIXED_MTIME = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

SAMPLE_CORPUS = {
    "manual/first_understanding/hello_world.md": (
        "# 你好仓颉\n\n仓颉入门第一个程序。\n\n## 运行\n\n使用 cjc 编译 main 函数。\n"
    ),
    "manual/basic_data_type/integer.md": (
        "# 整数类型\n\n仓颉的整数类型介绍。\n\n```cangjie\nlet a: Int64 = 1\n```\n"
    ),
    "manual/generic/generic_overview.md": (
        "# 泛型编程\n\n仓颉泛型介绍\n\n## 泛型函数\n\n泛型 function 可以接受类型参数。\n"
    ),
    "libs/std/collection/hashmap.md": (
        "# HashMap\n\nHashMap is a map collection in std.\n\n## Methods\n\nUse put and get.\n"
    ),
    "libs/std/collection/array_list.md": "# ArrayList\n\nArrayList is a resizable list.\n",
    "libs/std/overview.md": "# std 概述\n\n标准库总览。\n",
    "tools/cjpm.md": "# cjpm 包管理\n\ncjpm manages package dependencies.\n",
    "extra/advanced_macro.md": "# 宏进阶\n\n高级宏编程技巧。\n",
}


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Reset environment variables to the test defaults before each test."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)


@pytest.fixture
def make_document():
    """Factory for Documents with sensible defaults."""

    def _make(
        doc_id: str = "manual_doc",
        *,
        title: str = "Doc",
        category: DocumentCategory = DocumentCategory.MANUAL,
        subcategory: str = "",
        path: str | None = None,
        content: str = "",
        description: str = "",
        keywords: tuple[str, ...] = (),
        difficulty: Difficulty = Difficulty.INTERMEDIATE,
        prerequisites: tuple[str, ...] = (),
        last_modified: datetime | None = FIXED_MTIME,
    ) -> Document:
        relative = path or f"{category.value}/{doc_id}.md"
        return Document(
            id=doc_id,
            title=title,
            category=category,
            subcategory=subcategory,
            path=relative,
            content=content,
            description=description,
            keywords=keywords,
            file_size=len(content),
            last_modified=last_modified,
            difficulty=difficulty,
            full_path_id=relative.rsplit(".", 1)[0],
            prerequisites=prerequisites,
        )

    return _make


@pytest.fixture
def sample_source() -> InMemorySource:
    return InMemorySource.from_texts(SAMPLE_CORPUS, modified_at=FIXED_MTIME)


@pytest.fixture
def sample_snapshot(sample_source: InMemorySource) -> CorpusSnapshot:
    """Snapshot of the small sample corpus, built through the real loader."""
    return CorpusLoader(sample_source, DEFAULT_CATALOG).load()
