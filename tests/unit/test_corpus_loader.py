"""Tests for corpus loading and snapshot replacement."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from cangjie_docs_mcp.adapters.filesystem_source import CorpusAccessError, FilesystemSource, InMemorySource
from cangjie_docs_mcp.config import Settings
from cangjie_docs_mcp.domain.catalog import DEFAULT_CATALOG
from cangjie_docs_mcp.domain.model import RawFile
from cangjie_docs_mcp.service_layer.corpus import CorpusLoader, CorpusRuntime


STAMP = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _raw(relative_path: str, data: bytes) -> RawFile:
    return RawFile(path=relative_path, relative_path=relative_path, content=data, size=len(data), modified_at=STAMP)


class TestCorpusLoader:
    def test_sample_corpus_builds_every_component(self, sample_snapshot) -> None:
        stats = sample_snapshot.stats

        assert stats.files_seen == 8
        assert stats.files_skipped == 0
        assert stats.documents == 8
        assert stats.derived_documents == 0
        assert stats.terms == len(sample_snapshot.index) > 0
        assert sample_snapshot.store.get("libs_std_hashmap").title == "HashMap"
        assert sample_snapshot.query_engine.store is sample_snapshot.store
        assert sample_snapshot.suggestion_engine.store is sample_snapshot.store

    def test_store_follows_sorted_crawl_order(self, sample_snapshot) -> None:
        paths = [doc.path for doc in sample_snapshot.store]

        assert paths == sorted(paths)

    def test_malformed_file_is_skipped(self) -> None:
        source = InMemorySource(
            [
                _raw("tools/good.md", "# Good\n".encode("utf-8")),
                _raw("tools/bad.md", b"# Bad\n\xff\xfe"),
            ]
        )

        snapshot = CorpusLoader(source, DEFAULT_CATALOG).load()

        assert [doc.id for doc in snapshot.store] == ["tools_good"]
        assert snapshot.stats.files_seen == 2
        assert snapshot.stats.files_skipped == 1

    def test_colliding_ids_get_numeric_suffixes(self) -> None:
        source = InMemorySource.from_texts(
            {"tools/a-b.md": "# Dash\n", "tools/a_b.md": "# Underscore\n", "tools/A_B.md": "# Upper\n"},
            modified_at=STAMP,
        )

        snapshot = CorpusLoader(source, DEFAULT_CATALOG).load()

        assert {doc.id: doc.title for doc in snapshot.store} == {
            "tools_a_b": "Upper",
            "tools_a_b_2": "Dash",
            "tools_a_b_3": "Underscore",
        }

    def test_from_settings_applies_segmentation_limits(self, tmp_path) -> None:
        target = tmp_path / "manual" / "t.md"
        target.parent.mkdir(parents=True)
        target.write_text("# T\n## A\n" + "a" * 40 + "\n## B\n" + "b" * 40 + "\n", encoding="utf-8")
        settings = Settings(docs_root_dir=tmp_path, large_document_threshold=50, max_section_size=30)

        snapshot = CorpusLoader.from_settings(settings).load()

        assert snapshot.stats.documents == 2
        assert snapshot.stats.derived_documents == 2
        assert all(doc.parent_id == "manual_t" for doc in snapshot.store)

    def test_missing_root_raises_access_error(self, tmp_path) -> None:
        loader = CorpusLoader(FilesystemSource(tmp_path / "missing"))

        with pytest.raises(CorpusAccessError):
            loader.load()


class TestCorpusRuntime:
    def test_snapshot_before_load_raises(self, sample_source) -> None:
        runtime = CorpusRuntime(lambda: CorpusLoader(sample_source))

        assert runtime.is_ready is False
        with pytest.raises(RuntimeError, match="not been loaded"):
            runtime.snapshot

    def test_load_initial_publishes_snapshot(self, sample_source) -> None:
        runtime = CorpusRuntime(lambda: CorpusLoader(sample_source))

        snapshot = runtime.load_initial()

        assert runtime.is_ready
        assert runtime.snapshot is snapshot

    def test_load_initial_propagates_access_errors(self, tmp_path) -> None:
        runtime = CorpusRuntime(lambda: CorpusLoader(FilesystemSource(tmp_path / "missing")))

        with pytest.raises(CorpusAccessError):
            runtime.load_initial()
        assert runtime.is_ready is False

    @pytest.mark.asyncio
    async def test_rebuild_replaces_snapshot(self, sample_source) -> None:
        runtime = CorpusRuntime(lambda: CorpusLoader(sample_source))
        first = runtime.load_initial()

        assert await runtime.rebuild() is True

        assert runtime.snapshot is not first
        assert len(runtime.snapshot.store) == len(first.store)
        assert runtime.last_error is None

    @pytest.mark.asyncio
    async def test_failed_rebuild_keeps_previous_snapshot(self, sample_source, tmp_path) -> None:
        sources = iter([sample_source, FilesystemSource(tmp_path / "gone")])
        runtime = CorpusRuntime(lambda: CorpusLoader(next(sources)))
        first = runtime.load_initial()

        assert await runtime.rebuild() is False

        assert runtime.snapshot is first
        assert "does not exist" in runtime.last_error
