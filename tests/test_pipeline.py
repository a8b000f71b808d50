"""Tests for engine/pipeline.py."""

from __future__ import annotations

import itertools
import threading
from typing import Iterator

import numpy as np
import pytest

from docrag.config.keys import LAST_PROCESS_TIME
from docrag.corpus import MemoryCorpus
from docrag.engine import CancellationToken, RagEngine
from docrag.errors import ModelUnavailable
from docrag.models import Document

from conftest import FakeEmbedder


class TestProcessDocument:
    """Tests for incremental indexing of one document."""

    def test_noop_while_vector_db_disabled(self, engine: RagEngine, embedder: FakeEmbedder) -> None:
        assert not engine.process_document("a.md", "alpha")
        assert embedder.calls == []
        assert engine.index.count() == 0

    def test_embeds_all_chunks_in_one_batch(self, engine: RagEngine, embedder: FakeEmbedder) -> None:
        engine.set_vector_db_enabled(True)

        assert engine.process_document("a.md", "a" * 1800)

        assert embedder.calls == [["a" * 1000, "a" * 1000]]
        entries = engine.index.get_entries("a.md")
        assert [(e.offset_start, e.offset_end) for e in entries] == [(0, 1000), (800, 1800)]
        assert engine.state.document_count == 1

    def test_embedding_failure_keeps_previous_entries(
        self, engine: RagEngine, embedder: FakeEmbedder
    ) -> None:
        engine.set_vector_db_enabled(True)
        engine.process_document("a.md", "first version")

        embedder.fail = True
        assert not engine.process_document("a.md", "second version")

        assert [e.text for e in engine.index.get_entries("a.md")] == ["first version"]

    def test_uses_current_settings(self, engine: RagEngine) -> None:
        engine.set_vector_db_enabled(True)
        engine.update_settings(chunk_size=10, chunk_overlap=0)

        engine.process_document("a.md", "x" * 25)

        assert len(engine.index.get_entries("a.md")) == 3

    def test_settings_change_does_not_rechunk_indexed_documents(self, engine: RagEngine) -> None:
        engine.set_vector_db_enabled(True)
        engine.process_document("a.md", "x" * 25)

        engine.update_settings(chunk_size=10, chunk_overlap=0)

        assert len(engine.index.get_entries("a.md")) == 1


class TestProcessAllDocuments:
    """Tests for full reindex."""

    def test_counts_success_and_failure(
        self, engine: RagEngine, corpus: MemoryCorpus, embedder: FakeEmbedder
    ) -> None:
        corpus.documents.update({"a.md": "alpha", "b.md": "broken", "c.md": "gamma"})
        embedder.fail_texts.add("broken")

        result = engine.process_all_documents()

        assert (result.total, result.success, result.failed) == (3, 2, 1)
        assert engine.index.document_paths() == ["a.md", "c.md"]
        assert not engine.state.is_processing

    def test_records_last_process_time(self, engine: RagEngine, corpus: MemoryCorpus, store) -> None:
        corpus.documents["a.md"] = "alpha"
        engine.pipeline.clock = lambda: 1234567

        engine.process_all_documents()

        assert engine.state.last_process_time == 1234567
        assert store.get(LAST_PROCESS_TIME) == 1234567
        assert engine.state.document_count == 1

    def test_unavailable_model_aborts_before_processing(
        self, engine: RagEngine, corpus: MemoryCorpus, embedder: FakeEmbedder
    ) -> None:
        corpus.documents["a.md"] = "alpha"
        embedder.available = False
        seen = []
        engine.controller.subscribe(seen.append)

        with pytest.raises(ModelUnavailable):
            engine.process_all_documents()

        assert not any(s.is_processing for s in seen)
        assert engine.state.last_process_time is None
        assert embedder.calls == []

    def test_prunes_documents_removed_from_corpus(self, engine: RagEngine, corpus: MemoryCorpus) -> None:
        corpus.documents.update({"a.md": "alpha", "b.md": "beta"})
        engine.process_all_documents()

        del corpus.documents["b.md"]
        result = engine.process_all_documents()

        assert result.pruned == ["b.md"]
        assert engine.index.document_paths() == ["a.md"]
        assert engine.state.document_count == 1

    def test_concurrent_call_is_ignored(
        self, engine: RagEngine, corpus: MemoryCorpus, embedder: FakeEmbedder
    ) -> None:
        """A second reindex during the first returns at once and changes nothing."""
        corpus.documents.update({"a.md": "alpha", "b.md": "beta"})
        embedder.gate = threading.Event()
        results = []
        first = threading.Thread(target=lambda: results.append(engine.process_all_documents()))
        first.start()
        try:
            while not engine.state.is_processing:
                threading.Event().wait(0.01)
            count_before = engine.state.document_count

            assert engine.process_all_documents() is None
            assert engine.state.document_count == count_before
            assert engine.state.is_processing
        finally:
            embedder.gate.set()
            first.join(timeout=5)

        assert len(results) == 1
        assert (results[0].success, results[0].failed) == (2, 0)

    def test_cancellation_stops_between_documents(
        self, engine: RagEngine, corpus: MemoryCorpus, embedder: FakeEmbedder
    ) -> None:
        corpus.documents.update({"a.md": "alpha", "b.md": "beta", "c.md": "gamma"})
        engine.index.upsert_document("stale.md", [])
        token = CancellationToken()
        original_embed = embedder.embed

        def embed_then_cancel(texts):
            token.cancel()
            return original_embed(texts)

        embedder.embed = embed_then_cancel

        result = engine.process_all_documents(cancel=token)

        assert result.cancelled
        assert (result.total, result.success) == (1, 1)
        assert "stale.md" in engine.index.document_paths()
        assert not engine.state.is_processing

    def test_corpus_error_is_reported_with_counts(self, engine: RagEngine) -> None:
        class FlakyCorpus(MemoryCorpus):
            def read_all_documents(self) -> Iterator[Document]:
                yield Document(path="a.md", content="alpha")
                raise OSError("disk went away")

        engine.index.upsert_document("old.md", [])
        engine.pipeline.corpus = FlakyCorpus()

        result = engine.process_all_documents()

        assert result.success == 1
        assert result.error == "disk went away"
        assert "old.md" in engine.index.document_paths()
        assert not engine.state.is_processing
        assert engine.state.last_process_time is not None

    def test_save_during_reindex_keeps_saved_version(
        self, engine: RagEngine, corpus: MemoryCorpus, embedder: FakeEmbedder
    ) -> None:
        """The reindex read x.md before the save landed, so the save wins."""
        engine.set_vector_db_enabled(True)
        corpus.documents["x.md"] = "old draft"
        ticks = itertools.count(1000)
        engine.pipeline.clock = lambda: next(ticks)
        original_embed = embedder.embed

        def embed_with_save(texts):
            if texts == ["old draft"]:
                assert engine.process_document("x.md", "new draft")
            return original_embed(texts)

        embedder.embed = embed_with_save

        result = engine.process_all_documents()

        assert result.success == 1
        assert [e.text for e in engine.index.get_entries("x.md")] == ["new draft"]

    def test_model_change_rebuilds_index(
        self, engine: RagEngine, corpus: MemoryCorpus, embedder: FakeEmbedder
    ) -> None:
        corpus.documents["a.md"] = "alpha"
        engine.process_all_documents()
        assert engine.index.dimension() == 26

        embedder.model_name = "fake-ones"
        embedder.embed_fn = lambda text: np.ones(4, dtype=np.float32)
        result = engine.process_all_documents()

        assert (result.success, result.failed) == (1, 0)
        assert engine.index.dimension() == 4
        assert engine.index.get_metadata("embedding_model") == "fake-ones"
