"""
Tests for the knowledge base service.

These tests verify:
1. First start builds from the PDF and writes the cache
2. Later starts load the cache without touching the PDF
3. Regeneration swaps the snapshot only after a complete build
4. LLM extraction fallback when the schedule has no structured lines
"""

import json

import pytest

from app.errors import DocumentExtractionError, EmbeddingIndexError, KnowledgeBaseUnavailable
from app.services.knowledge_base import KnowledgeBaseService
from app.storage import KnowledgeBaseCache
from tests.fakes import SCHEDULE_TEXT, FakeEmbeddings, FakeLLM


def _service(storage, text_extractor, embeddings=None, llm=None):
    return KnowledgeBaseService(
        cache=KnowledgeBaseCache(storage),
        embeddings=embeddings or FakeEmbeddings(),
        llm=llm or FakeLLM(),
        pdf_path="schedule.pdf",
        chunk_size=200,
        workers=2,
        batch_delay=0,
        text_extractor=text_extractor,
    )


class CountingReader:
    """PDF reader stub that counts calls."""

    def __init__(self, text=SCHEDULE_TEXT, error=None):
        self.text = text
        self.error = error
        self.calls = 0

    def __call__(self, path):
        self.calls += 1
        if self.error:
            raise self.error
        return self.text


class TestLoadOrBuild:

    def test_snapshot_before_load(self, kb_service):
        assert kb_service.is_ready is False
        with pytest.raises(KnowledgeBaseUnavailable):
            kb_service.snapshot

    def test_first_start_builds_and_caches(self, storage):
        reader = CountingReader()
        service = _service(storage, reader)

        kb = service.load_or_build()

        assert reader.calls == 1
        assert service.is_ready
        assert service.snapshot is kb
        assert len(kb.registry) == 5
        assert kb.term_index["notebooks"] == "8471300000"
        assert kb.passages and all(p.embedding for p in kb.passages)
        assert service.last_report.source == "build"
        assert KnowledgeBaseCache(storage).load() is not None

    def test_second_start_loads_cache(self, storage):
        _service(storage, CountingReader()).load_or_build()

        reader = CountingReader()
        embeddings = FakeEmbeddings()
        service = _service(storage, reader, embeddings=embeddings)
        kb = service.load_or_build()

        assert reader.calls == 0
        assert embeddings.calls == []
        assert len(kb.registry) == 5
        assert service.last_report.source == "cache"

    def test_corrupt_cache_rebuilds(self, storage):
        _service(storage, CountingReader()).load_or_build()
        storage.write(KnowledgeBaseCache.CODES_KEY, b"{broken")

        reader = CountingReader()
        kb = _service(storage, reader).load_or_build()

        assert reader.calls == 1
        assert len(kb.registry) == 5

    def test_cached_passage_without_vector_rebuilds(self, storage):
        _service(storage, CountingReader()).load_or_build()
        payload = json.loads(storage.read(KnowledgeBaseCache.PASSAGES_KEY))
        del payload["passages"][0]["embedding"]
        storage.write(KnowledgeBaseCache.PASSAGES_KEY, json.dumps(payload).encode())

        reader = CountingReader()
        kb = _service(storage, reader).load_or_build()

        assert reader.calls == 1
        assert all(p.embedding for p in kb.passages)

    def test_unreadable_pdf_propagates(self, storage):
        reader = CountingReader(error=DocumentExtractionError("PDF not found: schedule.pdf"))
        service = _service(storage, reader)

        with pytest.raises(DocumentExtractionError):
            service.load_or_build()
        assert service.is_ready is False

    def test_embedding_failures_reported(self, storage):
        text = SCHEDULE_TEXT + "\n\n" + "FAIL " * 60
        service = _service(storage, CountingReader(text=text))

        kb = service.load_or_build()

        assert service.last_report.embedding_failures >= 1
        assert all("FAIL" not in p.content for p in kb.passages)

    def test_all_embeddings_fail(self, storage):
        service = _service(storage, CountingReader(text="FAIL 8471300000 Laptops Allowed"))

        with pytest.raises(EmbeddingIndexError):
            service.load_or_build()
        assert KnowledgeBaseCache(storage).load() is None


class TestLlmFallback:

    def test_unstructured_schedule_uses_llm(self, storage):
        text = "Laptops (code 8471.30.0000) may be imported freely."
        llm = FakeLLM(response=json.dumps([
            {"hsCode": "8471.30.0000", "description": "Laptops", "policy": "Allowed"},
        ]))

        kb = _service(storage, CountingReader(text=text), llm=llm).load_or_build()

        assert kb.extraction_method == "llm"
        assert kb.registry["8471300000"].policy == "Allowed"
        assert len(llm.prompts) == 1

    def test_no_codes_anywhere_still_indexes_passages(self, storage):
        text = "General notes about the schedule without any codes."
        kb = _service(storage, CountingReader(text=text), llm=FakeLLM(response="[]")).load_or_build()

        assert kb.registry == {}
        assert kb.term_index == {}
        assert kb.extraction_method == "none"
        assert len(kb.passages) == 1


class TestRegenerate:

    def test_regenerate_replaces_snapshot(self, storage):
        reader = CountingReader()
        service = _service(storage, reader)
        old = service.load_or_build()

        reader.text = SCHEDULE_TEXT + "\n\n9701100000 Paintings, drawings Allowed"
        new = service.regenerate()

        assert new is not old
        assert service.snapshot is new
        assert "9701100000" in new.registry
        assert "9701100000" not in old.registry
        assert "9701100000" in KnowledgeBaseCache(storage).load().registry

    def test_failed_regenerate_keeps_old_snapshot(self, storage):
        reader = CountingReader()
        service = _service(storage, reader)
        old = service.load_or_build()

        reader.error = DocumentExtractionError("PDF is unreadable")
        with pytest.raises(DocumentExtractionError):
            service.regenerate()

        assert service.snapshot is old
        # Cache was invalidated before the failed build
        assert KnowledgeBaseCache(storage).load() is None

    def test_regenerate_always_reads_pdf(self, storage):
        reader = CountingReader()
        service = _service(storage, reader)
        service.load_or_build()
        service.regenerate()

        assert reader.calls == 2
        assert service.last_report.source == "build"
