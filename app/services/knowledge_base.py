"""
Knowledge Base Service

Owns the active KnowledgeBase snapshot and the pipeline that produces it:

    PDF -> text -> codes + term index (regex, Gemini fallback)
        -> passages -> embeddings -> cache -> publish

The snapshot is never mutated. A rebuild produces a new instance which is
published with a single reference assignment, so concurrent readers see
either the old or the new snapshot. Rebuilds are serialized by a lock and
cannot be cancelled.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from app import config
from app.chat.logging_utils import PipelineRun, log_pipeline_event
from app.errors import KnowledgeBaseUnavailable
from app.ingestion import GeminiHtsExtractor, extract_hts_codes, extract_pdf_text, segment
from app.models import KnowledgeBase
from app.storage import KnowledgeBaseCache
from app.workers.embedding_pool import EmbeddingIndexBuilder

logger = logging.getLogger(__name__)


@dataclass
class BuildReport:
    """Outcome of a knowledge-base build or load."""
    source: str  # cache, build
    embedding_failures: int = 0

    def as_dict(self) -> dict:
        return {"source": self.source, "embedding_failures": self.embedding_failures}


class KnowledgeBaseService:
    """
    Application state for the compliance API.

    Usage:
        service = KnowledgeBaseService(cache, embeddings, llm, pdf_path="data/USA.pdf")
        service.load_or_build()
        kb = service.snapshot
    """

    def __init__(
        self,
        cache: KnowledgeBaseCache,
        embeddings,
        llm,
        pdf_path: str = None,
        chunk_size: int = None,
        workers: int = None,
        batch_delay: float = None,
        text_extractor: Callable[[str], str] = extract_pdf_text,
        direction: str = None,
    ):
        self.cache = cache
        self.embeddings = embeddings
        self.llm = llm
        self.pdf_path = pdf_path or config.PDF_PATH
        self.chunk_size = chunk_size or config.CHUNK_SIZE
        self.workers = workers or config.EMBEDDING_WORKERS
        self.batch_delay = config.BATCH_DELAY_SECONDS if batch_delay is None else batch_delay
        self.text_extractor = text_extractor
        self.direction = direction or config.TRADE_DIRECTION

        self._snapshot: Optional[KnowledgeBase] = None
        self._build_lock = threading.Lock()
        self.last_report: Optional[BuildReport] = None

    # ------------------------------------------------------------------
    # Snapshot access
    # ------------------------------------------------------------------

    @property
    def is_ready(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> KnowledgeBase:
        """
        The active knowledge base.

        Raises:
            KnowledgeBaseUnavailable: before the first load/build completes
        """
        kb = self._snapshot
        if kb is None:
            raise KnowledgeBaseUnavailable("Knowledge base is not loaded yet")
        return kb

    def publish(self, kb: KnowledgeBase) -> None:
        self._snapshot = kb
        log_pipeline_event("published", kb.stats())

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def build(self, trigger: str = "manual") -> KnowledgeBase:
        """
        Build a fresh knowledge base from the PDF and save it to the cache.

        Does not publish. Raises DocumentExtractionError or
        EmbeddingIndexError when the build cannot complete.
        """
        with PipelineRun(trigger=trigger) as run:
            with run.stage("extract_text"):
                text = self.text_extractor(self.pdf_path)

            with run.stage("extract_codes"):
                fallback = GeminiHtsExtractor(
                    self.llm,
                    workers=self.workers,
                    batch_delay=self.batch_delay,
                    direction=self.direction,
                )
                extraction = extract_hts_codes(text, fallback=fallback)
            run.record("extract_codes", {
                "method": extraction.method,
                "hs_codes": len(extraction.registry),
                "item_mappings": len(extraction.term_index),
            })

            with run.stage("segment"):
                passages = segment(text, max_len=self.chunk_size)

            with run.stage("embed"):
                builder = EmbeddingIndexBuilder(
                    self.embeddings.embed_document,
                    workers=self.workers,
                    batch_delay=self.batch_delay,
                )
                index = builder.build(passages)
            run.record("embed", {"chunks": len(index.passages), "failed": index.failed_count})

            kb = KnowledgeBase(
                registry=extraction.registry,
                term_index=extraction.term_index,
                passages=index.passages,
                extraction_method=extraction.method,
            )

            with run.stage("save"):
                self.cache.save(kb)

        self.last_report = BuildReport(source="build", embedding_failures=index.failed_count)
        return kb

    def load_or_build(self) -> KnowledgeBase:
        """Publish the cached knowledge base, building it if the cache is empty or corrupt."""
        with self._build_lock:
            kb = self.cache.load()
            if kb is not None:
                log_pipeline_event("cache_hit", kb.stats())
                self.last_report = BuildReport(source="cache")
            else:
                logger.info("Generating knowledge base from PDF...")
                kb = self.build(trigger="startup")
            self.publish(kb)
            return kb

    def regenerate(self) -> KnowledgeBase:
        """
        Delete cached artifacts and rebuild from the PDF.

        The previous snapshot stays active until the new one is complete;
        if the build fails it stays active and the error propagates.
        """
        with self._build_lock:
            self.cache.invalidate()
            kb = self.build(trigger="regenerate")
            self.publish(kb)
            return kb
