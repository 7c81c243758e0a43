"""
Embedding Index Builder

Populates Passage.embedding for a list of passages using the batched worker
pool. Individual failures are recorded and the passage is dropped from the
index; the build only fails when nothing could be embedded.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from app import config
from app.chat.embeddings import Embedder
from app.errors import EmbeddingIndexError
from app.models import Passage
from app.workers.batching import run_in_batches

logger = logging.getLogger(__name__)


@dataclass
class EmbeddingFailure:
    """A passage whose embedding call failed."""
    passage_id: int
    error: str


@dataclass
class IndexBuildResult:
    """Embedded passages (sorted by id) plus per-passage failures."""
    passages: List[Passage]
    failures: List[EmbeddingFailure] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failures)


class EmbeddingIndexBuilder:
    """
    Builds the semantic index over document passages.

    Usage:
        builder = EmbeddingIndexBuilder(embeddings.embed_document, workers=4)
        result = builder.build(passages)
        if result.failed_count:
            print(f"{result.failed_count} passages skipped")
    """

    def __init__(
        self,
        embed: Embedder,
        workers: int = None,
        batch_delay: float = None,
        sleep=None,
    ):
        self.embed = embed
        self.workers = workers or config.EMBEDDING_WORKERS
        self.batch_delay = config.BATCH_DELAY_SECONDS if batch_delay is None else batch_delay
        self._sleep = sleep

    def _embed_passage(self, passage: Passage) -> Passage:
        vector = self.embed(passage.content)
        if not vector:
            raise ValueError("empty embedding vector")
        return Passage(id=passage.id, content=passage.content, embedding=list(vector))

    def build(self, passages: List[Passage]) -> IndexBuildResult:
        """
        Embed every passage.

        Raises:
            EmbeddingIndexError: if passages were given and all of them failed
        """
        if not passages:
            return IndexBuildResult(passages=[])

        logger.info(
            f"Generating embeddings for {len(passages)} chunks using "
            f"{min(self.workers, len(passages))} workers..."
        )

        kwargs = {"sleep": self._sleep} if self._sleep else {}
        outcomes = run_in_batches(
            passages,
            self._embed_passage,
            batch_size=self.workers,
            delay=self.batch_delay,
            label="embedding",
            **kwargs,
        )

        embedded = sorted((o.result for o in outcomes if o.ok), key=lambda p: p.id)
        failures = sorted(
            (EmbeddingFailure(passage_id=o.item.id, error=o.error) for o in outcomes if not o.ok),
            key=lambda f: f.passage_id,
        )

        if failures:
            logger.warning(f"Failed to generate embeddings for {len(failures)} of {len(passages)} chunks")
        if not embedded:
            raise EmbeddingIndexError(
                f"All {len(passages)} chunks failed to embed", failures=failures
            )

        return IndexBuildResult(passages=embedded, failures=failures)
