"""
Knowledge Base Workers

Parallel stages of the knowledge-base build:
1. run_in_batches: bounded ThreadPoolExecutor with inter-batch throttling
2. EmbeddingIndexBuilder: embeds passages, dropping and counting failures
"""

from app.workers.batching import BatchOutcome, run_in_batches
from app.workers.embedding_pool import EmbeddingFailure, EmbeddingIndexBuilder, IndexBuildResult

__all__ = [
    'BatchOutcome',
    'run_in_batches',
    'EmbeddingFailure',
    'EmbeddingIndexBuilder',
    'IndexBuildResult',
]
