"""
In-memory passage search.

Scores every passage against the query embedding with cosine similarity
and returns the top-k. Ties keep document order (stable sort).
"""

import math
from dataclasses import dataclass
from typing import List, Sequence

from app.chat.embeddings import Embedder
from app.models import Passage


@dataclass
class ScoredPassage:
    passage: Passage
    score: float

    def as_dict(self) -> dict:
        return {
            "id": self.passage.id,
            "score": round(float(self.score), 4),
            "content": self.passage.content,
        }


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """
    dot(a, b) / (|a| * |b|); 0.0 when either vector has zero magnitude.

    Raises:
        ValueError: if the vectors have different lengths
    """
    if len(vec_a) != len(vec_b):
        raise ValueError(f"Vector length mismatch: {len(vec_a)} != {len(vec_b)}")

    dot_product = sum(a * b for a, b in zip(vec_a, vec_b))
    norm_a = math.sqrt(sum(a * a for a in vec_a))
    norm_b = math.sqrt(sum(b * b for b in vec_b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot_product / (norm_a * norm_b)


def retrieve(
    query: str,
    passages: List[Passage],
    embed: Embedder,
    k: int = 5,
) -> List[ScoredPassage]:
    """
    Return the k passages most similar to the query.

    Args:
        query: Free-text question
        passages: Embedded passages, in document order
        embed: Query embedding function (same model as the index)
        k: Number of passages to return
    """
    if not passages or k <= 0:
        return []

    query_embedding = embed(query)
    scored = [
        ScoredPassage(passage=p, score=cosine_similarity(query_embedding, p.embedding))
        for p in passages
    ]
    scored.sort(key=lambda s: s.score, reverse=True)
    return scored[:k]
