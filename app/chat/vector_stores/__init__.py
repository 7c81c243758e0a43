from .passage_search import ScoredPassage, cosine_similarity, retrieve

__all__ = ["ScoredPassage", "cosine_similarity", "retrieve"]
