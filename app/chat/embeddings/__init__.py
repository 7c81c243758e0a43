from .gemini import GeminiEmbeddings, Embedder

__all__ = ["GeminiEmbeddings", "Embedder"]
