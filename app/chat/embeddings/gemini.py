"""
Gemini Embeddings

Embedding collaborator for the semantic index. Documents and queries are
embedded with different task types but the same model, so vectors are
comparable.
"""

import logging
from typing import Callable, List, Optional

from app import config
from app.errors import CollaboratorUnavailable

logger = logging.getLogger(__name__)

# (text) -> vector
Embedder = Callable[[str], List[float]]


class GeminiEmbeddings:
    """Embeds text through the Gemini embedding model."""

    TASK_TYPES = {
        "document": "RETRIEVAL_DOCUMENT",
        "query": "RETRIEVAL_QUERY",
    }

    def __init__(self, model: str = None, api_key: Optional[str] = None):
        self.model = model or config.EMBEDDING_MODEL
        self.api_key = api_key or config.GEMINI_API_KEY
        self._client = None

    @property
    def client(self):
        """Lazy initialization of Gemini client."""
        if self._client is None:
            if not self.api_key:
                raise CollaboratorUnavailable("GEMINI_API_KEY environment variable is not set")
            from google import genai
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def embed(self, text: str, role: str = "document") -> List[float]:
        from google.genai import types

        try:
            result = self.client.models.embed_content(
                model=self.model,
                contents=text,
                config=types.EmbedContentConfig(task_type=self.TASK_TYPES[role]),
            )
        except CollaboratorUnavailable:
            raise
        except Exception as e:
            raise CollaboratorUnavailable(f"Embedding failed ({self.model}): {e}") from e

        if not result.embeddings:
            raise CollaboratorUnavailable(f"No embedding returned by {self.model}")
        return list(result.embeddings[0].values)

    def embed_document(self, text: str) -> List[float]:
        return self.embed(text, role="document")

    def embed_query(self, text: str) -> List[float]:
        return self.embed(text, role="query")
