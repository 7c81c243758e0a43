"""
Document Chunker

Splits schedule text into passages for the semantic index.
Passages are sized for:
- Vector embedding (about 1000 chars)
- LLM context windows when answering questions

Strategy:
- Split on blank-line paragraph boundaries
- Greedily pack whole paragraphs until the next one would overflow
- Paragraphs larger than the bound are packed word by word instead
"""

import re
from typing import List

from app.models import Passage


class DocumentChunker:
    """
    Chunks documents for semantic retrieval.

    No non-whitespace character is dropped or duplicated; only whitespace
    at passage boundaries (and inside oversized paragraphs) is normalized.
    A single word longer than max_chunk_size becomes its own passage.
    """

    PARAGRAPH_BREAK = re.compile(r'\n[ \t\r\f\v]*\n')

    def __init__(self, max_chunk_size: int = 1000):
        if max_chunk_size < 1:
            raise ValueError("max_chunk_size must be positive")
        self.max_chunk_size = max_chunk_size

    def _split_by_paragraphs(self, text: str) -> List[str]:
        """Split text by paragraph boundaries (blank lines)."""
        paragraphs = self.PARAGRAPH_BREAK.split(text)
        return [p.strip() for p in paragraphs if p.strip()]

    def chunk_text(self, text: str) -> List[Passage]:
        """
        Chunk text into bounded passages.

        Args:
            text: The full document text

        Returns:
            Passages in source order, ids 0..n-1, embeddings empty
        """
        if not text or not text.strip():
            return []

        pieces: List[str] = []
        current = ""

        for paragraph in self._split_by_paragraphs(text):
            candidate = f"{current}\n\n{paragraph}" if current else paragraph
            if len(candidate) <= self.max_chunk_size:
                current = candidate
                continue

            if current:
                pieces.append(current)
                current = ""

            if len(paragraph) <= self.max_chunk_size:
                current = paragraph
                continue

            # Oversized paragraph: pack words; the tail stays open for the next paragraph
            for word in paragraph.split():
                candidate = f"{current} {word}" if current else word
                if len(candidate) > self.max_chunk_size and current:
                    pieces.append(current)
                    current = word
                else:
                    current = candidate

        if current:
            pieces.append(current)

        return [Passage(id=i, content=piece) for i, piece in enumerate(pieces)]


def segment(text: str, max_len: int = 1000) -> List[Passage]:
    """
    Convenience function to chunk a document.

    Args:
        text: The text to chunk
        max_len: Target maximum passage length in characters

    Returns:
        List of Passage objects without embeddings
    """
    return DocumentChunker(max_chunk_size=max_len).chunk_text(text)
