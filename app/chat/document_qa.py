"""
Document question answering.

Retrieve the passages nearest to the question, then ask Gemini to answer
from those passages only. Model failures never propagate: the caller gets
an answer with answered=False and whatever passages were found.
"""

import logging
import time
from typing import List

from pydantic import BaseModel, Field

from app import config
from app.chat.embeddings import Embedder
from app.chat.logging_utils import log_retrieval
from app.chat.prompts import DOCUMENT_QA_PROMPT
from app.chat.vector_stores import retrieve
from app.errors import CollaboratorUnavailable
from app.models import KnowledgeBase

logger = logging.getLogger(__name__)

NO_CONTEXT_ANSWER = "No indexed passages are available to answer this question."
SEARCH_UNAVAILABLE_ANSWER = "The document search is temporarily unavailable. Please try again later."
MODEL_UNAVAILABLE_ANSWER = (
    "An answer could not be generated right now. The most relevant passages from the schedule are listed in sources."
)


class SourcePassage(BaseModel):
    """A passage used as context for the answer."""
    id: int = Field(description="Passage position in the document")
    score: float = Field(description="Cosine similarity to the question")
    content: str = Field(description="Passage text")


class DocumentAnswer(BaseModel):
    """Answer to a free-text question about the schedule."""
    question: str
    answer: str
    answered: bool = Field(default=True, description="False when a fallback message was returned")
    sources: List[SourcePassage] = Field(default=[])


def answer_question(
    question: str,
    kb: KnowledgeBase,
    embed_query: Embedder,
    llm,
    k: int = None,
    jurisdiction: str = None,
) -> DocumentAnswer:
    """Answer a question from the top-k passages of the knowledge base."""
    k = k or config.RETRIEVAL_TOP_K
    jurisdiction = jurisdiction or config.JURISDICTION_LABEL

    if not kb.passages:
        return DocumentAnswer(question=question, answer=NO_CONTEXT_ANSWER, answered=False)

    start = time.time()
    try:
        hits = retrieve(question, kb.passages, embed_query, k=k)
    except CollaboratorUnavailable as e:
        logger.error(f"Error finding relevant content: {e}")
        return DocumentAnswer(question=question, answer=SEARCH_UNAVAILABLE_ANSWER, answered=False)

    log_retrieval(
        question,
        [h.passage.id for h in hits],
        [h.score for h in hits],
        (time.time() - start) * 1000,
    )

    sources = [SourcePassage(**h.as_dict()) for h in hits]
    context = "\n\n".join(h.passage.content for h in hits)
    prompt = DOCUMENT_QA_PROMPT.format(jurisdiction=jurisdiction, context=context, question=question)

    try:
        answer = llm.generate(prompt, max_output_tokens=config.MAX_TOKENS["answer"])
    except CollaboratorUnavailable as e:
        logger.error(f"Error generating answer: {e}")
        return DocumentAnswer(
            question=question, answer=MODEL_UNAVAILABLE_ANSWER, answered=False, sources=sources
        )

    return DocumentAnswer(question=question, answer=answer, sources=sources)
