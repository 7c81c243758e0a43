"""
Prompts for extraction, compliance explanations and question answering.

Exports all prompt templates for easy importing.
"""

from .compliance import (
    HTS_EXTRACTION_PROMPT,
    UNKNOWN_CODE_PROMPT,
    COUNTRY_RESTRICTION_PROMPT,
    DOCUMENT_QA_PROMPT,
)

__all__ = [
    "HTS_EXTRACTION_PROMPT",
    "UNKNOWN_CODE_PROMPT",
    "COUNTRY_RESTRICTION_PROMPT",
    "DOCUMENT_QA_PROMPT",
]
