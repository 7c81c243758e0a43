"""
Document Ingestion Module

Turns the schedule PDF into structured data:
- extract_pdf_text: PDF -> text (pdfplumber)
- extract_hts_codes: text -> code registry + term index (regex, Gemini fallback)
- DocumentChunker / segment: text -> passages for the semantic index

Usage:
    from app.ingestion import extract_pdf_text, extract_hts_codes, segment

    text = extract_pdf_text("data/USA.pdf")
    codes = extract_hts_codes(text)
    passages = segment(text, max_len=1000)
"""

from app.ingestion.chunker import DocumentChunker, segment
from app.ingestion.hts_extractor import (
    ExtractionResult,
    GeminiHtsExtractor,
    HtsExtractor,
    RegexHtsExtractor,
    extract_hts_codes,
    index_terms,
)
from app.ingestion.pdf_text import extract_pdf_text

__all__ = [
    'DocumentChunker',
    'segment',
    'ExtractionResult',
    'GeminiHtsExtractor',
    'HtsExtractor',
    'RegexHtsExtractor',
    'extract_hts_codes',
    'index_terms',
    'extract_pdf_text',
]
