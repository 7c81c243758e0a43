"""
PDF Text Extraction

Converts the schedule PDF into one text blob using pdfplumber.
Pages are separated by a blank line so the chunker treats page breaks as
paragraph boundaries.
"""

import io
import logging
from pathlib import Path
from typing import Union

import pdfplumber

from app.errors import DocumentExtractionError

logger = logging.getLogger(__name__)


def extract_pdf_text(source: Union[str, Path, bytes]) -> str:
    """
    Extract text from a PDF path or raw bytes.

    Raises:
        DocumentExtractionError: if the file is missing or not a readable PDF
    """
    try:
        if isinstance(source, (bytes, bytearray)):
            handle = pdfplumber.open(io.BytesIO(source))
        else:
            path = Path(source)
            if not path.exists():
                raise DocumentExtractionError(f"PDF not found: {path}")
            handle = pdfplumber.open(path)
    except DocumentExtractionError:
        raise
    except Exception as e:
        raise DocumentExtractionError(f"Could not open PDF: {e}") from e

    pages = []
    try:
        with handle as pdf:
            for page in pdf.pages:
                text = page.extract_text() or ""
                if text.strip():
                    pages.append(text.strip())
    except Exception as e:
        raise DocumentExtractionError(f"PDF extraction failed: {e}") from e

    text = "\n\n".join(pages)
    logger.info(f"Extracted PDF text length: {len(text)} ({len(pages)} pages with text)")
    return text
