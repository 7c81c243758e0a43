"""
Service Configuration

Environment variables and model settings for the HTS compliance service.
Values are read once at import time; `.env` is loaded first.
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Gemini API Configuration
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY")

# Model Selection
# - generation: explanations, fallback extraction, question answering
# - embedding: passage and query vectors (must be the same on both sides)
GENERATION_MODEL = os.environ.get("GENERATION_MODEL", "gemini-2.5-flash")
EMBEDDING_MODEL = os.environ.get("EMBEDDING_MODEL", "gemini-embedding-001")

# Source document
PDF_PATH = os.environ.get("PDF_PATH", "data/USA.pdf")
JURISDICTION_LABEL = os.environ.get("JURISDICTION_LABEL", "USA")

# Storage (see app.storage.get_storage)
STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "local")
STORAGE_PATH = os.environ.get("STORAGE_PATH", "storage/knowledge_base")

# Segmentation
CHUNK_SIZE = int(os.environ.get("CHUNK_SIZE", 1000))
AI_EXTRACTION_WINDOW = int(os.environ.get("AI_EXTRACTION_WINDOW", 10000))

# Worker pool / rate limiting
# Default pool size leaves one core for the request thread
EMBEDDING_WORKERS = int(os.environ.get("EMBEDDING_WORKERS", max(1, (os.cpu_count() or 2) - 1)))
BATCH_DELAY_SECONDS = float(os.environ.get("BATCH_DELAY_SECONDS", 0.5))

# Compliance decision
# "Allowed" for import schedules, "Free" for export schedules
PERMITTED_POLICY = os.environ.get("PERMITTED_POLICY", "Allowed")
# "import" or "export"; used in prompts, templates and response text
TRADE_DIRECTION = os.environ.get("TRADE_DIRECTION", "import")

# Retrieval
RETRIEVAL_TOP_K = int(os.environ.get("RETRIEVAL_TOP_K", 5))

# Output token budgets for the text-completion model
MAX_TOKENS = {
    "explanation": 100,
    "country_restriction": 150,
    "extraction": 4096,
    "answer": 1024,
}


class Config:
    """Flask config object mirroring the module constants."""

    GEMINI_API_KEY = GEMINI_API_KEY
    GENERATION_MODEL = GENERATION_MODEL
    EMBEDDING_MODEL = EMBEDDING_MODEL
    PDF_PATH = PDF_PATH
    JURISDICTION_LABEL = JURISDICTION_LABEL
    STORAGE_BACKEND = STORAGE_BACKEND
    STORAGE_PATH = STORAGE_PATH
    CHUNK_SIZE = CHUNK_SIZE
    AI_EXTRACTION_WINDOW = AI_EXTRACTION_WINDOW
    EMBEDDING_WORKERS = EMBEDDING_WORKERS
    BATCH_DELAY_SECONDS = BATCH_DELAY_SECONDS
    PERMITTED_POLICY = PERMITTED_POLICY
    TRADE_DIRECTION = TRADE_DIRECTION
    RETRIEVAL_TOP_K = RETRIEVAL_TOP_K
    # Build the knowledge base when the app starts (disabled in tests)
    LOAD_KNOWLEDGE_BASE_ON_START = os.environ.get("LOAD_KNOWLEDGE_BASE_ON_START", "true").lower() == "true"
