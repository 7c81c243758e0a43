"""
Pytest fixtures for the HTS compliance service tests.

Provides:
- Sample schedule text and a knowledge base extracted from it
- Fake collaborators for Gemini (text completion and embeddings)
- Flask app and test client fixtures with a preloaded knowledge base
"""

import os
import sys
import pytest

# Set testing environment before importing app
os.environ["LOAD_KNOWLEDGE_BASE_ON_START"] = "false"
os.environ.pop("GEMINI_API_KEY", None)

# Add the project directory to the Python path
project_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_dir not in sys.path:
    sys.path.insert(0, project_dir)

from tests.fakes import SCHEDULE_TEXT, FakeEmbeddings, FakeLLM


# ============================================================================
# Domain Fixtures
# ============================================================================

@pytest.fixture
def schedule_text():
    return SCHEDULE_TEXT


@pytest.fixture
def fake_embeddings():
    return FakeEmbeddings()


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def extraction(schedule_text):
    from app.ingestion.hts_extractor import RegexHtsExtractor
    return RegexHtsExtractor().extract(schedule_text)


@pytest.fixture
def knowledge_base(extraction, schedule_text, fake_embeddings):
    from app.ingestion.chunker import segment
    from app.models import KnowledgeBase, Passage

    passages = [
        Passage(id=p.id, content=p.content, embedding=fake_embeddings.embed_document(p.content))
        for p in segment(schedule_text, max_len=200)
    ]
    return KnowledgeBase(
        registry=extraction.registry,
        term_index=extraction.term_index,
        passages=passages,
    )


@pytest.fixture
def storage(tmp_path):
    from app.storage import LocalStorage
    return LocalStorage(str(tmp_path / "kb"))


@pytest.fixture
def kb_service(storage, fake_embeddings, fake_llm, schedule_text):
    """Service with a stubbed PDF reader and no batch pauses."""
    from app.services.knowledge_base import KnowledgeBaseService
    from app.storage import KnowledgeBaseCache

    return KnowledgeBaseService(
        cache=KnowledgeBaseCache(storage),
        embeddings=fake_embeddings,
        llm=fake_llm,
        pdf_path="schedule.pdf",
        chunk_size=200,
        workers=2,
        batch_delay=0,
        text_extractor=lambda path: schedule_text,
    )


# ============================================================================
# Flask App Fixtures
# ============================================================================

class TestConfig:
    TESTING = True
    GEMINI_API_KEY = None
    GENERATION_MODEL = "test-model"
    EMBEDDING_MODEL = "test-embedding"
    PDF_PATH = "schedule.pdf"
    JURISDICTION_LABEL = "USA"
    STORAGE_PATH = "unused"
    CHUNK_SIZE = 200
    EMBEDDING_WORKERS = 2
    BATCH_DELAY_SECONDS = 0
    PERMITTED_POLICY = "Allowed"
    TRADE_DIRECTION = "import"
    RETRIEVAL_TOP_K = 3
    LOAD_KNOWLEDGE_BASE_ON_START = False


@pytest.fixture
def app(kb_service, knowledge_base, fake_llm):
    """Flask app with the sample knowledge base already published."""
    from app.web import create_app

    kb_service.publish(knowledge_base)
    app = create_app(TestConfig, kb_service=kb_service, llm=fake_llm)
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def empty_app(kb_service, fake_llm):
    """Flask app whose knowledge base has not been loaded."""
    from app.web import create_app
    return create_app(TestConfig, kb_service=kb_service, llm=fake_llm)


class ExportTestConfig(TestConfig):
    TRADE_DIRECTION = "export"
    PERMITTED_POLICY = "Free"


@pytest.fixture
def export_client(kb_service, knowledge_base, fake_llm):
    """Test client for an export schedule deployment."""
    from app.web import create_app

    kb_service.publish(knowledge_base)
    return create_app(ExportTestConfig, kb_service=kb_service, llm=fake_llm).test_client()
