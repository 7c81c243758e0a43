"""
Flask application factory.

The factory is the composition root: it wires storage, the Gemini
collaborators, the knowledge-base service and the decision engine, and
stores them in app.extensions for the views.
"""

import logging

from flask import Flask, jsonify

from app.chat.embeddings import GeminiEmbeddings
from app.config import Config
from app.services.compliance_engine import ComplianceEngine
from app.services.gemini_client import GeminiClient
from app.services.knowledge_base import KnowledgeBaseService
from app.storage import KnowledgeBaseCache, LocalStorage
from app.web.views import compliance_views

logger = logging.getLogger(__name__)


def create_app(config_object=Config, kb_service: KnowledgeBaseService = None, llm=None):
    """
    Create the Flask app.

    Args:
        config_object: Object passed to app.config.from_object
        kb_service: Prebuilt service (tests); built from config when omitted
        llm: Text-completion client; GeminiClient when omitted
    """
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if llm is None:
        llm = kb_service.llm if kb_service is not None else GeminiClient(
            model=app.config["GENERATION_MODEL"],
            api_key=app.config["GEMINI_API_KEY"],
        )

    if kb_service is None:
        kb_service = KnowledgeBaseService(
            cache=KnowledgeBaseCache(LocalStorage(app.config["STORAGE_PATH"])),
            embeddings=GeminiEmbeddings(
                model=app.config["EMBEDDING_MODEL"],
                api_key=app.config["GEMINI_API_KEY"],
            ),
            llm=llm,
            pdf_path=app.config["PDF_PATH"],
            chunk_size=app.config["CHUNK_SIZE"],
            workers=app.config["EMBEDDING_WORKERS"],
            batch_delay=app.config["BATCH_DELAY_SECONDS"],
            direction=app.config["TRADE_DIRECTION"],
        )

    app.extensions["kb_service"] = kb_service
    app.extensions["compliance_engine"] = ComplianceEngine(
        llm=llm,
        permitted_policy=app.config["PERMITTED_POLICY"],
        jurisdiction=app.config["JURISDICTION_LABEL"],
        direction=app.config["TRADE_DIRECTION"],
    )

    app.register_blueprint(compliance_views.bp)

    @app.route("/health", methods=["GET"])
    def health():
        service = app.extensions["kb_service"]
        if not service.is_ready:
            return jsonify({"status": "loading"}), 503
        return jsonify({"status": "ok", **service.snapshot.stats()})

    if app.config.get("LOAD_KNOWLEDGE_BASE_ON_START") and not kb_service.is_ready:
        kb = kb_service.load_or_build()
        logger.info(
            f"{app.config['JURISDICTION_LABEL']} compliance API ready: "
            f"{len(kb.passages)} embedded chunks, {len(kb.registry)} HTS codes, "
            f"{len(kb.term_index)} item to HTS code mappings"
        )

    return app
