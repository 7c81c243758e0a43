"""
HTS Compliance API Views.

Endpoints:
1. Check import compliance by HTS code or item name
2. Resolve an item name or a description to an HTS code
3. List all extracted HTS codes
4. Regenerate the knowledge base from the PDF
5. Ask a free-text question about the schedule

Request bodies accept snake_case keys and the legacy camelCase keys
(hsCode, itemName, countryOfOrigin).
"""

import logging

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from app.chat.document_qa import answer_question
from app.errors import KnowledgeBaseUnavailable, MissingRequiredField
from app.services.compliance_engine import normalize_hts_code
from app.services.hts_resolver import resolve_by_description, resolve_with_tier

logger = logging.getLogger(__name__)

bp = Blueprint("compliance", __name__, url_prefix="/api")


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _service():
    return current_app.extensions["kb_service"]


def _engine():
    return current_app.extensions["compliance_engine"]


def _body() -> dict:
    """JSON object body of the request. Anything else is missing input."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise MissingRequiredField("Request body must be a JSON object")
    return data


def _field(data: dict, *names: str) -> str:
    """First non-empty value among the given keys, stripped."""
    for name in names:
        value = data.get(name)
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


def _error(code: str, message: str, status: int):
    return jsonify({"success": False, "error": {"code": code, "message": message}}), status


@bp.errorhandler(MissingRequiredField)
def handle_missing_field(e):
    return _error(MissingRequiredField.code, str(e), 400)


@bp.errorhandler(KnowledgeBaseUnavailable)
def handle_not_ready(e):
    return _error(KnowledgeBaseUnavailable.code, "HTS Codes data not found. Please regenerate embeddings.", 503)


@bp.errorhandler(Exception)
def handle_unexpected(e):
    if isinstance(e, HTTPException):
        return e
    logger.exception(f"Unhandled error on {request.path}")
    return _error("INTERNAL_ERROR", "An internal error occurred", 500)


# ─────────────────────────────────────────────────────────────────────────────
# Compliance
# ─────────────────────────────────────────────────────────────────────────────

@bp.route("/check-import-compliance", methods=["POST"])
def check_import_compliance():
    """
    Check whether an item may be imported.

    Body:
        hts_code: HTS code (digits, dots allowed)
        item_name: Used to look up the code when hts_code is missing
        country_of_origin: Optional, adds an origin-specific note for allowed codes
    """
    data = _body()
    hts_code = _field(data, "hts_code", "hsCode")
    item_name = _field(data, "item_name", "itemName")
    country = _field(data, "country_of_origin", "countryOfOrigin")

    code_to_check = normalize_hts_code(hts_code)
    if not code_to_check and not item_name:
        raise MissingRequiredField("Missing required fields. Please provide either hts_code or item_name")

    kb = _service().snapshot
    engine = _engine()

    if not code_to_check:
        resolution = resolve_with_tier(item_name, kb.term_index)
        if resolution is None:
            return jsonify({
                "success": True,
                "allowed": False,
                "reason": (
                    f"Could not find an HTS code matching item name: {item_name}. "
                    "Please provide a valid HTS code."
                ),
                "queried_item_name": item_name,
            })
        code_to_check = resolution.code

    verdict = engine.decide(code_to_check, kb.registry)

    if not verdict.exists:
        return jsonify({
            "success": True,
            "allowed": False,
            "exists": False,
            "reason": verdict.reason,
            "queried_hs_code": code_to_check,
            "queried_item_name": item_name or None,
        })

    if verdict.allowed:
        country_restriction = (
            engine.country_restriction(code_to_check, verdict.description, country)
            if country else None
        )
        return jsonify({
            "success": True,
            "allowed": True,
            "exists": True,
            "hs_code": code_to_check,
            "policy": verdict.policy,
            "description": verdict.description,
            "match_tier": verdict.tier,
            "country_restriction": country_restriction,
            "conditions": f"Standard {engine.direction} conditions apply",
            "queried_item_name": item_name or None,
        })

    return jsonify({
        "success": True,
        "allowed": False,
        "exists": True,
        "hs_code": code_to_check,
        "policy": verdict.policy,
        "description": verdict.description,
        "match_tier": verdict.tier,
        "reason": (
            f"{engine.direction.capitalize()} not allowed for HTS Code {code_to_check} "
            f"with policy {verdict.policy}"
        ),
        "queried_item_name": item_name or None,
    })


# ─────────────────────────────────────────────────────────────────────────────
# Lookup
# ─────────────────────────────────────────────────────────────────────────────

@bp.route("/find-hs-code", methods=["POST"])
def find_hs_code():
    """Resolve an item name to an HTS code."""
    data = _body()
    item_name = _field(data, "item_name", "itemName")
    if not item_name:
        raise MissingRequiredField("Missing required field: item_name")

    kb = _service().snapshot
    resolution = resolve_with_tier(item_name, kb.term_index)
    record = kb.registry.get(resolution.code) if resolution else None

    if record is None:
        return jsonify({
            "success": True,
            "found": False,
            "item_name": item_name,
            "message": "No matching HTS code found for this item name",
        })

    return jsonify({
        "success": True,
        "found": True,
        "item_name": item_name,
        "hs_code": record.code,
        "description": record.description,
        "policy": record.policy,
        "match_tier": resolution.tier,
        "matched_term": resolution.matched_term,
    })


@bp.route("/find-by-description", methods=["POST"])
def find_by_description():
    """Resolve a free-text description to an HTS code (exact, then partial)."""
    data = _body()
    description = _field(data, "description")
    if not description:
        raise MissingRequiredField("Missing required field: description")

    kb = _service().snapshot
    match = resolve_by_description(description, kb.registry)

    if match is None:
        return jsonify({
            "success": True,
            "found": False,
            "message": "No matching HS code found for this description",
        })

    response = {"success": True, "found": True, "hs_code": match.code, "partial": match.partial}
    if match.partial:
        response["note"] = "Found via partial match"
    return jsonify(response)


@bp.route("/hs-codes", methods=["GET"])
def list_hs_codes():
    """List every extracted HTS code with description and policy."""
    kb = _service().snapshot
    return jsonify({
        "success": True,
        "count": len(kb.registry),
        "hs_codes": kb.codes_as_dict(),
    })


# ─────────────────────────────────────────────────────────────────────────────
# Knowledge base
# ─────────────────────────────────────────────────────────────────────────────

@bp.route("/regenerate-embeddings", methods=["POST"])
def regenerate_embeddings():
    """Delete cached artifacts and rebuild codes, term index and embeddings."""
    service = _service()
    try:
        kb = service.regenerate()
    except Exception:
        logger.exception("Error regenerating knowledge base")
        return _error("REGENERATION_FAILED", "Failed to regenerate embeddings", 500)

    report = service.last_report
    return jsonify({
        "success": True,
        "message": "Embeddings and item mapping regenerated successfully",
        "chunks_count": len(kb.passages),
        "hs_codes_count": len(kb.registry),
        "item_mappings_count": len(kb.term_index),
        "embedding_failures": report.embedding_failures if report else 0,
    })


@bp.route("/ask", methods=["POST"])
def ask():
    """Answer a free-text question from the most relevant schedule passages."""
    data = _body()
    question = _field(data, "question", "query")
    if not question:
        raise MissingRequiredField("Missing required field: question")

    top_k = data.get("top_k")
    if isinstance(top_k, int) and not isinstance(top_k, bool) and top_k > 0:
        k = top_k
    else:
        k = current_app.config["RETRIEVAL_TOP_K"]

    service = _service()
    result = answer_question(
        question,
        service.snapshot,
        service.embeddings.embed_query,
        service.llm,
        k=k,
        jurisdiction=_engine().jurisdiction,
    )
    return jsonify({"success": True, **result.model_dump()})
