"""
Knowledge Base Cache

Persists the derived knowledge base so the PDF is only parsed and embedded
once. Two JSON artifacts:

    hts_codes.json  {"hs_codes": {code: {description, policy}},
                     "term_index": {term: code},
                     "extraction_method": "regex"}
    passages.json   {"passages": [{id, content, embedding}, ...]}

A missing or unreadable artifact is reported as a cache miss, never as an
error; the caller rebuilds from the PDF.
"""

import json
import logging
from typing import Any, Dict, Optional

from app.models import HtsCodeRecord, KnowledgeBase, Passage
from app.storage.base import StorageBackend

logger = logging.getLogger(__name__)


class PersistedStateCorrupt(ValueError):
    """A cached artifact exists but does not have the expected shape."""


class KnowledgeBaseCache:
    """
    Loads and saves KnowledgeBase snapshots through a StorageBackend.

    Usage:
        cache = KnowledgeBaseCache(get_storage())
        kb = cache.load()
        if kb is None:
            kb = build_from_pdf()
            cache.save(kb)
    """

    CODES_KEY = "hts_codes.json"
    PASSAGES_KEY = "passages.json"

    def __init__(self, storage: StorageBackend):
        self.storage = storage

    def _read_json(self, key: str) -> Dict[str, Any]:
        data = json.loads(self.storage.read(key).decode("utf-8"))
        if not isinstance(data, dict):
            raise PersistedStateCorrupt(f"{key} is not a JSON object")
        return data

    def _parse_codes(self, data: Dict[str, Any]):
        hs_codes = data["hs_codes"]
        term_index = data["term_index"]
        if not isinstance(hs_codes, dict) or not isinstance(term_index, dict):
            raise PersistedStateCorrupt("hs_codes and term_index must be objects")

        registry = {}
        for code, value in hs_codes.items():
            if not isinstance(value, dict):
                raise PersistedStateCorrupt(f"Invalid record for {code}")
            registry[str(code)] = HtsCodeRecord.from_dict(str(code), value)

        for term, code in term_index.items():
            if not isinstance(code, str):
                raise PersistedStateCorrupt(f"Invalid code for term {term!r}")

        return registry, dict(term_index), data.get("extraction_method", "regex")

    def _parse_passages(self, data: Dict[str, Any]):
        passages = data["passages"]
        if not isinstance(passages, list):
            raise PersistedStateCorrupt("passages must be a list")
        parsed = [Passage.from_dict(p) for p in passages]

        # Every passage must carry a vector, all of one dimension
        dimensions = {len(p.embedding) for p in parsed}
        if 0 in dimensions:
            raise PersistedStateCorrupt("passage without an embedding")
        if len(dimensions) > 1:
            raise PersistedStateCorrupt(f"mixed embedding dimensions: {sorted(dimensions)}")

        return sorted(parsed, key=lambda p: p.id)

    def load(self) -> Optional[KnowledgeBase]:
        """Return the cached snapshot, or None if absent or corrupt."""
        if not (self.storage.exists(self.CODES_KEY) and self.storage.exists(self.PASSAGES_KEY)):
            logger.info("Knowledge base cache not found")
            return None

        try:
            registry, term_index, method = self._parse_codes(self._read_json(self.CODES_KEY))
            passages = self._parse_passages(self._read_json(self.PASSAGES_KEY))
        except (OSError, UnicodeDecodeError, ValueError, KeyError, TypeError) as e:
            # json.JSONDecodeError and PersistedStateCorrupt are ValueErrors
            logger.warning(f"Knowledge base cache is unreadable, regenerating: {e}")
            return None

        logger.info(
            f"Loaded cached knowledge base: {len(registry)} HTS codes, "
            f"{len(passages)} chunks"
        )
        return KnowledgeBase(
            registry=registry,
            term_index=term_index,
            passages=passages,
            extraction_method=method,
        )

    def save(self, kb: KnowledgeBase) -> None:
        codes_payload = {
            "hs_codes": kb.codes_as_dict(),
            "term_index": kb.term_index,
            "extraction_method": kb.extraction_method,
        }
        passages_payload = {"passages": [p.as_dict() for p in kb.passages]}

        self.storage.write(self.CODES_KEY, json.dumps(codes_payload, indent=2).encode("utf-8"))
        self.storage.write(self.PASSAGES_KEY, json.dumps(passages_payload).encode("utf-8"))
        logger.info(f"Knowledge base saved to {self.storage.location(self.CODES_KEY)}")

    def invalidate(self) -> None:
        """Delete all cached artifacts. Missing files are fine."""
        for key in (self.CODES_KEY, self.PASSAGES_KEY):
            if self.storage.remove(key):
                logger.info(f"Deleted {self.storage.location(key)}")
