"""
Knowledge Base Models

- HtsCodeRecord: code, description and trade policy
- Passage: document text slice with embedding
- ComplianceVerdict: allowed/blocked/unknown decision
- KnowledgeBase: immutable snapshot published by the service
"""

from app.models.hts import (
    ComplianceVerdict,
    HtsCodeRecord,
    KnowledgeBase,
    Passage,
    TermIndex,
)

__all__ = [
    "ComplianceVerdict",
    "HtsCodeRecord",
    "KnowledgeBase",
    "Passage",
    "TermIndex",
]
