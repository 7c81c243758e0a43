"""
HTS Knowledge Base Models

Plain dataclasses shared by the ingestion pipeline, the lookup services and
the HTTP layer:
- HtsCodeRecord: one classification code with description and policy
- Passage: a slice of document text, optionally with its embedding
- ComplianceVerdict: result of the compliance decision engine
- KnowledgeBase: immutable snapshot of everything derived from the PDF

Registry and term index are plain dicts. Their insertion order is the order
codes were extracted, and several lookups depend on it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


TermIndex = Dict[str, str]


@dataclass(frozen=True)
class HtsCodeRecord:
    """A classification code extracted from the schedule."""
    code: str
    description: str
    policy: str

    def as_dict(self) -> Dict[str, str]:
        # Code is the registry key, not repeated in the stored value
        return {"description": self.description, "policy": self.policy}

    @classmethod
    def from_dict(cls, code: str, data: Dict[str, Any]) -> "HtsCodeRecord":
        return cls(code=code, description=data["description"], policy=data["policy"])


@dataclass
class Passage:
    """A bounded slice of document text for semantic retrieval."""
    id: int
    content: str
    embedding: List[float] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "content": self.content, "embedding": self.embedding}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Passage":
        return cls(
            id=int(data["id"]),
            content=data["content"],
            embedding=[float(v) for v in data["embedding"]],
        )


@dataclass
class ComplianceVerdict:
    """Allowed/blocked/unknown decision for a single code."""
    exists: bool
    allowed: bool
    policy: Optional[str] = None
    description: Optional[str] = None
    reason: Optional[str] = None
    tier: str = "unknown"  # exact, chapter, unknown

    def as_dict(self) -> Dict[str, Any]:
        return {
            "exists": self.exists,
            "allowed": self.allowed,
            "policy": self.policy,
            "description": self.description,
            "reason": self.reason,
            "tier": self.tier,
        }


@dataclass(frozen=True)
class KnowledgeBase:
    """
    Everything derived from one source document.

    Never mutated after construction; regeneration builds a new instance
    and the service swaps the reference.
    """
    registry: Dict[str, HtsCodeRecord]
    term_index: TermIndex
    passages: List[Passage]
    extraction_method: str = "regex"

    @classmethod
    def empty(cls) -> "KnowledgeBase":
        return cls(registry={}, term_index={}, passages=[])

    def stats(self) -> Dict[str, Any]:
        return {
            "hs_codes_count": len(self.registry),
            "item_mappings_count": len(self.term_index),
            "chunks_count": len(self.passages),
            "extraction_method": self.extraction_method,
        }

    def codes_as_dict(self) -> Dict[str, Dict[str, str]]:
        return {code: record.as_dict() for code, record in self.registry.items()}
