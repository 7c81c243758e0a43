"""
Domain Errors

Failures raised inside the knowledge-base pipeline and the lookup services.
Most of them are absorbed at a boundary and turned into a degraded result:

- NoStructuralMatches: regex extraction found nothing, LLM fallback takes over
- CollaboratorUnavailable: Gemini call failed, callers substitute template text
- EmbeddingIndexError: every passage failed to embed, the build is aborted
- DocumentExtractionError: the PDF could not be read, the build is aborted
- MissingRequiredField: malformed request, surfaced as HTTP 400
- KnowledgeBaseUnavailable: no snapshot loaded yet, surfaced as HTTP 503
"""


class ComplianceServiceError(Exception):
    """Base class for all service errors."""


class NoStructuralMatches(ComplianceServiceError):
    """The deterministic parser found no code/description/policy triples."""


class CollaboratorUnavailable(ComplianceServiceError):
    """An external model call (generation or embedding) failed."""


class EmbeddingIndexError(ComplianceServiceError):
    """No passage could be embedded."""

    def __init__(self, message: str, failures=None):
        super().__init__(message)
        self.failures = failures or []


class DocumentExtractionError(ComplianceServiceError):
    """The source document could not be converted to text."""


class MissingRequiredField(ComplianceServiceError):
    """The caller omitted every field that identifies the query."""

    code = "MISSING_INPUT"


class KnowledgeBaseUnavailable(ComplianceServiceError):
    """No knowledge base snapshot has been published yet."""

    code = "NOT_READY"
