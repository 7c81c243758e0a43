"""
Application Services

Business logic services used across the application.

Note: Imports are lazy to avoid circular import issues.
Use explicit imports from submodules when needed:
    from app.services.compliance_engine import ComplianceEngine, decide
    from app.services.hts_resolver import resolve, resolve_by_description
    from app.services.knowledge_base import KnowledgeBaseService
"""


def __getattr__(name):
    """Lazy import to avoid circular imports."""
    if name in ('ComplianceEngine', 'decide', 'normalize_hts_code'):
        from app.services import compliance_engine
        return getattr(compliance_engine, name)

    if name in ('resolve', 'resolve_with_tier', 'resolve_by_description'):
        from app.services import hts_resolver
        return getattr(hts_resolver, name)

    if name in ('KnowledgeBaseService', 'BuildReport'):
        from app.services import knowledge_base
        return getattr(knowledge_base, name)

    if name == 'GeminiClient':
        from app.services.gemini_client import GeminiClient
        return GeminiClient

    raise AttributeError(f"module 'app.services' has no attribute '{name}'")
