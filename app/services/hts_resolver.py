"""
HTS Code Resolver

Maps an item name or a free-text description to an HTS code.

Item names go through the term index, first match wins:
1. Exact: the normalized name is a term
2. Forward containment: the first term (insertion order) containing the name
3. Backward containment: the first term longer than 5 chars contained in the name
4. None

Tiers 2 and 3 depend on term index order, which is extraction order. A
schedule re-extracted in a different order can resolve the same name to a
different code.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from app.models import HtsCodeRecord, TermIndex

logger = logging.getLogger(__name__)

# Shorter terms match inside too many unrelated queries
MIN_CONTAINED_TERM_LENGTH = 6


def normalize(text: str) -> str:
    return (text or "").strip().lower()


@dataclass
class Resolution:
    """A resolved code and the tier that produced it."""
    code: str
    tier: str  # exact, contains_query, contained_in_query
    matched_term: str


def resolve_with_tier(item_name: str, term_index: TermIndex) -> Optional[Resolution]:
    """Resolve an item name, reporting which tier matched."""
    query = normalize(item_name)
    if not query:
        return None

    if query in term_index:
        return Resolution(code=term_index[query], tier="exact", matched_term=query)

    for term, code in term_index.items():
        if query in term:
            return Resolution(code=code, tier="contains_query", matched_term=term)

    for term, code in term_index.items():
        if len(term) >= MIN_CONTAINED_TERM_LENGTH and term in query:
            return Resolution(code=code, tier="contained_in_query", matched_term=term)

    return None


def resolve(item_name: str, term_index: TermIndex) -> Optional[str]:
    """
    Find the HTS code for an item name.

    Examples (term index built from "Laptop computers, notebooks"):
        resolve("Notebooks", idx)            -> exact
        resolve("laptop", idx)               -> term "laptop computers" contains it
        resolve("cheap notebooks please", idx) -> query contains "notebooks"
        resolve("I need a laptop", idx)      -> None
    """
    resolution = resolve_with_tier(item_name, term_index)
    if resolution is None:
        logger.info(f"No HTS code found for item name {item_name!r}")
        return None
    logger.debug(f"Resolved {item_name!r} -> {resolution.code} via {resolution.tier}")
    return resolution.code


@dataclass
class DescriptionMatch:
    """Result of a description lookup."""
    code: str
    partial: bool


def resolve_by_description(
    description: str, registry: Dict[str, HtsCodeRecord]
) -> Optional[DescriptionMatch]:
    """
    Find the code whose description matches free text.

    Exact case-insensitive match first; otherwise the first record (registry
    order) whose description contains the text or is contained in it.
    """
    query = normalize(description)
    if not query:
        return None

    for code, record in registry.items():
        if record.description.lower() == query:
            return DescriptionMatch(code=code, partial=False)

    for code, record in registry.items():
        candidate = record.description.lower()
        # Empty descriptions would be contained in every query
        if candidate and (query in candidate or candidate in query):
            return DescriptionMatch(code=code, partial=True)

    return None
