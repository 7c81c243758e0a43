"""
Compliance Decision Engine

Decides whether an HTS code is allowed under the loaded schedule.

Tiers (first applicable decides):
1. Exact: the code is in the registry; allowed iff its policy is the
   permitted label ("Allowed" for imports, "Free" for exports)
2. Chapter: registry codes sharing the 4-digit or 2-digit prefix; allowed
   if any of them is permitted, otherwise blocked with the policy of the
   first sharing code (registry order)
3. Unknown: not allowed; the reason comes from the text-completion model,
   or a fixed template if the model is unavailable

Tier 3 never raises. Collaborator failures degrade to the template.
"""

import logging
import re
from typing import Callable, Dict, Optional

from app import config
from app.chat.prompts import COUNTRY_RESTRICTION_PROMPT, UNKNOWN_CODE_PROMPT
from app.errors import CollaboratorUnavailable
from app.models import ComplianceVerdict, HtsCodeRecord

logger = logging.getLogger(__name__)

UNKNOWN_CODE_TEMPLATE = (
    "The HTS Code {code} was not found in the {jurisdiction} {direction} regulations. "
    "Please verify the code and try again."
)


def normalize_hts_code(code: str) -> str:
    """"8471.30.0000" -> "8471300000"."""
    return re.sub(r'[.\s-]', '', code or "")


def decide(
    code: str,
    registry: Dict[str, HtsCodeRecord],
    explain_fallback: Optional[Callable[[str], str]] = None,
    permitted_policy: str = "Allowed",
    jurisdiction: str = "USA",
    direction: str = "import",
) -> ComplianceVerdict:
    """
    Classify a code as allowed, blocked or unknown.

    Args:
        code: HTS code as digits
        registry: Code registry, in extraction order
        explain_fallback: (code) -> explanation text for unknown codes
        permitted_policy: Policy label meaning "allowed"
    """
    permitted = permitted_policy.lower()

    # Tier 1: exact registry hit
    record = registry.get(code)
    if record is not None:
        return ComplianceVerdict(
            exists=True,
            allowed=record.policy.lower() == permitted,
            policy=record.policy,
            description=record.description,
            tier="exact",
        )

    # Tier 2: chapter inference
    if len(code) >= 4:
        chapter = code[:4]
        two_digit_chapter = code[:2]
        sharing = [
            c for c in registry
            if c.startswith(chapter) or c.startswith(two_digit_chapter)
        ]

        if sharing:
            policies = [registry[c].policy for c in sharing]
            label = permitted_policy.lower()
            if any(p.lower() == permitted for p in policies):
                return ComplianceVerdict(
                    exists=True,
                    allowed=True,
                    policy=permitted_policy,
                    description=f"Falls under chapter {chapter} which has some {label} categories",
                    tier="chapter",
                )
            return ComplianceVerdict(
                exists=True,
                allowed=False,
                policy=policies[0],
                description=f"Falls under chapter {chapter} which has no {label} categories",
                tier="chapter",
            )

    # Tier 3: no structural match
    return ComplianceVerdict(
        exists=False,
        allowed=False,
        reason=_unknown_reason(code, explain_fallback, jurisdiction, direction),
        tier="unknown",
    )


def _unknown_reason(code, explain_fallback, jurisdiction, direction) -> str:
    template = UNKNOWN_CODE_TEMPLATE.format(code=code, jurisdiction=jurisdiction, direction=direction)
    if explain_fallback is None:
        return template
    try:
        reason = explain_fallback(code)
    except Exception as e:
        logger.error(f"Error generating dynamic reason for {code}: {e}")
        return template
    if not reason or not reason.strip():
        return template
    return reason.strip()


class ComplianceEngine:
    """
    Decision engine bound to a text-completion client and deployment labels.

    Usage:
        engine = ComplianceEngine(llm=GeminiClient())
        verdict = engine.decide("8471300000", kb.registry)
        if verdict.allowed and country:
            note = engine.country_restriction("8471300000", verdict.description, country)
    """

    def __init__(
        self,
        llm=None,
        permitted_policy: str = None,
        jurisdiction: str = None,
        direction: str = None,
    ):
        self.llm = llm
        self.permitted_policy = permitted_policy or config.PERMITTED_POLICY
        self.jurisdiction = jurisdiction or config.JURISDICTION_LABEL
        self.direction = direction or config.TRADE_DIRECTION

    def explain_unknown(self, code: str) -> str:
        """
        Ask the model why a code might be unrecognized.

        Raises:
            CollaboratorUnavailable: if no model is configured or the call fails
        """
        if self.llm is None:
            raise CollaboratorUnavailable("No text-completion model configured")
        prompt = UNKNOWN_CODE_PROMPT.format(
            code=code, jurisdiction=self.jurisdiction, direction=self.direction
        )
        return self.llm.generate(prompt, max_output_tokens=config.MAX_TOKENS["explanation"])

    def decide(self, code: str, registry: Dict[str, HtsCodeRecord]) -> ComplianceVerdict:
        return decide(
            code,
            registry,
            explain_fallback=self.explain_unknown,
            permitted_policy=self.permitted_policy,
            jurisdiction=self.jurisdiction,
            direction=self.direction,
        )

    def country_restriction(self, code: str, description: Optional[str], country: str) -> Optional[str]:
        """Origin-specific restrictions for an allowed code, or None if unavailable."""
        if self.llm is None or not country:
            return None
        prompt = COUNTRY_RESTRICTION_PROMPT.format(
            code=code,
            description=description or "no description",
            direction=self.direction,
            country=country,
            jurisdiction=self.jurisdiction,
        )
        try:
            return self.llm.generate(prompt, max_output_tokens=config.MAX_TOKENS["country_restriction"])
        except CollaboratorUnavailable as e:
            logger.error(f"Error checking country restrictions for {code}: {e}")
            return None
