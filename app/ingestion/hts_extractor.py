"""
HTS Code Extractor

Turns schedule text into a code registry and a term index.

Two strategies behind the same HtsExtractor interface:
- RegexHtsExtractor: deterministic "code description policy" line parser
- GeminiHtsExtractor: asks Gemini to extract codes window by window; only
  used when the regex parser finds nothing (NoStructuralMatches)

Both apply last-write-wins: a code (or term) seen again later in the
document overwrites the earlier entry.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

from app import config
from app.chat.prompts import HTS_EXTRACTION_PROMPT
from app.errors import CollaboratorUnavailable, NoStructuralMatches
from app.models import HtsCodeRecord, TermIndex
from app.workers.batching import run_in_batches

logger = logging.getLogger(__name__)

POLICY_KEYWORDS = (
    "Allowed",
    "Free",
    "Restricted",
    "Prohibited",
    "Not Permitted",
    "Special License Required",
)

# Characters that separate items within a description
TERM_SEPARATORS = re.compile(r'[,;/]')
MIN_TERM_LENGTH = 4


@dataclass
class ExtractionResult:
    """Registry and term index produced by one extraction."""
    registry: Dict[str, HtsCodeRecord] = field(default_factory=dict)
    term_index: TermIndex = field(default_factory=dict)
    method: str = "regex"

    def add(self, code: str, description: str, policy: str) -> None:
        """Upsert a code and index its description terms."""
        self.registry[code] = HtsCodeRecord(code=code, description=description, policy=policy)
        index_terms(self.term_index, description, code)

    def merge(self, other: "ExtractionResult") -> None:
        """Key-union merge; entries from `other` win."""
        self.registry.update(other.registry)
        self.term_index.update(other.term_index)


def index_terms(term_index: TermIndex, description: str, code: str) -> None:
    """
    Map each item of a description to its code.

    "Laptop computers, notebooks" ->
        "laptop computers" -> code
        "notebooks" -> code
        "laptop computers, notebooks" -> code

    Items shorter than MIN_TERM_LENGTH are skipped; the full description is
    always indexed.
    """
    for item in TERM_SEPARATORS.split(description):
        term = item.strip().lower()
        if len(term) >= MIN_TERM_LENGTH:
            term_index[term] = code

    full = description.strip().lower()
    if full:
        term_index[full] = code


class HtsExtractor(ABC):
    """Interface shared by the deterministic and LLM-backed parsers."""

    @abstractmethod
    def extract(self, document_text: str) -> ExtractionResult:
        """
        Extract codes from document text.

        Raises:
            NoStructuralMatches: if the strategy found no codes at all
        """
        pass


class RegexHtsExtractor(HtsExtractor):
    """
    Parses lines like "8471300000 Laptop computers, notebooks Allowed".

    The digit run is 8-10 digits not preceded by another digit; the
    description is the shortest span before a policy keyword.
    """

    def __init__(self, policy_keywords: Tuple[str, ...] = POLICY_KEYWORDS):
        keywords = "|".join(re.escape(k) for k in policy_keywords)
        self.pattern = re.compile(
            r'(?<!\d)(\d{8,10})\s+(.*?)\s+(' + keywords + r')\b',
            re.IGNORECASE,
        )

    def extract(self, document_text: str) -> ExtractionResult:
        result = ExtractionResult(method="regex")

        for match in self.pattern.finditer(document_text or ""):
            code = match.group(1)
            description = match.group(2).strip()
            policy = match.group(3)
            result.add(code, description, policy)

        if not result.registry:
            raise NoStructuralMatches("No HTS code lines matched the schedule pattern")

        logger.info(f"Regex extraction found {len(result.registry)} HTS codes")
        return result


class ExtractedHtsCode(BaseModel):
    """One entry of the JSON array returned by the extraction prompt."""
    hs_code: str = Field(alias="hsCode")
    description: str
    policy: Optional[str] = None

    model_config = {"populate_by_name": True}

    @field_validator("hs_code", mode="before")
    @classmethod
    def normalize_code(cls, value):
        # Models sometimes return dotted or numeric codes
        if value is None:
            return value
        return re.sub(r'[.\s]', '', str(value))

    @field_validator("hs_code", "description")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value.strip()


class GeminiHtsExtractor(HtsExtractor):
    """
    LLM-backed extraction over fixed-size text windows.

    Windows are processed concurrently in batches; a window whose call or
    parse fails contributes nothing. Results are merged in window order.

    Usage:
        extractor = GeminiHtsExtractor(GeminiClient())
        result = extractor.extract(pdf_text)
    """

    def __init__(
        self,
        llm,
        window_size: int = None,
        workers: int = None,
        batch_delay: float = None,
        direction: str = None,
    ):
        self.llm = llm
        self.window_size = window_size or config.AI_EXTRACTION_WINDOW
        self.workers = workers or config.EMBEDDING_WORKERS
        self.batch_delay = config.BATCH_DELAY_SECONDS if batch_delay is None else batch_delay
        self.direction = direction or config.TRADE_DIRECTION

    def _windows(self, text: str) -> List[str]:
        return [text[i:i + self.window_size] for i in range(0, len(text), self.window_size)]

    def _parse_response(self, response_text: str) -> ExtractionResult:
        """Parse the first '[' .. last ']' slice of the response."""
        result = ExtractionResult(method="llm")

        start = response_text.find('[')
        end = response_text.rfind(']') + 1
        if start == -1 or end <= start:
            return result

        try:
            items = json.loads(response_text[start:end])
        except json.JSONDecodeError as e:
            logger.warning(f"Error parsing AI-generated JSON: {e}")
            return result

        if not isinstance(items, list):
            return result

        for item in items:
            try:
                entry = ExtractedHtsCode.model_validate(item)
            except ValidationError:
                continue
            result.add(entry.hs_code, entry.description, entry.policy or "Unknown")

        return result

    def _extract_window(self, window: str) -> ExtractionResult:
        prompt = HTS_EXTRACTION_PROMPT.format(direction=self.direction, text=window)
        try:
            response_text = self.llm.generate(prompt, max_output_tokens=config.MAX_TOKENS["extraction"])
        except CollaboratorUnavailable as e:
            logger.warning(f"Extraction window skipped: {e}")
            return ExtractionResult(method="llm")
        return self._parse_response(response_text)

    def extract(self, document_text: str) -> ExtractionResult:
        windows = self._windows(document_text or "")
        logger.info(
            f"Processing {len(windows)} chunks using "
            f"{min(self.workers, len(windows)) if windows else 0} workers..."
        )

        outcomes = run_in_batches(
            windows,
            self._extract_window,
            batch_size=self.workers,
            delay=self.batch_delay,
            label="extraction",
        )

        merged = ExtractionResult(method="llm")
        for outcome in sorted(outcomes, key=lambda o: o.index):
            if outcome.ok:
                merged.merge(outcome.result)

        if not merged.registry:
            raise NoStructuralMatches("LLM extraction returned no HTS codes")

        logger.info(f"LLM extraction found {len(merged.registry)} HTS codes")
        return merged


def extract_hts_codes(
    document_text: str,
    fallback: Optional[HtsExtractor] = None,
    primary: Optional[HtsExtractor] = None,
) -> ExtractionResult:
    """
    Run the regex parser, falling back to `fallback` on NoStructuralMatches.

    Returns an empty ExtractionResult when both strategies find nothing;
    a schedule without codes still gets a passage index.
    """
    primary = primary or RegexHtsExtractor()
    try:
        return primary.extract(document_text)
    except NoStructuralMatches:
        if fallback is None:
            logger.warning("The regex pattern didn't match any HS codes and no fallback is configured")
            return ExtractionResult(method="none")

    logger.warning("The regex pattern didn't match any HS codes. Using AI to extract information...")
    try:
        return fallback.extract(document_text)
    except NoStructuralMatches:
        logger.warning("AI extraction found no HS codes either")
        return ExtractionResult(method="none")
