"""
Tests for HTS code extraction.

These tests verify:
1. Regex parsing of "code description policy" lines
2. Term index construction (separators, short items, full description)
3. Last-write-wins for repeated codes
4. LLM fallback: windowing, tolerant JSON parsing, failed windows
5. extract_hts_codes strategy selection
"""

import json

import pytest

from app.errors import NoStructuralMatches
from app.ingestion.hts_extractor import (
    ExtractedHtsCode,
    ExtractionResult,
    GeminiHtsExtractor,
    HtsExtractor,
    RegexHtsExtractor,
    extract_hts_codes,
    index_terms,
)
from tests.fakes import FakeLLM


class TestRegexHtsExtractor:
    """Test the deterministic line parser."""

    def test_single_line(self):
        """A schedule line yields one record and three terms."""
        result = RegexHtsExtractor().extract("8471300000 Laptop computers, notebooks Allowed")

        record = result.registry["8471300000"]
        assert record.description == "Laptop computers, notebooks"
        assert record.policy == "Allowed"
        assert result.term_index == {
            "laptop computers": "8471300000",
            "notebooks": "8471300000",
            "laptop computers, notebooks": "8471300000",
        }
        assert result.method == "regex"

    def test_sample_schedule(self, extraction):
        """Every code in the sample schedule is extracted in document order."""
        assert list(extraction.registry) == [
            "8471300000",
            "8471410000",
            "8418100000",
            "0101210000",
            "0101290000",
        ]
        assert extraction.registry["8471410000"].policy == "Restricted"
        assert extraction.registry["0101290000"].policy == "Special License Required"
        assert extraction.registry["0101290000"].description == "Other live horses"

    def test_semicolon_and_slash_separators(self, extraction):
        assert extraction.term_index["servers"] == "8471410000"
        assert extraction.term_index["desktop processing units"] == "8471410000"
        assert extraction.term_index["refrigerators"] == "8418100000"
        assert extraction.term_index["freezers combined"] == "8418100000"

    def test_policy_keeps_document_case(self):
        result = RegexHtsExtractor().extract("01012100 Live cattle restricted")
        assert result.registry["01012100"].policy == "restricted"

    def test_eight_digit_codes(self):
        result = RegexHtsExtractor().extract("01012100 Live cattle Prohibited")
        assert "01012100" in result.registry

    def test_longer_digit_runs_are_not_codes(self):
        """A 12-digit number is not a code, and no suffix of it is either."""
        with pytest.raises(NoStructuralMatches):
            RegexHtsExtractor().extract("123456789012 Widgets Allowed")

    def test_keyword_must_be_whole_word(self):
        """'Freezers' does not end the description at 'Free'."""
        result = RegexHtsExtractor().extract("8418100000 Chest Freezers Allowed")
        record = result.registry["8418100000"]
        assert record.description == "Chest Freezers"
        assert record.policy == "Allowed"

    def test_repeated_code_last_write_wins(self):
        text = (
            "8471300000 Laptop computers Restricted\n"
            "8471300000 Portable computers Allowed"
        )
        result = RegexHtsExtractor().extract(text)

        assert len(result.registry) == 1
        assert result.registry["8471300000"].policy == "Allowed"
        assert result.registry["8471300000"].description == "Portable computers"
        # Terms from the first occurrence stay indexed
        assert result.term_index["laptop computers"] == "8471300000"

    def test_no_matches_raises(self):
        with pytest.raises(NoStructuralMatches):
            RegexHtsExtractor().extract("This schedule lists no codes at all.")

    def test_empty_text_raises(self):
        with pytest.raises(NoStructuralMatches):
            RegexHtsExtractor().extract("")


class TestIndexTerms:
    """Test term index construction."""

    def test_short_items_skipped(self):
        term_index = {}
        index_terms(term_index, "TV, Radio sets, cds", "8528000000")

        assert "tv" not in term_index
        assert "cds" not in term_index
        assert term_index["radio sets"] == "8528000000"
        assert term_index["tv, radio sets, cds"] == "8528000000"

    def test_full_description_indexed_even_when_short(self):
        term_index = {}
        index_terms(term_index, "Tea", "0902000000")
        assert term_index == {"tea": "0902000000"}

    def test_empty_description_not_indexed(self):
        term_index = {}
        index_terms(term_index, "   ", "0902000000")
        assert term_index == {}

    def test_later_code_overwrites_term(self):
        term_index = {}
        index_terms(term_index, "Notebooks", "4820100000")
        index_terms(term_index, "Laptops, notebooks", "8471300000")
        assert term_index["notebooks"] == "8471300000"


class TestExtractedHtsCode:
    """Test validation of model-returned items."""

    def test_camel_case_alias(self):
        entry = ExtractedHtsCode.model_validate({"hsCode": "8471.30.0000", "description": "Laptops"})
        assert entry.hs_code == "8471300000"
        assert entry.policy is None

    def test_numeric_code_coerced(self):
        entry = ExtractedHtsCode.model_validate({"hsCode": 84713000, "description": "Laptops"})
        assert entry.hs_code == "84713000"

    def test_missing_code_rejected(self):
        with pytest.raises(ValueError):
            ExtractedHtsCode.model_validate({"description": "Laptops"})

    def test_null_code_rejected(self):
        with pytest.raises(ValueError):
            ExtractedHtsCode.model_validate({"hsCode": None, "description": "Laptops"})

    def test_blank_description_rejected(self):
        with pytest.raises(ValueError):
            ExtractedHtsCode.model_validate({"hsCode": "8471300000", "description": "  "})


class TestGeminiHtsExtractor:
    """Test the LLM-backed fallback extractor."""

    def _extractor(self, llm, window_size=20):
        return GeminiHtsExtractor(llm, window_size=window_size, workers=2, batch_delay=0)

    def test_response_with_prose_around_json(self):
        payload = [{"hsCode": "8471300000", "description": "Laptop computers", "policy": "Allowed"}]
        llm = FakeLLM(response=f"Here are the codes:\n```json\n{json.dumps(payload)}\n```\nDone.")

        result = self._extractor(llm, window_size=100).extract("some unstructured schedule text")

        assert result.method == "llm"
        assert result.registry["8471300000"].description == "Laptop computers"
        assert result.term_index["laptop computers"] == "8471300000"

    def test_missing_policy_defaults_to_unknown(self):
        llm = FakeLLM(response='[{"hsCode": "8471300000", "description": "Laptops"}]')
        result = self._extractor(llm, window_size=100).extract("text")
        assert result.registry["8471300000"].policy == "Unknown"

    def test_invalid_items_skipped(self):
        llm = FakeLLM(response=json.dumps([
            {"hsCode": "8471300000", "description": "Laptops", "policy": "Allowed"},
            {"description": "No code here"},
            "not an object",
        ]))
        result = self._extractor(llm, window_size=100).extract("text")
        assert list(result.registry) == ["8471300000"]

    def test_one_call_per_window(self):
        llm = FakeLLM(response='[{"hsCode": "8471300000", "description": "Laptops"}]')
        self._extractor(llm, window_size=10).extract("x" * 25)
        assert len(llm.prompts) == 3

    def test_windows_merge_in_document_order(self):
        """Later windows win when two windows return the same code."""
        def respond(prompt):
            if "AAAAAAAAAA" in prompt:
                return '[{"hsCode": "8471300000", "description": "First", "policy": "Restricted"}]'
            return '[{"hsCode": "8471300000", "description": "Second", "policy": "Allowed"}]'

        result = self._extractor(FakeLLM(response=respond), window_size=10).extract("A" * 10 + "B" * 10)

        assert result.registry["8471300000"].description == "Second"
        assert result.registry["8471300000"].policy == "Allowed"

    def test_unparseable_window_contributes_nothing(self):
        def respond(prompt):
            if "AAAAAAAAAA" in prompt:
                return "I could not find any codes."
            return '[{"hsCode": "0101210000", "description": "Horses", "policy": "Prohibited"}]'

        result = self._extractor(FakeLLM(response=respond), window_size=10).extract("A" * 10 + "B" * 10)
        assert list(result.registry) == ["0101210000"]

    def test_direction_in_prompt(self):
        llm = FakeLLM(response="[]")
        extractor = GeminiHtsExtractor(llm, window_size=100, workers=2, batch_delay=0, direction="export")

        with pytest.raises(NoStructuralMatches):
            extractor.extract("text")
        assert "export policies" in llm.prompts[0]

    def test_all_windows_fail_raises(self):
        llm = FakeLLM(error="quota exceeded")
        with pytest.raises(NoStructuralMatches):
            self._extractor(llm).extract("x" * 50)


class StaticExtractor(HtsExtractor):
    """Returns a fixed result, or raises NoStructuralMatches when result is None."""

    def __init__(self, result=None):
        self.result = result
        self.calls = 0

    def extract(self, document_text):
        self.calls += 1
        if self.result is None:
            raise NoStructuralMatches("nothing")
        return self.result


class TestExtractHtsCodes:
    """Test strategy selection."""

    def test_regex_success_skips_fallback(self, schedule_text):
        fallback = StaticExtractor()
        result = extract_hts_codes(schedule_text, fallback=fallback)

        assert result.method == "regex"
        assert fallback.calls == 0

    def test_fallback_used_when_regex_finds_nothing(self):
        fallback_result = ExtractionResult(method="llm")
        fallback_result.add("8471300000", "Laptops", "Allowed")
        fallback = StaticExtractor(fallback_result)

        result = extract_hts_codes("no structured lines", fallback=fallback)

        assert result is fallback_result
        assert fallback.calls == 1

    def test_no_fallback_returns_empty(self):
        result = extract_hts_codes("no structured lines")
        assert result.registry == {}
        assert result.term_index == {}
        assert result.method == "none"

    def test_fallback_finding_nothing_returns_empty(self):
        result = extract_hts_codes("no structured lines", fallback=StaticExtractor())
        assert result.registry == {}
        assert result.method == "none"
