"""Tests for classification response parsing and the reply-thread override."""

from __future__ import annotations

from zeno.categories import DEFAULT_CATEGORIES_V2
from zeno.classify.parser import (
    DEFAULT_REASONING,
    NON_TEXT_REASONING,
    ClassificationResult,
    Fallback,
    Parsed,
    apply_safety_override,
    parse_simple_response,
    parse_structured_response,
)
from zeno.classify.threads import ThreadSignals
from zeno.context.sender import SenderContext

THREAD = ThreadSignals(is_thread=True, signals=["subject_prefix"], confidence=0.25)
NOT_THREAD = ThreadSignals()


class TestParseStructuredResponse:
    def test_well_formed(self):
        text = "CATEGORY: 1\nCONFIDENCE: 0.92\nREASONING: Direct question about Q2 numbers."
        outcome = parse_structured_response(text, DEFAULT_CATEGORIES_V2)
        assert outcome == Parsed(
            category=1, confidence=0.92, reasoning="Direct question about Q2 numbers."
        )

    def test_case_insensitive_labels(self):
        outcome = parse_structured_response(
            "category: 4\nconfidence: 0.8\nreasoning: receipt", DEFAULT_CATEGORIES_V2
        )
        assert outcome.category == 4
        assert outcome.reasoning == "receipt"

    def test_missing_fields_default(self):
        outcome = parse_structured_response("I think this is spam.", DEFAULT_CATEGORIES_V2)
        assert outcome == Parsed(category=2, confidence=0.5, reasoning=DEFAULT_REASONING)

    def test_out_of_range_snaps_to_two(self):
        outcome = parse_structured_response("CATEGORY: 12\nCONFIDENCE: 0.9", DEFAULT_CATEGORIES_V2)
        assert outcome.category == 2

    def test_zero_snaps_to_two(self):
        outcome = parse_structured_response("CATEGORY: 0", DEFAULT_CATEGORIES_V2)
        assert outcome.category == 2

    def test_disabled_category_snaps_to_two(self):
        categories = DEFAULT_CATEGORIES_V2.copy()
        categories.get(6).enabled = False
        outcome = parse_structured_response("CATEGORY: 6", categories)
        assert outcome.category == 2

    def test_undefined_key_snaps_to_two(self, two_categories):
        outcome = parse_structured_response(
            "CATEGORY: 5\nCONFIDENCE: 0.9\nREASONING: meeting", two_categories
        )
        assert outcome.category == 2

    def test_confidence_clamped(self):
        outcome = parse_structured_response("CATEGORY: 1\nCONFIDENCE: 7.5", DEFAULT_CATEGORIES_V2)
        assert outcome.confidence == 1.0

    def test_malformed_confidence_uses_leading_number(self):
        outcome = parse_structured_response("CATEGORY: 1\nCONFIDENCE: 0.8.", DEFAULT_CATEGORIES_V2)
        assert outcome.confidence == 0.8

    def test_reasoning_is_first_line_only(self):
        outcome = parse_structured_response(
            "REASONING: first line\nsecond line\nCATEGORY: 3", DEFAULT_CATEGORIES_V2
        )
        assert outcome.reasoning == "first line"
        assert outcome.category == 3

    def test_non_text_is_fallback(self):
        outcome = parse_structured_response(None, DEFAULT_CATEGORIES_V2)
        assert isinstance(outcome, Fallback)
        assert (outcome.category, outcome.confidence) == (2, 0.5)
        assert outcome.reasoning == NON_TEXT_REASONING


class TestParseSimpleResponse:
    def test_bare_number(self):
        assert parse_simple_response("4", DEFAULT_CATEGORIES_V2) == 4

    def test_number_with_trailing_text(self):
        assert parse_simple_response(" 3. Team Updates", DEFAULT_CATEGORIES_V2) == 3

    def test_invalid_falls_back_to_two(self):
        assert parse_simple_response("12", DEFAULT_CATEGORIES_V2) == 2
        assert parse_simple_response("spam", DEFAULT_CATEGORIES_V2) == 2

    def test_single_category_falls_back_to_one(self):
        from zeno.categories import CategoryConfig, CategorySet

        categories = CategorySet([CategoryConfig(id=1, name="Respond", color="#fff")])
        assert parse_simple_response("nope", categories) == 1

    def test_non_text(self):
        assert parse_simple_response(None, DEFAULT_CATEGORIES_V2) == 2


class TestSafetyOverride:
    def _history(self, most_common):
        return SenderContext(
            has_history=True,
            email_count=3,
            previous_categories=[most_common],
            most_common_category=most_common,
            is_known_contact=True,
        )

    def test_thread_marketing_uses_sender_history(self):
        outcome = Parsed(category=8, confidence=0.95, reasoning="promo")
        result = apply_safety_override(outcome, THREAD, self._history(3))
        assert result.category == 3
        assert result.confidence == 0.6
        assert result.is_thread is True
        assert result.sender_known is True
        assert "overridden to category 3" in result.reasoning

    def test_thread_marketing_without_history_goes_to_two(self):
        outcome = Parsed(category=8, confidence=0.95, reasoning="promo")
        result = apply_safety_override(outcome, THREAD, SenderContext.empty())
        assert result.category == 2
        assert result.confidence == 0.6
        assert result.sender_known is False

    def test_sender_mostly_marketing_still_goes_to_two(self):
        outcome = Parsed(category=8, confidence=0.95, reasoning="promo")
        result = apply_safety_override(outcome, THREAD, self._history(8))
        assert result.category == 2

    def test_non_thread_marketing_kept(self):
        outcome = Parsed(category=8, confidence=0.9, reasoning="newsletter")
        result = apply_safety_override(outcome, NOT_THREAD, SenderContext.empty())
        assert result == ClassificationResult(8, 0.9, "newsletter", False, False)

    def test_thread_non_marketing_untouched(self):
        outcome = Parsed(category=1, confidence=0.9, reasoning="question")
        result = apply_safety_override(outcome, THREAD, self._history(3))
        assert result.category == 1
        assert result.confidence == 0.9
        assert result.is_thread is True

    def test_fallback_passes_through(self):
        result = apply_safety_override(Fallback(), THREAD, SenderContext.empty())
        assert result.category == 2
        assert result.confidence == 0.5
        assert result.reasoning == NON_TEXT_REASONING
        assert result.is_thread is True
