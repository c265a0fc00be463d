"""
Tests for content quality scoring.

Covers the length/keyword/indicator point scale, the filler and repetition
penalties, and the validity predicate that gates a submission.
"""

import pytest

from agricredit.services.content_validation import (
    ContentQualityScorer,
    calculate_content_quality_score,
    extract_farming_keywords,
    has_activity_indicators,
    is_only_filler_words,
    is_repeated_content,
    is_too_short,
    is_valid_farming_content,
    normalize_text,
)


@pytest.mark.unit
class TestNormalization:
    """Whitespace handling before any check runs."""

    def test_collapses_whitespace(self):
        assert normalize_text("  applied \n\t compost   today ") == "applied compost today"

    def test_none_is_empty(self):
        assert normalize_text(None) == ""

    def test_short_after_normalization(self):
        """Padding with spaces does not make text long enough."""
        padded = "   hi      there        "
        assert is_too_short(padded)
        assert calculate_content_quality_score(padded) == 0
        assert not is_valid_farming_content(padded)


@pytest.mark.unit
class TestQualityScore:
    """Tests for calculate_content_quality_score."""

    def test_short_text_scores_zero(self):
        assert calculate_content_quality_score("rice compost") == 0
        assert not is_valid_farming_content("rice compost")

    def test_farming_description(self):
        """49 chars (15) + 6 keywords (30) + indicator (20)."""
        text = "Applied organic compost to 2 acres of rice fields"
        assert calculate_content_quality_score(text) == 65
        assert is_valid_farming_content(text)

    def test_keyword_points_are_capped(self):
        text = (
            "Planted rice wheat corn cotton sugarcane tomato potato onion cabbage mango banana "
            "in the field after irrigation and compost"
        )
        # >= 100 chars (30) + capped keywords (40) + indicator (20)
        assert calculate_content_quality_score(text) == 90

    def test_unrelated_text_is_invalid(self):
        text = "The weather is nice and I went to the market with my friends"
        assert extract_farming_keywords(text) == []
        assert not has_activity_indicators(text)
        assert calculate_content_quality_score(text) == 20
        assert not is_valid_farming_content(text)

    def test_filler_only_text_penalized(self):
        text = "hello hello hello hi ok"
        assert is_only_filler_words(text)
        assert calculate_content_quality_score(text) == 0
        assert not is_valid_farming_content(text)

    def test_filler_with_punctuation(self):
        assert is_only_filler_words("Hello, ok... test! um?")

    def test_score_is_bounded(self):
        for text in ["", "a" * 500, "test test test test test test", "rice " * 60]:
            score = calculate_content_quality_score(text)
            assert 0 <= score <= 100


@pytest.mark.unit
class TestRepetition:
    """Degenerate repetition detection."""

    def test_repeated_words(self):
        assert is_repeated_content("test test test test test")
        assert is_repeated_content("rice farm rice farm rice")

    def test_repeated_characters(self):
        assert is_repeated_content("aaaaaa I watered the crops")

    def test_normal_sentence(self):
        assert not is_repeated_content("I applied compost to the wheat field")

    def test_repetition_rejects_even_with_keywords(self):
        assert not is_valid_farming_content("rice rice rice rice rice rice rice rice")


@pytest.mark.unit
class TestKeywords:
    """Keyword and indicator matching."""

    def test_case_insensitive(self):
        keywords = extract_farming_keywords("RICE and Wheat")
        assert "rice" in keywords
        assert "wheat" in keywords

    def test_transliterated_keywords(self):
        assert "khet" in extract_farming_keywords("aaj khet mein kaam kiya")

    def test_indicator(self):
        assert has_activity_indicators("We sprayed neem oil")


@pytest.mark.unit
class TestContentQualityScorer:
    """Tests for the scorer facade used by the pipeline."""

    def test_score_and_validity(self):
        scorer = ContentQualityScorer()
        text = "Applied organic compost to 2 acres of rice fields"
        assert scorer.score(text) == 65
        assert scorer.is_valid(text)

    def test_rejects_greeting(self):
        assert not ContentQualityScorer().is_valid("hello testing okay")
