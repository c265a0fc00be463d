"""
Content quality scoring for farming activity descriptions.

Scores free text (typed descriptions or transcriptions) for being meaningful,
farming-related content rather than noise, greetings or filler:

- Length (0-30 points, step scale)
- Farming keywords (5 points per distinct keyword, max 40)
- Activity indicator verbs (flat 20 points)
- Degenerate repetition penalty (-30)
- Filler-only penalty (-50)
"""

import re

import structlog

logger = structlog.get_logger(__name__)


class ContentConfig:
    """Content scoring configuration."""

    MIN_MEANINGFUL_LENGTH = 15

    # (minimum normalized length, points), checked top-down
    LENGTH_STEPS = ((100, 30), (50, 20), (30, 15), (15, 10))

    POINTS_PER_KEYWORD = 5
    MAX_KEYWORD_POINTS = 40
    ACTIVITY_INDICATOR_POINTS = 20

    REPETITION_PENALTY = 30
    FILLER_PENALTY = 50

    # Degenerate repetition: >= 5 words drawn from <= 2 distinct words
    REPEATED_MIN_WORDS = 5
    REPEATED_MAX_DISTINCT = 2

    MIN_VALID_SCORE = 30
    KEYWORD_EXEMPT_SCORE = 70


FARMING_KEYWORDS = (
    # Crops
    "crop", "crops", "rice", "wheat", "corn", "maize", "cotton", "sugarcane", "vegetable",
    "vegetables", "fruit", "fruits", "tomato", "potato", "onion", "cabbage", "mango", "banana",
    "paddy",
    # Practices
    "farming", "farm", "agriculture", "cultivation", "planting", "harvesting", "irrigation",
    "watering", "fertilizer", "fertiliser", "organic", "compost", "manure", "soil", "field",
    "land", "acre", "acres", "hectare", "hectares", "plough", "plow", "sowing", "seeding",
    "weeding", "pest", "pests", "disease", "pesticide", "herbicide", "crop rotation",
    "organic farming", "sustainable", "sustainability",
    # Water
    "water", "rainwater", "drip", "sprinkler", "conservation",
    # Soil
    "soil health", "soil testing", "nutrients", "ph", "organic matter",
    # Hindi/Kannada/Marathi transliterations
    "khet", "zameen", "fasal", "beej", "khad", "paani",
)

FILLER_WORDS = frozenset(
    {"um", "uh", "er", "ah", "oh", "hello", "hi", "hey", "test", "testing", "yes", "no", "ok", "okay"}
)

ACTIVITY_INDICATORS = (
    "did", "done", "applied", "used", "added", "spread", "planted", "sowed", "harvested",
    "irrigated", "watered", "treated", "sprayed", "mixed", "prepared", "cultivated", "rotated",
)

_WHITESPACE = re.compile(r"\s+")
_REPEATED_CHAR = re.compile(r"(.)\1{4,}")  # Same character 5+ times in a row
_WORD_PUNCTUATION = ".,!?;:'\"()[]-"


def normalize_text(text: str | None) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", text).strip()


def extract_farming_keywords(text: str | None) -> list[str]:
    """Return the distinct farming keywords found in the text (substring match)."""
    lowered = normalize_text(text).lower()
    return [keyword for keyword in FARMING_KEYWORDS if keyword in lowered]


def has_activity_indicators(text: str | None) -> bool:
    lowered = normalize_text(text).lower()
    return any(indicator in lowered for indicator in ACTIVITY_INDICATORS)


def is_too_short(text: str | None) -> bool:
    return len(normalize_text(text)) < ContentConfig.MIN_MEANINGFUL_LENGTH


def is_only_filler_words(text: str | None) -> bool:
    """True when every word is a greeting, hesitation sound or test word."""
    words = [w.strip(_WORD_PUNCTUATION) for w in normalize_text(text).lower().split(" ")]
    words = [w for w in words if w]
    if not words:
        return True
    return all(word in FILLER_WORDS for word in words)


def is_repeated_content(text: str | None) -> bool:
    """Detect "test test test test test" or "aaaaaa" style submissions."""
    cleaned = normalize_text(text)
    words = cleaned.split(" ") if cleaned else []
    if (
        len(words) >= ContentConfig.REPEATED_MIN_WORDS
        and len(set(words)) <= ContentConfig.REPEATED_MAX_DISTINCT
    ):
        return True
    return bool(_REPEATED_CHAR.search(cleaned))


def _length_points(length: int) -> int:
    for threshold, points in ContentConfig.LENGTH_STEPS:
        if length >= threshold:
            return points
    return 0


def calculate_content_quality_score(text: str | None) -> int:
    """
    Calculate content quality score (0-100).

    Text shorter than the minimum meaningful length scores 0 outright.
    """
    cleaned = normalize_text(text)
    if len(cleaned) < ContentConfig.MIN_MEANINGFUL_LENGTH:
        return 0

    score = _length_points(len(cleaned))

    keyword_matches = len(extract_farming_keywords(cleaned))
    score += min(keyword_matches * ContentConfig.POINTS_PER_KEYWORD, ContentConfig.MAX_KEYWORD_POINTS)

    if has_activity_indicators(cleaned):
        score += ContentConfig.ACTIVITY_INDICATOR_POINTS

    if is_repeated_content(cleaned):
        score -= ContentConfig.REPETITION_PENALTY

    if is_only_filler_words(cleaned):
        score -= ContentConfig.FILLER_PENALTY

    return max(0, min(100, score))


def is_valid_farming_content(text: str | None) -> bool:
    """
    Check whether text is acceptable as a farming activity description.

    A False result is a hard rejection for the submission.
    """
    cleaned = normalize_text(text)
    if not cleaned:
        return False

    if is_too_short(cleaned) or is_only_filler_words(cleaned) or is_repeated_content(cleaned):
        return False

    quality_score = calculate_content_quality_score(cleaned)
    if quality_score < ContentConfig.MIN_VALID_SCORE:
        return False

    # Very high scores may be valid content in another language
    if not extract_farming_keywords(cleaned) and not has_activity_indicators(cleaned):
        if quality_score < ContentConfig.KEYWORD_EXEMPT_SCORE:
            return False

    return True


class ContentQualityScorer:
    """Facade over the content scoring functions."""

    def score(self, text: str | None) -> int:
        return calculate_content_quality_score(text)

    def is_valid(self, text: str | None) -> bool:
        valid = is_valid_farming_content(text)
        if not valid:
            logger.info("content_rejected", length=len(normalize_text(text)))
        return valid
