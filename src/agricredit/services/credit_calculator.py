"""
Credit calculation for verified farming activities.

credits = base(activity type) x crop multiplier x area multiplier x quality multiplier

The fraud score never enters the formula; the submission pipeline gates on
it separately before credits are computed.
"""

import math
import re
from typing import Optional

import structlog

from agricredit.schemas.activity import ActivityType

logger = structlog.get_logger(__name__)


BASE_CREDITS: dict[ActivityType, int] = {
    ActivityType.ORGANIC_INPUT: 50,
    ActivityType.WATER_CONSERVATION: 40,
    ActivityType.SOIL_HEALTH: 60,
    ActivityType.PEST_MANAGEMENT: 45,
    ActivityType.CROP_ROTATION: 55,
    ActivityType.OTHER: 30,
}

# First substring match wins, in table order
CROP_MULTIPLIERS: dict[str, float] = {
    "rice": 1.2,
    "wheat": 1.1,
    "corn": 1.15,
    "cotton": 1.3,
    "sugarcane": 1.25,
    "vegetables": 1.0,
    "fruits": 1.1,
}

AREA_STEP = 0.1
MAX_AREA_MULTIPLIER = 2.0
DEFAULT_AREA = 1.0

MIN_QUALITY_FOR_CREDITS = 30
MIN_QUALITY_FOR_OTHER = 50
MIN_OTHER_DESCRIPTION_LENGTH = 15
MIN_CREDITS = 5

_AREA_NUMBER = re.compile(r"(\d+\.?\d*)")


def extract_area_value(area: Optional[str]) -> float:
    """Parse the first number out of an area string ("2 acres" -> 2.0)."""
    if not area:
        return DEFAULT_AREA
    match = _AREA_NUMBER.search(area)
    if match:
        return float(match.group(1))
    return DEFAULT_AREA


def get_area_multiplier(area: Optional[str]) -> float:
    """1 + 0.1 per unit of area, saturating at 2x for 10+ units."""
    return min(1 + extract_area_value(area) * AREA_STEP, MAX_AREA_MULTIPLIER)


def get_crop_multiplier(crop_name: Optional[str]) -> float:
    if not crop_name:
        return 1.0
    crop_lower = crop_name.lower()
    for crop, multiplier in CROP_MULTIPLIERS.items():
        if crop in crop_lower:
            return multiplier
    return 1.0


def get_quality_multiplier(quality_score: int) -> float:
    """Map a 0-100 quality score linearly onto 0.5x-1.5x."""
    return 0.5 + (quality_score / 100) * 1.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_credits(
    activity_type: ActivityType,
    crop_name: Optional[str] = None,
    area: Optional[str] = None,
    description: str = "",
    quality_score: Optional[int] = None,
) -> int:
    """
    Calculate credits for an activity.

    Returns 0 when the content does not qualify for credits; the caller
    treats 0 as a rejection rather than persisting a zero-credit activity.
    """
    if quality_score is not None and quality_score < MIN_QUALITY_FOR_CREDITS:
        return 0

    if activity_type == ActivityType.OTHER:
        if quality_score is None and len(description.strip()) < MIN_OTHER_DESCRIPTION_LENGTH:
            return 0
        if quality_score is not None and quality_score < MIN_QUALITY_FOR_OTHER:
            return 0

    credits = float(BASE_CREDITS.get(activity_type, BASE_CREDITS[ActivityType.OTHER]))
    credits *= get_crop_multiplier(crop_name)
    credits *= get_area_multiplier(area)
    if quality_score is not None:
        credits *= get_quality_multiplier(quality_score)

    result = round_half_up(credits)

    # Floor only applies to content of acceptable quality
    if result > 0 and (quality_score is None or quality_score >= MIN_QUALITY_FOR_OTHER):
        result = max(result, MIN_CREDITS)

    return max(result, 0)


class CreditCalculator:
    """Credit calculator bound to the pipeline's logging context."""

    def calculate(
        self,
        activity_type: ActivityType,
        crop_name: Optional[str] = None,
        area: Optional[str] = None,
        description: str = "",
        quality_score: Optional[int] = None,
    ) -> int:
        credits = calculate_credits(activity_type, crop_name, area, description, quality_score)
        logger.info(
            "credits_calculated",
            activity_type=activity_type.value,
            crop_name=crop_name,
            area=area,
            quality_score=quality_score,
            credits=credits,
        )
        return credits
