"""
Activity Verification and Anti-Fraud Service.

Independent heuristic checks combined into a single fraud score:
1. Location Verification - Coordinate bounds, accuracy, GPS spoofing (reused spot)
2. Frequency Guard - Duplicate activity type cooldown, daily cap, burst detection
3. Pattern Verification - Unusual activity types or crops for this user
4. Audio Heuristics - Size/duration score from the audio analyzer (when audio submitted)

Sub-scores are clamped individually and summed. The unclamped sum drives
gating; the reported fraud score is clamped to 0-100 as the final step.
"""

import math
from datetime import datetime, timedelta
from typing import Optional

import structlog

from agricredit.core.config import settings
from agricredit.repositories.provider import ActivityHistoryProtocol
from agricredit.schemas.activity import ActivityType, CheckResult, GeoLocation, VerificationOutcome
from agricredit.services.audio_analysis import AudioAnalysisResult

logger = structlog.get_logger(__name__)


# =============================================================================
# Configuration
# =============================================================================


class VerificationConfig:
    """Anti-fraud heuristic configuration."""

    # Location
    EARTH_RADIUS_METERS = 6_371_000
    MAX_ACCURACY_METERS = 50
    LOW_ACCURACY_SCORE = 20
    REPEATED_LOCATION_WINDOW = timedelta(minutes=5)
    REPEATED_LOCATION_RADIUS_METERS = 10
    REPEATED_LOCATION_LOOKBACK = 10  # Recent submissions compared
    REPEATED_LOCATION_SCORE = 15
    INVALID_LOCATION_SCORE = 100
    MISSING_LOCATION_SCORE = 10

    # Frequency
    DUPLICATE_TYPE_WINDOW = timedelta(hours=1)
    DUPLICATE_TYPE_SCORE = 30
    DAILY_WINDOW = timedelta(hours=24)
    DAILY_LIMIT = 10
    DAILY_LIMIT_SCORE = 25
    DAILY_HIGH_COUNT = 8
    DAILY_HIGH_SCORE = 10
    BURST_WINDOW = timedelta(minutes=10)
    BURST_COUNT = 5
    BURST_SCORE = 40
    FREQUENCY_VALID_BELOW = 50

    # Pattern
    PATTERN_HISTORY_LIMIT = 50
    UNUSUAL_TYPE_MIN_HISTORY = 10  # History must be larger than this
    UNUSUAL_TYPE_PERCENT = 5.0
    UNUSUAL_TYPE_SCORE = 15
    NEW_CROP_MIN_HISTORY = 5  # History must be larger than this
    NEW_CROP_SCORE = 10
    PATTERN_VALID_BELOW = 30

    # Aggregate decision
    PASS_BELOW = 50
    FLAG_AT = 30
    FLAG_REASON_COUNT = 3
    MAX_SUB_SCORE = 100


def clamp_score(score: int, upper: int = VerificationConfig.MAX_SUB_SCORE) -> int:
    return max(0, min(score, upper))


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = math.sin(delta_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return VerificationConfig.EARTH_RADIUS_METERS * c


# =============================================================================
# Location Verification
# =============================================================================


class GeoVerifier:
    """
    Validate claimed coordinates and detect location reuse.

    Reusing the exact same spot (within 10m) for several activities in a
    few minutes suggests a spoofed or hard-coded GPS position.
    """

    def __init__(self, history: ActivityHistoryProtocol):
        self.history = history

    @staticmethod
    def check_bounds(location: GeoLocation) -> Optional[str]:
        """Return a reason if the coordinates are physically impossible."""
        if not -90 <= location.latitude <= 90:
            return "Invalid latitude"
        if not -180 <= location.longitude <= 180:
            return "Invalid longitude"
        return None

    async def verify(self, location: GeoLocation, user_id: str, now: datetime) -> CheckResult:
        invalid_reason = self.check_bounds(location)
        if invalid_reason:
            logger.warning(
                "invalid_coordinates",
                user_id=user_id,
                latitude=location.latitude,
                longitude=location.longitude,
            )
            return CheckResult(valid=False, score=VerificationConfig.INVALID_LOCATION_SCORE, reasons=[invalid_reason])

        score = 0
        reasons: list[str] = []

        if location.accuracy is not None and location.accuracy > VerificationConfig.MAX_ACCURACY_METERS:
            score += VerificationConfig.LOW_ACCURACY_SCORE
            reasons.append(f"Location accuracy is low ({location.accuracy:g}m)")

        recent = await self.history.list_since(
            user_id,
            now - VerificationConfig.REPEATED_LOCATION_WINDOW,
            limit=VerificationConfig.REPEATED_LOCATION_LOOKBACK,
        )
        for activity in recent:
            if activity.location is None:
                continue
            distance = haversine_distance(
                location.latitude,
                location.longitude,
                activity.location.latitude,
                activity.location.longitude,
            )
            if distance < VerificationConfig.REPEATED_LOCATION_RADIUS_METERS:
                score += VerificationConfig.REPEATED_LOCATION_SCORE
                reasons.append("Same location used for multiple activities recently")
                break

        return CheckResult(valid=True, score=score, reasons=reasons)


# =============================================================================
# Frequency Guard
# =============================================================================


class FrequencyGuard:
    """Per-user rate limiting over the activity history."""

    def __init__(self, history: ActivityHistoryProtocol):
        self.history = history

    async def verify(self, user_id: str, activity_type: ActivityType, now: datetime) -> CheckResult:
        score = 0
        reasons: list[str] = []

        same_type = await self.history.list_since(
            user_id,
            now - VerificationConfig.DUPLICATE_TYPE_WINDOW,
            activity_type=activity_type,
            limit=1,
        )
        if same_type:
            score += VerificationConfig.DUPLICATE_TYPE_SCORE
            reasons.append("Same activity type logged within 1 hour")

        daily_count = await self.history.count_since(user_id, now - VerificationConfig.DAILY_WINDOW)
        if daily_count >= VerificationConfig.DAILY_LIMIT:
            score += VerificationConfig.DAILY_LIMIT_SCORE
            reasons.append(f"Too many activities today ({daily_count}/{VerificationConfig.DAILY_LIMIT} limit)")
        elif daily_count >= VerificationConfig.DAILY_HIGH_COUNT:
            score += VerificationConfig.DAILY_HIGH_SCORE
            reasons.append(f"High activity count today ({daily_count})")

        burst_count = await self.history.count_since(user_id, now - VerificationConfig.BURST_WINDOW)
        if burst_count >= VerificationConfig.BURST_COUNT:
            score += VerificationConfig.BURST_SCORE
            reasons.append(f"Suspicious: {burst_count} activities in last 10 minutes")

        return CheckResult(valid=score < VerificationConfig.FREQUENCY_VALID_BELOW, score=score, reasons=reasons)


# =============================================================================
# Pattern Verification
# =============================================================================


class PatternVerifier:
    """
    Compare a submission against the user's own history.

    Users with no history are exempt (cold start).
    """

    def __init__(self, history: ActivityHistoryProtocol):
        self.history = history

    async def verify(
        self,
        user_id: str,
        activity_type: ActivityType,
        crop_name: Optional[str],
    ) -> CheckResult:
        activities = await self.history.list_recent(user_id, limit=VerificationConfig.PATTERN_HISTORY_LIMIT)
        if not activities:
            return CheckResult()

        score = 0
        reasons: list[str] = []
        total = len(activities)

        type_count = sum(1 for a in activities if a.activity_type == activity_type)
        type_percentage = type_count / total * 100
        if total > VerificationConfig.UNUSUAL_TYPE_MIN_HISTORY and type_percentage < VerificationConfig.UNUSUAL_TYPE_PERCENT:
            score += VerificationConfig.UNUSUAL_TYPE_SCORE
            reasons.append("Unusual activity type for this user")

        if crop_name and total > VerificationConfig.NEW_CROP_MIN_HISTORY:
            crop_key = crop_name.strip().casefold()
            seen = any(a.crop_name and a.crop_name.strip().casefold() == crop_key for a in activities)
            if not seen:
                score += VerificationConfig.NEW_CROP_SCORE
                reasons.append("New crop not seen in user history")

        return CheckResult(valid=score < VerificationConfig.PATTERN_VALID_BELOW, score=score, reasons=reasons)


# =============================================================================
# Fraud Aggregation
# =============================================================================


class FraudAggregator:
    """
    Main verification orchestrator.

    Runs the location, frequency and pattern checks against one history
    snapshot and folds in the audio heuristic score.
    """

    def __init__(self, history: ActivityHistoryProtocol):
        self.geo_verifier = GeoVerifier(history)
        self.frequency_guard = FrequencyGuard(history)
        self.pattern_verifier = PatternVerifier(history)

    @staticmethod
    def combine(
        location_check: CheckResult,
        frequency_check: CheckResult,
        pattern_check: CheckResult,
        audio_result: Optional[AudioAnalysisResult] = None,
    ) -> VerificationOutcome:
        """Sum clamped sub-scores in a fixed order and derive the verdict."""
        raw_score = 0
        reasons: list[str] = []

        for check in (location_check, frequency_check, pattern_check):
            raw_score += clamp_score(check.score)
            reasons.extend(check.reasons)

        if audio_result is not None:
            raw_score += clamp_score(audio_result.score)
            reasons.extend(audio_result.reasons)

        return VerificationOutcome(
            passed=raw_score < VerificationConfig.PASS_BELOW,
            fraud_score=clamp_score(raw_score),
            raw_score=raw_score,
            reasons=reasons,
            flagged=(
                raw_score >= VerificationConfig.FLAG_AT
                or len(set(reasons)) >= VerificationConfig.FLAG_REASON_COUNT
            ),
            location_valid=location_check.valid,
        )

    @staticmethod
    def missing_location_check() -> CheckResult:
        return CheckResult(
            valid=True,
            score=VerificationConfig.MISSING_LOCATION_SCORE,
            reasons=["No location provided"],
        )

    @staticmethod
    def should_reject(outcome: VerificationOutcome) -> bool:
        """Hard rejection threshold, checked on the unclamped score."""
        return outcome.raw_score >= settings.FRAUD_HARD_REJECT_SCORE

    async def assess(
        self,
        user_id: str,
        activity_type: ActivityType,
        crop_name: Optional[str],
        location: Optional[GeoLocation],
        now: datetime,
        audio_result: Optional[AudioAnalysisResult] = None,
    ) -> VerificationOutcome:
        if location is not None:
            location_check = await self.geo_verifier.verify(location, user_id, now)
        else:
            location_check = self.missing_location_check()

        frequency_check = await self.frequency_guard.verify(user_id, activity_type, now)
        pattern_check = await self.pattern_verifier.verify(user_id, activity_type, crop_name)

        outcome = self.combine(location_check, frequency_check, pattern_check, audio_result)

        logger.info(
            "activity_verified",
            user_id=user_id,
            activity_type=activity_type.value,
            location_score=location_check.score,
            frequency_score=frequency_check.score,
            pattern_score=pattern_check.score,
            audio_score=audio_result.score if audio_result else None,
            raw_score=outcome.raw_score,
            passed=outcome.passed,
            flagged=outcome.flagged,
        )
        return outcome
