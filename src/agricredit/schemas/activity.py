"""
Activity-related Pydantic schemas.

Covers the persisted activity history, the verification outcome produced by
the anti-fraud checks, and the request/response shapes of the submission API.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ActivityType(str, Enum):
    """Sustainable farming practice categories."""

    ORGANIC_INPUT = "organic_input"
    WATER_CONSERVATION = "water_conservation"
    SOIL_HEALTH = "soil_health"
    PEST_MANAGEMENT = "pest_management"
    CROP_ROTATION = "crop_rotation"
    OTHER = "other"


class VerificationStatus(str, Enum):
    """Review state of a persisted activity."""

    VERIFIED = "verified"
    FLAGGED = "flagged"
    PENDING = "pending"


class GeoLocation(BaseModel):
    """Location claimed by the device at submission time."""

    latitude: float
    longitude: float
    accuracy: Optional[float] = Field(None, ge=0, description="Accuracy radius in meters")


class ActivityRecord(BaseModel):
    """
    A logged farming activity (history item).

    Immutable once created; the pipeline only appends new records.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    user_id: str
    activity_type: ActivityType
    crop_name: Optional[str] = None
    area: Optional[str] = None
    description: str = ""
    raw_text: Optional[str] = None
    transcription: Optional[str] = None
    location: Optional[GeoLocation] = None
    created_at: datetime
    credits_earned: int = Field(0, ge=0)
    verification_status: VerificationStatus = VerificationStatus.PENDING
    fraud_score: int = Field(0, ge=0, le=100)
    flagged_for_review: bool = False
    verification_metadata: dict[str, Any] = Field(default_factory=dict)


class ExtractedActivity(BaseModel):
    """Structured fields extracted from free text."""

    activity_type: ActivityType = ActivityType.OTHER
    crop_name: Optional[str] = None
    area: Optional[str] = None
    description: str = ""


class CheckResult(BaseModel):
    """Result of a single heuristic check (location, frequency, pattern)."""

    valid: bool = True
    score: int = 0
    reasons: list[str] = Field(default_factory=list)


class VerificationOutcome(BaseModel):
    """Aggregated anti-fraud verdict for a submission."""

    passed: bool = True
    fraud_score: int = Field(0, ge=0, le=100)  # Clamped for reporting
    raw_score: int = Field(0, ge=0)  # Unclamped sum used for gating
    reasons: list[str] = Field(default_factory=list)
    flagged: bool = False
    location_valid: bool = True

    @property
    def verification_status(self) -> VerificationStatus:
        """Map the verdict onto the persisted review state."""
        if self.flagged:
            return VerificationStatus.FLAGGED
        if self.passed:
            return VerificationStatus.VERIFIED
        return VerificationStatus.PENDING


class SubmissionResult(BaseModel):
    """Outcome returned to the caller for an accepted submission."""

    accepted: bool = True
    credits_awarded: int = Field(0, ge=0)
    verification_status: VerificationStatus
    fraud_score: int = Field(0, ge=0, le=100)
    reasons: list[str] = Field(default_factory=list)
    activity: Optional[ActivityRecord] = None


class ActivitySubmission(BaseModel):
    """Schema for logging a text activity through the API."""

    description: str = Field(..., min_length=1, max_length=5000)
    crop: Optional[str] = Field(None, max_length=100)
    area: Optional[str] = Field(None, max_length=100)
    location: Optional[GeoLocation] = None
    language: Optional[str] = Field(None, max_length=10)


class ActivityListResponse(BaseModel):
    """Paginated activity history."""

    activities: list[ActivityRecord]
    limit: int
    offset: int
