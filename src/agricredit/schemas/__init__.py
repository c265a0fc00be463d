"""Schemas module initialization."""

from agricredit.schemas.activity import (
    ActivityListResponse,
    ActivityRecord,
    ActivitySubmission,
    ActivityType,
    CheckResult,
    ExtractedActivity,
    GeoLocation,
    SubmissionResult,
    VerificationOutcome,
    VerificationStatus,
)

__all__ = [
    "ActivityListResponse",
    "ActivityRecord",
    "ActivitySubmission",
    "ActivityType",
    "CheckResult",
    "ExtractedActivity",
    "GeoLocation",
    "SubmissionResult",
    "VerificationOutcome",
    "VerificationStatus",
]
