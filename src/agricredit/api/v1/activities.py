"""
Activity logging endpoints.

Submissions go through the full verification pipeline; only accepted
activities are stored and returned in the history listing.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from agricredit.api.deps import get_current_user_id, get_submission_pipeline
from agricredit.repositories.provider import ActivityHistoryProtocol, get_activity_repository
from agricredit.schemas.activity import (
    ActivityListResponse,
    ActivitySubmission,
    ActivityType,
    SubmissionResult,
)
from agricredit.services.submission_pipeline import SubmissionPipeline

router = APIRouter()


@router.post("", response_model=SubmissionResult, status_code=status.HTTP_201_CREATED)
async def log_activity(
    submission: ActivitySubmission,
    user_id: Annotated[str, Depends(get_current_user_id)],
    pipeline: SubmissionPipeline = Depends(get_submission_pipeline),
) -> SubmissionResult:
    """
    Log a farming activity from a typed description.

    The description is scored for quality, structured, checked against the
    caller's recent history and credited. Rejections return 400 with the
    reasons that triggered them; nothing is stored in that case.
    """
    return await pipeline.submit(
        user_id,
        text=submission.description,
        location=submission.location,
        crop=submission.crop,
        area=submission.area,
        language=submission.language,
    )


@router.get("", response_model=ActivityListResponse)
async def list_activities(
    user_id: Annotated[str, Depends(get_current_user_id)],
    activity_type: Optional[ActivityType] = None,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    history: ActivityHistoryProtocol = Depends(get_activity_repository),
) -> ActivityListResponse:
    """Get the caller's logged activities, newest first."""
    activities = await history.list_recent(user_id, limit=limit, offset=offset, activity_type=activity_type)
    return ActivityListResponse(activities=activities, limit=limit, offset=offset)
