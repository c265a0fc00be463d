"""
Shared dependencies for API endpoints.

Includes:
- Caller identity (set by the upstream authentication gateway)
- Submission pipeline wiring over the configured activity history
"""

from typing import Annotated, Optional

import structlog
from fastapi import Depends, Header, HTTPException, status

from agricredit.repositories.provider import ActivityHistoryProtocol, get_activity_repository
from agricredit.services.submission_pipeline import SubmissionPipeline

logger = structlog.get_logger(__name__)

MAX_USER_ID_LENGTH = 64


async def get_current_user_id(
    x_user_id: Annotated[Optional[str], Header()] = None,
) -> str:
    """
    Extract the authenticated caller's id from the X-User-Id header.

    Raises:
        HTTPException: If the header is missing, blank or too long.
    """
    user_id = (x_user_id or "").strip()
    if not user_id or len(user_id) > MAX_USER_ID_LENGTH:
        logger.warning("missing_user_identity")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user_id


async def get_submission_pipeline(
    history: ActivityHistoryProtocol = Depends(get_activity_repository),
) -> SubmissionPipeline:
    """Build a pipeline bound to this request's activity history."""
    return SubmissionPipeline(history)
