"""
Activity repository for database operations.

Read side serves the anti-fraud history checks (time-range queries on
user_id + created_at); write side appends accepted activities.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from agricredit.models.activity import Activity
from agricredit.schemas.activity import ActivityRecord, ActivityType, GeoLocation, VerificationStatus


def activity_to_record(activity: Activity) -> ActivityRecord:
    """Convert an Activity ORM row into an ActivityRecord schema."""
    location = None
    if activity.latitude is not None and activity.longitude is not None:
        location = GeoLocation(
            latitude=activity.latitude,
            longitude=activity.longitude,
            accuracy=activity.location_accuracy,
        )

    return ActivityRecord(
        id=str(activity.id),
        user_id=activity.user_id,
        activity_type=ActivityType(activity.activity_type),
        crop_name=activity.crop_name,
        area=activity.area,
        description=activity.description or "",
        raw_text=activity.raw_text,
        transcription=activity.transcription,
        location=location,
        created_at=activity.created_at,
        credits_earned=activity.credits_earned or 0,
        verification_status=VerificationStatus(activity.verification_status),
        fraud_score=activity.fraud_score or 0,
        flagged_for_review=bool(activity.flagged_for_review),
        verification_metadata=activity.verification_metadata or {},
    )


class ActivityRepository:
    """Repository for activity database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_since(
        self,
        user_id: str,
        since: datetime,
        activity_type: Optional[ActivityType] = None,
        limit: Optional[int] = None,
    ) -> list[ActivityRecord]:
        """Get a user's activities created at or after ``since``, newest first."""
        conditions = [Activity.user_id == user_id, Activity.created_at >= since]
        if activity_type is not None:
            conditions.append(Activity.activity_type == activity_type.value)

        query = select(Activity).where(and_(*conditions)).order_by(Activity.created_at.desc())
        if limit is not None:
            query = query.limit(limit)

        result = await self.db.execute(query)
        return [activity_to_record(a) for a in result.scalars().all()]

    async def count_since(self, user_id: str, since: datetime) -> int:
        """Count a user's activities created at or after ``since``."""
        result = await self.db.execute(
            select(func.count(Activity.id)).where(
                and_(
                    Activity.user_id == user_id,
                    Activity.created_at >= since,
                )
            )
        )
        return result.scalar() or 0

    async def list_recent(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
        activity_type: Optional[ActivityType] = None,
    ) -> list[ActivityRecord]:
        """Get a user's most recent activities (paginated)."""
        query = select(Activity).where(Activity.user_id == user_id)
        if activity_type is not None:
            query = query.where(Activity.activity_type == activity_type.value)
        query = query.order_by(Activity.created_at.desc()).offset(offset).limit(limit)

        result = await self.db.execute(query)
        return [activity_to_record(a) for a in result.scalars().all()]

    async def create(self, record: ActivityRecord) -> ActivityRecord:
        """Persist a verified activity with its verification metadata."""
        location = record.location
        activity = Activity(
            id=record.id,
            user_id=record.user_id,
            activity_type=record.activity_type.value,
            crop_name=record.crop_name,
            area=record.area,
            description=record.description,
            raw_text=record.raw_text,
            transcription=record.transcription,
            latitude=location.latitude if location else None,
            longitude=location.longitude if location else None,
            location_accuracy=location.accuracy if location else None,
            verification_status=record.verification_status.value,
            fraud_score=record.fraud_score,
            flagged_for_review=record.flagged_for_review,
            verification_metadata=record.verification_metadata,
            credits_earned=record.credits_earned,
            created_at=record.created_at,
        )

        self.db.add(activity)
        await self.db.flush()

        return record
